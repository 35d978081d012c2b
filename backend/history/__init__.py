# backend/history/__init__.py

from .export import export_filename, filter_history, to_csv, today_in, unique_types
from .store import HistoryCorruptError, HistoryStore, JsonFileStore, PostgresStore, build_store
