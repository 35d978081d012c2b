# main.py

from __future__ import annotations

from typing import List, Optional

import json
import logging
import secrets
import time

import redis
import sentry_sdk
from fastapi import Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from backend import config
from backend.analytics.analytics import analyze
from backend.history import (
    HistoryCorruptError,
    HistoryStore,
    build_store,
    export_filename,
    filter_history,
    to_csv,
    today_in,
    unique_types,
)
from backend.models import (
    ClassifyRequest,
    DeleteHistoryRequest,
    GenerateRequest,
    GenerateResponse,
    IntentType,
    ScanRequest,
)
from backend.qr_scanner.classifier import action_for, classify
from backend.qr_scanner.encoder import encode_mapping
from backend.qr_scanner.qr_engine import describe_event, process_qr_image, scan_payload
from backend.qr_scanner.qr_utils import ImageDecodeError
from backend.qr_scanner.render import RenderError, render_png, to_data_url

# Init Sentry if configured
if config.SENTRY_DSN:
    sentry_sdk.init(dsn=config.SENTRY_DSN, traces_sample_rate=0.2)

logger = logging.getLogger("qrhub")
logging.basicConfig(level=config.LOG_LEVEL, format="%(message)s")

app = FastAPI(title="QR Intent Hub API")

ALLOWED_ORIGINS = list(
    {
        config.FRONTEND_URL,
        config.FRONTEND_URL.replace("www.", ""),
    }
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Return JSON for unexpected errors/validation failures to avoid empty/HTML responses
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(json.dumps({"event": "error", "path": str(request.url), "error": str(exc)}))
    return JSONResponse({"error": "Internal server error."}, status_code=500)


@app.exception_handler(HistoryCorruptError)
async def history_corrupt_handler(request: Request, exc: HistoryCorruptError):
    logger.error(json.dumps({"event": "history_corrupt", "path": str(request.url), "error": str(exc)}))
    return JSONResponse({"error": "Scan history is unreadable."}, status_code=503)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Invalid request.", "detail": json.loads(json.dumps(exc.errors(), default=str))},
        status_code=422,
    )


# Global headers middleware for security headers + request id
@app.middleware("http")
async def security_headers(request: Request, call_next):
    request_id = secrets.token_hex(8)
    request.state.request_id = request_id
    start_time = time.time()
    response = await call_next(request)
    duration = round((time.time() - start_time) * 1000, 2)
    log_payload = {
        "event": "request",
        "request_id": request_id,
        "path": request.url.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration,
        "ip": _get_client_ip(request),
    }
    logger.info(json.dumps(log_payload))
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


# ---------------------------------------------------------
# Dependencies
# ---------------------------------------------------------
_STORE: Optional[HistoryStore] = None


def get_store() -> HistoryStore:
    global _STORE
    if _STORE is None:
        _STORE = build_store()
    return _STORE


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def _redis_client() -> redis.Redis:
    return redis.Redis.from_url(config.REDIS_URL, decode_responses=True)


def _get_client_ip(request: Request) -> str:
    xfwd = request.headers.get("x-forwarded-for")
    if xfwd:
        return xfwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _enforce_rate_limit(request: Request, scope: str) -> Optional[JSONResponse]:
    """Daily per-IP counter in Redis. No-op when REDIS_URL is not configured."""
    if not config.REDIS_URL:
        return None
    ip = _get_client_ip(request)
    key = f"rate:{scope}:{ip}"
    try:
        r = _redis_client()
        count = r.incr(key)
        if count == 1:
            r.expire(key, 86400)
    except redis.RedisError as exc:
        return JSONResponse({"error": f"Rate limit backend unavailable: {exc}"}, status_code=503)

    if count > config.RATE_LIMIT_PER_DAY:
        return JSONResponse(
            {"error": "Too many requests. Slow down.", "retry_after": r.ttl(key)},
            status_code=429,
        )
    return None


def _history_log(event: str, **fields) -> None:
    payload = {"event": event}
    payload.update(fields)
    logger.info(json.dumps(payload))


# ---------------------------------------------------------
# HEALTH
# ---------------------------------------------------------
@app.get("/health")
def health():
    return {"status": "ok", "history_backend": config.HISTORY_BACKEND}


# ---------------------------------------------------------
# SCAN / CLASSIFY
# ---------------------------------------------------------
@app.post("/classify")
def classify_payload(body: ClassifyRequest):
    intent = classify(body.data)
    result = {"type": intent.value}
    result.update(action_for(intent, body.data))
    return result


@app.post("/scan")
def scan(body: ScanRequest, request: Request, store: HistoryStore = Depends(get_store)):
    rl = _enforce_rate_limit(request, "scan")
    if rl:
        return rl

    event = scan_payload(body.data, body.format)
    store.append(event)
    _history_log("scan_recorded", id=event.id, qr_type=event.type.value, format=event.format)
    return describe_event(event)


@app.post("/qr")
async def qr(
    request: Request,
    image: UploadFile = File(...),
    store: HistoryStore = Depends(get_store),
):
    rl = _enforce_rate_limit(request, "qr")
    if rl:
        return rl

    max_bytes = config.MAX_IMAGE_BYTES
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        return JSONResponse({"error": f"Image too large. Max {max_bytes // (1024 * 1024)}MB."}, status_code=413)

    img_bytes = await image.read()
    if len(img_bytes) > max_bytes:
        return JSONResponse({"error": f"Image too large. Max {max_bytes // (1024 * 1024)}MB."}, status_code=413)

    try:
        events = process_qr_image(img_bytes)
    except ImageDecodeError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    for event in events:
        store.append(event)

    return {
        "qr_found": bool(events),
        "count": len(events),
        "items": [describe_event(e) for e in events],
    }


# ---------------------------------------------------------
# GENERATE
# ---------------------------------------------------------
@app.post("/generate", response_model=GenerateResponse)
def generate(body: GenerateRequest, request: Request):
    rl = _enforce_rate_limit(request, "generate")
    if rl:
        return rl

    try:
        intent = IntentType.from_name(body.type)
        payload = encode_mapping(intent, body.fields)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    image = None
    if body.render:
        try:
            png = render_png(
                payload,
                size=body.size,
                margin=body.margin,
                foreground=body.foreground,
                background=body.background,
                error_correction=body.error_correction,
            )
        except RenderError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)
        image = to_data_url(png)

    _history_log("payload_generated", qr_type=intent.value, length=len(payload), rendered=body.render)
    return GenerateResponse(type=intent, payload=payload, image=image)


# ---------------------------------------------------------
# HISTORY
# ---------------------------------------------------------
@app.get("/history")
def history(
    search: str = "",
    type: str = "all",
    sort: str = "newest",
    limit: int = Query(500, ge=1, le=10_000),
    store: HistoryStore = Depends(get_store),
):
    events = store.load()
    try:
        filtered = filter_history(events, search=search, type_filter=type, sort_by=sort)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    return {
        "items": [describe_event(e) for e in filtered[:limit]],
        "total": len(events),
        "showing": len(filtered),
        "types": unique_types(events),
    }


@app.delete("/history")
def clear_history(store: HistoryStore = Depends(get_store)):
    store.clear()
    _history_log("history_cleared")
    return {"success": True}


@app.post("/history/delete")
def delete_history_items(body: DeleteHistoryRequest, store: HistoryStore = Depends(get_store)):
    doomed = set(body.ids)
    removed = store.remove_where(lambda e: e.id in doomed) if doomed else 0
    _history_log("history_items_deleted", requested=len(doomed), removed=removed)
    return {"success": True, "removed": removed}


@app.get("/history/export")
def export_history(
    search: str = "",
    type: str = "all",
    sort: str = "newest",
    ids: Optional[List[str]] = Query(None),
    store: HistoryStore = Depends(get_store),
):
    events = store.load()
    try:
        filtered = filter_history(events, search=search, type_filter=type, sort_by=sort)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    selected = bool(ids)
    if selected:
        wanted = set(ids)
        filtered = [e for e in filtered if e.id in wanted]

    tz = config.evaluating_timezone()
    csv_text = to_csv(filtered, tz=tz)
    filename = export_filename(selected=selected, today=today_in(tz))
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------
# ANALYTICS
# ---------------------------------------------------------
@app.get("/analytics")
def analytics(store: HistoryStore = Depends(get_store)):
    snapshot = analyze(store.load(), tz=config.evaluating_timezone())
    if snapshot is None:
        return {"analytics": None, "message": "No analytics available. Start scanning QR codes."}
    return {"analytics": snapshot.model_dump(mode="json")}
