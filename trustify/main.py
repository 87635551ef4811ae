# main.py

from __future__ import annotations

import json
import secrets
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import logging
import sentry_sdk
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from trustify import config
from trustify.auth import MANAGER_ROLES, create_access_token, verify_access_token
from trustify.products import add_product_image
from trustify.ratelimit import check_guest_scan_limit
from trustify.scanner import analyze_image, report_from_result, to_public
from trustify.scanner.images import load_image
from trustify.storage import get_store, normalize_product
from trustify.users import create_user, verify_user_credentials

if config.SENTRY_DSN:
    sentry_sdk.init(dsn=config.SENTRY_DSN, traces_sample_rate=0.2)

logger = logging.getLogger("trustify")
logging.basicConfig(level=logging.INFO, format="%(message)s")

logger.info("[MODE] %s", "SQL" if config.USE_SQL else "LOCAL JSON")

app = FastAPI(title="Trustify API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
)

config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(config.UPLOAD_DIR)), name="uploads")


# Return JSON for unexpected errors/validation failures to avoid empty/HTML responses
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(json.dumps({"event": "error", "path": str(request.url), "error": str(exc)}))
    return JSONResponse({"error": "internal_error"}, status_code=500)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "invalid_request", "detail": exc.errors()}, status_code=422)


@app.middleware("http")
async def request_log(request: Request, call_next):
    request_id = secrets.token_hex(8)
    request.state.request_id = request_id
    start_time = time.time()
    response = await call_next(request)
    duration = round((time.time() - start_time) * 1000, 2)
    logger.info(
        json.dumps(
            {
                "event": "request",
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "duration_ms": duration,
            }
        )
    )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


# ---------------------------------------------------------
# Models
# ---------------------------------------------------------
class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ProductRequest(BaseModel):
    gtin: str = Field(..., min_length=1)
    name: str = ""
    brand: str = ""
    batch: str = ""
    status: str = ""
    trust_score: int = Field(0, ge=0, le=100)


class ReportRequest(BaseModel):
    gtin: Optional[str] = None
    reason: Optional[str] = None
    email: Optional[str] = None


class PushSubscriptionRequest(BaseModel):
    endpoint: Optional[str] = None
    keys: Dict[str, Any] = Field(default_factory=dict)
    expirationTime: Optional[float] = None


# ---------------------------------------------------------
# Helpers
# ---------------------------------------------------------
def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(code: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"error": code, **extra}, status_code=status_code)


def get_current_claims(request: Request) -> Optional[dict]:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return verify_access_token(token) if token else None


def _require_manager(request: Request) -> Optional[JSONResponse]:
    claims = get_current_claims(request)
    if not claims:
        return _error("unauthorized", 401)
    if claims.get("role") not in MANAGER_ROLES:
        return _error("forbidden", 403)
    return None


async def _read_upload(image: UploadFile) -> bytes | JSONResponse:
    data = await image.read()
    if len(data) > config.MAX_UPLOAD_BYTES:
        return _error("image_too_large", 413)
    try:
        load_image(data)
    except Exception:
        return _error("invalid_image", 400)
    return data


def _scan_item(store, name, brand, gtin, batch) -> Dict[str, Any]:
    """Known product record overlaid with whatever the client sent."""
    item: Dict[str, Any] = {}
    if gtin:
        item.update(store.get_product(gtin.strip()) or {})
    for key, value in (("name", name), ("brand", brand), ("gtin", gtin), ("batch", batch)):
        if value:
            item[key] = value.strip()
    return item


# ---------------------------------------------------------
# Health / auth
# ---------------------------------------------------------
@app.get("/api/health")
def health(store=Depends(get_store)):
    return {"ok": True, "mode": store.mode, "web": "/index.html"}


@app.post("/api/signup")
def signup(body: SignupRequest, store=Depends(get_store)):
    if not body.email or not body.password or not body.role:
        return _error("missing_field", 400)
    try:
        create_user(store, body.email, body.password, body.role)
    except ValueError as e:
        return _error(str(e), 400)
    return {"ok": True}


@app.post("/api/login")
def login(body: LoginRequest, store=Depends(get_store)):
    if not body.email or not body.password:
        return _error("invalid_login", 401)
    user = verify_user_credentials(store, body.email, body.password)
    if not user:
        return _error("invalid_login", 401)
    return {"ok": True, "role": user["role"], "token": create_access_token(user)}


# Guest = customer
@app.get("/api/guest")
def guest():
    return {"ok": True, "role": "customer", "guest": True}


# ---------------------------------------------------------
# Products / images
# ---------------------------------------------------------
@app.get("/api/products")
def list_products(store=Depends(get_store)):
    return store.list_products()


@app.get("/api/products/{gtin}")
def get_product(gtin: str, store=Depends(get_store)):
    product = store.get_product(gtin)
    if not product:
        return _error("not_found", 404)
    return product


@app.post("/api/products")
def upsert_product(body: ProductRequest, request: Request, store=Depends(get_store)):
    denied = _require_manager(request)
    if denied:
        return denied
    product = store.upsert_product(normalize_product(body.model_dump()))
    logger.info("product saved gtin=%s", product["gtin"])
    return {"ok": True, "product": product}


@app.get("/api/products/{gtin}/images")
def list_product_images(gtin: str, store=Depends(get_store)):
    return store.list_images(gtin)


@app.post("/api/products/{gtin}/images")
async def upload_product_image(
    gtin: str,
    image: UploadFile = File(...),
    angle: Optional[str] = Form(None),
    store=Depends(get_store),
):
    data = await _read_upload(image)
    if isinstance(data, JSONResponse):
        return data
    try:
        record = await run_in_threadpool(
            add_product_image,
            store,
            config.UPLOAD_DIR,
            gtin,
            image.filename or "upload",
            data,
            angle=angle,
            auto_insert=config.AUTO_INSERT_PRODUCT,
        )
    except LookupError:
        return _error("not_found", 404)
    logger.info("image uploaded gtin=%s url=%s", gtin, record["image_url"])
    return {"ok": True, "image": record}


# ---------------------------------------------------------
# Scan
# ---------------------------------------------------------
async def _run_scan(request: Request, image: UploadFile, store, name, brand, gtin, batch):
    if not get_current_claims(request):
        allowed, remaining = await run_in_threadpool(check_guest_scan_limit, request)
        if not allowed:
            return None, None, _error("rate_limited", 429, remaining=remaining)

    data = await _read_upload(image)
    if isinstance(data, JSONResponse):
        return None, None, data

    item = await run_in_threadpool(_scan_item, store, name, brand, gtin, batch)
    result = await run_in_threadpool(analyze_image, data, item, store, config.UPLOAD_DIR)

    await run_in_threadpool(
        store.add_scan,
        {
            "id": uuid.uuid4().hex,
            "gtin": item.get("gtin") or result["suggested"]["gtin"],
            "confidence": result["ai"]["confidence"],
            "label": result["ai"]["label"],
            "ok": result["ok"],
            "created_at": _now_iso(),
        },
    )
    return item, result, None


@app.post("/api/scan")
async def scan(
    request: Request,
    image: UploadFile = File(...),
    name: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    gtin: Optional[str] = Form(None),
    batch: Optional[str] = Form(None),
    store=Depends(get_store),
):
    _, result, failure = await _run_scan(request, image, store, name, brand, gtin, batch)
    if failure is not None:
        return failure
    return to_public(result)


@app.post("/api/scan/report")
async def scan_report(
    request: Request,
    image: UploadFile = File(...),
    name: Optional[str] = Form(None),
    brand: Optional[str] = Form(None),
    gtin: Optional[str] = Form(None),
    batch: Optional[str] = Form(None),
    store=Depends(get_store),
):
    item, result, failure = await _run_scan(request, image, store, name, brand, gtin, batch)
    if failure is not None:
        return failure
    pdf = await run_in_threadpool(report_from_result, result, item)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="trustify-report.pdf"'},
    )


@app.get("/api/scans")
def list_scans(gtin: Optional[str] = None, store=Depends(get_store)):
    return store.list_scans(gtin)


# ---------------------------------------------------------
# Counterfeit reports
# ---------------------------------------------------------
@app.post("/api/reports")
def create_report(body: ReportRequest, store=Depends(get_store)):
    if not body.gtin or not body.reason:
        return _error("missing_field", 400)
    record = store.add_report(
        {
            "id": uuid.uuid4().hex,
            "gtin": body.gtin.strip(),
            "reason": body.reason.strip(),
            "email": (body.email or "").strip().lower() or None,
            "created_at": _now_iso(),
        }
    )
    logger.info("counterfeit report gtin=%s", record["gtin"])
    return {"ok": True, "report": record}


@app.get("/api/reports")
def list_reports(request: Request, store=Depends(get_store)):
    denied = _require_manager(request)
    if denied:
        return denied
    return store.list_reports()


# ---------------------------------------------------------
# Web push registration
# ---------------------------------------------------------
@app.get("/api/push/vapid")
def push_vapid():
    return {"publicKey": config.VAPID_PUBLIC_KEY}


@app.get("/app.vapid.js")
def vapid_js():
    body = f"window.__VAPID = {json.dumps(config.VAPID_PUBLIC_KEY)};\n"
    return Response(content=body, media_type="application/javascript")


@app.post("/api/push/subscribe")
def push_subscribe(body: PushSubscriptionRequest, store=Depends(get_store)):
    if not body.endpoint:
        return _error("missing_field", 400)
    store.add_push_subscription(
        {"endpoint": body.endpoint, "keys": body.keys, "created_at": _now_iso()}
    )
    return {"ok": True}


# Web client last so API routes win
if config.WEB_DIR.is_dir():
    app.mount("/", StaticFiles(directory=str(config.WEB_DIR), html=True), name="web")
