"""
OrderPick - FastAPI application entry point.
CORS enabled; health check at GET /health; DB initialized on startup;
domain errors rendered as a single JSON error body.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orderpick.config import load_remote_settings
from orderpick.db import init_db
from orderpick.errors import ConfigMissing, OrderPickError
from orderpick.api.routes import router as api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize DB; warn early when the remote platform is not configured."""
    init_db()
    try:
        load_remote_settings()
    except ConfigMissing as e:
        logger.warning("remote_config_missing", extra={"error": e.message})
    yield


app = FastAPI(
    title="OrderPick",
    description="Manual purchase progress for remote orders: per-item tracking, completion write-back.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api", tags=["api"])


@app.exception_handler(OrderPickError)
async def orderpick_error_handler(request: Request, exc: OrderPickError):
    if exc.status_code >= 500:
        logger.error("request_failed", extra={"path": request.url.path, "error_code": exc.error_code})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": [str(p) for p in e.get("loc", ())], "reason": str(e.get("msg") or e.get("type") or "invalid")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error_code": "validation_error", "message": "Request parameters are invalid", "details": details},
    )


@app.get("/health")
def health():
    """Health check for load balancers and readiness probes."""
    return {"status": "ok"}
