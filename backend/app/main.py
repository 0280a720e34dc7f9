import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.database import engine
from app.core.errors import Internal, WorkflowError
from app.models import Base  # noqa: F401 - register models
from app.routers import (
    admin,
    affiliates,
    connections,
    funding_requests,
    health,
    investors,
    partner_requests,
    tracking,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Marketplace Workflows API",
    description="Seller, investor and affiliate handshakes, funding requests and affiliate attribution",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(status_code: int, error: str, headers=None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, **extra},
        headers=headers,
    )


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s refused (%s): %s", request.method, request.url.path, exc.status_code, exc.message)
    return _failure(exc.status_code, exc.message, **exc.payload)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _failure(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "Invalid request"))
    return _failure(400, "; ".join(parts) or "Invalid request")


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    error = Internal("Internal server error")
    return _failure(error.status_code, error.message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _failure(500, "Internal server error")


app.include_router(health.router, prefix="/health")
app.include_router(connections.router, prefix="/connections")
app.include_router(partner_requests.router, prefix="/partner-requests")
app.include_router(funding_requests.router, prefix="/funding-requests")
app.include_router(affiliates.router, prefix="/affiliates")
app.include_router(investors.router, prefix="/investors")
app.include_router(admin.router, prefix="/admin")
app.include_router(tracking.router, prefix="/track")
app.include_router(tracking.public_router)

# Serve thread documents written by the local object store
upload_dir = Path(settings.UPLOAD_DIR)
upload_dir.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")


@app.on_event("shutdown")
async def shutdown():
    engine.dispose()
