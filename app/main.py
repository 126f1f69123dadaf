import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.deps import engine
from app.api.routers.admin import router as admin_router
from app.api.routers.health import router as health_router
from app.api.routers.payees import router as payees_router
from app.api.routers.payments import router as payments_router
from app.api.routers.webhooks import router as webhooks_router
from app.api.schemas.payments import ErrorBody, ErrorResponse
from app.config import get_settings
from app.domain.errors import DomainError
from app.infrastructure.db.engine import create_schema

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize DB tables (for dev/demo purposes)
    if not get_settings().use_in_memory:
        await create_schema(engine)
    yield
    # Cleanup
    await engine.dispose()

app = FastAPI(
    title="Escrow Payments API",
    version="0.1.0",
    lifespan=lifespan
)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Domain errors carry their own HTTP status and a stable error code."""
    log = logger.error if exc.http_status >= 500 else logger.info
    log(
        "Domain error",
        extra={
            "code": exc.code,
            "status_code": exc.http_status,
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=ErrorResponse(error=ErrorBody(code=exc.code, message=exc.message)).model_dump(exclude_none=True),
    )


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to prevent stack trace exposure to clients.
    All unhandled exceptions are logged internally and return a generic error message.
    """
    error_id = str(uuid.uuid4())

    # Log the full error with context for internal debugging
    logger.error(
        "Unhandled exception occurred",
        exc_info=exc,
        extra={
            "error_id": error_id,
            "path": request.url.path,
            "method": request.method,
            "client_host": request.client.host if request.client else None,
        }
    )

    # Return a generic error to the client without exposing internal details
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorBody(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred. Please contact support with the error_id if the issue persists.",
            ),
            error_id=error_id,
        ).model_dump(),
    )


app.include_router(health_router, tags=["Health"])
app.include_router(payments_router, prefix="/api/v1", tags=["Payments"])
app.include_router(webhooks_router, prefix="/api/v1", tags=["Webhooks"])
app.include_router(payees_router, prefix="/api/v1", tags=["Payees"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])
