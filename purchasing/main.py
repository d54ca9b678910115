from fastapi import FastAPI, Depends, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.config import settings
from purchasing.database import AsyncSessionLocal, init_db, close_db, get_db
from purchasing.exceptions import PurchasingError
from purchasing.logging_config import setup_logging
from purchasing.middleware.correlation import CorrelationIdMiddleware
from purchasing.services.request_store import RequestStore
from purchasing.services.settings_service import RequestSettingsProvider

# Import models so they are registered with Base.metadata
import purchasing.models  # noqa: F401

logger = structlog.get_logger()


async def seed_request_settings(provider: RequestSettingsProvider) -> None:
    async with AsyncSessionLocal() as session:
        await provider.ensure_defaults(session)
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_purchasing", env=settings.ENVIRONMENT)
    await init_db()
    provider = RequestSettingsProvider()
    await seed_request_settings(provider)
    app.state.request_store = RequestStore(settings_provider=provider)
    yield
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers. Every error body has the shape
# {"error": {"code": "...", "message": "..."}}
# ---------------------------------------------------------------------------

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, str):
        detail = {"error": {"code": "HTTP_ERROR", "message": detail}}
    elif isinstance(detail, dict) and "error" not in detail:
        detail = {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


@app.exception_handler(PurchasingError)
async def purchasing_exception_handler(request: Request, exc: PurchasingError) -> JSONResponse:
    logger.info("request_rejected", code=exc.code, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": jsonable_encoder(exc.to_dict())},
    )


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from purchasing.routes.purchase_requests import router as pr_router  # noqa: E402
from purchasing.routes.request_settings import router as settings_router  # noqa: E402

app.include_router(pr_router, prefix="/api/v1/purchase-requests", tags=["Purchase Requests"])
app.include_router(settings_router, prefix="/api/v1/request-settings", tags=["Request Settings"])
