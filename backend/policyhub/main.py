"""
Policy Lifecycle Manager: FastAPI Application Entry Point.
Structured logging, typed error mapping and store bootstrap.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from policyhub.config import settings
from policyhub.core.errors import PolicyEngineError
from policyhub.core.logging import setup_logging, get_logger

# Initialize structured logging FIRST
setup_logging(level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting Policy Lifecycle Manager", extra={
        "event": "startup",
        "app_name": settings.APP_NAME,
        "environment": settings.APP_ENV,
        "store_backend": settings.STORE_BACKEND,
    })

    engine = None
    if settings.STORE_BACKEND == "postgres":
        from policyhub.database.postgresql import engine, Base
        # Register every table on Base.metadata
        from policyhub.policy.models import Policy  # noqa: F401
        from policyhub.revisions.models import PolicyRevision  # noqa: F401
        from policyhub.forms.models import Form  # noqa: F401
        from policyhub.audit.models import AuditLog  # noqa: F401
        from policyhub.notifications.models import Notification  # noqa: F401
        from policyhub.comments.models import PolicyComment  # noqa: F401
        from policyhub.numbering.models import NumberSequence  # noqa: F401

        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("PostgreSQL tables ready", extra={"event": "db_ready", "db": "postgresql"})
        except Exception as exc:
            logger.error(f"Database bootstrap failed: {exc}", extra={"event": "startup_partial_failure"})
            if settings.is_production:
                logger.critical("Fatal startup failure in production. Crashing.")
                raise
            logger.warning("Continuing startup in non-production mode with degraded features.")
    else:
        logger.warning("Using in-memory record store; data is lost on restart", extra={"event": "db_ready", "db": "memory"})

    yield

    # ── Shutdown ──
    if engine is not None:
        await engine.dispose()
    logger.info("Application shutdown complete", extra={"event": "shutdown"})


# ── Application ──
app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    lifespan=lifespan,
)

# ── CORS ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping ──
@app.exception_handler(PolicyEngineError)
async def policy_engine_error_handler(request: Request, exc: PolicyEngineError):
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        exc.message,
        extra={"event": "request_failed", "error": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# ── Routers ──
from policyhub.auth.router import router as auth_router
from policyhub.policy.router import router as policy_router
from policyhub.workflow.router import router as workflow_router
from policyhub.versioning.router import router as versioning_router
from policyhub.revisions.router import router as revisions_router
from policyhub.forms.router import router as forms_router
from policyhub.audit.router import router as audit_router
from policyhub.notifications.router import router as notifications_router
from policyhub.comments.router import router as comments_router

app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(policy_router, prefix="/api/policies", tags=["Policies"])
app.include_router(workflow_router, prefix="/api/workflow", tags=["Workflow"])
app.include_router(versioning_router, prefix="/api/versioning", tags=["Versioning"])
app.include_router(revisions_router, prefix="/api/revisions", tags=["Revisions"])
app.include_router(forms_router, prefix="/api/forms", tags=["Forms"])
app.include_router(audit_router, prefix="/api/audit", tags=["Audit"])
app.include_router(notifications_router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(comments_router, prefix="/api/comments", tags=["Comments"])


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": APP_VERSION,
        "status": "running",
        "store_backend": settings.STORE_BACKEND,
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
