import asyncio
import os

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config import is_ai_kill_switch_on, settings
from app.database import SessionLocal, get_db
from app.logging_config import get_logger, setup_logging
from app.routers import bookings, conversations, drafts, webhook
from app.services.alert_service import alert_critical
from app.services.booking_service import expire_stale_proposals
from app.services.classifier_service import KeywordClassifier, LLMClassifier
from app.services.draft_service import LLMDraftGenerator
from app.services.errors import BookingCoreError, ErrorKind
from app.services.llm import OpenAIProvider
from app.services.rate_limiter import TokenBucket

setup_logging()

logger = get_logger("main")

app = FastAPI(
    title="FrostDesk API",
    description="Booking decision core for instructor messaging",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook.router)
app.include_router(bookings.router)
app.include_router(drafts.router)
app.include_router(conversations.router)

HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.TRANSITION_CONFLICT: 409,
    ErrorKind.BOOKING_NOT_FOUND: 404,
    ErrorKind.MALFORMED_DEDUP_KEY: 400,
    ErrorKind.AUDIT_WRITE_FAILED: 500,
    ErrorKind.AUDIT_CHAIN_BROKEN: 500,
}


@app.exception_handler(BookingCoreError)
async def booking_core_error_handler(request: Request, exc: BookingCoreError) -> JSONResponse:
    status_code = HTTP_STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(
            "Request failed",
            extra={"context": {"path": request.url.path, "kind": exc.kind.value, "error": exc.message}},
        )
    return JSONResponse(status_code=status_code, content={"detail": exc.message, "kind": exc.kind.value})


def build_classifier():
    if settings.classifier_mode == "llm":
        if not settings.openai_api_key:
            logger.warning("CLASSIFIER_MODE=llm without OPENAI_API_KEY, using keyword classifier")
            return KeywordClassifier()
        return LLMClassifier(OpenAIProvider(settings.openai_api_key, default_model=settings.ai_model))
    return KeywordClassifier()


def build_draft_generator() -> LLMDraftGenerator:
    return LLMDraftGenerator(OpenAIProvider(settings.openai_api_key or "", default_model=settings.ai_model))


app.state.classifier = build_classifier()
app.state.draft_generator = build_draft_generator()
app.state.outbound_bucket = TokenBucket(settings.outbound_rate_capacity, settings.outbound_rate_refill_per_second)

sweeper_logger = get_logger("expiry_sweeper")
_expiry_sweeper_task: asyncio.Task | None = None


def _is_expiry_sweeper_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.expiry_sweep_enabled


def run_expiry_sweep() -> list:
    db = SessionLocal()
    try:
        expired = expire_stale_proposals(db)
        db.commit()
        return expired
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


async def _expiry_sweeper_loop() -> None:
    while True:
        try:
            await asyncio.sleep(max(settings.expiry_sweep_interval_seconds, 1.0))
            expired = await asyncio.to_thread(run_expiry_sweep)
            if expired:
                sweeper_logger.info("Expiry sweep finished", extra={"context": {"expired": len(expired)}})
        except asyncio.CancelledError:
            break
        except Exception as exc:
            sweeper_logger.error("Expiry sweep failed", extra={"context": {"error": str(exc)}})
            alert_critical("Booking expiry sweep failed", {"error": str(exc)})


@app.on_event("startup")
async def start_expiry_sweeper() -> None:
    global _expiry_sweeper_task
    if not _is_expiry_sweeper_enabled():
        return
    if _expiry_sweeper_task is None or _expiry_sweeper_task.done():
        _expiry_sweeper_task = asyncio.create_task(_expiry_sweeper_loop())
        sweeper_logger.info("Expiry sweeper started")


@app.on_event("shutdown")
async def stop_expiry_sweeper() -> None:
    global _expiry_sweeper_task
    if _expiry_sweeper_task is None:
        return
    _expiry_sweeper_task.cancel()
    try:
        await _expiry_sweeper_task
    except asyncio.CancelledError:
        pass
    _expiry_sweeper_task = None


@app.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        logger.error("Health check database error", extra={"context": {"error": str(exc)}})
        database = "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "ai_kill_switch": is_ai_kill_switch_on(),
        "classifier": type(app.state.classifier).__name__,
    }
