# --- imports (top of bloodwise/app.py) ---
import json
import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware

from bloodwise import settings, __version__
from bloodwise.middleware.tracing import TRACE_ID_CTX_VAR, TracingMiddleware
from bloodwise.models import init_db
from bloodwise.routers.profile import router as profile_router
from bloodwise.routes import report_routes
from bloodwise.services.storage import AnalysisStorage, SqlAlchemyStore
from bloodwise.utils.exceptions import (
    PipelinePreconditionError,
    handle_http_exception,
    handle_precondition_error,
    handle_unhandled_exception,
)

app = FastAPI(title="Bloodwise Backend", version=__version__)


# --- logging setup ---
class JsonFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        message = record.msg if isinstance(record.msg, dict) else record.getMessage()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "function": record.funcName,
            "trace_id": TRACE_ID_CTX_VAR.get(),
            "message": message,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("bloodwise")
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    return logger


logger = configure_logging()

app.add_middleware(TracingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, handle_http_exception)
app.add_exception_handler(PipelinePreconditionError, handle_precondition_error)
app.add_exception_handler(Exception, handle_unhandled_exception)


@app.on_event("startup")
def _init_storage():
    # tests install their own storage before the app starts
    if getattr(app.state, "storage", None) is None:
        init_db()
        app.state.storage = AnalysisStorage(SqlAlchemyStore())
    logger.info({
        "function": "startup",
        "store": type(app.state.storage.store).__name__,
        "enrichment": bool(settings.AI_ENRICHMENT_ENABLED and settings.GEMINI_API_KEY),
        "model": settings.GEMINI_MODEL,
    })


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__}


app.include_router(profile_router)
app.include_router(report_routes.router)
