"""Environment-driven configuration, loaded once from bloodwise/.env."""
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(ENV_PATH, override=False)


def _env_flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).strip().lower() not in {"0", "false", "off", "no"}


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


GEMINI_API_KEY = (os.getenv("GEMINI_API_KEY", "") or "").strip()
GEMINI_MODEL = (os.getenv("GEMINI_MODEL") or "gemini-2.5-flash").strip()
AI_ENRICHMENT_ENABLED = _env_flag("AI_ENRICHMENT_ENABLED", "true")
ENRICHMENT_TIMEOUT_S = _env_float("ENRICHMENT_TIMEOUT_S", 30.0)
CORS_ORIGINS = [
    o.strip()
    for o in (os.getenv("CORS_ORIGINS") or "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]
MAX_FILE_MB = int(os.getenv("MAX_FILE_MB", "10"))
# Serve a built-in sample report instead of running PDF/OCR extraction
USE_MOCK_DATA = _env_flag("USE_MOCK_DATA", "false")
