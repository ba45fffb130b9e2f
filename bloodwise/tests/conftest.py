import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Keep tests off the network and off the on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["GEMINI_API_KEY"] = ""
os.environ["AI_ENRICHMENT_ENABLED"] = "false"
os.environ["USE_MOCK_DATA"] = "false"

# Ensure the project root is on sys.path so `import bloodwise` works when running
# pytest from the repository root.
ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from bloodwise.app import app
from bloodwise.db.session import Base
from bloodwise.routes.report_routes import get_enrichment
from bloodwise.schemas.profile import UserProfile
from bloodwise.services.enrichment import EnrichmentAdapter
from bloodwise.services.storage import AnalysisStorage, MemoryStore

SAMPLE_REPORT = (
    "COMPLETE BLOOD COUNT\n"
    "Hemoglobin: 14.2 g/dL (Ref: 13.5-17.5)\n"
    "WBC: 6.8 thousand/μL (Ref: 4.5-11.0)\n"
    "Platelets: 250 thousand/μL (Ref: 150-450)\n"
    "METABOLIC PANEL\n"
    "Glucose: 95 mg/dL (Ref: 70-99)\n"
    "Cholesterol: 180 mg/dL (Ref: <200)\n"
    "HDL: 55 mg/dL (Ref: >40)\n"
    "LDL: 110 mg/dL (Ref: <130)"
)


# In-memory SQLite shared across connections
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def sql_session_factory():
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def male_profile() -> UserProfile:
    return UserProfile(age=42, gender="male")


@pytest.fixture
def female_profile() -> UserProfile:
    return UserProfile(age=35, gender="female", existingConditions="hypothyroidism", medications="levothyroxine")


@pytest.fixture
def sample_report() -> str:
    return SAMPLE_REPORT


@pytest.fixture
def storage() -> AnalysisStorage:
    return AnalysisStorage(MemoryStore())


def make_generator(reply=None, exc=None):
    """Async stand-in for gemini.generate_text that records its prompts."""
    calls = []

    async def fake_generate(prompt, system=None, temperature=0.3, **kwargs):
        calls.append({"prompt": prompt, "system": system, "temperature": temperature})
        if exc is not None:
            raise exc
        return reply

    fake_generate.calls = calls
    return fake_generate


@pytest.fixture
def failing_adapter() -> EnrichmentAdapter:
    return EnrichmentAdapter(generate=make_generator(exc=RuntimeError("service unavailable")))


@pytest.fixture
def client(storage):
    app.state.storage = storage
    app.dependency_overrides[get_enrichment] = lambda: EnrichmentAdapter(enabled=False)
    yield TestClient(app)
    app.dependency_overrides.clear()
    app.state.storage = None


@pytest.fixture
def mock_ocr(monkeypatch):
    # Tesseract image OCR always returns a fixed report
    monkeypatch.setattr("pytesseract.image_to_string", lambda img, lang=None: SAMPLE_REPORT)
    monkeypatch.setattr("bloodwise.services.ocr.Image.open", lambda fp: object())

    class _Pg:
        def extract_text(self):
            return "Glucose: 130 mg/dL (Ref: 70-99)"

    class _Reader:
        def __init__(self, *_a, **_k):
            self.pages = [_Pg()]

    monkeypatch.setattr("bloodwise.services.ocr.PdfReader", _Reader)


@pytest.fixture
def fake_generator():
    return make_generator
