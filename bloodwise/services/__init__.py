# Mark services as a package and expose modules tests monkeypatch.

from . import gemini as gemini  # noqa: F401
from . import enrichment as enrichment  # noqa: F401

__all__ = [
    "gemini",
    "enrichment",
]
