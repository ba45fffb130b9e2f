"""Key-value persistence for the profile, the current session and history."""
from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from fastapi import Request
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bloodwise.db.session import SessionLocal
from bloodwise.models.stored_slot import StoredSlot
from bloodwise.schemas.lab import AnalysisResult, CurrentSession, HistoryItem
from bloodwise.schemas.profile import UserProfile

logger = logging.getLogger("bloodwise")

USER_PROFILE_KEY = "userProfile"
CURRENT_ANALYSIS_KEY = "extractedText"
RECENT_ANALYSES_KEY = "recentAnalysis"
MAX_RECENT_ANALYSES = 10

_HISTORY = TypeAdapter(List[HistoryItem])


class KeyValueStore:
    """String slots addressed by key. Implementations report failure, they don't raise."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> bool:
        raise NotImplementedError

    def remove(self, key: str) -> bool:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def remove(self, key: str) -> bool:
        self._data.pop(key, None)
        return True


class SqlAlchemyStore(KeyValueStore):
    """Slots kept as rows of the stored_slots table."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                row = db.get(StoredSlot, key)
                return row.value if row is not None else None
        except SQLAlchemyError:
            logger.exception("stored slot read failed")
            return None

    def set(self, key: str, value: str) -> bool:
        try:
            with self._session_factory() as db:
                row = db.get(StoredSlot, key)
                if row is None:
                    db.add(StoredSlot(key=key, value=value))
                else:
                    row.value = value
                db.commit()
            return True
        except SQLAlchemyError:
            logger.exception("stored slot write failed")
            return False

    def remove(self, key: str) -> bool:
        try:
            with self._session_factory() as db:
                row = db.get(StoredSlot, key)
                if row is not None:
                    db.delete(row)
                    db.commit()
            return True
        except SQLAlchemyError:
            logger.exception("stored slot delete failed")
            return False


class AnalysisStorage:
    """Typed access to the three named slots on top of a KeyValueStore.

    Anything that fails to decode is treated as absent.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _drop_corrupt(self, key: str, exc: Exception) -> None:
        logger.warning({"function": "storage_read", "slot": key, "error": type(exc).__name__})

    # ---------- profile ----------
    def save_user_profile(self, profile: UserProfile) -> bool:
        return self.store.set(USER_PROFILE_KEY, profile.model_dump_json(by_alias=True))

    def get_user_profile(self) -> Optional[UserProfile]:
        raw = self.store.get(USER_PROFILE_KEY)
        if not raw:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError as exc:
            self._drop_corrupt(USER_PROFILE_KEY, exc)
            return None

    def has_user_profile(self) -> bool:
        return self.get_user_profile() is not None

    # ---------- current session ----------
    def save_current_analysis(self, session: CurrentSession) -> bool:
        return self.store.set(CURRENT_ANALYSIS_KEY, session.model_dump_json(by_alias=True))

    def get_current_analysis(self) -> Optional[CurrentSession]:
        raw = self.store.get(CURRENT_ANALYSIS_KEY)
        if not raw:
            return None
        try:
            return CurrentSession.model_validate_json(raw)
        except ValidationError as exc:
            self._drop_corrupt(CURRENT_ANALYSIS_KEY, exc)
            return None

    # ---------- history ----------
    def get_recent_analyses(self) -> List[HistoryItem]:
        raw = self.store.get(RECENT_ANALYSES_KEY)
        if not raw:
            return []
        try:
            return _HISTORY.validate_json(raw)
        except ValidationError as exc:
            self._drop_corrupt(RECENT_ANALYSES_KEY, exc)
            return []

    def save_analysis_to_history(
        self, result: AnalysisResult, title: Optional[str] = None
    ) -> Optional[HistoryItem]:
        """Prepend a history entry, keeping the newest MAX_RECENT_ANALYSES."""
        if not result.summary.text:
            logger.warning({"function": "storage_history", "reason": "missing summary"})
            return None
        item = HistoryItem(
            id=uuid.uuid4().hex,
            date=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            title=title or "Blood Test Results",
            summary=result.summary.text,
        )
        history = [item, *self.get_recent_analyses()][:MAX_RECENT_ANALYSES]
        payload = json.dumps([h.model_dump() for h in history], ensure_ascii=False)
        if not self.store.set(RECENT_ANALYSES_KEY, payload):
            return None
        return item

    def get_analysis_by_id(self, analysis_id: str) -> Optional[HistoryItem]:
        return next((h for h in self.get_recent_analyses() if h.id == analysis_id), None)

    def clear_all_data(self) -> bool:
        removed = [self.store.remove(key) for key in (USER_PROFILE_KEY, RECENT_ANALYSES_KEY, CURRENT_ANALYSIS_KEY)]
        return all(removed)


def get_storage(request: Request) -> AnalysisStorage:
    """FastAPI dependency: the storage created at startup."""
    return request.app.state.storage


__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "SqlAlchemyStore",
    "AnalysisStorage",
    "get_storage",
    "MAX_RECENT_ANALYSES",
]
