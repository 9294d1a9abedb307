"""Display preferences: persisted alongside the token and exportable as JSON."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pydantic
import structlog
from pydantic import BaseModel, ConfigDict, Field

from gitvision.core.store import PREFERENCES_KEY, KeyValueStore, StoreError
from gitvision.services import ValidationError

log = structlog.get_logger("gitvision.preferences")


class Preferences(BaseModel):
    """Serialized with camelCase keys (``darkMode``, ``refreshInterval``...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    dark_mode: bool = Field(default=True, alias="darkMode")
    notifications: bool = True
    auto_refresh: bool = Field(default=False, alias="autoRefresh")
    refresh_interval: int = Field(default=5, ge=1, alias="refreshInterval")  # minutes

    def to_json_dict(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


def export_preferences(prefs: Preferences, now: datetime | None = None) -> str:
    payload = prefs.to_json_dict()
    payload["exportedAt"] = (now or datetime.now(timezone.utc)).isoformat()
    return json.dumps(payload, indent=2)


def import_preferences(text: str) -> Preferences:
    """Parse an export. Missing fields take defaults; ``exportedAt`` is ignored."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"settings file is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise ValidationError("settings file must contain a JSON object")
    try:
        return Preferences.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"invalid settings: {exc.error_count()} field(s) rejected") from exc


class PreferencesStore:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> Preferences:
        """Stored preferences, or defaults when absent or unreadable."""
        try:
            raw = self._store.get(PREFERENCES_KEY)
        except StoreError as exc:
            log.warning("preferences.store_unavailable", error=str(exc))
            return Preferences()
        if raw is None:
            return Preferences()
        try:
            return import_preferences(raw)
        except ValidationError as exc:
            log.warning("preferences.invalid", error=str(exc))
            return Preferences()

    def save(self, prefs: Preferences) -> None:
        self._store.set(PREFERENCES_KEY, json.dumps(prefs.to_json_dict()))
