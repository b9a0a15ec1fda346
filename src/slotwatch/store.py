"""
Small JSON document store for recipient, watch config and watch state.

1 キー = 1 JSON ファイル。書き込みは一時ファイル経由で置き換える（後勝ち）。
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from .models import RecipientTarget, WatchConfig, WatchState

logger = logging.getLogger(__name__)


RECIPIENT_KEY = "target-recipient"
WATCH_CONFIG_KEY = "watch-config"
WATCH_STATE_KEY = "watch-state"


class StoreError(Exception):
    """Raised when a stored document cannot be read back."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore:
    """Get/set small JSON documents by key."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    # region raw documents
    def get(self, key: str) -> Optional[dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise StoreError(f"Document {key!r} is not valid JSON: {e}") from e

    def set(self, key: str, data: dict[str, Any]) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, path)

    def _load(self, key: str, model: type) -> Any:
        data = self.get(key)
        if data is None:
            return None
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Document {key!r} failed validation: {e}") from e

    # endregion

    # region recipient
    def get_recipient(self) -> Optional[RecipientTarget]:
        return self._load(RECIPIENT_KEY, RecipientTarget)

    def set_recipient(self, chat_id: int) -> RecipientTarget:
        target = RecipientTarget(chat_id=chat_id, updated_at=_now())
        self.set(RECIPIENT_KEY, target.model_dump(mode="json"))
        return target

    # endregion

    # region watch config
    def get_watch_config(self) -> Optional[WatchConfig]:
        return self._load(WATCH_CONFIG_KEY, WatchConfig)

    def save_watch_config(self, config: WatchConfig) -> WatchConfig:
        config = config.model_copy(update={"updated_at": _now()})
        # model_copy はバリデーションしないので保存前に正規化する
        config = WatchConfig.model_validate(config.model_dump())
        self.set(WATCH_CONFIG_KEY, config.model_dump(mode="json"))
        return config

    def ensure_watch_config(self) -> WatchConfig:
        existing = self.get_watch_config()
        if existing is not None:
            return existing
        logger.info("Creating default watch config")
        return self.save_watch_config(WatchConfig())

    def set_watch_enabled(self, enabled: bool) -> WatchConfig:
        config = self.get_watch_config() or WatchConfig()
        return self.save_watch_config(config.model_copy(update={"enabled": enabled}))

    def set_interval_minutes(self, minutes: int) -> WatchConfig:
        config = self.get_watch_config() or WatchConfig()
        return self.save_watch_config(config.model_copy(update={"interval_minutes": minutes}))

    def add_target_dates(self, dates: Iterable[str]) -> WatchConfig:
        config = self.get_watch_config() or WatchConfig()
        merged = set(config.target_dates) | set(dates)
        return self.save_watch_config(config.model_copy(update={"target_dates": sorted(merged)}))

    def remove_target_dates(self, dates: Iterable[str]) -> tuple[WatchConfig, list[str]]:
        """Remove dates; returns the new config and the dates that were actually present."""
        config = self.get_watch_config() or WatchConfig()
        wanted = set(dates)
        removed = sorted(wanted & set(config.target_dates))
        remaining = [d for d in config.target_dates if d not in wanted]
        return self.save_watch_config(config.model_copy(update={"target_dates": remaining})), removed

    def clear_target_dates(self) -> WatchConfig:
        config = self.get_watch_config() or WatchConfig()
        return self.save_watch_config(config.model_copy(update={"target_dates": []}))

    # endregion

    # region watch state
    def get_watch_state(self) -> Optional[WatchState]:
        return self._load(WATCH_STATE_KEY, WatchState)

    def set_watch_state(self, state: WatchState) -> None:
        self.set(WATCH_STATE_KEY, state.model_dump(mode="json"))

    # endregion


__all__ = [
    "DocumentStore",
    "StoreError",
    "RECIPIENT_KEY",
    "WATCH_CONFIG_KEY",
    "WATCH_STATE_KEY",
]
