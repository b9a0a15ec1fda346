"""
Pydantic models for the reservation watch domain.

監視設定・監視状態・判定結果を表す Pydantic モデル。
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_INTERVAL_MINUTES = 2


class RecipientTarget(BaseModel):
    """Chat that receives availability notifications."""

    chat_id: int
    updated_at: datetime


class WatchConfig(BaseModel):
    """User-controlled watch settings, mutated only by chat commands."""

    enabled: bool = False
    interval_minutes: int = Field(default=DEFAULT_INTERVAL_MINUTES, ge=1, le=60)
    # 空なら全日程を監視
    target_dates: List[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @field_validator("target_dates")
    @classmethod
    def _dedupe_dates(cls, value: List[str]) -> List[str]:
        # ISO 形式 (YYYY-MM-DD) 以外は弾く
        return sorted({date.fromisoformat(v).isoformat() for v in value})


class WatchState(BaseModel):
    """Result of the last completed watch cycle."""

    has_availability: bool = False
    checked_at: datetime
    last_notified_at: Optional[datetime] = None
    # has_availability を算出したときの監視日
    checked_target_dates: List[str] = Field(default_factory=list)


class DetectionResult(BaseModel):
    has_availability: bool = False
    time_slots: List[str] = Field(default_factory=list)


class CheckResult(DetectionResult):
    """Fetcher output: either a verdict or an error, never both."""

    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


CycleStatus = Literal["busy", "disabled", "throttled", "no_recipient", "fetch_failed", "checked"]


class CycleOutcome(BaseModel):
    """What a single watch cycle did, for logs and tests."""

    status: CycleStatus
    has_availability: bool = False
    notified: bool = False
    available_slots: Dict[str, List[str]] = Field(default_factory=dict)


__all__ = [
    "DEFAULT_INTERVAL_MINUTES",
    "RecipientTarget",
    "WatchConfig",
    "WatchState",
    "DetectionResult",
    "CheckResult",
    "CycleStatus",
    "CycleOutcome",
]
