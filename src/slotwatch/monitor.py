"""
Watch cycle and the timer that drives it.

監視サービス:
- 有効フラグ・間隔・通知先でのゲート
- 監視日ごとの取得と結果のマージ
- 空きなし→空きありの立ち上がりでのみ通知
- 監視日の変更時は前回結果をリセット
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from .fetcher import check_availability, target_url
from .models import CheckResult, CycleOutcome, WatchState
from .store import DocumentStore

logger = logging.getLogger(__name__)


# タイマーの揺らぎを吸収する猶予（分）
INTERVAL_GRACE_MINUTES = 0.5

FetchFunc = Callable[[Optional[str]], Awaitable[CheckResult]]
NotifyFunc = Callable[[int, str], Awaitable[None]]


def format_date_jp(iso: str) -> str:
    d = date.fromisoformat(iso)
    return f"{d.year}年{d.month}月{d.day}日"


def build_message(available_slots: Dict[str, List[str]], url: str) -> str:
    """Compose the notification text for a rising edge."""
    lines = ["空きが見つかりました！", ""]
    for iso in sorted(available_slots):
        slots = available_slots[iso]
        if slots:
            lines.append(f"{format_date_jp(iso)}: {', '.join(slots)}")
        else:
            lines.append(format_date_jp(iso))
    if available_slots:
        lines.append("")
    lines.append("今すぐ予約ページを確認してください:")
    lines.append(url)
    return "\n".join(lines)


@dataclass
class WatchService:
    """One polling cycle over the stored config and state."""

    store: DocumentStore
    notify: NotifyFunc
    fetch: FetchFunc = check_availability
    page_url: Callable[[], str] = target_url
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def run_cycle(self, now: Optional[datetime] = None) -> CycleOutcome:
        if self._lock.locked():
            logger.info("Previous cycle still running, skipping this tick")
            return CycleOutcome(status="busy")
        async with self._lock:
            return await self._run_cycle(now or datetime.now(timezone.utc))

    async def _run_cycle(self, now: datetime) -> CycleOutcome:
        config = self.store.get_watch_config()
        if config is None or not config.enabled:
            logger.debug("Monitoring is disabled, skipping check")
            return CycleOutcome(status="disabled")

        previous = self.store.get_watch_state()
        if previous is not None:
            elapsed = now - previous.checked_at
            threshold = timedelta(minutes=config.interval_minutes - INTERVAL_GRACE_MINUTES)
            if elapsed < threshold:
                logger.debug(
                    "Interval not elapsed (%.1fs < %.1fs), skipping",
                    elapsed.total_seconds(),
                    threshold.total_seconds(),
                )
                return CycleOutcome(status="throttled")

        recipient = self.store.get_recipient()
        if recipient is None:
            logger.warning("No recipient registered, skipping")
            return CycleOutcome(status="no_recipient")

        dates = list(config.target_dates)
        has_availability = False
        available_slots: Dict[str, List[str]] = {}

        if not dates:
            result = await self.fetch(None)
            if result.error:
                # 取得失敗で既知の状態を上書きしない
                logger.error("Availability check failed: %s", result.error)
                return CycleOutcome(status="fetch_failed")
            has_availability = result.has_availability
        else:
            for iso in dates:
                result = await self.fetch(iso)
                if result.error:
                    logger.error("Availability check failed for %s: %s", iso, result.error)
                    continue
                if result.has_availability:
                    has_availability = True
                    available_slots[iso] = list(result.time_slots)

        logger.info(
            "Availability check result: %s (dates=%s, slots=%s)",
            has_availability,
            dates or "all",
            available_slots,
        )

        had_availability = previous.has_availability if previous else False
        if previous is not None and set(previous.checked_target_dates) != set(dates):
            logger.info(
                "Target dates changed %s -> %s, resetting previous availability",
                previous.checked_target_dates,
                dates,
            )
            had_availability = False

        should_notify = not had_availability and has_availability
        if should_notify:
            logger.info("Availability detected, sending notification")
            message = build_message(available_slots, self.page_url())
            try:
                await self.notify(recipient.chat_id, message)
                logger.info("Notification sent successfully")
            except Exception as e:  # noqa: BLE001
                # 失敗しても状態は更新する（毎回の再通知を防ぐ）
                logger.error("Failed to send notification: %s", e)
        elif has_availability:
            logger.info("Availability still present, not re-notifying")

        self.store.set_watch_state(
            WatchState(
                has_availability=has_availability,
                checked_at=now,
                last_notified_at=now if should_notify else (previous.last_notified_at if previous else None),
                checked_target_dates=dates,
            )
        )
        return CycleOutcome(
            status="checked",
            has_availability=has_availability,
            notified=should_notify,
            available_slots=available_slots,
        )


@dataclass
class Ticker:
    """Fixed-cadence timer calling ``run_cycle``; the interval gate sets the real pace."""

    service: WatchService
    tick_seconds: float
    _task: Optional[asyncio.Task[None]] = None
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            logger.info("Ticker already running")
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="slotwatch-ticker")

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=30)
        except asyncio.TimeoutError:
            logger.warning("Ticker task did not stop within timeout")
            self._task.cancel()
        self._task = None

    async def _run_loop(self) -> None:
        logger.info("Ticker started (every %ss)", self.tick_seconds)
        while not self._stop_event.is_set():
            try:
                outcome = await self.service.run_cycle()
                logger.debug("Cycle finished: %s", outcome.status)
            except Exception as e:  # noqa: BLE001
                # 再試行はしない。次の tick がリトライの代わり
                logger.exception("Unexpected error in watch cycle: %s", e)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.tick_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Ticker stopped")


__all__ = ["WatchService", "Ticker", "build_message", "format_date_jp", "INTERVAL_GRACE_MINUTES"]
