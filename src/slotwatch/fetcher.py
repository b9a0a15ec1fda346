"""
Fetch the reservation page and run the detector on it.

予約ページを取得して判定する。通信エラーは例外ではなく CheckResult.error で返す。
"""

from __future__ import annotations

from datetime import date
import logging
from typing import Optional, Union

import httpx

from .config import Settings, get_settings
from .detector import detect
from .models import CheckResult

logger = logging.getLogger(__name__)


def target_url(settings: Optional[Settings] = None) -> str:
    """Public URL of the watched page, used in notifications."""
    settings = settings or get_settings()
    return settings.target.url


def build_url(base_url: str, target_date: Union[date, str, None] = None) -> str:
    if target_date is None:
        return base_url
    iso = target_date.isoformat() if isinstance(target_date, date) else target_date
    sep = "&" if "?" in base_url else "?"
    return f"{base_url}{sep}date={iso.replace('-', '')}"


async def check_availability(
    target_date: Union[date, str, None] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> CheckResult:
    """
    Issue one GET for ``target_date`` (or the unfiltered page) and detect availability.

    Never raises for network or HTTP failures; no retries.
    """
    settings = settings or get_settings()
    url = build_url(settings.target.url, target_date)
    headers = {
        "User-Agent": settings.target.user_agent,
        "Accept": "text/html",
    }

    try:
        if client is None:
            async with httpx.AsyncClient(
                timeout=settings.target.timeout_seconds,
                follow_redirects=True,
            ) as own_client:
                response = await own_client.get(url, headers=headers)
        else:
            response = await client.get(url, headers=headers, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.warning("Fetch failed for %s: %s", url, e)
        return CheckResult(error=f"Fetch error: {e!r}")

    if not response.is_success:
        return CheckResult(error=f"HTTP {response.status_code}: {response.reason_phrase}")

    verdict = detect(response.text, target_date)
    logger.debug("Detected %s for %s", verdict, target_date or "all dates")
    return CheckResult(
        has_availability=verdict.has_availability,
        time_slots=verdict.time_slots,
    )


__all__ = ["check_availability", "target_url", "build_url"]
