"""Shared fixtures: temporary store, settings and SelectType-like calendar markup."""

import pytest

from slotwatch.config import BotConfig, Settings, TargetConfig
from slotwatch.store import DocumentStore


LEGEND = (
    '<div class="cl-legend">'
    '<span class="symbol-black">●</span>空きあり '
    '<span>▲</span>残りわずか '
    '<span class="symbol-gray">×</span>受付終了'
    "</div>"
)


def calendar_html(headers, rows, legend=True):
    """Build a week view: ``headers`` like ["1/2", "1/3"], ``rows`` like [("12:00", ["×", "●"])]."""
    head_cells = "".join(
        f'<th class="cl-day"><span>{h}<span>(金)</span></span></th>' for h in headers
    )
    body_rows = []
    for time_label, marks in rows:
        cells = "".join(
            f'<td class="cl-day"><div class="cl-day-content"><span class="symbol">{m}</span></div></td>'
            for m in marks
        )
        body_rows.append(
            f'<tr><td class="cl-time"><span>{time_label}</span></td>{cells}</tr>'
        )
    return (
        "<html><body>"
        + (LEGEND if legend else "")
        + f'<table class="cl-header"><tr><th class="cl-time-h"></th>{head_cells}</tr></table>'
        + f'<table class="cl-container">{"".join(body_rows)}</table>'
        + "</body></html>"
    )


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path / "store")


@pytest.fixture
def settings():
    return Settings(
        bot=BotConfig(token="test-token"),
        target=TargetConfig(url="https://example.test/rsv/?id=abc", timeout_seconds=5),
    )


@pytest.fixture
def make_calendar():
    return calendar_html
