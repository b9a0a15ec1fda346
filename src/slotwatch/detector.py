"""
Availability detection for SelectType reservation calendars.

SelectType の週表示カレンダーから空き状況を判定する（HTML パーサは使わず正規表現のみ）。

Page layout the patterns are tuned to:

* header table: ``<th class="cl-day"><span>1/2<span>(金)</span></span></th>``
* data table (``cl-container``): one ``<tr>`` per time slot, a ``cl-time`` cell with
  the time label followed by one ``cl-day`` cell per rendered date, each holding a
  ``cl-day-content`` div with the marker glyph.

Markers: ``●`` open, ``▲`` limited, ``×`` closed. Open and limited both count as
available.
"""

from __future__ import annotations

from datetime import date
import re
from typing import List, Optional, Union

from .models import DetectionResult


MARK_OPEN = "●"
MARK_LIMITED = "▲"
MARK_CLOSED = "×"
AVAILABLE_MARKS = (MARK_OPEN, MARK_LIMITED)

# 汎用フォールバックで日付の後ろを調べる文字数
GENERIC_WINDOW = 300

_CONTAINER_RE = re.compile(
    r'<table[^>]*class="[^"]*cl-container[^"]*"[^>]*>[\s\S]*?</table>',
    re.IGNORECASE,
)
_DAY_CONTENT_RE = re.compile(
    r'<div[^>]*class="[^"]*cl-day-content[^"]*"[^>]*>[\s\S]*?</div>',
    re.IGNORECASE,
)
_HEADER_CELL_RE = re.compile(
    r'<th[^>]*class="[^"]*cl-day[^"]*"[^>]*>[\s\S]*?</th>',
    re.IGNORECASE,
)
_HEADER_DATE_RE = re.compile(r">\s*(\d{1,2}/\d{1,2})\s*[<(]")
_ROW_RE = re.compile(r"<tr\b[^>]*>[\s\S]*?</tr>", re.IGNORECASE)
_TIME_CELL_RE = re.compile(
    r'<td[^>]*class="[^"]*cl-time[^"]*"[^>]*>[\s\S]*?<span[^>]*>\s*(\d{1,2}:\d{2})\s*</span>',
    re.IGNORECASE,
)
_DAY_CELL_RE = re.compile(
    r'<td[^>]*class="[^"]*cl-day[^"]*"[^>]*>[\s\S]*?</td>',
    re.IGNORECASE,
)
_DAY_NUMBER_NODE_RE = re.compile(r">\d{1,2}<")


def _has_mark(fragment: str) -> bool:
    return any(mark in fragment for mark in AVAILABLE_MARKS)


def _as_date(value: Union[date, str]) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def _data_region(markup: str) -> Optional[str]:
    match = _CONTAINER_RE.search(markup)
    return match.group(0) if match else None


def find_date_column(markup: str, target: date) -> Optional[int]:
    """
    Return the 0-based column of ``target`` in the header row, or None.

    Header text must equal ``"{month}/{day}"`` exactly; the first match wins.
    """
    wanted = f"{target.month}/{target.day}"
    for index, header in enumerate(_HEADER_CELL_RE.findall(markup)):
        found = _HEADER_DATE_RE.search(header)
        if found and found.group(1) == wanted:
            return index
    return None


def column_time_slots(markup: str, column: int) -> List[str]:
    """Collect time labels of data rows whose cell at ``column`` is open or limited."""
    region = _data_region(markup)
    if region is None:
        return []

    slots: List[str] = []
    for row in _ROW_RE.findall(region):
        time_match = _TIME_CELL_RE.search(row)
        if not time_match:
            continue
        cells = _DAY_CELL_RE.findall(row)
        if column >= len(cells):
            continue
        label = time_match.group(1)
        if _has_mark(cells[column]) and label not in slots:
            slots.append(label)
    return slots


def _generic_day_available(markup: str, day: int) -> bool:
    """Look for a marker right after a ``>15<`` style day node, up to the next day node."""
    needle = re.compile(rf">{day}<")
    for match in needle.finditer(markup):
        window = markup[match.start():match.start() + GENERIC_WINDOW]
        following = _DAY_NUMBER_NODE_RE.search(window, 1)
        if following:
            window = window[:following.start()]
        if _has_mark(window):
            return True
    return False


def _detect_any(markup: str) -> DetectionResult:
    region = _data_region(markup)
    if region is not None:
        cells = _DAY_CONTENT_RE.findall(region)
        return DetectionResult(has_availability=any(_has_mark(cell) for cell in cells))

    # cl-container が無いページ向け。凡例や本文中の記号を拾わないよう、タグで囲まれた記号だけを見る
    tight = any(f">{mark}<" in markup for mark in AVAILABLE_MARKS)
    return DetectionResult(has_availability=tight)


def detect(markup: str, target_date: Union[date, str, None] = None) -> DetectionResult:
    """
    Detect availability in calendar markup.

    Without ``target_date`` only the data region is inspected and no time slots
    are returned. With ``target_date`` the matching header column is checked row
    by row; a date outside the rendered window yields an empty negative result.
    """
    if target_date is None:
        return _detect_any(markup)

    target = _as_date(target_date)
    if not _HEADER_CELL_RE.search(markup):
        # SelectType 以外のレイアウト
        return DetectionResult(has_availability=_generic_day_available(markup, target.day))

    column = find_date_column(markup, target)
    if column is None:
        return DetectionResult()

    slots = column_time_slots(markup, column)
    return DetectionResult(has_availability=bool(slots), time_slots=slots)


__all__ = [
    "MARK_OPEN",
    "MARK_LIMITED",
    "MARK_CLOSED",
    "detect",
    "find_date_column",
    "column_time_slots",
]
