# tests/test_detector.py
from datetime import date

from slotwatch.detector import column_time_slots, detect, find_date_column


def test_closed_only_is_unavailable(make_calendar):
    """Only × inside the data region means no availability, legend ignored"""
    html = make_calendar(["1/2", "1/3"], [("10:00", ["×", "×"]), ("11:00", ["×", "×"])])

    result = detect(html)

    assert result.has_availability is False
    assert result.time_slots == []


def test_open_mark_in_data_region(make_calendar):
    html = make_calendar(["1/2", "1/3"], [("10:00", ["×", "●"])])

    result = detect(html)

    assert result.has_availability is True
    # no date anchor, no slot extraction
    assert result.time_slots == []


def test_limited_mark_counts_as_available(make_calendar):
    html = make_calendar(["1/2"], [("10:00", ["▲"])], legend=False)

    assert detect(html).has_availability is True


def test_legend_marks_do_not_count(make_calendar):
    """Markers in the legend must not leak into the verdict"""
    html = make_calendar(["1/2", "1/3"], [("10:00", ["×", "×"])], legend=True)

    assert "●" in html and "▲" in html
    assert detect(html).has_availability is False


def test_fallback_requires_tightly_wrapped_marker():
    """Without cl-container only a marker that is a whole tag text node counts"""
    assert detect("<table><tr><td>10:00</td><td>●</td></tr></table>").has_availability is True
    assert detect("<ul><li><span>▲</span></li></ul>").has_availability is True
    assert detect("<p>● は予約可能、▲ は残りわずかです</p>").has_availability is False
    assert detect("<td>×</td>").has_availability is False
    assert detect("").has_availability is False


def test_target_date_column_slots(make_calendar):
    html = make_calendar(
        ["1/2", "1/3", "1/4"],
        [("12:00", ["×", "●", "×"]), ("13:00", ["×", "×", "▲"])],
    )

    result = detect(html, date(2025, 1, 3))
    assert result.has_availability is True
    assert result.time_slots == ["12:00"]

    result = detect(html, date(2025, 1, 2))
    assert result.has_availability is False
    assert result.time_slots == []


def test_target_date_as_iso_string(make_calendar):
    html = make_calendar(["1/2", "1/3", "1/4"], [("12:00", ["×", "×", "▲"]), ("14:30", ["×", "×", "●"])])

    result = detect(html, "2025-01-04")

    assert result.has_availability is True
    assert result.time_slots == ["12:00", "14:30"]


def test_date_outside_rendered_window(make_calendar):
    """A date not in the header is 'not observed', never an error"""
    html = make_calendar(["1/2", "1/3"], [("12:00", ["●", "●"])])

    result = detect(html, date(2025, 2, 10))

    assert result.has_availability is False
    assert result.time_slots == []


def test_header_match_is_exact(make_calendar):
    """1/1 must not match 1/15 and there is no zero padding"""
    html = make_calendar(["1/15", "1/16"], [("10:00", ["●", "×"])])

    assert find_date_column(html, date(2025, 1, 15)) == 0
    assert find_date_column(html, date(2025, 1, 1)) is None
    assert find_date_column(html, date(2025, 1, 16)) == 1


def test_duplicate_header_first_match_wins(make_calendar):
    html = make_calendar(["1/2", "1/2"], [("10:00", ["×", "●"])])

    assert find_date_column(html, date(2025, 1, 2)) == 0
    assert detect(html, date(2025, 1, 2)).has_availability is False


def test_short_row_is_skipped(make_calendar):
    html = make_calendar(["1/2", "1/3"], [("10:00", ["●"]), ("11:00", ["×", "●"])])

    assert column_time_slots(html, 1) == ["11:00"]


def test_generic_fallback_for_other_layouts():
    """Pages without a cl-day header row use day-number proximity"""
    html = (
        '<div class="cal">'
        "<div>14</div><span>×</span>"
        "<div>15</div><span>●</span>"
        "<div>16</div><span>×</span>"
        "</div>"
    )

    assert detect(html, date(2025, 3, 15)).has_availability is True
    assert detect(html, date(2025, 3, 14)).has_availability is False
    assert detect(html, date(2025, 3, 16)).has_availability is False
    assert detect(html, date(2025, 3, 15)).time_slots == []


def test_detect_is_deterministic(make_calendar):
    html = make_calendar(["1/2", "1/3"], [("12:00", ["▲", "●"]), ("13:00", ["●", "×"])])

    assert detect(html, date(2025, 1, 2)) == detect(html, date(2025, 1, 2))
    assert detect(html) == detect(html)
