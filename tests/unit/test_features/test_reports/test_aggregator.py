"""Unit tests for time-spent parsing and totals."""

from __future__ import annotations

import pytest

from task_reports.core.exceptions import ReportDataError
from task_reports.features.reports.aggregator import (
    aggregate,
    format_minutes,
    parse_time_spent,
)


@pytest.mark.unit
class TestParseTimeSpent:
    """Test suite for parse_time_spent."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("0:00", 0),
            ("0:05", 5),
            ("1:00", 60),
            ("2:30", 150),
            ("12:59", 779),
            (" 3:07 ", 187),
            ("100:1", 6001),
        ],
    )
    def test_valid_values(self, raw, expected):
        assert parse_time_spent(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "", "1", "1:", ":30", "-1:00", "1:-5", "1.5:00", "1:30:00"])
    def test_malformed_values_raise(self, raw):
        with pytest.raises(ReportDataError) as exc_info:
            parse_time_spent(raw, task_id=7)

        assert "task 7" in exc_info.value.detail
        assert exc_info.value.extra == {"task_id": 7, "time_spent": raw}

    def test_none_is_malformed(self):
        with pytest.raises(ReportDataError):
            parse_time_spent(None)

    def test_minutes_above_59_raise(self):
        with pytest.raises(ReportDataError, match="out of range"):
            parse_time_spent("1:60")

    def test_task_id_zero_is_named(self):
        with pytest.raises(ReportDataError, match="on task 0"):
            parse_time_spent("x", task_id=0)


@pytest.mark.unit
class TestFormatMinutes:
    """Test suite for format_minutes."""

    @pytest.mark.parametrize(
        ("total", "expected"),
        [
            (0, "0 hrs 0 mins"),
            (59, "0 hrs 59 mins"),
            (60, "1 hrs 0 mins"),
            (255, "4 hrs 15 mins"),
            (6001, "100 hrs 1 mins"),
        ],
    )
    def test_format(self, total, expected):
        assert format_minutes(total) == expected

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError):
            format_minutes(-1)


@pytest.mark.unit
class TestAggregate:
    """Test suite for aggregate."""

    def test_empty_input(self):
        report = aggregate([])

        assert report.total_minutes == 0
        assert report.total_formatted == "0 hrs 0 mins"
        assert report.per_task == ()

    def test_sums_in_input_order(self, make_task):
        tasks = [make_task(time_spent="2:30"), make_task(time_spent="1:45")]

        report = aggregate(tasks)

        assert report.total_minutes == 255
        assert report.total_formatted == "4 hrs 15 mins"
        assert report.per_task_minutes == (150, 105)

    def test_each_row_shows_its_own_time(self, make_task):
        tasks = [make_task(time_spent="2:30"), make_task(time_spent="1:45"), make_task(time_spent="0:10")]

        report = aggregate(tasks)

        assert report.per_task == ("2 hrs 30 mins", "1 hrs 45 mins", "0 hrs 10 mins")
        assert len(report.per_task) == len(tasks)

    def test_total_equals_sum_of_rows(self, make_task):
        tasks = [make_task(time_spent=f"{h}:{m:02d}") for h, m in [(0, 59), (3, 1), (7, 30), (0, 0)]]

        report = aggregate(tasks)

        assert report.total_minutes == sum(report.per_task_minutes)
        assert report.total_formatted == format_minutes(report.total_minutes)

    def test_malformed_row_names_the_task(self, make_task):
        tasks = [make_task(id=1, time_spent="1:00"), make_task(id=2, time_spent="abc")]

        with pytest.raises(ReportDataError) as exc_info:
            aggregate(tasks)

        assert exc_info.value.extra["task_id"] == 2

    def test_is_pure(self, make_task):
        tasks = [make_task(time_spent="1:15"), make_task(time_spent="0:45")]

        assert aggregate(tasks) == aggregate(tasks)
