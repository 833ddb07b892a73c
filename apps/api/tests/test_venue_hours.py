"""
Tests for the hours resolver: source precedence, Google sync stickiness and
Google periods parsing.
"""
from sqlalchemy import select

from src.models.venue_hours import VenueHours
from src.services.venue_hours import (
    RowSource,
    WeeklyHoursRow,
    format_weekly_hours,
    get_effective_venue_hours,
    parse_google_periods,
    replace_manual_hours,
    sync_venue_hours_from_google,
    upsert_venue_hours,
)


def row(day, source, open_time="09:00", close_time="17:00", is_closed=False):
    return WeeklyHoursRow(
        day_of_week=day,
        is_closed=is_closed,
        open_time=None if is_closed else open_time,
        close_time=None if is_closed else close_time,
        source=source,
    )


class TestEffectiveHours:
    """Test which family of rows is authoritative."""

    def test_manual_mode_uses_only_manual_rows(self):
        rows = [
            row(1, RowSource.MANUAL, "10:00", "14:00"),
            row(1, RowSource.GOOGLE, "08:00", "20:00"),
            row(2, RowSource.GOOGLE),
        ]

        effective = get_effective_venue_hours(rows, "manual")

        assert effective == [rows[0]]

    def test_manual_mode_does_not_fall_back_per_day(self):
        """Tuesday only exists as a Google row, so it stays absent (closed)."""
        rows = [row(1, RowSource.MANUAL), row(2, RowSource.GOOGLE)]

        effective = get_effective_venue_hours(rows, "manual")

        assert [r.day_of_week for r in effective] == [1]

    def test_google_mode_includes_legacy_rows(self):
        rows = [
            row(1, RowSource.MANUAL),
            row(2, RowSource.GOOGLE),
            row(3, RowSource.LEGACY_GOOGLE),
        ]

        effective = get_effective_venue_hours(rows, "google")

        assert [r.day_of_week for r in effective] == [2, 3]

    def test_missing_mode_behaves_as_google(self):
        rows = [row(1, RowSource.MANUAL), row(2, RowSource.LEGACY_GOOGLE)]

        assert get_effective_venue_hours(rows, None) == get_effective_venue_hours(rows, "google")

    def test_empty_input(self):
        assert get_effective_venue_hours([], "manual") == []
        assert get_effective_venue_hours([], None) == []

    def test_null_source_column_is_legacy(self):
        record = VenueHours(day_of_week=1, is_closed=False, open_time="09:00", close_time="17:00", source=None)

        parsed = WeeklyHoursRow.from_record(record)

        assert parsed.source is RowSource.LEGACY_GOOGLE
        assert parsed.source.is_google


class TestGoogleSync:
    """Test that Google syncs never overwrite manual days in manual mode."""

    def _rows_by_day(self, db, venue_id):
        records = db.execute(select(VenueHours).where(VenueHours.venue_id == venue_id)).scalars().all()
        return {r.day_of_week: r for r in records}

    def test_manual_days_survive_sync(self, db, venue):
        replace_manual_hours(db, venue, [row(1, RowSource.MANUAL, "10:00", "14:00")])
        db.commit()

        google = [row(day, RowSource.GOOGLE, "08:00", "20:00") for day in range(7)]
        written = sync_venue_hours_from_google(db, venue.id, google, venue.hours_source)
        db.commit()

        assert 1 not in written
        assert sorted(written) == [0, 2, 3, 4, 5, 6]

        stored = self._rows_by_day(db, venue.id)
        assert stored[1].source == "manual"
        assert stored[1].open_time == "10:00"
        assert stored[1].close_time == "14:00"
        assert stored[2].source == "google"
        assert stored[2].open_time == "08:00"

    def test_google_mode_overwrites_everything(self, db, venue):
        upsert_venue_hours(db, venue.id, [row(1, RowSource.MANUAL, "10:00", "14:00")])
        db.commit()

        google = [row(day, RowSource.GOOGLE, "08:00", "20:00") for day in range(7)]
        written = sync_venue_hours_from_google(db, venue.id, google, "google")
        db.commit()

        assert sorted(written) == list(range(7))
        stored = self._rows_by_day(db, venue.id)
        assert stored[1].source == "google"
        assert stored[1].open_time == "08:00"

    def test_upsert_keeps_one_row_per_day(self, db, venue):
        upsert_venue_hours(db, venue.id, [row(3, RowSource.GOOGLE, "07:00", "11:00")])
        upsert_venue_hours(db, venue.id, [row(3, RowSource.GOOGLE, "08:00", "12:00")])
        db.commit()

        records = db.execute(
            select(VenueHours).where(VenueHours.venue_id == venue.id, VenueHours.day_of_week == 3)
        ).scalars().all()
        assert len(records) == 1
        assert records[0].open_time == "08:00"

    def test_replace_manual_switches_mode(self, db, venue):
        replace_manual_hours(db, venue, [row(5, RowSource.GOOGLE, "12:00", "22:00")])
        db.commit()

        assert venue.hours_source == "manual"
        assert self._rows_by_day(db, venue.id)[5].source == "manual"


class TestParseGooglePeriods:
    """Test conversion of Google Places periods into weekly rows."""

    def test_simple_weekday_hours(self):
        periods = [
            {"open": {"day": day, "hour": 9, "minute": 0}, "close": {"day": day, "hour": 17, "minute": 30}}
            for day in range(1, 6)
        ]

        rows = parse_google_periods(periods)

        assert len(rows) == 7
        assert rows[0].is_closed
        assert rows[6].is_closed
        assert rows[1].open_time == "09:00"
        assert rows[1].close_time == "17:30"
        assert all(r.source is RowSource.GOOGLE for r in rows)

    def test_split_shifts_merge(self):
        periods = [
            {"open": {"day": 2, "hour": 11, "minute": 0}, "close": {"day": 2, "hour": 14, "minute": 0}},
            {"open": {"day": 2, "hour": 17, "minute": 0}, "close": {"day": 2, "hour": 22, "minute": 0}},
        ]

        rows = parse_google_periods(periods)

        assert rows[2].open_time == "11:00"
        assert rows[2].close_time == "22:00"

    def test_overnight_period_splits_across_days(self):
        """Friday 20:00 to Saturday 02:00."""
        periods = [{"open": {"day": 5, "hour": 20, "minute": 0}, "close": {"day": 6, "hour": 2, "minute": 0}}]

        rows = parse_google_periods(periods)

        assert rows[5].open_time == "20:00"
        assert rows[5].close_time == "23:59"
        assert rows[6].open_time == "00:00"
        assert rows[6].close_time == "02:00"

    def test_overnight_until_midnight_does_not_open_next_day(self):
        periods = [{"open": {"day": 3, "hour": 18, "minute": 0}, "close": {"day": 4, "hour": 0, "minute": 0}}]

        rows = parse_google_periods(periods)

        assert rows[3].close_time == "23:59"
        assert rows[4].is_closed

    def test_no_close_means_always_open(self):
        rows = parse_google_periods([{"open": {"day": 0, "hour": 0, "minute": 0}}])

        assert all(not r.is_closed for r in rows)
        assert all(r.open_time == "00:00" and r.close_time == "23:59" for r in rows)

    def test_no_periods_means_closed_week(self):
        assert all(r.is_closed for r in parse_google_periods([]))
        assert all(r.is_closed for r in parse_google_periods(None))


class TestFormatWeeklyHours:
    """Test human-readable weekly lines."""

    def test_lines_start_on_sunday(self):
        rows = [row(1, RowSource.GOOGLE, "09:00", "17:00"), row(2, RowSource.GOOGLE, is_closed=True)]

        lines = format_weekly_hours(rows)

        assert lines[0] == "Sun: Closed"
        assert lines[1] == "Mon: 9:00 AM – 5:00 PM"
        assert lines[2] == "Tue: Closed"
        assert len(lines) == 7
