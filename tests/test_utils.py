import pytest

from utils import format_time, minutes_between, parse_time, plural_minutes, wrap_minutes


class TestParseTime:
    @pytest.mark.parametrize("value,expected", [
        ("10:00", 600),
        ("0:05", 5),
        ("23:59", 1439),
        (" 07:30 ", 450),
        ("07:30:59", 450),
        (615, 615),
        (None, None),
        ("", None),
    ])
    def test_valid(self, value, expected):
        assert parse_time(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "10:60", "ten", "10.30", True, 1440, -1])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time(value)


class TestFormatting:
    def test_format_time(self):
        assert format_time(0) == "00:00"
        assert format_time(615.7) == "10:15"
        assert format_time(1445) == "00:05"

    def test_minutes_between_floors(self):
        assert minutes_between(600, 610.9) == 10
        assert minutes_between(610.5, 611) == 0

    def test_plural_minutes(self):
        assert plural_minutes(1) == "1 minute"
        assert plural_minutes(0) == "0 minutes"
        assert plural_minutes(2) == "2 minutes"

    def test_wrap_minutes(self):
        assert wrap_minutes(-3) == 1437
        assert wrap_minutes(1440) == 0
