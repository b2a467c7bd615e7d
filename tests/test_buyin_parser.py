"""Unit tests for BuyinExpressionParser."""
import pytest

from processor.buyin_parser import BuyinExpressionParser
from processor.models import CalendarDate, EventRecord


@pytest.fixture
def parser():
    return BuyinExpressionParser()


class TestBuyinExpressionParser:
    """Test cases for buy-in parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("$100", 100),
        ("$50+$20", 70),
        ("$100-$20", 80),
        ("$1,000+$100", 1100),
        ("$ 1,500 + $ 150", 1650),
        ("€250", 250),
        ("£1,000", 1000),
        ("¥10000", 10000),
        ("$10+bogus", 10),
        ("bogus+$10", 10),
        ("$400+$80+$20", 500),
        ("$12.50", 12.5),
    ])
    def test_parse_amounts(self, parser, text, expected):
        """Test parsing of prices and simple arithmetic."""
        assert parser.parse(text) == expected

    @pytest.mark.parametrize("text", [None, "", "free", "Free", "$0", "$100-$200", "TBD", "nan"])
    def test_non_positive_or_unparsable_is_absent(self, parser, text):
        """Test that zero, negative and unparsable buy-ins return None."""
        assert parser.parse(text) is None

    def test_effective_amount_prefers_numeric_field(self, parser):
        """Test that a pre-parsed amount wins over the display string."""
        event = EventRecord(
            event_id="evt-1", name="Event", scheduled_date=CalendarDate(2025, 1, 1),
            buyin_text="$1,000+$100", buyin_amount=1050.0
        )

        assert parser.effective_amount(event) == 1050.0

    def test_effective_amount_falls_back_to_string(self, parser):
        """Test that the display string is parsed when no amount is supplied."""
        event = EventRecord(
            event_id="evt-2", name="Event", scheduled_date=CalendarDate(2025, 1, 1),
            buyin_text="$1,000+$100"
        )

        assert parser.effective_amount(event) == 1100
