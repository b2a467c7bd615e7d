"""Parser for free-form buy-in strings such as "$1,000+$100"."""
import logging
import math
import re
from typing import Optional

from processor.models import EventRecord

logger = logging.getLogger(__name__)


class BuyinExpressionParser:
    """Turns buy-in display strings into numeric amounts."""

    CURRENCY_PATTERN = re.compile(r'[$€£¥,]')
    WHITESPACE_PATTERN = re.compile(r'\s+')
    OPERATOR_PATTERN = re.compile(r'([+-])')

    def parse(self, text: Optional[str]) -> Optional[float]:
        """
        Parse a buy-in expression.

        Components separated by "+" or "-" are added or subtracted in
        order. Components that are not numbers are skipped, so
        "$10+bogus" still yields 10.

        Args:
            text: Buy-in string, e.g. "$500", "$1,000+$100", "Free"

        Returns:
            Positive amount, or None when nothing positive could be parsed
        """
        if not text:
            return None

        cleaned = self.CURRENCY_PATTERN.sub('', text)
        cleaned = self.WHITESPACE_PATTERN.sub(' ', cleaned).strip()

        # re.split with a capture group alternates operands and operators
        tokens = self.OPERATOR_PATTERN.split(cleaned)
        segments = tokens[0::2]
        operators = tokens[1::2]

        total = 0.0
        for index, segment in enumerate(segments):
            number = self._to_number(segment)
            if number is None:
                continue

            if index == 0:
                total = number
            elif operators[index - 1] == '+':
                total += number
            else:
                total -= number

        if total <= 0:
            logger.debug(f"Buy-in {text!r} has no positive amount")
            return None

        return total

    def effective_amount(self, event: EventRecord) -> Optional[float]:
        """
        Buy-in amount used for filtering and sorting.

        The pre-parsed amount always takes precedence over the display
        string.
        """
        if event.buyin_amount is not None:
            return event.buyin_amount
        return self.parse(event.buyin_text)

    def _to_number(self, segment: str) -> Optional[float]:
        try:
            value = float(segment.strip())
        except ValueError:
            return None
        if not math.isfinite(value):
            return None
        return value
