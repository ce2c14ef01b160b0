import decimal
import re
from decimal import Decimal

from price_parser import Price

# A minus (or unicode minus) before the first digit: "-$5.00", "$-5.00"
NEGATIVE_RE = re.compile(r"^[^\d]*[-−]")


def to_cents(value: str | None) -> int:
    """
    Parse a (localized) currency string into integer cents.

    "$1,234.56" and "1.234,56 €" both give 123456, "-$5.00"
    gives -500. Anything without a recognizable amount gives 0.
    """
    if not value:
        return 0
    text = " ".join(str(value).split())
    amount = Price.fromstring(text).amount
    if amount is None:
        return 0
    cents = int(
        (abs(amount) * 100).quantize(Decimal("1"), decimal.ROUND_HALF_UP),
    )
    return -cents if NEGATIVE_RE.match(text) else cents


def format_cents(cents: int) -> str:
    return str((Decimal(cents) / 100).quantize(Decimal(".00")))
