"""
Invoice number sequencing.

Timesheets number sequentially (highest + 1). Bulk timesheets reuse the
lowest free number, so deleted invoices leave no gaps. Stored values may
carry an ``INV-`` prefix or leading zeros; both schemes compare on the
numeric part.
"""

from typing import Iterable, Optional, Set

INVOICE_PREFIX = "INV-"


def parse_invoice_number(value: Optional[str]) -> Optional[int]:
    """Numeric part of an invoice number, or None when it has none."""
    if value is None:
        return None
    text = str(value).strip()
    if text.upper().startswith(INVOICE_PREFIX):
        text = text[len(INVOICE_PREFIX):]
    if not text.isdigit():
        return None
    return int(text)


def format_invoice_number(number: int, width: int) -> str:
    return str(number).zfill(width)


def _used_numbers(existing: Iterable[Optional[str]]) -> Set[int]:
    used = set()
    for value in existing:
        number = parse_invoice_number(value)
        if number is not None:
            used.add(number)
    return used


def next_sequential(existing: Iterable[Optional[str]], width: int) -> str:
    """Highest numeric invoice number + 1 ("000001" when none exist)."""
    used = _used_numbers(existing)
    return format_invoice_number(max(used, default=0) + 1, width)


def lowest_free(existing: Iterable[Optional[str]], width: int) -> str:
    """Smallest positive number not in use."""
    used = _used_numbers(existing)
    candidate = 1
    while candidate in used:
        candidate += 1
    return format_invoice_number(candidate, width)


def is_taken(value: str, existing: Iterable[Optional[str]]) -> bool:
    """True when ``value`` collides with an existing number (numeric or literal)."""
    number = parse_invoice_number(value)
    existing = list(existing)
    if number is not None and number in _used_numbers(existing):
        return True
    return str(value).strip() in {str(v).strip() for v in existing if v is not None}
