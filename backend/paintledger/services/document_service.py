# Overview: Invoice and return numbering; allocates PREFIX-YYYYMM-NNNN document numbers.

from __future__ import annotations

import logging
import re
from datetime import datetime

from ..time_utils import utcnow

logger = logging.getLogger(__name__)

INVOICE_DOCUMENT = "invoice"
RETURN_DOCUMENT = "return"

INVOICE_PREFIX = "INV"
RETURN_PREFIX = "RET"

_NUMBER_RE = re.compile(r"^(?P<prefix>[A-Z]+)-(?P<period>\d{6})-(?P<seq>\d{4,})$")


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def period_for(moment: datetime) -> str:
    """Calendar month of moment as 'YYYYMM'."""
    return f"{moment.year:04d}{moment.month:02d}"


def format_document_number(prefix: str, period: str, sequence: int, pad: int = 4) -> str:
    if sequence < 1:
        raise DocumentSequenceError("sequence must be >= 1")
    return f"{prefix}-{period}-{sequence:0{pad}d}"


def parse_document_number(number: str) -> tuple[str, str, int]:
    """Split 'INV-202405-0007' into ('INV', '202405', 7)."""
    match = _NUMBER_RE.match((number or "").strip())
    if not match:
        raise DocumentSequenceError(f"Malformed document number: {number!r}")
    return match.group("prefix"), match.group("period"), int(match.group("seq"))


def next_document_number(
    store,
    *,
    document_type: str,
    prefix: str,
    moment: datetime | None = None,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next document number for a type in the month of
    moment (defaults to now).

    The counter is per (document_type, month), so numbering restarts at 0001
    every calendar month and two concurrent creations never share a number.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    if not prefix:
        raise DocumentSequenceError("prefix is required")

    period = period_for(moment or utcnow())
    sequence = store.next_sequence(document_type, period)
    number = format_document_number(prefix, period, sequence, pad=pad)
    logger.info("Allocated %s number %s", document_type, number)
    return number
