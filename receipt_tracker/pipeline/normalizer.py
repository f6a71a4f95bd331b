"""
Field normalizer: turns vendor-extracted receipt fields into a
``CanonicalReceipt``.

Pure and total: it never raises and never does I/O. Anything it cannot
recover falls back to an empty/zero/None default so a human can fix the
record in the review step.

Each vendor field is read into one of three shapes:

* ``Typed``  : a value the vendor already typed (``valueString``,
  ``valueDate``, ``valueCurrency.amount``, a bare scalar, ...)
* ``RawText``: only the OCR text (``content``) is available
* ``Absent`` : the field is missing or empty

``Typed`` always wins over ``RawText``.
"""
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from dateutil import parser as dateparser

from receipt_tracker.schemas import CanonicalReceipt

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Field shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Typed:
    value: Any


@dataclass(frozen=True)
class RawText:
    text: str


@dataclass(frozen=True)
class Absent:
    pass


FieldValue = Union[Typed, RawText, Absent]

ABSENT = Absent()

# Vendor field names and the keys holding their typed value, in order.
MERCHANT_FIELD = ("MerchantName", ("valueString", "value"))
TOTAL_FIELD = ("Total", ("valueCurrency", "valueNumber", "value", "amount"))
DATE_FIELD = ("TransactionDate", ("valueDate", "valueString", "value"))

_ZERO = Decimal("0.00")
_CENTS = Decimal("0.01")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_KOREAN_DATE = re.compile(r"(\d{4})\s*년\s*(\d{1,2})\s*월\s*(\d{1,2})\s*일")
_NOT_AMOUNT_CHARS = re.compile(r"[^0-9.\-]")
_PARTIAL_DATES = [
    re.compile(r"\d+"),
    re.compile(r"\d{1,2}[/-]\d{2,4}"),
    re.compile(r"[A-Za-z]{3,9}\.?\s+\d{4}"),
    re.compile(r"\d{1,2}:\d{2}(:\d{2})?"),
]
# Two defaults that differ in year, month and day: a component missing from
# the text shows up as a difference between the two parses.
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def read_field(fields: dict[str, Any], name: str, typed_keys: tuple[str, ...]) -> FieldValue:
    """Classify one vendor field into ``Typed`` / ``RawText`` / ``Absent``."""
    raw = fields.get(name)
    if _is_empty(raw):
        return ABSENT
    if not isinstance(raw, dict):
        return Typed(raw)

    for key in typed_keys:
        value = raw.get(key)
        if isinstance(value, dict):
            # valueCurrency: {"amount": 12.5, "currencySymbol": "$"}
            value = value.get("amount")
        if not _is_empty(value):
            return Typed(value)

    content = raw.get("content")
    if isinstance(content, str) and content.strip():
        return RawText(content.strip())
    return ABSENT


# ---------------------------------------------------------------------------
# Scalar normalizers
# ---------------------------------------------------------------------------

def normalize_amount(value: Any) -> Decimal:
    """Absolute decimal amount with two places; ``0.00`` when unreadable."""
    if _is_empty(value) or isinstance(value, bool):
        return _ZERO

    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return _ZERO
        text = str(value)
    else:
        text = _NOT_AMOUNT_CHARS.sub("", str(value))
        # "1234.56-" is how some printers mark a refund line
        if text.endswith("-") and not text.startswith("-"):
            text = "-" + text.rstrip("-")

    try:
        amount = Decimal(text)
        if not amount.is_finite():
            return _ZERO
        return abs(amount).quantize(_CENTS)
    except (InvalidOperation, ValueError):
        logger.debug("normalize_amount | unparseable=%r", value)
        return _ZERO


def normalize_date(value: Any) -> date | None:
    """Calendar date or ``None``; never the raw string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_empty(value) or not isinstance(value, str):
        return None

    text = value.strip()
    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass

    match = _KOREAN_DATE.search(text)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    # Partial dates ("2024", "12", "05/24", "May 2024", "14:03") would be
    # completed from the clock by dateutil.
    if not any(ch.isdigit() for ch in text):
        return None
    if any(pattern.fullmatch(text) for pattern in _PARTIAL_DATES):
        logger.debug("normalize_date | partial | raw=%r", text)
        return None
    try:
        first = dateparser.parse(text, default=_DEFAULT_A)
        second = dateparser.parse(text, default=_DEFAULT_B)
    except (ValueError, OverflowError, TypeError) as exc:
        logger.debug("normalize_date | %s | raw=%r", type(exc).__name__, text)
        return None
    if first.date() != second.date():
        # some of year/month/day came from the default, not the text
        logger.debug("normalize_date | incomplete | raw=%r", text)
        return None
    return first.date()


def _field_text(field: FieldValue) -> str:
    if isinstance(field, Typed):
        return str(field.value).strip()
    if isinstance(field, RawText):
        return field.text
    return ""


def _field_scalar(field: FieldValue) -> Any:
    if isinstance(field, Typed):
        return field.value
    if isinstance(field, RawText):
        return field.text
    return None


# ---------------------------------------------------------------------------
# Payload → canonical receipt
# ---------------------------------------------------------------------------

def extract_fields(payload: Any) -> dict[str, Any]:
    """Fields of the first analyzed document, or ``{}``."""
    if not isinstance(payload, dict):
        return {}
    result = payload.get("analyzeResult", payload)
    if not isinstance(result, dict):
        return {}
    documents = result.get("documents")
    if not isinstance(documents, list) or not documents:
        return {}
    first = documents[0]
    if not isinstance(first, dict) or not isinstance(first.get("fields"), dict):
        return {}
    return first["fields"]


def normalize(payload: Any, permanent_image_url: str) -> CanonicalReceipt:
    """Build a best-effort ``CanonicalReceipt`` from a vendor payload."""
    fields = extract_fields(payload)
    if not fields:
        logger.info("Normalizer: no document fields, returning defaults")

    merchant = read_field(fields, *MERCHANT_FIELD)
    total = read_field(fields, *TOTAL_FIELD)
    when = read_field(fields, *DATE_FIELD)

    transaction_date = normalize_date(_field_scalar(when))
    if transaction_date is None and isinstance(when, Typed):
        # A typed value that does not parse still leaves the OCR text to try.
        content = fields.get(DATE_FIELD[0], {})
        if isinstance(content, dict):
            transaction_date = normalize_date(content.get("content"))

    receipt = CanonicalReceipt(
        store_name=_field_text(merchant),
        total_amount=normalize_amount(_field_scalar(total)),
        transaction_date=transaction_date,
        source_image_url=permanent_image_url,
    )
    logger.debug(
        "Normalizer: merchant=%s total=%s date=%s",
        type(merchant).__name__, type(total).__name__, type(when).__name__,
    )
    return receipt
