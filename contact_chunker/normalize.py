"""
Contact normalization.

Responsibilities:
- encoding detection for delimited text
- header mapping (case-insensitive, positional fallback)
- spreadsheet synonym lookup
- validity filtering
"""

from __future__ import annotations

import csv
import datetime as dt
import io
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from charset_normalizer import from_bytes

from .models import Contact
from .rules import (
    FIELD_POSITIONS,
    FIELD_SYNONYMS,
    NOT_AVAILABLE,
    UNDEFINED_PHONE,
)

logger = logging.getLogger(__name__)


def decode_text(raw: bytes) -> str:
    """
    Decode uploaded bytes to text with LF newlines.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is dropped.
    - If decode fails, fall back to UTF-8, then UTF-8 with replacement characters.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    try:
        text = raw.decode(decode_used)
    except (LookupError, UnicodeDecodeError):
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.warning("Undecodable bytes in upload, replacing invalid characters")
            text = raw.decode("utf-8-sig", errors="replace")

    return text.replace("\r\n", "\n").replace("\r", "\n")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().replace('"', "")
    return value or None


def _field(values: List[str], headers: Dict[str, int], field: str) -> Optional[str]:
    index = headers.get(field, FIELD_POSITIONS[field])
    if index >= len(values):
        return None
    return _clean(values[index])


def normalize_csv_text(text: str) -> List[Contact]:
    """
    Map delimited text to contacts.

    The first non-blank row is the header. Fields are looked up by header
    name, falling back to columns 0/1/2 when the header is missing.
    """
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    # blank lines come back as [] or a single whitespace cell
    rows = [row for row in reader if len(row) > 1 or (row and row[0].strip())]
    if not rows:
        return []

    headers: Dict[str, int] = {}
    for i, cell in enumerate(rows[0]):
        # first occurrence wins for duplicated headers
        headers.setdefault(cell.strip().lower(), i)

    contacts = []
    for values in rows[1:]:
        contacts.append(Contact(
            name=_field(values, headers, "name") or NOT_AVAILABLE,
            email=_field(values, headers, "email") or NOT_AVAILABLE,
            phone=_field(values, headers, "phone"),
        ))
    return contacts


def cell_to_text(value: Any) -> Optional[str]:
    """Render a spreadsheet cell as text; empty cells become None."""
    if value is None:
        return None
    if isinstance(value, bool):
        text = str(value).upper()
    elif isinstance(value, float) and value.is_integer():
        # phone numbers typed into a sheet come back as floats
        text = str(int(value))
    elif isinstance(value, dt.datetime):
        # date-only cells come back as midnight datetimes
        text = value.date().isoformat() if value.time() == dt.time() else value.isoformat()
    elif isinstance(value, dt.date):
        text = value.isoformat()
    else:
        text = str(value)
    text = text.strip()
    return text or None


def lookup(row: Mapping[str, Any], candidates: Iterable[str]) -> Optional[str]:
    for key in candidates:
        text = cell_to_text(row.get(key))
        if text is not None:
            return text
    return None


def normalize_sheet_rows(rows: Iterable[Mapping[str, Any]]) -> List[Contact]:
    """Map spreadsheet rows keyed by their original headers to contacts."""
    return [
        Contact(
            name=lookup(row, FIELD_SYNONYMS["name"]) or NOT_AVAILABLE,
            email=lookup(row, FIELD_SYNONYMS["email"]) or NOT_AVAILABLE,
            phone=lookup(row, FIELD_SYNONYMS["phone"]),
        )
        for row in rows
    ]


def is_valid(contact: Contact) -> bool:
    if contact.email and contact.email != NOT_AVAILABLE:
        return True
    return bool(contact.phone) and contact.phone != UNDEFINED_PHONE


def filter_valid(contacts: Iterable[Contact]) -> List[Contact]:
    return [c for c in contacts if is_valid(c)]
