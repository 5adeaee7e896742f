"""Serialize a contact group back to a downloadable CSV document."""

from __future__ import annotations

from .models import ContactGroup
from .rules import EXPORT_FILENAME, EXPORT_HEADER


def _quote(cell: str) -> str:
    return '"' + cell.replace('"', '""') + '"'


def export_group(group: ContactGroup) -> str:
    rows = [EXPORT_HEADER]
    rows.extend((c.name, c.email, c.phone or "") for c in group.contacts)
    return "\n".join(",".join(_quote(cell) for cell in row) for row in rows)


def export_filename(group: ContactGroup) -> str:
    return EXPORT_FILENAME.format(number=group.number)
