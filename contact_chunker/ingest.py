"""
Ingestion dispatcher.

Picks a decoder by file extension, runs normalize -> filter -> chunk and
keeps the latest committed result in a ContactStore.
"""

from __future__ import annotations

import io
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import openpyxl
import xlrd
from xlrd.biffh import XL_CELL_DATE
from xlrd.xldate import xldate_as_datetime

from .chunk import append_contact, chunk, total_contacts
from .models import Contact, ContactGroup, ImportSummary
from .normalize import cell_to_text, decode_text, filter_valid, normalize_csv_text, normalize_sheet_rows
from .rules import CHUNK_SIZE, CSV_EXTENSIONS, XLS_EXTENSIONS, XLSX_EXTENSIONS

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Raised when an uploaded file cannot be decoded."""


def _rows_to_records(rows: Iterator[Sequence[Any]]) -> List[Dict[str, Any]]:
    """First row is the header; blank rows and unnamed columns are skipped."""
    header_row = next(rows, None)
    if header_row is None:
        return []
    headers = [cell_to_text(h) for h in header_row]

    records = []
    for row in rows:
        record = {
            header: value
            for header, value in zip(headers, row)
            if header is not None and cell_to_text(value) is not None
        }
        if record:
            records.append(record)
    return records


def read_xlsx_rows(raw: bytes) -> List[Dict[str, Any]]:
    wb = openpyxl.load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    try:
        if not wb.worksheets:
            return []
        ws = wb.worksheets[0]
        return _rows_to_records(ws.iter_rows(values_only=True))
    finally:
        wb.close()


def _xls_value(cell: Any, datemode: int) -> Any:
    # xlrd hands dates back as serial numbers
    if cell.ctype == XL_CELL_DATE:
        return xldate_as_datetime(cell.value, datemode)
    return cell.value


def read_xls_rows(raw: bytes) -> List[Dict[str, Any]]:
    book = xlrd.open_workbook(file_contents=raw)
    if book.nsheets == 0:
        return []
    sheet = book.sheet_by_index(0)
    return _rows_to_records(
        [_xls_value(cell, book.datemode) for cell in sheet.row(r)] for r in range(sheet.nrows)
    )


def parse_contacts(filename: str, raw: bytes) -> List[Contact]:
    """
    Decode an uploaded file into normalized (unfiltered) contacts.

    Unknown extensions give an empty list. Decoder failures are raised as
    IngestionError.
    """
    ext = Path(filename).suffix.lower()
    try:
        if ext in CSV_EXTENSIONS:
            return normalize_csv_text(decode_text(raw))
        if ext in XLSX_EXTENSIONS:
            return normalize_sheet_rows(read_xlsx_rows(raw))
        if ext in XLS_EXTENSIONS:
            return normalize_sheet_rows(read_xls_rows(raw))
    except Exception as e:
        logger.error(f"Failed to decode {filename}: {e}")
        raise IngestionError(str(e) or type(e).__name__) from e

    logger.info(f"Unsupported extension '{ext}' for {filename}, no contacts read")
    return []


def build_groups(filename: str, raw: bytes, chunk_size: int = CHUNK_SIZE) -> List[ContactGroup]:
    contacts = parse_contacts(filename, raw)
    valid = filter_valid(contacts)
    logger.info(f"{filename}: {len(contacts)} rows read, {len(valid)} valid")
    return chunk(valid, chunk_size)


class Snapshot(NamedTuple):
    generation: int
    file_name: Optional[str]
    groups: Tuple[ContactGroup, ...]


class ContactStore:
    """
    In-memory holder of the latest ingestion result.

    Each ingestion takes a generation from ``begin()``; ``commit()`` only
    accepts the newest one, so a slow decode cannot overwrite a later upload.
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.chunk_size = chunk_size
        self._lock = threading.Lock()
        self._latest = 0
        self._snapshot = Snapshot(0, None, ())

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def commit(
        self, generation: int, file_name: str, groups: Sequence[ContactGroup]
    ) -> Optional[Snapshot]:
        with self._lock:
            if generation != self._latest:
                logger.warning(
                    f"Dropping stale import of {file_name} "
                    f"(generation {generation}, latest {self._latest})"
                )
                return None
            snap = self._snapshot = Snapshot(generation, file_name, tuple(groups))
        logger.info(f"Committed {file_name}: {total_contacts(groups)} contacts in {len(groups)} groups")
        return snap

    def add_manual(self, contact: Contact) -> ContactGroup:
        """Append one contact to the current groups and return the group it landed in."""
        with self._lock:
            self._latest += 1
            current = self._snapshot
            groups = append_contact(current.groups, contact, self.chunk_size)
            self._snapshot = Snapshot(self._latest, current.file_name, tuple(groups))
        return groups[-1]

    def snapshot(self) -> Snapshot:
        return self._snapshot

    def group(self, number: int) -> Optional[ContactGroup]:
        groups = self._snapshot.groups
        if 1 <= number <= len(groups):
            return groups[number - 1]
        return None

    def summary(self, snap: Optional[Snapshot] = None) -> ImportSummary:
        if snap is None:
            snap = self._snapshot
        return ImportSummary(
            file_name=snap.file_name,
            total_contacts=total_contacts(snap.groups),
            group_count=len(snap.groups),
            chunk_size=self.chunk_size,
            generation=snap.generation,
        )


def ingest_file(store: ContactStore, filename: str, raw: bytes) -> Optional[Snapshot]:
    """
    Run parse -> filter -> chunk for one upload and commit it to ``store``.

    Returns the committed snapshot, or None when a newer ingestion started
    meanwhile. On IngestionError the store is left unchanged.
    """
    generation = store.begin()
    groups = build_groups(filename, raw, store.chunk_size)
    return store.commit(generation, filename, groups)
