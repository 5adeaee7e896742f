"""
Pytest fixtures for contact ingestion tests.
"""

import io

import openpyxl
import pytest
from fastapi.testclient import TestClient

from contact_chunker.ingest import ContactStore
from contact_chunker.main import app, get_store


def make_xlsx(*sheets):
    """Build workbook bytes; each sheet is a list of rows, first row headers."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for i, rows in enumerate(sheets):
        ws = wb.create_sheet(f"Sheet{i + 1}")
        for row in rows:
            ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_csv(n, header="name,email,phone"):
    lines = [header]
    lines += [f"Person {i},person{i}@example.com,+1555000{i:04d}" for i in range(1, n + 1)]
    return "\n".join(lines) + "\n"


@pytest.fixture
def store():
    return ContactStore(chunk_size=100)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()
