import datetime as dt
from pathlib import Path

import pytest

from conftest import make_csv, make_xlsx
from contact_chunker.ingest import (
    IngestionError,
    build_groups,
    ingest_file,
    parse_contacts,
    read_xlsx_rows,
    read_xls_rows,
)
from contact_chunker.models import Contact
from contact_chunker.normalize import lookup

XLS_FIXTURE = Path(__file__).parent / "data" / "contacts.xls"


def test_dispatch_by_extension_is_case_insensitive():
    raw = make_csv(2).encode("utf-8")
    assert len(parse_contacts("LIST.CSV", raw)) == 2
    assert parse_contacts("list.json", raw) == []
    assert parse_contacts("noextension", raw) == []


def test_xlsx_uses_first_sheet():
    raw = make_xlsx(
        [["Name", "Email"], ["Jo", "jo@x.com"], [None, None], ["Lu", "lu@x.com"]],
        [["Name", "Email"], ["Other", "other@x.com"]],
    )
    assert parse_contacts("book.xlsx", raw) == [
        Contact(name="Jo", email="jo@x.com"),
        Contact(name="Lu", email="lu@x.com"),
    ]


def test_xls_rows_from_first_sheet():
    rows = read_xls_rows(XLS_FIXTURE.read_bytes())
    assert rows == [
        {"Contact": "Jo", "EMAIL": "jo@x.com", "Phone": 5551234.0, "Joined": dt.datetime(2024, 1, 1)},
        {"Contact": "Al", "Phone": 5550001.0},
        {"Contact": "Cy"},
    ]


def test_xls_contacts():
    assert parse_contacts("contacts.xls", XLS_FIXTURE.read_bytes()) == [
        Contact(name="Jo", email="jo@x.com", phone="5551234"),
        Contact(name="Al", email="N/A", phone="5550001"),
        Contact(name="Cy", email="N/A"),
    ]


def test_xlsx_and_xls_dates_render_alike():
    xlsx = make_xlsx([["Name", "Joined"], ["Jo", dt.datetime(2024, 1, 1)]])
    xls_rows = read_xls_rows(XLS_FIXTURE.read_bytes())
    assert lookup(xls_rows[0], ["Joined"]) == lookup(read_xlsx_rows(xlsx)[0], ["Joined"]) == "2024-01-01"


def test_xlsx_header_only():
    raw = make_xlsx([["name", "email", "phone"]])
    assert build_groups("book.xlsx", raw) == []


@pytest.mark.parametrize("name", ["bad.xlsx", "bad.xls"])
def test_broken_workbook_raises(name):
    with pytest.raises(IngestionError):
        parse_contacts(name, b"not a spreadsheet")


def test_build_groups_filters_then_chunks():
    text = "name,email,phone\nA,N/A,undefined\nB,N/A,+1555\nC,c@x.com,\n"
    groups = build_groups("c.csv", text.encode("utf-8"), chunk_size=1)
    assert [g.contacts[0].name for g in groups] == ["B", "C"]
    assert [g.start_index for g in groups] == [1, 2]


def test_build_groups_is_idempotent():
    raw = make_csv(230).encode("utf-8")
    assert build_groups("c.csv", raw) == build_groups("c.csv", raw)


def test_store_ingest_and_summary(store):
    assert ingest_file(store, "c.csv", make_csv(250).encode("utf-8"))
    summary = store.summary()
    assert summary.total_contacts == 250
    assert summary.group_count == 3
    assert store.group(3).end_index == 250
    assert store.group(4) is None


def test_store_header_only_file(store):
    ingest_file(store, "c.csv", b"name,email,phone\n")
    summary = store.summary()
    assert summary.total_contacts == 0
    assert summary.group_count == 0


def test_store_drops_stale_commit(store):
    first = store.begin()
    second = store.begin()

    assert store.commit(second, "new.csv", build_groups("new.csv", make_csv(3).encode()))
    assert not store.commit(first, "old.csv", build_groups("old.csv", make_csv(150).encode()))

    summary = store.summary()
    assert summary.file_name == "new.csv"
    assert summary.total_contacts == 3


def test_store_keeps_state_on_error(store):
    ingest_file(store, "c.csv", make_csv(5).encode("utf-8"))
    with pytest.raises(IngestionError):
        ingest_file(store, "c.xlsx", b"garbage")
    assert store.summary().total_contacts == 5
    assert store.summary().file_name == "c.csv"


def test_store_add_manual(store):
    manual = Contact(name="Manual Entry", email="manual-1@local", phone="+1")
    group = store.add_manual(manual)
    assert group.number == 1
    assert store.summary().total_contacts == 1
    assert store.snapshot().groups[0].contacts == (manual,)


def test_commit_returns_snapshot_for_consistent_summary(store):
    generation = store.begin()
    snap = store.commit(generation, "c.csv", build_groups("c.csv", make_csv(100).encode()))
    assert snap.generation == generation
    assert len(snap.groups) == 1

    store.add_manual(Contact(name="M", email="m@local", phone="1"))

    summary = store.summary(snap)
    assert summary.total_contacts == 100
    assert summary.group_count == len(snap.groups)
    assert store.summary().total_contacts == 101
