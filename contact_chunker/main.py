import logging
import time
from typing import List

from fastapi import Depends, FastAPI, File, HTTPException, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from .config import settings
from .export import export_filename, export_group
from .ingest import ContactStore, IngestionError, ingest_file
from .models import (
    Contact,
    ContactGroup,
    HealthResponse,
    ImportResponse,
    ImportSummary,
    ManualContactRequest,
)
from .rules import EXPORT_MEDIA_TYPE, MANUAL_EMAIL, MANUAL_NAME

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)

_store = ContactStore(settings.CHUNK_SIZE)


def get_store() -> ContactStore:
    return _store


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"File exceeds {settings.MAX_UPLOAD_MB} MB limit",
    )


def _require_group(store: ContactStore, number: int) -> ContactGroup:
    group = store.group(number)
    if group is None:
        raise HTTPException(status_code=404, detail=f"Group {number} not found")
    return group


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/contacts/import", response_model=ImportResponse)
async def import_contacts(file: UploadFile = File(...), store: ContactStore = Depends(get_store)):
    filename = file.filename or ""
    logger.info(f"Import requested: {filename}")

    limit = settings.max_upload_bytes
    if file.size is not None and file.size > limit:
        raise _too_large()

    # read at most one byte past the limit
    raw = await file.read(limit + 1)
    if len(raw) > limit:
        raise _too_large()

    try:
        snap = await run_in_threadpool(ingest_file, store, filename, raw)
    except IngestionError as e:
        raise HTTPException(status_code=422, detail=f"Error processing file: {e}")

    if snap is None:
        raise HTTPException(status_code=409, detail="Import superseded by a newer upload")

    return {"summary": store.summary(snap), "groups": list(snap.groups)}


@app.get("/contacts", response_model=ImportSummary)
def contacts_summary(store: ContactStore = Depends(get_store)):
    return store.summary()


@app.get("/contacts/groups", response_model=List[ContactGroup])
def list_groups(store: ContactStore = Depends(get_store)):
    return list(store.snapshot().groups)


@app.get("/contacts/groups/{number}", response_model=ContactGroup)
def get_group(number: int, store: ContactStore = Depends(get_store)):
    return _require_group(store, number)


@app.get("/contacts/groups/{number}/export")
def export_contacts_group(number: int, store: ContactStore = Depends(get_store)):
    group = _require_group(store, number)
    return Response(
        content=export_group(group).encode("utf-8"),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(group)}"'},
    )


@app.post("/contacts/manual", response_model=ContactGroup, status_code=201)
def add_manual_contact(body: ManualContactRequest, store: ContactStore = Depends(get_store)):
    phone = body.phone.strip()
    if not phone:
        raise HTTPException(status_code=422, detail="Please enter a phone number")

    contact = Contact(
        name=body.name.strip() or MANUAL_NAME,
        email=MANUAL_EMAIL.format(stamp=int(time.time() * 1000)),
        phone=phone,
    )
    group = store.add_manual(contact)
    logger.info(f"Manual contact added to group {group.number}")
    return group
