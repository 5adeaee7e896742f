from __future__ import annotations

from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


class Contact(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: Optional[str] = None


class ContactGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    number: int = Field(ge=1)
    contacts: Tuple[Contact, ...] = ()
    start_index: int = Field(ge=1)
    end_index: int = Field(ge=1)

    @property
    def size(self) -> int:
        return len(self.contacts)


class ImportSummary(BaseModel):
    file_name: Optional[str] = None
    total_contacts: int = 0
    group_count: int = 0
    chunk_size: int
    generation: int = 0


class ImportResponse(BaseModel):
    summary: ImportSummary
    groups: List[ContactGroup] = Field(default_factory=list)


class ManualContactRequest(BaseModel):
    name: str = ""
    phone: str = ""


class HealthResponse(BaseModel):
    ok: bool = True
