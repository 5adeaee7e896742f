from __future__ import annotations

from typing import List, Sequence

from .models import Contact, ContactGroup
from .rules import CHUNK_SIZE


def _group(k: int, contacts: Sequence[Contact], start_index: int) -> ContactGroup:
    return ContactGroup(
        id=f"group-{k}",
        number=k + 1,
        contacts=tuple(contacts),
        start_index=start_index,
        end_index=start_index + len(contacts) - 1,
    )


def chunk(contacts: Sequence[Contact], chunk_size: int = CHUNK_SIZE) -> List[ContactGroup]:
    """
    Split contacts into consecutive groups of at most ``chunk_size``.

    Group k (0-based) holds contacts [k*size, (k+1)*size) with 1-based
    inclusive start/end indices; only the last group may be shorter.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    return [
        _group(k, contacts[i:i + chunk_size], i + 1)
        for k, i in enumerate(range(0, len(contacts), chunk_size))
    ]


def total_contacts(groups: Sequence[ContactGroup]) -> int:
    return sum(g.size for g in groups)


def append_contact(
    groups: Sequence[ContactGroup],
    contact: Contact,
    chunk_size: int = CHUNK_SIZE,
) -> List[ContactGroup]:
    """
    Return a new group list with ``contact`` appended at the end.

    The last group absorbs it while it has room; otherwise a new group is
    started. Input groups are left untouched.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    groups = list(groups)
    if groups and groups[-1].size < chunk_size:
        last = groups[-1]
        groups[-1] = last.model_copy(update={
            "contacts": last.contacts + (contact,),
            "end_index": last.end_index + 1,
        })
        return groups

    groups.append(_group(len(groups), [contact], total_contacts(groups) + 1))
    return groups
