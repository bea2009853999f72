"""Guarded add/remove over a gathering's member sets (hosts, acceptors, posts).

Every operation checks membership against the loaded gathering first and
raises before writing. How the write happens depends on the strictness level:

``lenient``
    Read-modify-write of the whole set. Two concurrent additions to the same
    set can race and the last write wins.
``strict``
    One conditional insert/delete per member. A concurrent change that beats
    us to it is reported with the same error as the up-front check.
"""

from __future__ import annotations

import logging
from typing import Literal

from convene.errors import StateConflictError
from convene.models.gathering import Gathering, GatheringUpdate, MemberKind
from convene.repositories.base import GatheringRepository

logger = logging.getLogger(__name__)

Strictness = Literal["lenient", "strict"]

_UPDATE_FIELDS = {MemberKind.ACCEPTOR: "acceptors", MemberKind.POST: "posts"}


def has_item(item: str, items: list[str]) -> bool:
    return item in items


def _write_set(repo: GatheringRepository, gathering_id: int, kind: MemberKind, members: list[str]) -> None:
    if kind == MemberKind.HOST:
        repo.set_hosts(gathering_id, members)
    else:
        repo.update(gathering_id, GatheringUpdate(**{_UPDATE_FIELDS[kind]: members}))


def add_members(
    repo: GatheringRepository,
    gathering: Gathering,
    kind: MemberKind,
    values: list[str],
    *,
    strictness: Strictness,
    exists_error: type[StateConflictError],
) -> None:
    current = gathering.members(kind)
    seen: list[str] = []
    for value in values:
        if has_item(value, current) or has_item(value, seen):
            raise exists_error(value, gathering.id)
        seen.append(value)

    if strictness == "strict":
        for value in seen:
            if not repo.add_member(gathering.id, kind, value):
                raise exists_error(value, gathering.id)
    else:
        _write_set(repo, gathering.id, kind, [*current, *seen])
    logger.debug("Added %d %s(s) to gathering=%s strictness=%s", len(seen), kind.value, gathering.id, strictness)


def add_member(
    repo: GatheringRepository,
    gathering: Gathering,
    kind: MemberKind,
    value: str,
    *,
    strictness: Strictness,
    exists_error: type[StateConflictError],
) -> None:
    add_members(repo, gathering, kind, [value], strictness=strictness, exists_error=exists_error)


def remove_member(
    repo: GatheringRepository,
    gathering: Gathering,
    kind: MemberKind,
    value: str,
    *,
    strictness: Strictness,
    missing_error: type[StateConflictError],
) -> None:
    current = gathering.members(kind)
    if not has_item(value, current):
        raise missing_error(value, gathering.id)

    if strictness == "strict":
        if not repo.remove_member(gathering.id, kind, value):
            raise missing_error(value, gathering.id)
    else:
        _write_set(repo, gathering.id, kind, [item for item in current if item != value])
    logger.debug("Removed %s=%s from gathering=%s strictness=%s", kind.value, value, gathering.id, strictness)
