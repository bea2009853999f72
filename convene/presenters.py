"""Turn gathering errors and records into display-ready values.

This is the only place identity is consulted; services and repositories work
purely with raw identifiers.
"""

from __future__ import annotations

from typing import Any

from convene.errors import GatheringError
from convene.identity import IdentityResolver
from convene.models.gathering import Gathering
from convene.models.invite import Invite

# Error attributes that hold user identifiers.
USER_FIELDS = ("user", "creator")


def describe_error(err: GatheringError, resolver: IdentityResolver) -> str:
    user_fields = [field for field in USER_FIELDS if field in err.identifiers]
    if not user_fields:
        return str(err)
    names = resolver.ids_to_usernames([str(err.identifiers[field]) for field in user_fields])
    return err.format(**dict(zip(user_fields, names)))


def error_payload(err: GatheringError, resolver: IdentityResolver) -> dict[str, Any]:
    return {"kind": err.kind.value, "error": type(err).__name__, "msg": describe_error(err, resolver)}


def gathering_view(gathering: Gathering, resolver: IdentityResolver) -> dict[str, Any]:
    users = [gathering.creator, *gathering.hosts, *gathering.acceptors]
    names = resolver.ids_to_usernames(users)
    creator = names[0]
    hosts = names[1 : 1 + len(gathering.hosts)]
    acceptors = names[1 + len(gathering.hosts) :]
    return {**gathering.model_dump(), "creator": creator, "hosts": hosts, "acceptors": acceptors}


def invites_view(invites: list[Invite], resolver: IdentityResolver) -> list[dict[str, Any]]:
    """Same conversion for a batch, resolving all names in one call."""
    names = resolver.ids_to_usernames([i.from_user for i in invites] + [i.to_user for i in invites])
    return [
        {**invite.model_dump(), "from_user": names[n], "to_user": names[n + len(invites)]}
        for n, invite in enumerate(invites)
    ]
