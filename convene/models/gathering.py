from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from convene.errors import NotAllowedFieldError

# Creator and hosts are deliberately absent: they change only through the
# dedicated host operations.
ALLOWED_UPDATE_FIELDS = ("title", "description", "canceled", "acceptors", "posts")


class MemberKind(str, Enum):
    HOST = "host"
    ACCEPTOR = "acceptor"
    POST = "post"


class Gathering(BaseModel):
    id: int | None = None
    uuid: str = ""
    title: str
    description: str = ""
    creator: str
    hosts: list[str] = []
    canceled: bool = False
    acceptors: list[str] = []
    posts: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def members(self, kind: MemberKind) -> list[str]:
        if kind == MemberKind.HOST:
            return self.hosts
        if kind == MemberKind.ACCEPTOR:
            return self.acceptors
        return self.posts


class GatheringUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    canceled: bool | None = None
    acceptors: list[str] | None = None
    posts: list[str] | None = None

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> GatheringUpdate:
        for key in fields:
            if key not in ALLOWED_UPDATE_FIELDS:
                raise NotAllowedFieldError(key)
        return cls(**fields)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class GatheringFilter(BaseModel):
    creator: str | None = None
    title: str | None = None
    canceled: bool | None = None
    host: str | None = None
    acceptor: str | None = None
    post: str | None = None
