from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class InviteStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Invite(BaseModel):
    id: int | None = None
    uuid: str = ""
    gathering_id: int = 0
    from_user: str = ""
    to_user: str = ""
    status: InviteStatus = InviteStatus.PENDING
    created_at: datetime | None = None


class InviteFilter(BaseModel):
    gathering_id: int | None = None
    from_user: str | None = None
    to_user: str | None = None
    status: InviteStatus | None = None
