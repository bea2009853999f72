from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from convene.models.gathering import Gathering, GatheringFilter, GatheringUpdate, MemberKind
from convene.models.invite import Invite, InviteFilter


class GatheringRepository(ABC):
    @abstractmethod
    def create(self, creator: str, title: str, description: str) -> Gathering: ...

    @abstractmethod
    def get_by_id(self, gathering_id: int) -> Gathering | None: ...

    @abstractmethod
    def get_by_uuid(self, uuid: str) -> Gathering | None: ...

    @abstractmethod
    def get_by_creator(self, creator: str) -> list[Gathering]: ...

    @abstractmethod
    def query(self, gathering_filter: GatheringFilter) -> list[Gathering]: ...

    @abstractmethod
    def update(self, gathering_id: int, update: GatheringUpdate | Mapping[str, Any]) -> Gathering: ...

    @abstractmethod
    def set_hosts(self, gathering_id: int, hosts: list[str]) -> Gathering: ...

    @abstractmethod
    def add_member(self, gathering_id: int, kind: MemberKind, value: str) -> bool: ...

    @abstractmethod
    def remove_member(self, gathering_id: int, kind: MemberKind, value: str) -> bool: ...

    @abstractmethod
    def delete(self, gathering_id: int) -> None: ...


class InviteRepository(ABC):
    @abstractmethod
    def create(self, invite: Invite) -> Invite: ...

    @abstractmethod
    def get_by_uuid(self, uuid: str) -> Invite | None: ...

    @abstractmethod
    def get_for_pair(self, gathering_id: int, to_user: str) -> Invite | None: ...

    @abstractmethod
    def query(self, invite_filter: InviteFilter) -> list[Invite]: ...

    @abstractmethod
    def list_for_user(self, to_user: str) -> list[Invite]: ...

    @abstractmethod
    def list_by_gathering(self, gathering_id: int) -> list[Invite]: ...

    @abstractmethod
    def has_any_for_gathering(self, gathering_id: int) -> bool: ...

    @abstractmethod
    def pop(self, gathering_id: int, from_user: str, to_user: str) -> Invite | None: ...

    @abstractmethod
    def restore(self, invite: Invite) -> Invite: ...
