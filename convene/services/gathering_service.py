from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from convene.errors import (
    AlreadyAcceptedInviteError,
    CannotRemoveCreatorError,
    GatheringAlreadyCanceledError,
    GatheringCanceledError,
    GatheringNotFoundError,
    HostAlreadyExistsError,
    HostNotFoundError,
    InviteNotAcceptedError,
    NameConflictError,
    PostAlreadyAddedError,
    PostNotAddedError,
)
from convene.models.gathering import Gathering, GatheringFilter, GatheringUpdate, MemberKind
from convene.repositories.base import GatheringRepository
from convene.services import membership
from convene.services.membership import Strictness

logger = logging.getLogger(__name__)


class GatheringService:
    def __init__(
        self,
        repo: GatheringRepository,
        *,
        strictness: Strictness = "lenient",
        allow_changes_when_canceled: bool = False,
    ) -> None:
        self.repo = repo
        self.strictness = strictness
        self.allow_changes_when_canceled = allow_changes_when_canceled

    def ensure_open(self, gathering: Gathering) -> None:
        if gathering.canceled and not self.allow_changes_when_canceled:
            logger.warning("Rejected change to canceled gathering=%s", gathering.id)
            raise GatheringCanceledError(gathering.id)

    # -- reads ---------------------------------------------------------------

    def get_gathering(self, gathering_id: int) -> Gathering:
        gathering = self.repo.get_by_id(gathering_id)
        logger.debug("get_gathering id=%s found=%s", gathering_id, gathering is not None)
        if gathering is None:
            raise GatheringNotFoundError(gathering_id)
        return gathering

    def get_by_uuid(self, uuid: str) -> Gathering:
        gathering = self.repo.get_by_uuid(uuid)
        logger.debug("get_by_uuid uuid=%s found=%s", uuid, gathering is not None)
        if gathering is None:
            raise GatheringNotFoundError(uuid)
        return gathering

    def list_gatherings(self, gathering_filter: GatheringFilter | None = None) -> list[Gathering]:
        result = self.repo.query(gathering_filter or GatheringFilter())
        logger.debug("Listed %d gatherings", len(result))
        return result

    def list_by_creator(self, creator: str) -> list[Gathering]:
        result = self.repo.get_by_creator(creator)
        logger.debug("Listed %d gatherings for creator=%s", len(result), creator)
        return result

    def list_visible_to(self, user: str) -> list[Gathering]:
        """Gatherings the user hosts or has accepted, most recently updated first."""
        merged: dict[int | None, Gathering] = {}
        for gathering in self.repo.query(GatheringFilter(host=user)) + self.repo.query(
            GatheringFilter(acceptor=user)
        ):
            merged.setdefault(gathering.id, gathering)
        result = sorted(
            merged.values(),
            key=lambda g: (g.updated_at is not None, g.updated_at, g.id or 0),
            reverse=True,
        )
        logger.debug("Listed %d visible gatherings for user=%s", len(result), user)
        return result

    # -- lifecycle -----------------------------------------------------------

    def create_gathering(
        self,
        creator: str,
        title: str,
        description: str,
        hosts: list[str] | None = None,
    ) -> Gathering:
        seen = [creator]
        for user in hosts or []:
            if user in seen:
                logger.warning("Create gathering failed: host=%s listed twice for title=%r", user, title)
                raise HostAlreadyExistsError(user, title)
            seen.append(user)
        try:
            created = self.repo.create(creator, title, description)
        except NameConflictError:
            logger.warning("Create gathering failed: creator=%s already has title=%r", creator, title)
            raise
        logger.info("Gathering created: id=%s title=%r creator=%s", created.id, title, creator)
        if hosts:
            created = self.add_hosts(created.id, hosts)
        return created

    def update_gathering(self, gathering_id: int, fields: GatheringUpdate | Mapping[str, Any]) -> Gathering:
        update = fields if isinstance(fields, GatheringUpdate) else GatheringUpdate.from_fields(fields)
        gathering = self.get_gathering(gathering_id)
        if "canceled" in update.changes() and gathering.canceled:
            logger.warning("Update gathering failed: id=%s is already canceled", gathering_id)
            raise GatheringAlreadyCanceledError(gathering_id)
        result = self.repo.update(gathering_id, update)
        logger.info("Gathering updated: id=%s fields=%s", gathering_id, sorted(update.changes()))
        return result

    def cancel_gathering(self, gathering_id: int) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        if gathering.canceled:
            logger.warning("Cancel gathering failed: id=%s is already canceled", gathering_id)
            raise GatheringAlreadyCanceledError(gathering_id)
        result = self.repo.update(gathering_id, GatheringUpdate(canceled=True))
        logger.info("Gathering canceled: id=%s", gathering_id)
        return result

    def delete_gathering(self, gathering_id: int) -> None:
        self.get_gathering(gathering_id)
        self.repo.delete(gathering_id)
        logger.info("Gathering deleted: id=%s", gathering_id)

    # -- hosts ---------------------------------------------------------------

    def add_hosts(self, gathering_id: int, users: list[str]) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        self.ensure_open(gathering)
        membership.add_members(
            self.repo,
            gathering,
            MemberKind.HOST,
            users,
            strictness=self.strictness,
            exists_error=HostAlreadyExistsError,
        )
        logger.info("Hosts added: gathering=%s users=%s", gathering_id, users)
        return self.get_gathering(gathering_id)

    def remove_host(self, gathering_id: int, user: str) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        if user == gathering.creator:
            logger.warning("Remove host failed: user=%s created gathering=%s", user, gathering_id)
            raise CannotRemoveCreatorError(user, gathering_id)
        membership.remove_member(
            self.repo,
            gathering,
            MemberKind.HOST,
            user,
            strictness=self.strictness,
            missing_error=HostNotFoundError,
        )
        logger.info("Host removed: gathering=%s user=%s", gathering_id, user)
        return self.get_gathering(gathering_id)

    # -- acceptors -----------------------------------------------------------

    def add_acceptor(self, gathering_id: int, user: str) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        membership.add_member(
            self.repo,
            gathering,
            MemberKind.ACCEPTOR,
            user,
            strictness=self.strictness,
            exists_error=AlreadyAcceptedInviteError,
        )
        logger.info("Acceptor added: gathering=%s user=%s", gathering_id, user)
        return self.get_gathering(gathering_id)

    def remove_acceptor(self, gathering_id: int, user: str) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        membership.remove_member(
            self.repo,
            gathering,
            MemberKind.ACCEPTOR,
            user,
            strictness=self.strictness,
            missing_error=InviteNotAcceptedError,
        )
        logger.info("Acceptor removed: gathering=%s user=%s", gathering_id, user)
        return self.get_gathering(gathering_id)

    # -- posts ---------------------------------------------------------------

    def add_post(self, gathering_id: int, post: str) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        self.ensure_open(gathering)
        membership.add_member(
            self.repo,
            gathering,
            MemberKind.POST,
            post,
            strictness=self.strictness,
            exists_error=PostAlreadyAddedError,
        )
        logger.info("Post attached: gathering=%s post=%s", gathering_id, post)
        return self.get_gathering(gathering_id)

    def remove_post(self, gathering_id: int, post: str) -> Gathering:
        gathering = self.get_gathering(gathering_id)
        membership.remove_member(
            self.repo,
            gathering,
            MemberKind.POST,
            post,
            strictness=self.strictness,
            missing_error=PostNotAddedError,
        )
        logger.info("Post detached: gathering=%s post=%s", gathering_id, post)
        return self.get_gathering(gathering_id)
