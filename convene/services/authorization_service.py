from __future__ import annotations

import logging

from convene.errors import (
    AuthorizationError,
    GatheringNotFoundError,
    NotHostError,
    NotInvitedError,
    PendingInviteError,
)
from convene.models.gathering import Gathering
from convene.repositories.base import GatheringRepository, InviteRepository
from convene.services.membership import has_item

logger = logging.getLogger(__name__)


class GatheringAuthorizationService:
    """Host / invitee / acceptor checks. Each ``is_*`` raises on failure."""

    def __init__(self, gathering_repo: GatheringRepository, invite_repo: InviteRepository) -> None:
        self.gathering_repo = gathering_repo
        self.invite_repo = invite_repo

    def _get(self, gathering_id: int) -> Gathering:
        gathering = self.gathering_repo.get_by_id(gathering_id)
        if gathering is None:
            raise GatheringNotFoundError(gathering_id)
        return gathering

    def is_host(self, user: str, gathering_id: int) -> None:
        gathering = self._get(gathering_id)
        if not has_item(user, gathering.hosts):
            logger.debug("user=%s gathering=%s is_host=False", user, gathering_id)
            raise NotHostError(user, gathering_id)

    def is_invited(self, user: str, gathering_id: int) -> None:
        if self.invite_repo.get_for_pair(gathering_id, user) is None:
            logger.debug("user=%s gathering=%s is_invited=False", user, gathering_id)
            raise NotInvitedError(user, gathering_id)

    def is_acceptor(self, user: str, gathering_id: int) -> None:
        gathering = self._get(gathering_id)
        self.is_invited(user, gathering_id)
        if not has_item(user, gathering.acceptors):
            logger.debug("user=%s gathering=%s is_acceptor=False", user, gathering_id)
            raise PendingInviteError(user, gathering_id)

    def can_view(self, user: str, gathering_id: int) -> None:
        """Pass for hosts and for accepted invitees.

        A non-host falls through to the acceptor check, whose error is the one
        raised. A missing gathering is reported as such, not as a failed check.
        """
        try:
            self.is_host(user, gathering_id)
        except NotHostError:
            self.is_acceptor(user, gathering_id)

    def can_view_gathering(self, user: str, gathering_id: int) -> bool:
        try:
            self.can_view(user, gathering_id)
        except AuthorizationError:
            result = False
        else:
            result = True
        logger.debug("user=%s gathering=%s can_view=%s", user, gathering_id, result)
        return result

    def can_manage_gathering(self, user: str, gathering_id: int) -> bool:
        try:
            self.is_host(user, gathering_id)
        except NotHostError:
            result = False
        else:
            result = True
        logger.debug("user=%s gathering=%s can_manage=%s", user, gathering_id, result)
        return result
