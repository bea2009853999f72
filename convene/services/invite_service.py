from __future__ import annotations

import logging

from convene.errors import (
    AlreadyAcceptedInviteError,
    AlreadyDeclinedInviteError,
    InviteAlreadyExistsError,
    NotHostError,
    NotInvitedError,
)
from convene.models.gathering import Gathering
from convene.models.invite import Invite, InviteFilter, InviteStatus
from convene.repositories.base import InviteRepository
from convene.services.authorization_service import GatheringAuthorizationService
from convene.services.gathering_service import GatheringService
from convene.services.membership import has_item

logger = logging.getLogger(__name__)


class InviteService:
    """Invite lifecycle for a ``(gathering, invitee)`` pair.

    A pair has at most one invite record. A transition pops the current
    record and inserts a new one with the new status, so the full history is
    the sequence of inserts while lookups only ever see the current record.
    """

    def __init__(
        self,
        invite_repo: InviteRepository,
        gathering_service: GatheringService,
        authorization: GatheringAuthorizationService,
        *,
        allow_reinvite_after_decline: bool = False,
    ) -> None:
        self.invite_repo = invite_repo
        self.gathering_service = gathering_service
        self.authorization = authorization
        self.allow_reinvite_after_decline = allow_reinvite_after_decline

    # -- reads ---------------------------------------------------------------

    def list_invites(self, invite_filter: InviteFilter | None = None) -> list[Invite]:
        result = self.invite_repo.query(invite_filter or InviteFilter())
        logger.debug("Listed %d invites", len(result))
        return result

    def list_for_user(self, user: str) -> list[Invite]:
        result = self.invite_repo.list_for_user(user)
        logger.debug("Listed %d invites for user=%s", len(result), user)
        return result

    def list_for_gathering(self, gathering_id: int) -> list[Invite]:
        result = self.invite_repo.list_by_gathering(gathering_id)
        logger.debug("Listed %d invites for gathering=%s", len(result), gathering_id)
        return result

    def get_current_invite(self, user: str, gathering_id: int) -> Invite | None:
        result = self.invite_repo.get_for_pair(gathering_id, user)
        logger.debug("get_current_invite user=%s gathering=%s found=%s", user, gathering_id, result is not None)
        return result

    # -- sending -------------------------------------------------------------

    def _prepare_invite(self, from_user: str, gathering_id: int, require_host: bool) -> Gathering:
        gathering = self.gathering_service.get_gathering(gathering_id)
        if require_host:
            try:
                self.authorization.is_host(from_user, gathering_id)
            except NotHostError:
                logger.warning("Invite failed: user=%s is not a host of gathering=%s", from_user, gathering_id)
                raise
        self.gathering_service.ensure_open(gathering)
        return gathering

    def _check_invitee(self, to_user: str, gathering_id: int) -> Invite | None:
        """Return a declined record that may be replaced, or None if the pair is free."""
        existing = self.invite_repo.get_for_pair(gathering_id, to_user)
        if existing is None:
            return None
        if self.allow_reinvite_after_decline and existing.status == InviteStatus.DECLINED:
            return existing
        logger.warning(
            "Invite failed: user=%s already has a %s invite for gathering=%s",
            to_user,
            existing.status.value,
            gathering_id,
        )
        raise InviteAlreadyExistsError(to_user, gathering_id)

    def _send(self, from_user: str, to_user: str, gathering_id: int, declined: Invite | None) -> Invite:
        pending = Invite(
            gathering_id=gathering_id,
            from_user=from_user,
            to_user=to_user,
            status=InviteStatus.PENDING,
        )
        if declined is not None:
            created = self._replace(declined, pending)
        else:
            created = self.invite_repo.create(pending)
        logger.info("Invite sent: gathering=%s from=%s to=%s", gathering_id, from_user, to_user)
        return created

    def invite(self, from_user: str, to_user: str, gathering_id: int, *, require_host: bool = True) -> Invite:
        self._prepare_invite(from_user, gathering_id, require_host)
        declined = self._check_invitee(to_user, gathering_id)
        return self._send(from_user, to_user, gathering_id, declined)

    def invite_many(
        self,
        from_user: str,
        to_users: list[str],
        gathering_id: int,
        *,
        require_host: bool = True,
    ) -> list[Invite]:
        """Invite several users at once; every invitee is checked before any invite is sent."""
        self._prepare_invite(from_user, gathering_id, require_host)
        checked: dict[str, Invite | None] = {}
        for to_user in to_users:
            if to_user in checked:
                logger.warning("Invite failed: user=%s listed twice for gathering=%s", to_user, gathering_id)
                raise InviteAlreadyExistsError(to_user, gathering_id)
            checked[to_user] = self._check_invitee(to_user, gathering_id)
        return [self._send(from_user, to_user, gathering_id, declined) for to_user, declined in checked.items()]

    # -- transitions ---------------------------------------------------------

    def _replace(self, prior: Invite, new: Invite) -> Invite:
        popped = self.invite_repo.pop(prior.gathering_id, prior.from_user, prior.to_user)
        if popped is None:
            logger.warning(
                "Invite transition failed: record for user=%s gathering=%s vanished",
                prior.to_user,
                prior.gathering_id,
            )
            raise NotInvitedError(prior.to_user, prior.gathering_id)
        try:
            return self.invite_repo.create(new)
        except Exception:
            logger.exception("Failed to record %s invite, restoring previous record uuid=%s", new.status.value, popped.uuid)
            self.invite_repo.restore(popped)
            raise

    def _undo_replace(self, current: Invite, prior: Invite) -> None:
        self.invite_repo.pop(current.gathering_id, current.from_user, current.to_user)
        self.invite_repo.restore(prior)

    def _current(self, to_user: str, gathering_id: int, action: str) -> Invite:
        invite = self.invite_repo.get_for_pair(gathering_id, to_user)
        if invite is None:
            logger.warning("%s invite failed: user=%s not invited to gathering=%s", action, to_user, gathering_id)
            raise NotInvitedError(to_user, gathering_id)
        return invite

    def accept_invite(self, to_user: str, gathering_id: int) -> Invite:
        gathering = self.gathering_service.get_gathering(gathering_id)
        invite = self._current(to_user, gathering_id, "Accept")
        if invite.status == InviteStatus.ACCEPTED or has_item(to_user, gathering.acceptors):
            logger.warning("Accept invite failed: user=%s already accepted gathering=%s", to_user, gathering_id)
            raise AlreadyAcceptedInviteError(to_user, gathering_id)
        self.gathering_service.ensure_open(gathering)

        accepted = self._replace(
            invite,
            Invite(gathering_id=gathering_id, from_user=invite.from_user, to_user=to_user, status=InviteStatus.ACCEPTED),
        )
        try:
            self.gathering_service.add_acceptor(gathering_id, to_user)
        except Exception:
            logger.exception("Failed to add acceptor user=%s gathering=%s, reverting invite", to_user, gathering_id)
            self._undo_replace(accepted, invite)
            raise
        logger.info("Invite accepted: gathering=%s user=%s", gathering_id, to_user)
        return accepted

    def decline_invite(self, to_user: str, gathering_id: int) -> Invite:
        gathering = self.gathering_service.get_gathering(gathering_id)
        invite = self._current(to_user, gathering_id, "Decline")
        if invite.status == InviteStatus.DECLINED:
            logger.warning("Decline invite failed: user=%s already declined gathering=%s", to_user, gathering_id)
            raise AlreadyDeclinedInviteError(to_user, gathering_id)

        removed_acceptor = False
        if invite.status == InviteStatus.ACCEPTED and has_item(to_user, gathering.acceptors):
            self.gathering_service.remove_acceptor(gathering_id, to_user)
            removed_acceptor = True
        try:
            declined = self._replace(
                invite,
                Invite(
                    gathering_id=gathering_id,
                    from_user=invite.from_user,
                    to_user=to_user,
                    status=InviteStatus.DECLINED,
                ),
            )
        except Exception:
            if removed_acceptor:
                logger.warning("Decline invite failed: re-adding acceptor user=%s gathering=%s", to_user, gathering_id)
                self.gathering_service.add_acceptor(gathering_id, to_user)
            raise
        logger.info("Invite declined: gathering=%s user=%s", gathering_id, to_user)
        return declined
