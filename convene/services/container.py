from __future__ import annotations

import logging

from convene.errors import InviteAlreadyExistsError
from convene.models.gathering import Gathering
from convene.repositories.base import GatheringRepository, InviteRepository
from convene.services.authorization_service import GatheringAuthorizationService
from convene.services.gathering_service import GatheringService
from convene.services.invite_service import InviteService
from convene.settings import Settings, settings

logger = logging.getLogger(__name__)


class GatheringServices:
    """The gathering services wired to one pair of repositories."""

    def __init__(
        self,
        gatherings: GatheringService,
        invites: InviteService,
        authorization: GatheringAuthorizationService,
    ) -> None:
        self.gatherings = gatherings
        self.invites = invites
        self.authorization = authorization

    def create_gathering(
        self,
        creator: str,
        title: str,
        description: str,
        hosts: list[str] | None = None,
        invitees: list[str] | None = None,
    ) -> Gathering:
        """Create a gathering, add co-hosts, then send the creator's invites.

        The invitee list is checked before anything is written.
        """
        seen: set[str] = set()
        for user in invitees or []:
            if user in seen:
                logger.warning("Create gathering failed: invitee=%s listed twice for title=%r", user, title)
                raise InviteAlreadyExistsError(user, title)
            seen.add(user)
        created = self.gatherings.create_gathering(creator, title, description, hosts=hosts)
        if invitees:
            self.invites.invite_many(creator, invitees, created.id)
        return self.gatherings.get_gathering(created.id)


def build_services(
    gathering_repo: GatheringRepository,
    invite_repo: InviteRepository,
    config: Settings | None = None,
) -> GatheringServices:
    config = config or settings
    gatherings = GatheringService(
        gathering_repo,
        strictness=config.membership_strictness,
        allow_changes_when_canceled=config.allow_changes_when_canceled,
    )
    authorization = GatheringAuthorizationService(gathering_repo, invite_repo)
    invites = InviteService(
        invite_repo,
        gatherings,
        authorization,
        allow_reinvite_after_decline=config.allow_reinvite_after_decline,
    )
    logger.debug(
        "Gathering services built: strictness=%s reinvite_after_decline=%s changes_when_canceled=%s",
        config.membership_strictness,
        config.allow_reinvite_after_decline,
        config.allow_changes_when_canceled,
    )
    return GatheringServices(gatherings, invites, authorization)
