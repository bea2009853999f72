from convene.repositories.base import GatheringRepository, InviteRepository


def get_gathering_repository() -> GatheringRepository:
    from convene.db import get_connection
    from convene.repositories.sqlalchemy import SQLAlchemyGatheringRepository

    return SQLAlchemyGatheringRepository(get_connection())


def get_invite_repository() -> InviteRepository:
    from convene.db import get_connection
    from convene.repositories.sqlalchemy import SQLAlchemyInviteRepository

    return SQLAlchemyInviteRepository(get_connection())
