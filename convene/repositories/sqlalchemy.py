from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError
from ulid import ULID

from convene.errors import (
    GatheringHasInvitesError,
    GatheringNotFoundError,
    InviteAlreadyExistsError,
    NameConflictError,
)
from convene.models.gathering import Gathering, GatheringFilter, GatheringUpdate, MemberKind
from convene.models.invite import Invite, InviteFilter
from convene.repositories.base import GatheringRepository, InviteRepository

# (table, value column) per member set; never built from caller input.
MEMBER_TABLES: dict[MemberKind, tuple[str, str]] = {
    MemberKind.HOST: ("gathering_hosts", "user_id"),
    MemberKind.ACCEPTOR: ("gathering_acceptors", "user_id"),
    MemberKind.POST: ("gathering_posts", "post_id"),
}

_SET_FIELDS = {"acceptors": MemberKind.ACCEPTOR, "posts": MemberKind.POST}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SQLAlchemyGatheringRepository(GatheringRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def _load_members(self, gathering_id: int, kind: MemberKind) -> list[str]:
        table, column = MEMBER_TABLES[kind]
        rows = self.conn.execute(
            text(f"SELECT {column} FROM {table} WHERE gathering_id = :gid ORDER BY id"),
            {"gid": gathering_id},
        ).fetchall()
        return [row[0] for row in rows]

    def _row_to_gathering(self, row: RowMapping) -> Gathering:
        return Gathering(
            id=row["id"],
            uuid=row["uuid"],
            title=row["title"],
            description=row["description"],
            creator=row["creator"],
            canceled=bool(row["canceled"]),
            hosts=self._load_members(row["id"], MemberKind.HOST),
            acceptors=self._load_members(row["id"], MemberKind.ACCEPTOR),
            posts=self._load_members(row["id"], MemberKind.POST),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _title_taken(self, creator: str, title: str) -> bool:
        titles = (
            self.conn.execute(text("SELECT title FROM gatherings WHERE creator = :creator"), {"creator": creator})
            .scalars()
            .all()
        )
        # Compared here, not in SQL: a case-insensitive collation would equate "Picnic" and "picnic".
        return title in titles

    def _insert_member(self, gathering_id: int, kind: MemberKind, value: str) -> None:
        table, column = MEMBER_TABLES[kind]
        self.conn.execute(
            text(f"INSERT INTO {table} (gathering_id, {column}, created_at) VALUES (:gid, :value, :created_at)"),
            {"gid": gathering_id, "value": value, "created_at": _now()},
        )

    def _replace_members(self, gathering_id: int, kind: MemberKind, values: list[str]) -> None:
        table, _ = MEMBER_TABLES[kind]
        self.conn.execute(text(f"DELETE FROM {table} WHERE gathering_id = :gid"), {"gid": gathering_id})
        for value in dict.fromkeys(values):
            self._insert_member(gathering_id, kind, value)

    def _touch(self, gathering_id: int) -> None:
        self.conn.execute(
            text("UPDATE gatherings SET updated_at = :updated_at WHERE id = :id"),
            {"updated_at": _now(), "id": gathering_id},
        )

    def _require(self, gathering_id: int) -> Gathering:
        gathering = self.get_by_id(gathering_id)
        if gathering is None:
            raise GatheringNotFoundError(gathering_id)
        return gathering

    def create(self, creator: str, title: str, description: str) -> Gathering:
        if self._title_taken(creator, title):
            raise NameConflictError(creator, title)
        now = _now()
        try:
            result = self.conn.execute(
                text(
                    "INSERT INTO gatherings (uuid, title, description, creator, canceled, created_at, updated_at) "
                    "VALUES (:uuid, :title, :description, :creator, 0, :created_at, :updated_at)"
                ),
                {
                    "uuid": str(ULID()),
                    "title": title,
                    "description": description,
                    "creator": creator,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except IntegrityError:
            # Lost a race against a concurrent create with the same title.
            self.conn.rollback()
            raise NameConflictError(creator, title) from None
        gathering_id = result.lastrowid
        self._insert_member(gathering_id, MemberKind.HOST, creator)
        self.conn.commit()
        created = self.get_by_id(gathering_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve gathering after create (id={gathering_id})")
        return created

    def get_by_id(self, gathering_id: int) -> Gathering | None:
        row = (
            self.conn.execute(text("SELECT * FROM gatherings WHERE id = :id"), {"id": gathering_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_gathering(row)

    def get_by_uuid(self, uuid: str) -> Gathering | None:
        row = (
            self.conn.execute(text("SELECT * FROM gatherings WHERE uuid = :uuid"), {"uuid": uuid})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_gathering(row)

    def get_by_creator(self, creator: str) -> list[Gathering]:
        return self.query(GatheringFilter(creator=creator))

    def query(self, gathering_filter: GatheringFilter) -> list[Gathering]:
        clauses: list[str] = []
        params: dict[str, Any] = {}
        if gathering_filter.creator is not None:
            clauses.append("g.creator = :creator")
            params["creator"] = gathering_filter.creator
        if gathering_filter.title is not None:
            clauses.append("g.title = :title")
            params["title"] = gathering_filter.title
        if gathering_filter.canceled is not None:
            clauses.append("g.canceled = :canceled")
            params["canceled"] = int(gathering_filter.canceled)
        for kind, value in (
            (MemberKind.HOST, gathering_filter.host),
            (MemberKind.ACCEPTOR, gathering_filter.acceptor),
            (MemberKind.POST, gathering_filter.post),
        ):
            if value is None:
                continue
            table, column = MEMBER_TABLES[kind]
            clauses.append(
                f"EXISTS (SELECT 1 FROM {table} m WHERE m.gathering_id = g.id AND m.{column} = :{kind.value})"
            )
            params[kind.value] = value

        sql = "SELECT g.* FROM gatherings g"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY g.updated_at DESC, g.id DESC"
        rows = self.conn.execute(text(sql), params).mappings().fetchall()
        return [self._row_to_gathering(row) for row in rows]

    def update(self, gathering_id: int, update: GatheringUpdate | Mapping[str, Any]) -> Gathering:
        if not isinstance(update, GatheringUpdate):
            update = GatheringUpdate.from_fields(update)
        changes = update.changes()
        existing = self._require(gathering_id)

        new_title = changes.get("title")
        if new_title is not None and new_title != existing.title and self._title_taken(existing.creator, new_title):
            raise NameConflictError(existing.creator, new_title)

        assignments = ["updated_at = :updated_at"]
        params: dict[str, Any] = {"updated_at": _now(), "id": gathering_id}
        for column in ("title", "description", "canceled"):
            if column in changes:
                assignments.append(f"{column} = :{column}")
                params[column] = int(changes[column]) if column == "canceled" else changes[column]
        self.conn.execute(text(f"UPDATE gatherings SET {', '.join(assignments)} WHERE id = :id"), params)

        for field, kind in _SET_FIELDS.items():
            if field in changes:
                self._replace_members(gathering_id, kind, changes[field])

        self.conn.commit()
        return self._require(gathering_id)

    def set_hosts(self, gathering_id: int, hosts: list[str]) -> Gathering:
        self._require(gathering_id)
        self._replace_members(gathering_id, MemberKind.HOST, hosts)
        self._touch(gathering_id)
        self.conn.commit()
        return self._require(gathering_id)

    def add_member(self, gathering_id: int, kind: MemberKind, value: str) -> bool:
        try:
            self._insert_member(gathering_id, kind, value)
        except IntegrityError:
            self.conn.rollback()
            return False
        self._touch(gathering_id)
        self.conn.commit()
        return True

    def remove_member(self, gathering_id: int, kind: MemberKind, value: str) -> bool:
        table, column = MEMBER_TABLES[kind]
        result = self.conn.execute(
            text(f"DELETE FROM {table} WHERE gathering_id = :gid AND {column} = :value"),
            {"gid": gathering_id, "value": value},
        )
        if result.rowcount == 0:
            self.conn.rollback()
            return False
        self._touch(gathering_id)
        self.conn.commit()
        return True

    def delete(self, gathering_id: int) -> None:
        row = (
            self.conn.execute(
                text("SELECT COUNT(*) AS cnt FROM invites WHERE gathering_id = :gid"),
                {"gid": gathering_id},
            )
            .mappings()
            .fetchone()
        )
        if row is not None and row["cnt"] > 0:
            raise GatheringHasInvitesError(gathering_id)
        for table, _ in MEMBER_TABLES.values():
            self.conn.execute(text(f"DELETE FROM {table} WHERE gathering_id = :gid"), {"gid": gathering_id})
        result = self.conn.execute(text("DELETE FROM gatherings WHERE id = :id"), {"id": gathering_id})
        if result.rowcount == 0:
            self.conn.rollback()
            raise GatheringNotFoundError(gathering_id)
        self.conn.commit()


class SQLAlchemyInviteRepository(InviteRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_invite(row: RowMapping) -> Invite:
        return Invite(
            id=row["id"],
            uuid=row["uuid"],
            gathering_id=row["gathering_id"],
            from_user=row["from_user"],
            to_user=row["to_user"],
            status=row["status"],
            created_at=row["created_at"],
        )

    def _insert(self, invite_uuid: str, invite: Invite, created_at: datetime) -> None:
        try:
            self.conn.execute(
                text(
                    "INSERT INTO invites (uuid, gathering_id, from_user, to_user, status, created_at) "
                    "VALUES (:uuid, :gathering_id, :from_user, :to_user, :status, :created_at)"
                ),
                {
                    "uuid": invite_uuid,
                    "gathering_id": invite.gathering_id,
                    "from_user": invite.from_user,
                    "to_user": invite.to_user,
                    "status": invite.status.value,
                    "created_at": created_at,
                },
            )
        except IntegrityError:
            # The pair already has a current record.
            self.conn.rollback()
            raise InviteAlreadyExistsError(invite.to_user, invite.gathering_id) from None
        self.conn.commit()

    def create(self, invite: Invite) -> Invite:
        invite_uuid = str(ULID())
        self._insert(invite_uuid, invite, _now())
        created = self.get_by_uuid(invite_uuid)
        if created is None:
            raise RuntimeError("Failed to retrieve invite after create")
        return created

    def restore(self, invite: Invite) -> Invite:
        self._insert(invite.uuid, invite, invite.created_at or _now())
        restored = self.get_by_uuid(invite.uuid)
        if restored is None:
            raise RuntimeError(f"Failed to retrieve invite after restore (uuid={invite.uuid})")
        return restored

    def get_by_uuid(self, uuid: str) -> Invite | None:
        row = (
            self.conn.execute(text("SELECT * FROM invites WHERE uuid = :uuid"), {"uuid": uuid})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_invite(row)

    def get_for_pair(self, gathering_id: int, to_user: str) -> Invite | None:
        row = (
            self.conn.execute(
                text(
                    "SELECT * FROM invites WHERE gathering_id = :gid AND to_user = :to_user "
                    "ORDER BY id DESC LIMIT 1"
                ),
                {"gid": gathering_id, "to_user": to_user},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_invite(row)

    def query(self, invite_filter: InviteFilter) -> list[Invite]:
        clauses: list[str] = []
        params: dict[str, Any] = {}
        for column, value in invite_filter.model_dump(mode="json", exclude_none=True).items():
            clauses.append(f"{column} = :{column}")
            params[column] = value
        sql = "SELECT * FROM invites"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, id DESC"
        rows = self.conn.execute(text(sql), params).mappings().fetchall()
        return [self._row_to_invite(row) for row in rows]

    def list_for_user(self, to_user: str) -> list[Invite]:
        return self.query(InviteFilter(to_user=to_user))

    def list_by_gathering(self, gathering_id: int) -> list[Invite]:
        return self.query(InviteFilter(gathering_id=gathering_id))

    def has_any_for_gathering(self, gathering_id: int) -> bool:
        result = (
            self.conn.execute(
                text("SELECT COUNT(*) AS cnt FROM invites WHERE gathering_id = :gid"),
                {"gid": gathering_id},
            )
            .mappings()
            .fetchone()
        )
        return (result["cnt"] if result else 0) > 0

    def pop(self, gathering_id: int, from_user: str, to_user: str) -> Invite | None:
        row = (
            self.conn.execute(
                text(
                    "SELECT * FROM invites WHERE gathering_id = :gid "
                    "AND from_user = :from_user AND to_user = :to_user "
                    "ORDER BY id DESC LIMIT 1"
                ),
                {"gid": gathering_id, "from_user": from_user, "to_user": to_user},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            self.conn.rollback()
            return None
        result = self.conn.execute(text("DELETE FROM invites WHERE id = :id"), {"id": row["id"]})
        if result.rowcount == 0:
            # Another request removed it between the read and the delete.
            self.conn.rollback()
            return None
        self.conn.commit()
        return self._row_to_invite(row)
