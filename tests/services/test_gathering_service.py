from unittest.mock import MagicMock

import pytest

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
    NotAllowedFieldError,
    PostAlreadyAddedError,
    PostNotAddedError,
)
from convene.models.gathering import Gathering, GatheringFilter, GatheringUpdate, MemberKind
from convene.services.gathering_service import GatheringService


def _gathering(**overrides) -> Gathering:
    defaults = dict(id=1, uuid="g1", title="Picnic", creator="alice", hosts=["alice"])
    defaults.update(overrides)
    return Gathering(**defaults)


class TestGatheringServiceReads:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.service = GatheringService(self.mock_repo)

    def test_get_gathering(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        assert self.service.get_gathering(1).title == "Picnic"

    def test_get_gathering_not_found(self):
        self.mock_repo.get_by_id.return_value = None
        with pytest.raises(GatheringNotFoundError):
            self.service.get_gathering(1)

    def test_get_by_uuid_not_found(self):
        self.mock_repo.get_by_uuid.return_value = None
        with pytest.raises(GatheringNotFoundError):
            self.service.get_by_uuid("missing")

    def test_list_gatherings_default_filter(self):
        self.mock_repo.query.return_value = [_gathering()]
        assert len(self.service.list_gatherings()) == 1
        self.mock_repo.query.assert_called_once_with(GatheringFilter())

    def test_list_by_creator(self):
        self.mock_repo.get_by_creator.return_value = []
        assert self.service.list_by_creator("alice") == []
        self.mock_repo.get_by_creator.assert_called_once_with("alice")

    def test_list_visible_to_merges_hosted_and_accepted(self):
        hosted = _gathering(id=1)
        accepted = _gathering(id=2, title="Hike", acceptors=["bob"])
        self.mock_repo.query.side_effect = [[hosted, accepted], [accepted]]
        result = self.service.list_visible_to("bob")
        assert sorted(g.id for g in result) == [1, 2]


class TestGatheringServiceLifecycle:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.service = GatheringService(self.mock_repo)

    def test_create(self):
        self.mock_repo.create.return_value = _gathering()
        result = self.service.create_gathering("alice", "Picnic", "desc")
        assert result.hosts == ["alice"]
        self.mock_repo.create.assert_called_once_with("alice", "Picnic", "desc")

    def test_create_name_conflict(self):
        self.mock_repo.create.side_effect = NameConflictError("alice", "Picnic")
        with pytest.raises(NameConflictError):
            self.service.create_gathering("alice", "Picnic", "desc")

    def test_create_with_hosts(self):
        self.mock_repo.create.return_value = _gathering()
        self.mock_repo.get_by_id.side_effect = [_gathering(), _gathering(hosts=["alice", "bob"])]
        result = self.service.create_gathering("alice", "Picnic", "", hosts=["bob"])
        self.mock_repo.set_hosts.assert_called_once_with(1, ["alice", "bob"])
        assert result.hosts == ["alice", "bob"]

    def test_create_with_creator_as_extra_host_fails_before_create(self):
        with pytest.raises(HostAlreadyExistsError):
            self.service.create_gathering("alice", "Picnic", "", hosts=["alice"])
        self.mock_repo.create.assert_not_called()

    def test_update(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        self.service.update_gathering(1, {"description": "new"})
        self.mock_repo.update.assert_called_once_with(1, GatheringUpdate(description="new"))

    def test_update_rejects_hosts_before_lookup(self):
        with pytest.raises(NotAllowedFieldError):
            self.service.update_gathering(1, {"hosts": ["mallory"]})
        self.mock_repo.get_by_id.assert_not_called()

    def test_update_after_cancel_allowed(self):
        self.mock_repo.get_by_id.return_value = _gathering(canceled=True)
        self.service.update_gathering(1, {"title": "Picnic (canceled)"})
        self.mock_repo.update.assert_called_once()

    def test_update_cannot_uncancel(self):
        self.mock_repo.get_by_id.return_value = _gathering(canceled=True)
        with pytest.raises(GatheringAlreadyCanceledError):
            self.service.update_gathering(1, {"canceled": False})

    def test_cancel(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        self.service.cancel_gathering(1)
        self.mock_repo.update.assert_called_once_with(1, GatheringUpdate(canceled=True))

    def test_cancel_twice(self):
        self.mock_repo.get_by_id.return_value = _gathering(canceled=True)
        with pytest.raises(GatheringAlreadyCanceledError):
            self.service.cancel_gathering(1)
        self.mock_repo.update.assert_not_called()

    def test_delete(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        self.service.delete_gathering(1)
        self.mock_repo.delete.assert_called_once_with(1)

    def test_delete_not_found(self):
        self.mock_repo.get_by_id.return_value = None
        with pytest.raises(GatheringNotFoundError):
            self.service.delete_gathering(1)
        self.mock_repo.delete.assert_not_called()


class TestGatheringServiceMembers:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.service = GatheringService(self.mock_repo)

    def test_add_hosts_union(self):
        self.mock_repo.get_by_id.return_value = _gathering(hosts=["alice", "bob"])
        self.service.add_hosts(1, ["carol"])
        self.mock_repo.set_hosts.assert_called_once_with(1, ["alice", "bob", "carol"])

    def test_add_hosts_existing(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        with pytest.raises(HostAlreadyExistsError) as exc_info:
            self.service.add_hosts(1, ["carol", "alice"])
        assert exc_info.value.user == "alice"
        self.mock_repo.set_hosts.assert_not_called()

    def test_add_hosts_canceled(self):
        self.mock_repo.get_by_id.return_value = _gathering(canceled=True)
        with pytest.raises(GatheringCanceledError):
            self.service.add_hosts(1, ["carol"])

    def test_add_hosts_canceled_allowed_by_policy(self):
        service = GatheringService(self.mock_repo, allow_changes_when_canceled=True)
        self.mock_repo.get_by_id.return_value = _gathering(canceled=True)
        service.add_hosts(1, ["carol"])
        self.mock_repo.set_hosts.assert_called_once()

    def test_remove_host(self):
        self.mock_repo.get_by_id.return_value = _gathering(hosts=["alice", "bob"])
        self.service.remove_host(1, "bob")
        self.mock_repo.set_hosts.assert_called_once_with(1, ["alice"])

    def test_remove_creator_rejected(self):
        self.mock_repo.get_by_id.return_value = _gathering(hosts=["alice", "bob"])
        with pytest.raises(CannotRemoveCreatorError):
            self.service.remove_host(1, "alice")
        self.mock_repo.set_hosts.assert_not_called()

    def test_remove_host_absent(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        with pytest.raises(HostNotFoundError):
            self.service.remove_host(1, "bob")

    def test_add_acceptor_union(self):
        self.mock_repo.get_by_id.return_value = _gathering(acceptors=["bob"])
        self.service.add_acceptor(1, "carol")
        self.mock_repo.update.assert_called_once_with(1, GatheringUpdate(acceptors=["bob", "carol"]))

    def test_add_acceptor_twice(self):
        self.mock_repo.get_by_id.return_value = _gathering(acceptors=["bob"])
        with pytest.raises(AlreadyAcceptedInviteError):
            self.service.add_acceptor(1, "bob")

    def test_remove_acceptor_absent(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        with pytest.raises(InviteNotAcceptedError):
            self.service.remove_acceptor(1, "bob")

    def test_add_post_union(self):
        self.mock_repo.get_by_id.return_value = _gathering(posts=["p1"])
        self.service.add_post(1, "p2")
        self.mock_repo.update.assert_called_once_with(1, GatheringUpdate(posts=["p1", "p2"]))

    def test_add_post_twice(self):
        self.mock_repo.get_by_id.return_value = _gathering(posts=["p1"])
        with pytest.raises(PostAlreadyAddedError):
            self.service.add_post(1, "p1")

    def test_add_post_canceled(self):
        self.mock_repo.get_by_id.return_value = _gathering(canceled=True)
        with pytest.raises(GatheringCanceledError):
            self.service.add_post(1, "p1")

    def test_remove_post(self):
        self.mock_repo.get_by_id.return_value = _gathering(posts=["p1", "p2"])
        self.service.remove_post(1, "p1")
        self.mock_repo.update.assert_called_once_with(1, GatheringUpdate(posts=["p2"]))

    def test_remove_post_absent(self):
        self.mock_repo.get_by_id.return_value = _gathering()
        with pytest.raises(PostNotAddedError):
            self.service.remove_post(1, "p1")

    def test_strict_mode_uses_conditional_writes(self):
        service = GatheringService(self.mock_repo, strictness="strict")
        self.mock_repo.get_by_id.return_value = _gathering()
        self.mock_repo.add_member.return_value = True
        service.add_post(1, "p1")
        self.mock_repo.add_member.assert_called_once_with(1, MemberKind.POST, "p1")
        self.mock_repo.update.assert_not_called()
