import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.core.errors import PersistenceError
from app.models.group import Visibility
from app.models.membership import Membership, MembershipStatus
from app.models.user import Tier
from app.services.membership import (
    ApproveResult,
    JoinResult,
    MembershipWorkflow,
    approve_request,
    can_approve,
)
from app.services.membership_store import SqlMembershipStore


class CountingStore(SqlMembershipStore):
    def __init__(self, db):
        super().__init__(db)
        self.updates = 0

    def update(self, membership):
        self.updates += 1
        super().update(membership)


@pytest.fixture
def store(db):
    return CountingStore(db)


@pytest.fixture
def workflow(store, notifier):
    return MembershipWorkflow(store, notifier)


def count_rows(db, user, group):
    return db.execute(
        select(func.count(Membership.id)).where(
            Membership.user_id == user.id, Membership.group_id == group.id
        )
    ).scalar_one()


def test_group_creator_is_first_approved_member(db, premium_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    assert len(group.memberships) == 1
    creator_membership = group.memberships[0]
    assert creator_membership.user_id == premium_user.id
    assert creator_membership.is_creator
    assert creator_membership.status == MembershipStatus.APPROVED


def test_public_join_is_immediate(db, workflow, store, premium_user, free_user, make_group):
    group = make_group(premium_user, Visibility.PUBLIC)

    assert workflow.request_join(free_user, group) == JoinResult.JOINED
    assert store.find(free_user.id, group.id).status == MembershipStatus.APPROVED
    assert workflow.pending_requests(group) == []


def test_restricted_join_is_pending(db, workflow, store, notifier, premium_user, free_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)

    assert workflow.request_join(free_user, group) == JoinResult.REQUEST_SUBMITTED
    membership = store.find(free_user.id, group.id)
    assert membership.status == MembershipStatus.PENDING
    assert not membership.is_creator
    assert ("membership_requested", group.id, free_user.id) in notifier.events


@pytest.mark.parametrize("visibility", list(Visibility))
def test_second_join_is_already_member(db, workflow, store, premium_user, free_user, make_group, visibility):
    group = make_group(premium_user, visibility)
    workflow.request_join(free_user, group)
    before = store.find(free_user.id, group.id).status

    assert workflow.request_join(free_user, group) == JoinResult.ALREADY_MEMBER
    assert count_rows(db, free_user, group) == 1
    assert store.find(free_user.id, group.id).status == before


def test_creator_cannot_rejoin(workflow, premium_user, make_group):
    group = make_group(premium_user, Visibility.PUBLIC)
    assert workflow.request_join(premium_user, group) == JoinResult.ALREADY_MEMBER


def test_approve_pending_request(db, workflow, store, notifier, premium_user, free_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    workflow.request_join(free_user, group)

    assert workflow.approve(premium_user, group, free_user) == ApproveResult.APPROVED
    assert store.find(free_user.id, group.id).status == MembershipStatus.APPROVED
    assert ("membership_approved", group.id, free_user.id) in notifier.events


def test_approve_is_idempotent(workflow, store, premium_user, free_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    workflow.request_join(free_user, group)

    assert workflow.approve(premium_user, group, free_user) == ApproveResult.APPROVED
    assert workflow.approve(premium_user, group, free_user) == ApproveResult.APPROVED
    assert store.updates == 1


def test_approve_without_request(workflow, store, premium_user, free_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    assert workflow.approve(premium_user, group, free_user) == ApproveResult.MEMBERSHIP_NOT_FOUND
    assert store.find(free_user.id, group.id) is None


def test_pending_requests_in_insertion_order(workflow, premium_user, make_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    users = [make_user() for _ in range(3)]
    for u in users:
        workflow.request_join(u, group)

    assert [m.user_id for m in workflow.pending_requests(group)] == [u.id for u in users]

    workflow.approve(premium_user, group, users[1])
    assert [m.user_id for m in workflow.pending_requests(group)] == [users[0].id, users[2].id]


def test_restricted_scenario(authz, workflow, premium_user, free_user, make_group):
    g1 = make_group(premium_user, Visibility.RESTRICTED)

    assert workflow.request_join(free_user, g1) == JoinResult.REQUEST_SUBMITTED
    assert [m.user_id for m in workflow.pending_requests(g1)] == [free_user.id]

    assert approve_request(authz, workflow, premium_user, g1, free_user) == ApproveResult.APPROVED
    assert workflow.pending_requests(g1) == []


def test_only_creator_or_admin_can_approve(authz, workflow, store, premium_user, basic_user, admin, free_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    workflow.request_join(free_user, group)

    # basic tiene manage sobre grupos, pero no es el creador
    assert not can_approve(authz, basic_user, group)
    assert approve_request(authz, workflow, basic_user, group, free_user) == ApproveResult.UNAUTHORIZED
    assert approve_request(authz, workflow, free_user, group, free_user) == ApproveResult.UNAUTHORIZED
    assert store.find(free_user.id, group.id).status == MembershipStatus.PENDING
    assert store.updates == 0

    assert can_approve(authz, admin, group)
    assert approve_request(authz, workflow, admin, group, free_user) == ApproveResult.APPROVED


def test_creator_without_manage_right_cannot_approve(db, authz, workflow, premium_user, free_user, make_user, make_group):
    group = make_group(premium_user, Visibility.RESTRICTED)
    other = make_user()
    workflow.request_join(other, group)

    # el plan del creador baja a "none": pierde manage sobre grupos
    premium_user.plan = Tier.NONE
    db.commit()

    assert approve_request(authz, workflow, premium_user, group, other) == ApproveResult.UNAUTHORIZED


def test_create_failure_surfaces_as_persistence_error(db, monkeypatch, premium_user, free_user, make_group):
    group = make_group(premium_user, Visibility.PUBLIC)
    workflow = MembershipWorkflow(SqlMembershipStore(db))

    def broken_commit():
        raise OperationalError("INSERT INTO memberships", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", broken_commit)
    with pytest.raises(PersistenceError):
        workflow.request_join(free_user, group)

    monkeypatch.undo()
    assert SqlMembershipStore(db).find(free_user.id, group.id) is None


def test_cascade_on_group_delete(db, workflow, premium_user, free_user, make_group):
    from app.services.groups import delete_group

    group = make_group(premium_user, Visibility.PUBLIC)
    workflow.request_join(free_user, group)
    group_id = group.id

    delete_group(db, group)
    remaining = db.execute(
        select(func.count(Membership.id)).where(Membership.group_id == group_id)
    ).scalar_one()
    assert remaining == 0
