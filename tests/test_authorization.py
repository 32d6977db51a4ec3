"""Tests for the authorization matrix and clinic membership rules."""

from uuid import UUID, uuid4

import pytest

from clinic_queue.core.results import ErrorKind
from clinic_queue.schemas.clinic_users import ClinicAccess, Role
from clinic_queue.services.authorization_service import (
    POLICY,
    AuthorizationService,
    Operation,
    count_admins_after,
    resolve_clinic_context,
)


@pytest.fixture
def authorization(role_repo) -> AuthorizationService:
    return AuthorizationService(role_repo)


def _actor(user_id: UUID, clinic_id: UUID, role: Role = Role.CLINIC_ADMIN, global_admin=False):
    return ClinicAccess(user_id=user_id, clinic_id=clinic_id, role=role, is_global_admin=global_admin)


class TestResolveClinicContext:
    """Tests for picking the acting clinic."""

    def test_precedence(self):
        """Test path beats header, header beats query, query beats token."""
        path, header, query, token = uuid4(), uuid4(), uuid4(), uuid4()

        assert resolve_clinic_context(path, str(header), str(query), str(token)).value == path
        assert resolve_clinic_context(None, str(header), str(query), str(token)).value == header
        assert resolve_clinic_context(None, None, str(query), str(token)).value == query
        assert resolve_clinic_context(None, None, None, str(token)).value == token

    def test_missing_context(self):
        """Test no source is a hard failure, never a default."""
        result = resolve_clinic_context()

        assert result.error.kind == ErrorKind.MISSING_CLINIC_CONTEXT

    def test_blank_header_is_skipped(self):
        """Test an empty header falls through to the next source."""
        token = uuid4()

        assert resolve_clinic_context(None, "  ", None, str(token)).value == token

    def test_malformed_id(self):
        """Test a non-UUID clinic id is a validation error."""
        result = resolve_clinic_context(None, "not-a-uuid", None, str(uuid4()))

        assert result.error.kind == ErrorKind.VALIDATION


def test_policy_covers_every_operation():
    """Test every operation has an entry in the policy table."""
    assert set(POLICY) == set(Operation)
    assert Role.STAFF in POLICY[Operation.QUEUE_VIEW]
    assert Role.STAFF not in POLICY[Operation.APPOINTMENTS_TRANSITION]
    assert POLICY[Operation.MEMBERS_MANAGE] == {Role.ADMIN, Role.CLINIC_ADMIN}


def test_count_admins_after():
    """Test administrator counting after a change."""
    admin, staff = uuid4(), uuid4()
    rows = [
        {"user_id": admin, "role": "CLINIC_ADMIN"},
        {"user_id": staff, "role": "STAFF"},
    ]

    assert count_admins_after(rows, admin, Role.STAFF) == 0
    assert count_admins_after(rows, admin, None) == 0
    assert count_admins_after(rows, staff, Role.CLINIC_ADMIN) == 2
    assert count_admins_after(rows, uuid4(), Role.NURSE) == 1


@pytest.mark.asyncio
class TestAuthorize:
    """Tests for role checks."""

    @pytest.mark.parametrize("operation", list(Operation))
    async def test_staff_of_other_clinic_denied(
        self, authorization, grant_role, clinic_id, other_clinic_id, operation
    ):
        """Test a member of one clinic is denied every operation in another."""
        user_id = uuid4()
        await grant_role(user_id, clinic_id, Role.STAFF)

        result = await authorization.authorize_operation(user_id, other_clinic_id, operation)

        assert result.error.kind == ErrorKind.CLINIC_ACCESS_DENIED

    async def test_insufficient_role(self, authorization, grant_role, clinic_id):
        """Test a role outside the operation's set is rejected."""
        user_id = uuid4()
        await grant_role(user_id, clinic_id, Role.STAFF)

        result = await authorization.authorize_operation(
            user_id, clinic_id, Operation.APPOINTMENTS_CREATE
        )

        assert result.error.kind == ErrorKind.INSUFFICIENT_ROLE
        assert result.error.kind.is_forbidden

    async def test_allowed_role(self, authorization, grant_role, clinic_id):
        """Test an allowed role returns the access decision."""
        user_id = uuid4()
        await grant_role(user_id, clinic_id, Role.NURSE)

        result = await authorization.authorize_operation(
            user_id, clinic_id, Operation.APPOINTMENTS_TRANSITION
        )

        assert result.ok
        assert result.value.role == Role.NURSE
        assert result.value.clinic_id == clinic_id
        assert not result.value.is_global_admin

    async def test_global_admin_reaches_any_clinic(
        self, authorization, grant_role, clinic_id, other_clinic_id
    ):
        """Test ADMIN in one clinic satisfies another clinic's requirements."""
        user_id = uuid4()
        await grant_role(user_id, clinic_id, Role.ADMIN)

        result = await authorization.authorize_operation(
            user_id, other_clinic_id, Operation.MEMBERS_MANAGE
        )

        assert result.ok
        assert result.value.is_global_admin
        assert result.value.role == Role.ADMIN

    async def test_list_user_clinics(self, authorization, grant_role, clinic_id, other_clinic_id):
        """Test listing the clinics a user belongs to."""
        user_id = uuid4()
        await grant_role(user_id, clinic_id, Role.DOCTOR)
        await grant_role(user_id, other_clinic_id, Role.STAFF)

        result = await authorization.list_user_clinics(user_id)

        assert not result.value.is_global_admin
        assert {m.clinic_id for m in result.value.items} == {clinic_id, other_clinic_id}


@pytest.mark.asyncio
class TestMembership:
    """Tests for the role-mutation guard."""

    async def test_demote_last_clinic_admin_conflicts(self, authorization, clinic_admin, clinic_id):
        """Test the only CLINIC_ADMIN cannot be demoted."""
        actor = _actor(clinic_admin, clinic_id)

        result = await authorization.change_role(actor, clinic_admin, Role.STAFF)

        assert result.error.kind == ErrorKind.CONFLICT

    async def test_demote_with_second_admin_succeeds(
        self, authorization, grant_role, clinic_admin, clinic_id, role_repo
    ):
        """Test demotion is allowed once another administrator exists."""
        second_admin = uuid4()
        await grant_role(second_admin, clinic_id, Role.CLINIC_ADMIN)
        actor = _actor(clinic_admin, clinic_id)

        result = await authorization.change_role(actor, clinic_admin, Role.STAFF)

        assert result.ok
        assert result.value.previous_role == Role.CLINIC_ADMIN
        assert result.value.new_role == Role.STAFF
        stored = await role_repo.find(clinic_admin, clinic_id)
        assert stored["role"] == "STAFF"

    async def test_remove_last_admin_conflicts(self, authorization, clinic_admin, clinic_id):
        """Test the last administrator cannot remove themself."""
        result = await authorization.remove_member(_actor(clinic_admin, clinic_id), clinic_admin)

        assert result.error.kind == ErrorKind.CONFLICT

    async def test_remove_member(self, authorization, clinic_admin, receptionist, clinic_id, role_repo):
        """Test removing a regular member."""
        result = await authorization.remove_member(_actor(clinic_admin, clinic_id), receptionist)

        assert result.value.removed is True
        assert await role_repo.find(receptionist, clinic_id) is None

    async def test_add_member(self, authorization, clinic_admin, clinic_id):
        """Test adding a doctor."""
        user_id = uuid4()

        result = await authorization.add_member(_actor(clinic_admin, clinic_id), user_id, Role.DOCTOR)

        assert result.ok
        assert result.value.role == Role.DOCTOR
        members = await authorization.list_members(clinic_id)
        assert members.value.total == 2

    async def test_add_existing_member_conflicts(
        self, authorization, clinic_admin, receptionist, clinic_id
    ):
        """Test a user cannot be added twice."""
        result = await authorization.add_member(
            _actor(clinic_admin, clinic_id), receptionist, Role.NURSE
        )

        assert result.error.kind == ErrorKind.CONFLICT

    async def test_first_member_must_be_admin(self, authorization, grant_role, clinic_id, other_clinic_id):
        """Test an empty clinic can only be seeded with an administrator."""
        global_admin = uuid4()
        await grant_role(global_admin, clinic_id, Role.ADMIN)
        actor = _actor(global_admin, other_clinic_id, Role.ADMIN, global_admin=True)

        staff = await authorization.add_member(actor, uuid4(), Role.STAFF)
        admin = await authorization.add_member(actor, uuid4(), Role.CLINIC_ADMIN)

        assert staff.error.kind == ErrorKind.CONFLICT
        assert admin.ok

    async def test_granting_admin_requires_global_admin(self, authorization, clinic_admin, clinic_id):
        """Test a clinic admin cannot grant the global ADMIN role."""
        result = await authorization.add_member(_actor(clinic_admin, clinic_id), uuid4(), Role.ADMIN)

        assert result.error.kind == ErrorKind.INSUFFICIENT_ROLE

    async def test_change_role_of_non_member(self, authorization, clinic_admin, clinic_id):
        """Test changing a stranger's role is not found."""
        result = await authorization.change_role(_actor(clinic_admin, clinic_id), uuid4(), Role.NURSE)

        assert result.error.kind == ErrorKind.NOT_FOUND
