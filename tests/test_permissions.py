import pytest
from expense_tracker.core import permissions
from expense_tracker.core.exceptions import ForbiddenException
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.company import Company
from expense_tracker.models.expense import Expense, ExpenseStatus
from expense_tracker.models.invitation import Invitation, InvitationStatus
from expense_tracker.models.role import CompanyRole
from expense_tracker.models.user import User

COMPANY_ID = 10
OWNER_ID = 1


def make_context(user_id: int, role: CompanyRole | None, company_id: int = COMPANY_ID) -> CallerContext:
    user = User(id=user_id, auth_user_id=f"user-{user_id}", email=f"user{user_id}@example.com")
    if role is None:
        return CallerContext(user=user)
    company = Company(id=company_id, name="Acme Inc", owner_id=OWNER_ID)
    return CallerContext(user=user, company=company, role=role)


def make_expense(
    user_id: int, company_id: int | None = COMPANY_ID, status: ExpenseStatus = ExpenseStatus.PENDING
) -> Expense:
    return Expense(id=100, user_id=user_id, company_id=company_id, company="Cafe", status=status)


class TestGrantTable:
    """Every operation has a row in the company role grant table"""

    def test_every_operation_has_a_row(self):
        assert set(permissions.COMPANY_ROLE_GRANTS) == set(permissions.Operation)

    def test_no_role_allows_nothing(self):
        for operation in permissions.Operation:
            assert permissions.role_allows(None, operation) is False

    def test_owner_cannot_leave(self):
        assert not permissions.role_allows(CompanyRole.OWNER, permissions.Operation.LEAVE_COMPANY)

    def test_auditor_reads_but_does_not_review(self):
        assert permissions.role_allows(CompanyRole.AUDITOR, permissions.Operation.READ_EXPENSE)
        assert not permissions.role_allows(
            CompanyRole.AUDITOR, permissions.Operation.CHANGE_EXPENSE_STATUS
        )


class TestExpenseRules:
    """Read, delete, edit and review checks on expenses"""

    def test_creator_reads_own_expense(self):
        context = make_context(5, CompanyRole.USER)
        assert permissions.can_read_expense(context, make_expense(5))

    @pytest.mark.parametrize("role", [CompanyRole.OWNER, CompanyRole.ADMIN, CompanyRole.AUDITOR])
    def test_reviewers_read_company_expenses(self, role):
        context = make_context(2, role)
        assert permissions.can_read_expense(context, make_expense(5))

    def test_user_cannot_read_colleague_expense(self):
        decision = permissions.can_read_expense(make_context(6, CompanyRole.USER), make_expense(5))
        assert not decision
        assert decision.reason == "You do not have access to this expense"

    def test_reviewer_cannot_read_other_company_expense(self):
        context = make_context(2, CompanyRole.OWNER, company_id=99)
        assert not permissions.can_read_expense(context, make_expense(5))

    def test_personal_expense_is_private(self):
        context = make_context(2, CompanyRole.OWNER)
        assert not permissions.can_read_expense(context, make_expense(5, company_id=None))

    def test_creator_deletes_pending_company_expense(self):
        context = make_context(5, CompanyRole.USER)
        assert permissions.can_delete_expense(context, make_expense(5))

    def test_creator_cannot_delete_reviewed_company_expense(self):
        context = make_context(5, CompanyRole.USER)
        decision = permissions.can_delete_expense(
            context, make_expense(5, status=ExpenseStatus.APPROVED)
        )
        assert not decision
        assert "reviewed" in decision.reason

    def test_admin_deletes_reviewed_company_expense(self):
        context = make_context(2, CompanyRole.ADMIN)
        assert permissions.can_delete_expense(
            context, make_expense(5, status=ExpenseStatus.REJECTED)
        )

    def test_auditor_cannot_delete(self):
        context = make_context(2, CompanyRole.AUDITOR)
        assert not permissions.can_delete_expense(context, make_expense(5))

    def test_auditor_cannot_delete_own_pending_expense(self):
        context = make_context(5, CompanyRole.AUDITOR)
        decision = permissions.can_delete_expense(context, make_expense(5))
        assert not decision
        assert decision.reason == "Auditors cannot delete expenses"

    def test_own_expense_grant_is_user_only(self):
        assert permissions.COMPANY_ROLE_GRANTS[permissions.Operation.DELETE_OWN_EXPENSE] == {
            CompanyRole.USER
        }

    def test_only_creator_edits(self):
        assert permissions.can_update_expense(make_context(5, CompanyRole.USER), make_expense(5))
        assert not permissions.can_update_expense(make_context(1, CompanyRole.OWNER), make_expense(5))

    def test_reviewed_company_expense_is_frozen(self):
        context = make_context(5, CompanyRole.USER)
        expense = make_expense(5, status=ExpenseStatus.APPROVED)
        assert not permissions.can_update_expense(context, expense)

    def test_personal_expense_stays_editable(self):
        context = make_context(5, None)
        expense = make_expense(5, company_id=None, status=ExpenseStatus.APPROVED)
        assert permissions.can_update_expense(context, expense)

    @pytest.mark.parametrize("role", [CompanyRole.OWNER, CompanyRole.ADMIN])
    def test_managers_review(self, role):
        assert permissions.can_change_expense_status(make_context(2, role), make_expense(5))

    @pytest.mark.parametrize("role", [CompanyRole.AUDITOR, CompanyRole.USER])
    def test_others_cannot_review(self, role):
        decision = permissions.can_change_expense_status(make_context(2, role), make_expense(5))
        assert decision.reason == "Only owners and admins can approve or reject expenses"

    def test_personal_expense_not_reviewable(self):
        decision = permissions.can_change_expense_status(
            make_context(5, None), make_expense(5, company_id=None)
        )
        assert decision.reason == "Personal expenses are not subject to approval"

    def test_review_limited_to_own_company(self):
        context = make_context(2, CompanyRole.OWNER, company_id=99)
        decision = permissions.can_change_expense_status(context, make_expense(5))
        assert decision.reason == "Expense does not belong to your company"


class TestMembershipRules:
    """Invite, remove, role change and leave checks"""

    def test_personal_mode_cannot_invite(self):
        decision = permissions.can_invite(make_context(5, None), CompanyRole.USER)
        assert decision.reason == "You are not part of a company"

    def test_nobody_invites_as_owner(self):
        decision = permissions.can_invite(make_context(OWNER_ID, CompanyRole.OWNER), CompanyRole.OWNER)
        assert not decision

    def test_owner_invites_admin(self):
        assert permissions.can_invite(make_context(OWNER_ID, CompanyRole.OWNER), CompanyRole.ADMIN)

    def test_admin_cannot_invite_admin(self):
        decision = permissions.can_invite(make_context(2, CompanyRole.ADMIN), CompanyRole.ADMIN)
        assert decision.reason == "Only the owner can invite members as admin"

    def test_admin_invites_auditor(self):
        assert permissions.can_invite(make_context(2, CompanyRole.ADMIN), CompanyRole.AUDITOR)

    @pytest.mark.parametrize("role", [CompanyRole.AUDITOR, CompanyRole.USER])
    def test_non_managers_cannot_invite(self, role):
        assert not permissions.can_invite(make_context(2, role), CompanyRole.USER)

    def test_owner_cannot_be_removed(self):
        context = make_context(2, CompanyRole.ADMIN)
        decision = permissions.can_remove_member(context, OWNER_ID, CompanyRole.OWNER)
        assert decision.reason == "The company owner cannot be removed"

    def test_cannot_remove_self(self):
        context = make_context(2, CompanyRole.ADMIN)
        assert not permissions.can_remove_member(context, 2, CompanyRole.ADMIN)

    def test_admin_cannot_remove_admin(self):
        context = make_context(2, CompanyRole.ADMIN)
        decision = permissions.can_remove_member(context, 3, CompanyRole.ADMIN)
        assert decision.reason == "Admins cannot remove other admins"

    def test_owner_removes_admin(self):
        context = make_context(OWNER_ID, CompanyRole.OWNER)
        assert permissions.can_remove_member(context, 3, CompanyRole.ADMIN)

    def test_cannot_change_own_role(self):
        context = make_context(OWNER_ID, CompanyRole.OWNER)
        assert not permissions.can_change_role(context, OWNER_ID, CompanyRole.OWNER, CompanyRole.USER)

    def test_owner_transfers_ownership(self):
        context = make_context(OWNER_ID, CompanyRole.OWNER)
        assert permissions.can_change_role(context, 3, CompanyRole.ADMIN, CompanyRole.OWNER)

    def test_admin_cannot_transfer_ownership(self):
        context = make_context(2, CompanyRole.ADMIN)
        decision = permissions.can_change_role(context, 3, CompanyRole.USER, CompanyRole.OWNER)
        assert decision.reason == "Only the owner can transfer ownership"

    def test_admin_cannot_promote_to_admin(self):
        context = make_context(2, CompanyRole.ADMIN)
        assert not permissions.can_change_role(context, 3, CompanyRole.USER, CompanyRole.ADMIN)

    def test_admin_moves_user_to_auditor(self):
        context = make_context(2, CompanyRole.ADMIN)
        assert permissions.can_change_role(context, 3, CompanyRole.USER, CompanyRole.AUDITOR)

    def test_owner_must_transfer_before_leaving(self):
        decision = permissions.can_leave_company(make_context(OWNER_ID, CompanyRole.OWNER))
        assert decision.reason == "The owner must transfer ownership before leaving the company"

    def test_member_can_leave(self):
        assert permissions.can_leave_company(make_context(5, CompanyRole.USER))

    def test_create_company_only_in_personal_mode(self):
        assert permissions.can_create_company(make_context(5, None))
        assert not permissions.can_create_company(make_context(5, CompanyRole.USER))

    def test_rename_and_delete_owner_only(self):
        assert permissions.can_rename_company(make_context(OWNER_ID, CompanyRole.OWNER))
        assert not permissions.can_rename_company(make_context(2, CompanyRole.ADMIN))
        assert not permissions.can_delete_company(make_context(2, CompanyRole.ADMIN))


class TestInvitationResponse:
    """Only the addressed invitee may respond"""

    def _invitation(self) -> Invitation:
        return Invitation(
            id=7,
            company_id=COMPANY_ID,
            company_name="Acme Inc",
            invitee_email="new.hire@example.com",
            inviter_id=OWNER_ID,
            role=CompanyRole.USER,
            status=InvitationStatus.PENDING,
        )

    def test_matching_email_case_insensitive(self):
        assert permissions.can_respond_to_invitation("New.Hire@Example.com", self._invitation())

    def test_other_email_denied(self):
        decision = permissions.can_respond_to_invitation("someone@example.com", self._invitation())
        assert decision.reason == "This invitation is not addressed to you"

    def test_missing_email_denied(self):
        assert not permissions.can_respond_to_invitation(None, self._invitation())


def test_ensure_allowed_raises_with_reason():
    with pytest.raises(ForbiddenException, match="nope"):
        permissions.ensure_allowed(permissions.Decision.deny("nope"))


def test_ensure_allowed_passes_allowed_decision():
    permissions.ensure_allowed(permissions.Decision.allow())
