"""
Authorization rules for expenses, companies and memberships.

Every check returns a Decision instead of raising, so the rules can be
exercised without a request. Services turn a denied Decision into a
ForbiddenException with ensure_allowed().

Company-wide grants live in COMPANY_ROLE_GRANTS: an operation listed for a
role applies to every entity of the caller's company. Operations on the
caller's own personal expenses do not need a grant.
"""

import logging
from dataclasses import dataclass
from enum import Enum as PyEnum

from expense_tracker.core.exceptions import ForbiddenException
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.expense import Expense, ExpenseStatus
from expense_tracker.models.invitation import Invitation
from expense_tracker.models.role import CompanyRole

logger = logging.getLogger(__name__)


class Operation(str, PyEnum):
    CREATE_EXPENSE = "create_expense"
    READ_EXPENSE = "read_expense"
    UPDATE_EXPENSE = "update_expense"
    DELETE_EXPENSE = "delete_expense"
    DELETE_OWN_EXPENSE = "delete_own_expense"
    CHANGE_EXPENSE_STATUS = "change_expense_status"
    CREATE_COMPANY = "create_company"
    RENAME_COMPANY = "rename_company"
    DELETE_COMPANY = "delete_company"
    INVITE_MEMBER = "invite_member"
    LIST_INVITATIONS = "list_invitations"
    REMOVE_MEMBER = "remove_member"
    CHANGE_ROLE = "change_role"
    TRANSFER_OWNERSHIP = "transfer_ownership"
    LEAVE_COMPANY = "leave_company"


_ALL_ROLES = frozenset(CompanyRole)
_MANAGERS = frozenset({CompanyRole.OWNER, CompanyRole.ADMIN})
_REVIEWERS = frozenset({CompanyRole.OWNER, CompanyRole.ADMIN, CompanyRole.AUDITOR})

COMPANY_ROLE_GRANTS: dict[Operation, frozenset[CompanyRole]] = {
    Operation.CREATE_EXPENSE: _ALL_ROLES,
    Operation.READ_EXPENSE: _REVIEWERS,
    Operation.UPDATE_EXPENSE: frozenset(),
    Operation.DELETE_EXPENSE: _MANAGERS,
    Operation.DELETE_OWN_EXPENSE: frozenset({CompanyRole.USER}),
    Operation.CHANGE_EXPENSE_STATUS: _MANAGERS,
    Operation.CREATE_COMPANY: frozenset(),
    Operation.RENAME_COMPANY: frozenset({CompanyRole.OWNER}),
    Operation.DELETE_COMPANY: frozenset({CompanyRole.OWNER}),
    Operation.INVITE_MEMBER: _MANAGERS,
    Operation.LIST_INVITATIONS: _REVIEWERS,
    Operation.REMOVE_MEMBER: _MANAGERS,
    Operation.CHANGE_ROLE: _MANAGERS,
    Operation.TRANSFER_OWNERSHIP: frozenset({CompanyRole.OWNER}),
    Operation.LEAVE_COMPANY: frozenset({CompanyRole.ADMIN, CompanyRole.AUDITOR, CompanyRole.USER}),
}

# Roles an inviter may hand out; OWNER is never granted by invitation
INVITABLE_ROLES: dict[CompanyRole, frozenset[CompanyRole]] = {
    CompanyRole.OWNER: frozenset({CompanyRole.ADMIN, CompanyRole.AUDITOR, CompanyRole.USER}),
    CompanyRole.ADMIN: frozenset({CompanyRole.AUDITOR, CompanyRole.USER}),
    CompanyRole.AUDITOR: frozenset(),
    CompanyRole.USER: frozenset(),
}


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization or transition check"""

    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed


def role_allows(role: CompanyRole | None, operation: Operation) -> bool:
    """Check the company-wide grant table for a role"""
    if role is None:
        return False
    return role in COMPANY_ROLE_GRANTS[operation]


def ensure_allowed(decision: Decision) -> None:
    """Raise ForbiddenException carrying the reason of a denied decision"""
    if not decision.allowed:
        logger.warning("Operation denied: %s", decision.reason)
        raise ForbiddenException(decision.reason)


def _require_company(context: CallerContext) -> Decision:
    if not context.in_company():
        return Decision.deny("You are not part of a company")
    return Decision.allow()


# --- Expenses ---------------------------------------------------------------


def can_read_expense(context: CallerContext, expense: Expense) -> Decision:
    if expense.user_id == context.user_id:
        return Decision.allow()
    if (
        expense.company_id is not None
        and expense.company_id == context.company_id
        and role_allows(context.role, Operation.READ_EXPENSE)
    ):
        return Decision.allow()
    return Decision.deny("You do not have access to this expense")


def can_delete_expense(context: CallerContext, expense: Expense) -> Decision:
    """
    Personal expenses: creator only.
    Company expenses: owner/admin of that company, or a USER creator while
    the expense is still pending. Auditors never delete.
    """
    is_creator = expense.user_id == context.user_id

    if expense.company_id is None:
        if is_creator:
            return Decision.allow()
        return Decision.deny("You can only delete your own expenses")

    if expense.company_id != context.company_id:
        return Decision.deny("You do not have permission to delete this expense")
    if role_allows(context.role, Operation.DELETE_EXPENSE):
        return Decision.allow()
    if is_creator and role_allows(context.role, Operation.DELETE_OWN_EXPENSE):
        if expense.status == ExpenseStatus.PENDING:
            return Decision.allow()
        return Decision.deny("Only owners and admins can delete a reviewed company expense")
    if context.role == CompanyRole.AUDITOR:
        return Decision.deny("Auditors cannot delete expenses")
    return Decision.deny("You do not have permission to delete this expense")


def can_update_expense(context: CallerContext, expense: Expense) -> Decision:
    """Only the creator edits details, and a company expense only while pending"""
    if expense.user_id != context.user_id:
        return Decision.deny("You can only edit your own expenses")
    if expense.company_id is not None and expense.status != ExpenseStatus.PENDING:
        return Decision.deny(f"A {expense.status.value} company expense can no longer be edited")
    return Decision.allow()


def can_change_expense_status(context: CallerContext, expense: Expense) -> Decision:
    if expense.company_id is None:
        return Decision.deny("Personal expenses are not subject to approval")
    if expense.company_id != context.company_id:
        return Decision.deny("Expense does not belong to your company")
    if not role_allows(context.role, Operation.CHANGE_EXPENSE_STATUS):
        return Decision.deny("Only owners and admins can approve or reject expenses")
    return Decision.allow()


# --- Companies --------------------------------------------------------------


def can_create_company(context: CallerContext) -> Decision:
    if context.in_company():
        return Decision.deny("You are already part of a company")
    return Decision.allow()


def can_rename_company(context: CallerContext) -> Decision:
    decision = _require_company(context)
    if decision and not role_allows(context.role, Operation.RENAME_COMPANY):
        return Decision.deny("Only the owner can update company details")
    return decision


def can_delete_company(context: CallerContext) -> Decision:
    decision = _require_company(context)
    if decision and not role_allows(context.role, Operation.DELETE_COMPANY):
        return Decision.deny("Only the owner can delete the company")
    return decision


def can_list_invitations(context: CallerContext) -> Decision:
    decision = _require_company(context)
    if decision and not role_allows(context.role, Operation.LIST_INVITATIONS):
        return Decision.deny("Only owners, admins and auditors can view company invitations")
    return decision


def can_invite(context: CallerContext, role: CompanyRole) -> Decision:
    decision = _require_company(context)
    if not decision:
        return decision
    if not role_allows(context.role, Operation.INVITE_MEMBER):
        return Decision.deny("Only owners and admins can invite members")
    if role == CompanyRole.OWNER:
        return Decision.deny("Ownership can only be transferred, not granted by invitation")
    if role not in INVITABLE_ROLES[context.role]:
        return Decision.deny(f"Only the owner can invite members as {role.value}")
    return Decision.allow()


def can_remove_member(
    context: CallerContext, target_user_id: int, target_role: CompanyRole
) -> Decision:
    decision = _require_company(context)
    if not decision:
        return decision
    if not role_allows(context.role, Operation.REMOVE_MEMBER):
        return Decision.deny("Only owners and admins can remove members")
    if target_user_id == context.user_id:
        return Decision.deny("You cannot remove yourself; leave the company instead")
    if target_role == CompanyRole.OWNER or target_user_id == context.company.owner_id:
        return Decision.deny("The company owner cannot be removed")
    if context.role == CompanyRole.ADMIN and target_role == CompanyRole.ADMIN:
        return Decision.deny("Admins cannot remove other admins")
    return Decision.allow()


def can_change_role(
    context: CallerContext,
    target_user_id: int,
    target_role: CompanyRole,
    new_role: CompanyRole,
) -> Decision:
    """
    Owner may set any role on anyone but themself; setting OWNER is an
    ownership transfer. Admin may only move users and auditors between
    USER and AUDITOR.
    """
    decision = _require_company(context)
    if not decision:
        return decision
    if not role_allows(context.role, Operation.CHANGE_ROLE):
        return Decision.deny("Only owners and admins can change member roles")
    if target_user_id == context.user_id:
        return Decision.deny("You cannot change your own role")
    if target_role == CompanyRole.OWNER:
        return Decision.deny("The owner's role can only change by transferring ownership")
    if new_role == CompanyRole.OWNER and not role_allows(
        context.role, Operation.TRANSFER_OWNERSHIP
    ):
        return Decision.deny("Only the owner can transfer ownership")
    if context.role == CompanyRole.ADMIN:
        if new_role in (CompanyRole.OWNER, CompanyRole.ADMIN):
            return Decision.deny("Admins cannot grant the owner or admin role")
        if target_role == CompanyRole.ADMIN:
            return Decision.deny("Admins cannot change the role of another admin")
    return Decision.allow()


def can_leave_company(context: CallerContext) -> Decision:
    decision = _require_company(context)
    if decision and not role_allows(context.role, Operation.LEAVE_COMPANY):
        return Decision.deny("The owner must transfer ownership before leaving the company")
    return decision


# --- Invitations ------------------------------------------------------------


def can_respond_to_invitation(email: str | None, invitation: Invitation) -> Decision:
    """Only the addressed invitee, matched by verified email, may respond"""
    if not email:
        return Decision.deny("Your account has no verified email address")
    if email.strip().lower() != invitation.invitee_email.strip().lower():
        return Decision.deny("This invitation is not addressed to you")
    return Decision.allow()
