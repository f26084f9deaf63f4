"""
Legal state changes for expenses and invitations.

Both workflows are one step deep: only PENDING moves, and every other
state is terminal.
"""

from expense_tracker.core.permissions import Decision
from expense_tracker.models.expense import ExpenseStatus
from expense_tracker.models.invitation import InvitationStatus

EXPENSE_TRANSITIONS: dict[ExpenseStatus, frozenset[ExpenseStatus]] = {
    ExpenseStatus.PENDING: frozenset({ExpenseStatus.APPROVED, ExpenseStatus.REJECTED}),
    ExpenseStatus.APPROVED: frozenset(),
    ExpenseStatus.REJECTED: frozenset(),
}

INVITATION_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.PENDING: frozenset({InvitationStatus.ACCEPTED, InvitationStatus.DECLINED}),
    InvitationStatus.ACCEPTED: frozenset(),
    InvitationStatus.DECLINED: frozenset(),
    InvitationStatus.EXPIRED: frozenset(),
}


def initial_expense_status(company_id: int | None) -> ExpenseStatus:
    """Company expenses enter the approval workflow, personal ones skip it"""
    if company_id is None:
        return ExpenseStatus.APPROVED
    return ExpenseStatus.PENDING


def check_expense_transition(current: ExpenseStatus, target: ExpenseStatus) -> Decision:
    if target in EXPENSE_TRANSITIONS[current]:
        return Decision.allow()
    if current != ExpenseStatus.PENDING:
        return Decision.deny(f"Expense is already {current.value}")
    return Decision.deny(f"Invalid status transition from {current.value} to {target.value}")


def check_invitation_transition(
    current: InvitationStatus, target: InvitationStatus
) -> Decision:
    if target in INVITATION_TRANSITIONS[current]:
        return Decision.allow()
    if current != InvitationStatus.PENDING:
        return Decision.deny(f"Invitation is already {current.value}")
    return Decision.deny(f"Invalid status transition from {current.value} to {target.value}")
