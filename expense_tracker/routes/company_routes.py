from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from expense_tracker.database import get_db
from expense_tracker.dependencies import get_caller_context
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.invitation import InvitationStatus
from expense_tracker.services.company_service import CompanyService, member_summary
from expense_tracker.services.invitation_service import InvitationService
from expense_tracker.schemas.company_schemas import (
    CompanyCreate,
    CompanyResponse,
    CompanyUpdate,
    CompanyMemberResponse,
    CompanyRoleUpdate,
    CompanyMemberRemoveResponse,
    LeaveCompanyResponse,
)
from expense_tracker.schemas.invitation_schemas import InvitationCreate, InvitationResponse

router = APIRouter()


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    company_data: CompanyCreate,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Create a company owned by the caller.

    - Only available in personal mode
    - The caller becomes the OWNER
    """
    service = CompanyService(db)
    return service.create_company(company_data, context)


@router.get("/me", response_model=CompanyResponse)
async def get_current_company(
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """Get the caller's company."""
    service = CompanyService(db)
    return service.get_current_company(context)


@router.patch("/me", response_model=CompanyResponse)
async def rename_company(
    company_update: CompanyUpdate,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Update company name.

    - **Requires OWNER permissions**
    """
    service = CompanyService(db)
    return service.rename_company(company_update, context)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Delete the caller's company.

    - **Requires OWNER permissions**
    - Members return to personal mode
    - Company expenses are kept as their creators' personal expenses
    """
    service = CompanyService(db)
    service.delete_company(context)


@router.get("/me/members", response_model=list[CompanyMemberResponse])
async def list_members(
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    List all members of the caller's company.

    Available to all members.
    """
    service = CompanyService(db)
    return service.get_members(context)


@router.patch("/me/members/{user_id}/role", response_model=CompanyMemberResponse)
async def update_member_role(
    user_id: int,
    role_update: CompanyRoleUpdate,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Update member's role.

    - **Requires OWNER or ADMIN permissions**
    - Admins may only move auditors and users between AUDITOR and USER
    - Setting OWNER transfers ownership; the previous owner becomes ADMIN
    - Cannot change your own role
    """
    service = CompanyService(db)
    membership = service.update_member_role(user_id, role_update, context)
    return member_summary(membership)


@router.delete(
    "/me/members/{user_id}",
    response_model=CompanyMemberRemoveResponse,
    status_code=status.HTTP_200_OK,
)
async def remove_member(
    user_id: int,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Remove member from company.

    - **Requires ADMIN or OWNER permissions**
    - Cannot remove the OWNER
    - Cannot remove yourself
    - Admins cannot remove other admins
    """
    service = CompanyService(db)
    service.remove_member(user_id, context)

    return {
        "message": "Member removed successfully",
        "removed_user_id": user_id,
    }


@router.post("/me/leave", response_model=LeaveCompanyResponse)
async def leave_company(
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Leave the caller's company and return to personal mode.

    - The owner must transfer ownership first
    """
    service = CompanyService(db)
    company_id = service.leave_company(context)
    return {"message": "You have left the company", "company_id": company_id}


@router.post(
    "/me/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_member(
    invite_request: InvitationCreate,
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    Invite an email address to the company.

    - **Requires ADMIN or OWNER permissions**
    - Default role: USER
    - Only the OWNER can invite as ADMIN; nobody invites as OWNER
    - The invitee joins by accepting it
    """
    service = InvitationService(db)
    return service.send_invitation(invite_request, context)


@router.get("/me/invitations", response_model=list[InvitationResponse])
async def list_company_invitations(
    status_filter: Optional[InvitationStatus] = Query(
        None, alias="status", description="Filter by invitation status"
    ),
    context: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
):
    """
    List invitations sent by the company.

    - **Requires OWNER, ADMIN or AUDITOR role**
    """
    service = InvitationService(db)
    return service.list_company_invitations(context, status_filter)
