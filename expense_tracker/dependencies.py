from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from expense_tracker.core.security import Identity, verify_token
from expense_tracker.core.exceptions import UnauthorizedException
from expense_tracker.database import get_db
from expense_tracker.repositories.user_repository import UserRepository
from expense_tracker.models.caller_context import CallerContext
from expense_tracker.models.user import User

security = HTTPBearer(auto_error=False)


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity:
    """
    FastAPI dependency returning the identity proven by the bearer token.

    The email on the result is the one carried by this request's token;
    it is None when the token has no email claim.

    Raises:
        HTTPException 401: If token missing, invalid or expired
    """
    try:
        if credentials is None:
            raise UnauthorizedException("ID token was not provided or was invalid.")
        return verify_token(credentials.credentials)

    except UnauthorizedException as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    """
    FastAPI dependency to get/create the user profile for the verified identity.

    Flow:
    1. Verify the bearer token (get_identity)
    2. Get or auto-create the User profile, syncing a changed email
    3. Return User object for use in endpoints
    """
    user_repo = UserRepository(db)
    return user_repo.get_or_create_by_identity(identity)


async def get_caller_context(user: User = Depends(get_current_user)) -> CallerContext:
    """
    FastAPI dependency building the caller context for authorization.

    Company and role come from the stored membership; a user without one
    gets a personal-mode context.
    """
    membership = user.membership
    if membership is None:
        return CallerContext(user=user)
    return CallerContext(user=user, company=membership.company, role=membership.role)
