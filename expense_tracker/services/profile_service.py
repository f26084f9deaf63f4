from sqlalchemy.orm import Session
from expense_tracker.core.exceptions import ValidationException
from expense_tracker.models.user import User
from expense_tracker.repositories.user_repository import UserRepository

DISPLAY_NAME_MIN_LENGTH = 2
DISPLAY_NAME_MAX_LENGTH = 50


class ProfileService:
    """Service for user profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository(db)

    def get_profile(self, user: User) -> User:
        """Get the caller's profile"""
        return user

    def update_display_name(self, user: User, display_name: str) -> User:
        """
        Update the caller's display name.

        Raises:
            ValidationException: If the trimmed name is not 2-50 characters
        """
        name = display_name.strip()
        if not DISPLAY_NAME_MIN_LENGTH <= len(name) <= DISPLAY_NAME_MAX_LENGTH:
            raise ValidationException(
                f"Display name must be between {DISPLAY_NAME_MIN_LENGTH} "
                f"and {DISPLAY_NAME_MAX_LENGTH} characters."
            )
        user.display_name = name
        return self.repo.update(user)
