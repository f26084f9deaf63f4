from sqlalchemy import func
from sqlalchemy.orm import Session
from expense_tracker.core.security import Identity
from expense_tracker.models.user import User


class UserRepository:
    """Repository for User profile operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_or_create_by_identity(self, identity: Identity) -> User:
        """
        Get user profile by auth_user_id or create if doesn't exist.

        This is called automatically when a user makes their first API
        request with a valid JWT. The stored email follows the token so
        invitation matching always uses the verified address.

        Args:
            identity: Verified identity from the JWT claims

        Returns:
            User object (either existing or newly created)
        """
        user = self.get_by_auth_id(identity.auth_user_id)

        if not user:
            user = User(
                auth_user_id=identity.auth_user_id,
                email=identity.email,
                display_name=identity.name[:50] if identity.name else None,
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        elif identity.email and user.email != identity.email:
            user.email = identity.email
            self.db.commit()
            self.db.refresh(user)

        return user

    def get_by_auth_id(self, auth_user_id: str) -> User | None:
        """Get user by auth_user_id"""
        return self.db.query(User).filter(User.auth_user_id == auth_user_id).first()

    def get_by_id(self, user_id: int) -> User | None:
        """Get user by internal ID"""
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)"""
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def update(self, user: User) -> User:
        """Update existing user profile"""
        self.db.commit()
        self.db.refresh(user)
        return user
