"""
User Management Module

Manages user profiles: creation with unique emails, retrieval, self-service
updates and deletion. Also resolves an authenticated principal (an email)
to the User acting on a request.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, Optional
import uuid

from .authorization import assert_is_self, deny
from .errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .passwords import hash_password, verify_password
from .storage import StorageInterface, StorageRecord, StorageSession


@dataclass
class Address:
    """Postal address"""
    line1: str
    line2: Optional[str] = None
    line3: Optional[str] = None
    town: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None

    def __post_init__(self):
        if not self.line1 or not self.line1.strip():
            raise ValidationError("Address line1 is required")


@dataclass
class User(StorageRecord):
    """
    Bank customer identity and profile
    """
    name: str
    email: str
    phone_number: str
    address: Address
    password_hash: str


class UserManager:
    """
    Manages user lifecycle and principal resolution
    """

    def __init__(self, storage: StorageInterface, accounts_table: str = "bank_accounts"):
        self.storage = storage
        self.table_name = "users"
        self.accounts_table = accounts_table
        self.logger = get_logger("eagle_bank.users")

    def resolve_principal(self, email: str) -> User:
        """
        Map an authenticated principal to its User

        Raises:
            NotFoundError: If no user is registered with the email
        """
        user = self._find_by_email(self.storage, email)
        if not user:
            raise NotFoundError("User not found")
        return user

    def create_user(
        self,
        name: str,
        email: str,
        phone_number: str,
        address: Address,
        password: str
    ) -> User:
        """
        Create a new user

        Args:
            name: Display name
            email: Unique login email (matched case-sensitively)
            phone_number: Contact phone number
            address: Postal address
            password: Raw password, stored only as a hash

        Returns:
            Created User object

        Raises:
            ConflictError: If the email is already registered
        """
        with self.storage.session() as session:
            session.lock(("user_emails", email))

            if self._find_by_email(session, email):
                log_action(
                    self.logger, "warning", "Rejected duplicate user email",
                    action="create_user", resource="user"
                )
                raise ConflictError("Email already exists")

            now = datetime.now(timezone.utc)
            user = User(
                id=f"usr-{uuid.uuid4().hex}",
                created_at=now,
                updated_at=now,
                name=name,
                email=email,
                phone_number=phone_number,
                address=address,
                password_hash=hash_password(password)
            )
            self._save_user(session, user)

        log_action(
            self.logger, "info", "User created",
            user_id=user.id, action="create_user", resource=f"user:{user.id}"
        )
        return user

    def get_user(self, user_id: str, principal_email: Optional[str] = None) -> User:
        """
        Get user by ID

        When a principal is given, only the user themself may read the record.
        """
        user = self._load_user(self.storage, user_id)
        if principal_email is not None and user.email != principal_email:
            raise deny(None, f"user:{user.id}", "You are not authorised to access this user's information")
        return user

    def update_user(
        self,
        user_id: str,
        principal_email: str,
        name: str,
        email: str,
        phone_number: str,
        address: Address
    ) -> User:
        """Overwrite a user's profile. Only the user themself may do this."""
        with self.storage.session() as session:
            session.lock(("users", user_id), ("user_emails", email))

            user = self._load_user(session, user_id)
            principal = self._find_by_email(session, principal_email)
            if not principal:
                raise NotFoundError("User not found")
            assert_is_self(principal, user.id)

            if email != user.email:
                existing = self._find_by_email(session, email)
                if existing and existing.id != user.id:
                    raise ConflictError("Email already exists")

            user.name = name
            user.email = email
            user.phone_number = phone_number
            user.address = address
            user.updated_at = datetime.now(timezone.utc)
            self._save_user(session, user)

        log_action(
            self.logger, "info", "User updated",
            user_id=user.id, action="update_user", resource=f"user:{user.id}"
        )
        return user

    def delete_user(self, user_id: str, principal_email: str) -> None:
        """
        Delete a user that owns no bank accounts

        Raises:
            NotFoundError: If the user does not exist
            ForbiddenError: If the principal is not the user
            ConflictError: If the user still owns bank accounts
        """
        with self.storage.session() as session:
            session.lock(("users", user_id))

            user = self._load_user(session, user_id)
            principal = self._find_by_email(session, principal_email)
            if not principal:
                raise NotFoundError("User not found")
            assert_is_self(principal, user.id)

            if session.find(self.accounts_table, {"owner_id": user.id}):
                raise ConflictError("Cannot delete user with open accounts")

            session.delete(self.table_name, user.id)

        log_action(
            self.logger, "info", "User deleted",
            user_id=user_id, action="delete_user", resource=f"user:{user_id}"
        )

    def authenticate(self, email: str, password: str) -> User:
        """Check login credentials, returning the user on success"""
        user = self._find_by_email(self.storage, email)
        if not user or not verify_password(password, user.password_hash):
            log_action(
                self.logger, "warning", "Authentication failed",
                action="login_failed", resource="auth"
            )
            raise ForbiddenError("Invalid email or password")
        return user

    def _load_user(self, source, user_id: str) -> User:
        data = source.load(self.table_name, user_id)
        if not data:
            raise NotFoundError("User not found")
        return self._user_from_dict(data)

    def _find_by_email(self, source, email: str) -> Optional[User]:
        """Find a user by exact email using the storage or an open session"""
        matches = source.find(self.table_name, {"email": email})
        if matches:
            return self._user_from_dict(matches[0])
        return None

    def _save_user(self, session: StorageSession, user: User) -> None:
        session.save(self.table_name, user.id, user.to_dict())

    def _user_from_dict(self, data: Dict) -> User:
        """Convert dictionary to User"""
        return User(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name'],
            email=data['email'],
            phone_number=data['phone_number'],
            address=Address(**data['address']),
            password_hash=data['password_hash']
        )
