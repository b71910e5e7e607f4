"""
Ownership Guard

Authorization predicates gating access to users, bank accounts and
transactions. Each check either returns silently or raises ForbiddenError;
none of them touch storage. Every denial is logged at WARNING.
"""

from typing import TYPE_CHECKING, Iterable, Optional

from .errors import ForbiddenError
from .logging_config import get_logger, log_action

if TYPE_CHECKING:
    from .accounts import BankAccount
    from .transactions import Transaction
    from .users import User


logger = get_logger("eagle_bank.authorization")


def deny(user_id: Optional[str], resource: str, message: str) -> ForbiddenError:
    """Log a refused access and build the error to raise"""
    log_action(
        logger, "warning", f"Access denied: {message}",
        user_id=user_id, action="access_denied", resource=resource
    )
    return ForbiddenError(message)


def owns_account(user: 'User', account: 'BankAccount') -> bool:
    """Check if the user owns the account"""
    return account.owner_id == user.id


def assert_owns_account(user: 'User', account: 'BankAccount',
                        message: str = "You do not own this account") -> None:
    """Fail unless the acting user owns the account"""
    if not owns_account(user, account):
        raise deny(user.id, f"account:{account.id}", message)


def assert_is_self(user: 'User', target_user_id: str) -> None:
    """Fail unless the acting user is the target user"""
    if user.id != target_user_id:
        raise deny(
            user.id, f"user:{target_user_id}",
            "You are not authorised to access this user's information"
        )


def is_party(user: 'User', transaction: 'Transaction', owned_account_ids: Iterable[str] = ()) -> bool:
    """
    Check if the user is the sender or the recipient of a transaction.

    The owner ids captured when the transfer was recorded decide the question
    even after an account is deleted; accounts the user currently owns are
    also accepted.
    """
    if user.id in (transaction.from_owner_id, transaction.to_owner_id):
        return True
    owned = set(owned_account_ids)
    return transaction.from_account_id in owned or transaction.to_account_id in owned


def assert_party(user: 'User', transaction: 'Transaction', owned_account_ids: Iterable[str] = ()) -> None:
    """Fail unless the acting user is a party to the transaction"""
    if not is_party(user, transaction, owned_account_ids):
        raise deny(user.id, f"transaction:{transaction.id}", "You are not allowed to view this transaction")
