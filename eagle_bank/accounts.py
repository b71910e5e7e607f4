"""
Account Management Module

Manages bank accounts owned by users: opening, listing, descriptive updates
and closing. Balances are stored here but are only ever changed by the
ledger engine.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
import uuid

from .authorization import assert_owns_account
from .errors import NotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .money import ZERO, AmountLike, format_amount, to_amount
from .storage import StorageInterface, StorageRecord, StorageSession
from .users import User


@dataclass
class BankAccount(StorageRecord):
    """
    Named balance owned by exactly one user
    """
    owner_id: str
    bank_name: str
    account_type: str
    sort_code: str
    account_number: str
    balance: Decimal = ZERO

    def __post_init__(self):
        if not self.owner_id:
            raise ValidationError("Bank account must have an owner")

        if not isinstance(self.balance, Decimal):
            self.balance = Decimal(str(self.balance))

        if self.balance < ZERO:
            raise ValidationError("Balance cannot be negative")

    def has_funds(self, amount: Decimal) -> bool:
        """Check if the balance covers the amount"""
        return self.balance >= amount


class AccountManager:
    """
    Manages account lifecycle scoped to the owning user
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.accounts_table = "bank_accounts"
        self.users_table = "users"
        self.logger = get_logger("eagle_bank.accounts")

    def create_account(
        self,
        owner: User,
        account_type: str,
        bank_name: str,
        sort_code: str,
        account_number: str,
        initial_balance: AmountLike = ZERO
    ) -> BankAccount:
        """
        Open a new account for a user

        Args:
            owner: User who will own the account
            account_type: Free-form account type, e.g. "personal"
            bank_name: Name of the bank
            sort_code: Sort code
            account_number: Account number
            initial_balance: Opening balance, must not be negative

        Returns:
            Created BankAccount object
        """
        balance = to_amount(initial_balance, "initial balance")
        if balance < ZERO:
            raise ValidationError("Initial balance cannot be negative")

        with self.storage.session() as session:
            # Serialize against deletion of the owner
            session.lock((self.users_table, owner.id))
            if not session.exists(self.users_table, owner.id):
                raise NotFoundError("User not found")

            now = datetime.now(timezone.utc)
            account = BankAccount(
                id=f"acc-{uuid.uuid4().hex}",
                created_at=now,
                updated_at=now,
                owner_id=owner.id,
                bank_name=bank_name,
                account_type=account_type,
                sort_code=sort_code,
                account_number=account_number,
                balance=balance
            )
            self.save_account(session, account)

        log_action(
            self.logger, "info", "Bank account created",
            user_id=owner.id, action="create_account", resource=f"account:{account.id}",
            extra={"account_type": account_type, "initial_balance": str(balance)}
        )
        return account

    def list_accounts(self, owner: User) -> List[BankAccount]:
        """Get all accounts owned by a user, oldest first"""
        accounts = [
            self._account_from_dict(data)
            for data in self.storage.find(self.accounts_table, {"owner_id": owner.id})
        ]
        return sorted(accounts, key=lambda account: (account.created_at, account.id))

    def get_owned_account(self, account_id: str, owner: User) -> BankAccount:
        """
        Get an account the user owns

        An account owned by someone else is reported exactly like a missing
        one so that account ids cannot be probed.
        """
        account = self.find_account(account_id)
        if not account or account.owner_id != owner.id:
            raise NotFoundError("Account not found")
        return account

    def find_account(self, account_id: str) -> Optional[BankAccount]:
        """Get account by ID, or None if it does not exist"""
        data = self.storage.load(self.accounts_table, account_id)
        if data:
            return self._account_from_dict(data)
        return None

    def update_account(
        self,
        account_id: str,
        owner: User,
        account_type: str,
        bank_name: str,
        sort_code: str,
        account_number: str
    ) -> BankAccount:
        """Overwrite an account's descriptive fields"""
        with self.storage.session() as session:
            session.lock((self.accounts_table, account_id))

            account = self.load_account(session, account_id)
            assert_owns_account(owner, account, "You are not authorized to update this account")

            account.account_type = account_type
            account.bank_name = bank_name
            account.sort_code = sort_code
            account.account_number = account_number
            account.updated_at = datetime.now(timezone.utc)
            self.save_account(session, account)

        log_action(
            self.logger, "info", "Bank account updated",
            user_id=owner.id, action="update_account", resource=f"account:{account.id}"
        )
        return account

    def delete_account(self, account_id: str, owner: User) -> None:
        """Close an account. Its transaction history is kept."""
        with self.storage.session() as session:
            session.lock((self.accounts_table, account_id))

            account = self.load_account(session, account_id)
            assert_owns_account(owner, account, "You are not authorized to delete this account")
            session.delete(self.accounts_table, account.id)

        log_action(
            self.logger, "info", "Bank account deleted",
            user_id=owner.id, action="delete_account", resource=f"account:{account_id}",
            extra={"final_balance": str(account.balance)}
        )

    def account_ids_for_owner(self, user_id: str) -> List[str]:
        """Get the ids of all accounts a user owns"""
        return [data['id'] for data in self.storage.find(self.accounts_table, {"owner_id": user_id})]

    def load_account(self, session: StorageSession, account_id: str,
                     label: str = "Account") -> BankAccount:
        """Load an account inside a unit of work"""
        data = session.load(self.accounts_table, account_id)
        if not data:
            raise NotFoundError(f"{label} not found")
        return self._account_from_dict(data)

    def save_account(self, session: StorageSession, account: BankAccount) -> None:
        """Stage an account for saving inside a unit of work"""
        if account.balance < ZERO:
            raise ValidationError("Balance cannot be negative")
        session.save(self.accounts_table, account.id, self._account_to_dict(account))

    def _account_to_dict(self, account: BankAccount) -> Dict:
        """Convert BankAccount to dictionary for storage"""
        result = account.to_dict()
        result['balance'] = format_amount(account.balance)
        return result

    def _account_from_dict(self, data: Dict) -> BankAccount:
        """Convert dictionary to BankAccount"""
        return BankAccount(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            owner_id=data['owner_id'],
            bank_name=data['bank_name'],
            account_type=data['account_type'],
            sort_code=data['sort_code'],
            account_number=data['account_number'],
            balance=Decimal(data['balance'])
        )
