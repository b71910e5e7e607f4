"""
Transaction History Module

Records completed transfers and serves them back to the parties involved.
Transactions are write-once: nothing in this module updates or deletes one.
They keep plain account ids, so history survives the deletion of either
account and the missing side is rendered as a tombstone.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List
import uuid

from .accounts import AccountManager, BankAccount
from .authorization import assert_owns_account, assert_party, is_party
from .errors import NotFoundError, ValidationError
from .logging_config import get_logger
from .money import ZERO, format_amount
from .storage import StorageInterface, StorageRecord, StorageSession
from .users import UserManager


@dataclass
class Transaction(StorageRecord):
    """
    Immutable record of one completed transfer
    """
    from_account_id: str
    to_account_id: str
    amount: Decimal
    from_owner_id: str
    to_owner_id: str

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))

        if self.amount <= ZERO:
            raise ValidationError("Transaction amount must be positive")

    def involves(self, account_id: str) -> bool:
        """Check if the account is the source or the destination"""
        return account_id in (self.from_account_id, self.to_account_id)


class TransactionLedger:
    """
    Records transfers and answers ownership-scoped history queries
    """

    def __init__(
        self,
        storage: StorageInterface,
        user_manager: UserManager,
        account_manager: AccountManager
    ):
        self.storage = storage
        self.user_manager = user_manager
        self.account_manager = account_manager
        self.table_name = "transactions"
        self.logger = get_logger("eagle_bank.transactions")

    def record_transfer(
        self,
        session: StorageSession,
        source: BankAccount,
        destination: BankAccount,
        amount: Decimal
    ) -> Transaction:
        """Stage the record of a transfer in the caller's unit of work"""
        now = datetime.now(timezone.utc)
        transaction = Transaction(
            id=f"tan-{uuid.uuid4().hex}",
            created_at=now,
            updated_at=now,
            from_account_id=source.id,
            to_account_id=destination.id,
            amount=amount,
            from_owner_id=source.owner_id,
            to_owner_id=destination.owner_id
        )
        session.save(self.table_name, transaction.id, self._transaction_to_dict(transaction))
        return transaction

    def get_transaction(self, transaction_id: str, principal_email: str) -> Transaction:
        """
        Get a transaction the principal sent or received

        Raises:
            NotFoundError: If the transaction does not exist
            ForbiddenError: If the principal is not a party to it
        """
        user = self.user_manager.resolve_principal(principal_email)

        data = self.storage.load(self.table_name, transaction_id)
        if not data:
            raise NotFoundError("Transaction not found")
        transaction = self._transaction_from_dict(data)

        assert_party(user, transaction, self.account_manager.account_ids_for_owner(user.id))
        return transaction

    def list_transactions(self, principal_email: str) -> List[Transaction]:
        """Get every transaction touching the principal's accounts, newest first"""
        user = self.user_manager.resolve_principal(principal_email)
        owned_ids = set(self.account_manager.account_ids_for_owner(user.id))

        transactions = [
            transaction for transaction in self._load_all()
            if is_party(user, transaction, owned_ids)
        ]
        return self._newest_first(transactions)

    def list_account_transactions(self, account_id: str, principal_email: str) -> List[Transaction]:
        """Get every transaction touching one of the principal's accounts, newest first"""
        user = self.user_manager.resolve_principal(principal_email)

        account = self.account_manager.find_account(account_id)
        if not account:
            raise NotFoundError("Account not found")
        assert_owns_account(user, account)

        transactions = [
            transaction for transaction in self._load_all()
            if transaction.involves(account_id)
        ]
        return self._newest_first(transactions)

    def describe(self, transaction: Transaction) -> Dict[str, Any]:
        """
        Render a transaction with both sides resolved.

        A side whose account has since been deleted is rendered as a
        tombstone carrying only the id.
        """
        return {
            "id": transaction.id,
            "amount": transaction.amount,
            "created_at": transaction.created_at,
            "from_account": self._describe_side(transaction.from_account_id),
            "to_account": self._describe_side(transaction.to_account_id),
        }

    def _describe_side(self, account_id: str) -> Dict[str, Any]:
        account = self.account_manager.find_account(account_id)
        if account is None:
            return {"id": account_id, "deleted": True}
        return {
            "id": account.id,
            "deleted": False,
            "bank_name": account.bank_name,
            "sort_code": account.sort_code,
            "account_number": account.account_number,
        }

    def _load_all(self) -> List[Transaction]:
        return [self._transaction_from_dict(data) for data in self.storage.load_all(self.table_name)]

    def _newest_first(self, transactions: List[Transaction]) -> List[Transaction]:
        return sorted(transactions, key=lambda t: (t.created_at, t.id), reverse=True)

    def _transaction_to_dict(self, transaction: Transaction) -> Dict:
        """Convert Transaction to dictionary for storage"""
        result = transaction.to_dict()
        result['amount'] = format_amount(transaction.amount)
        return result

    def _transaction_from_dict(self, data: Dict) -> Transaction:
        """Convert dictionary to Transaction"""
        return Transaction(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            from_account_id=data['from_account_id'],
            to_account_id=data['to_account_id'],
            amount=Decimal(data['amount']),
            from_owner_id=data['from_owner_id'],
            to_owner_id=data['to_owner_id']
        )
