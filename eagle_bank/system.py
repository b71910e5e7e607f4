"""
Banking System Facade

Wires storage, users, accounts, ledger and transaction history together and
exposes every operation the outer layers need. Every call except
create_user takes the authenticated principal's email.
"""

from typing import List, Optional

from .accounts import AccountManager, BankAccount
from .config import get_config
from .ledger import LedgerEngine
from .money import ZERO, AmountLike
from .storage import StorageInterface, create_storage
from .transactions import Transaction, TransactionLedger
from .users import Address, User, UserManager


class BankingSystem:
    """Banking system with all components initialized"""

    def __init__(self, storage: Optional[StorageInterface] = None):
        if storage is None:
            storage = create_storage(get_config().database_url)
        self.storage = storage

        self.account_manager = AccountManager(self.storage)
        self.user_manager = UserManager(
            self.storage, accounts_table=self.account_manager.accounts_table
        )
        self.transaction_ledger = TransactionLedger(
            self.storage, self.user_manager, self.account_manager
        )
        self.ledger = LedgerEngine(
            self.storage, self.user_manager, self.account_manager, self.transaction_ledger
        )

    # Users

    def create_user(self, name: str, email: str, phone_number: str,
                    address: Address, password: str) -> User:
        return self.user_manager.create_user(name, email, phone_number, address, password)

    def get_user(self, user_id: str, principal_email: str) -> User:
        return self.user_manager.get_user(user_id, principal_email)

    def update_user(self, user_id: str, principal_email: str, name: str, email: str,
                    phone_number: str, address: Address) -> User:
        return self.user_manager.update_user(
            user_id, principal_email, name, email, phone_number, address
        )

    def delete_user(self, user_id: str, principal_email: str) -> None:
        self.user_manager.delete_user(user_id, principal_email)

    # Bank accounts

    def create_account(self, principal_email: str, account_type: str, bank_name: str,
                       sort_code: str, account_number: str,
                       initial_balance: AmountLike = ZERO) -> BankAccount:
        owner = self.user_manager.resolve_principal(principal_email)
        return self.account_manager.create_account(
            owner, account_type, bank_name, sort_code, account_number, initial_balance
        )

    def list_accounts(self, principal_email: str) -> List[BankAccount]:
        owner = self.user_manager.resolve_principal(principal_email)
        return self.account_manager.list_accounts(owner)

    def get_account(self, account_id: str, principal_email: str) -> BankAccount:
        owner = self.user_manager.resolve_principal(principal_email)
        return self.account_manager.get_owned_account(account_id, owner)

    def update_account(self, account_id: str, principal_email: str, account_type: str,
                       bank_name: str, sort_code: str, account_number: str) -> BankAccount:
        owner = self.user_manager.resolve_principal(principal_email)
        return self.account_manager.update_account(
            account_id, owner, account_type, bank_name, sort_code, account_number
        )

    def delete_account(self, account_id: str, principal_email: str) -> None:
        owner = self.user_manager.resolve_principal(principal_email)
        self.account_manager.delete_account(account_id, owner)

    # Money movement

    def deposit(self, account_id: str, amount: AmountLike, principal_email: str) -> BankAccount:
        return self.ledger.deposit(account_id, amount, principal_email)

    def withdraw(self, account_id: str, amount: AmountLike, principal_email: str) -> BankAccount:
        return self.ledger.withdraw(account_id, amount, principal_email)

    def create_transfer(self, from_account_id: str, to_account_id: str,
                        amount: AmountLike, principal_email: str) -> Transaction:
        return self.ledger.transfer(from_account_id, to_account_id, amount, principal_email)

    # Transaction history

    def get_transaction(self, transaction_id: str, principal_email: str) -> Transaction:
        return self.transaction_ledger.get_transaction(transaction_id, principal_email)

    def list_transactions(self, principal_email: str) -> List[Transaction]:
        return self.transaction_ledger.list_transactions(principal_email)

    def list_account_transactions(self, account_id: str, principal_email: str) -> List[Transaction]:
        return self.transaction_ledger.list_account_transactions(account_id, principal_email)

    def close(self) -> None:
        self.storage.close()
