"""
Ledger Engine Module

The only component allowed to change an account balance. Deposits,
withdrawals and transfers each run as one unit of work: the affected
account rows are locked (in sorted id order), every check happens before
anything is written, and all writes commit together or not at all.

Balances can never go below zero and a transfer never creates or destroys
money: the debit, the credit and the transaction record commit as one.
"""

from datetime import datetime, timezone

from .accounts import AccountManager, BankAccount
from .authorization import assert_owns_account
from .errors import ValidationError
from .logging_config import get_logger, log_action
from .money import AmountLike, add_amounts, subtract_amounts, to_positive_amount
from .storage import StorageInterface
from .transactions import Transaction, TransactionLedger
from .users import UserManager


class LedgerEngine:
    """
    Applies deposits, withdrawals and transfers to bank account balances
    """

    def __init__(
        self,
        storage: StorageInterface,
        user_manager: UserManager,
        account_manager: AccountManager,
        transaction_ledger: TransactionLedger
    ):
        self.storage = storage
        self.user_manager = user_manager
        self.account_manager = account_manager
        self.transaction_ledger = transaction_ledger
        self.logger = get_logger("eagle_bank.ledger")

    def deposit(self, account_id: str, amount: AmountLike, principal_email: str) -> BankAccount:
        """
        Add funds to an account the principal owns

        Args:
            account_id: Account to credit
            amount: Strictly positive amount
            principal_email: Authenticated caller

        Returns:
            The updated BankAccount

        Raises:
            ValidationError: If the amount is not positive
            NotFoundError: If the account does not exist
            ForbiddenError: If the principal does not own the account
        """
        amount = to_positive_amount(amount, "deposit amount")
        principal = self.user_manager.resolve_principal(principal_email)

        with self.storage.session() as session:
            session.lock((self.account_manager.accounts_table, account_id))

            account = self.account_manager.load_account(session, account_id)
            assert_owns_account(principal, account, "You are not allowed to deposit to this account")

            account.balance = add_amounts(account.balance, amount)
            account.updated_at = datetime.now(timezone.utc)
            self.account_manager.save_account(session, account)

        log_action(
            self.logger, "info", "Deposit applied",
            user_id=principal.id, action="deposit", resource=f"account:{account.id}",
            extra={"amount": str(amount), "balance": str(account.balance)}
        )
        return account

    def withdraw(self, account_id: str, amount: AmountLike, principal_email: str) -> BankAccount:
        """
        Remove funds from an account the principal owns

        Raises:
            ValidationError: If the amount is not positive or exceeds the balance
            NotFoundError: If the account does not exist
            ForbiddenError: If the principal does not own the account
        """
        amount = to_positive_amount(amount, "withdrawal amount")
        principal = self.user_manager.resolve_principal(principal_email)

        with self.storage.session() as session:
            session.lock((self.account_manager.accounts_table, account_id))

            account = self.account_manager.load_account(session, account_id)
            assert_owns_account(principal, account, "You are not allowed to withdraw from this account")

            if not account.has_funds(amount):
                log_action(
                    self.logger, "warning", "Withdrawal rejected: insufficient funds",
                    user_id=principal.id, action="withdraw", resource=f"account:{account.id}",
                    extra={"amount": str(amount)}
                )
                raise ValidationError("Insufficient funds")

            account.balance = subtract_amounts(account.balance, amount)
            account.updated_at = datetime.now(timezone.utc)
            self.account_manager.save_account(session, account)

        log_action(
            self.logger, "info", "Withdrawal applied",
            user_id=principal.id, action="withdraw", resource=f"account:{account.id}",
            extra={"amount": str(amount), "balance": str(account.balance)}
        )
        return account

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: AmountLike,
        principal_email: str
    ) -> Transaction:
        """
        Move funds from an account the principal owns to any other account

        The recipient account may belong to anyone. Only the sender account's
        ownership is checked.

        Returns:
            The recorded Transaction

        Raises:
            ValidationError: If the amount is not positive, exceeds the sender's
                balance, or both sides are the same account
            NotFoundError: If either account does not exist
            ForbiddenError: If the principal does not own the sender account
        """
        amount = to_positive_amount(amount)
        if from_account_id == to_account_id:
            raise ValidationError("Cannot transfer to the same account")
        principal = self.user_manager.resolve_principal(principal_email)

        accounts_table = self.account_manager.accounts_table
        with self.storage.session() as session:
            # Both rows locked in one call, lowest id first
            session.lock((accounts_table, from_account_id), (accounts_table, to_account_id))

            source = self.account_manager.load_account(session, from_account_id, "Sender account")
            destination = self.account_manager.load_account(session, to_account_id, "Recipient account")
            assert_owns_account(principal, source, "You are not allowed to send from this account")

            if not source.has_funds(amount):
                log_action(
                    self.logger, "warning", "Transfer rejected: insufficient funds",
                    user_id=principal.id, action="transfer", resource=f"account:{source.id}",
                    extra={"amount": str(amount), "to_account": destination.id}
                )
                raise ValidationError("Insufficient funds")

            now = datetime.now(timezone.utc)
            source.balance = subtract_amounts(source.balance, amount)
            source.updated_at = now
            destination.balance = add_amounts(destination.balance, amount)
            destination.updated_at = now

            self.account_manager.save_account(session, source)
            self.account_manager.save_account(session, destination)
            transaction = self.transaction_ledger.record_transfer(session, source, destination, amount)

        log_action(
            self.logger, "info", "Transfer completed",
            user_id=principal.id, action="transfer", resource=f"transaction:{transaction.id}",
            extra={
                "from_account": source.id,
                "to_account": destination.id,
                "amount": str(amount)
            }
        )
        return transaction
