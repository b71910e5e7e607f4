"""
Transfer and transaction history endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ..system import BankingSystem
from .deps import get_banking_system, get_principal
from .schemas import CreateTransactionRequest, TransactionResponse


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TransactionResponse)
def create_transaction(
    request: CreateTransactionRequest,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfer money from one of the caller's accounts to any account"""
    transaction = system.create_transfer(
        request.from_account_id,
        request.to_account_id,
        request.amount,
        principal
    )
    return TransactionResponse.from_transaction(
        transaction, system.transaction_ledger.describe(transaction)
    )


@router.get("", response_model=List[TransactionResponse])
def list_transactions(
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Every transaction the caller sent or received, newest first"""
    ledger = system.transaction_ledger
    return [
        TransactionResponse.from_transaction(txn, ledger.describe(txn))
        for txn in system.list_transactions(principal)
    ]


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get a transaction the caller sent or received"""
    transaction = system.get_transaction(transaction_id, principal)
    return TransactionResponse.from_transaction(
        transaction, system.transaction_ledger.describe(transaction)
    )
