"""
Bank account endpoints
"""

from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from ..system import BankingSystem
from .deps import get_banking_system, get_principal
from .schemas import (
    BankAccountResponse, CreateBankAccountRequest, TransactionResponse,
    UpdateBankAccountRequest
)


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BankAccountResponse)
def create_account(
    request: CreateBankAccountRequest,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Open a new account for the caller"""
    account = system.create_account(
        principal,
        account_type=request.account_type,
        bank_name=request.bank_name,
        sort_code=request.sort_code,
        account_number=request.account_number,
        initial_balance=request.balance
    )
    return BankAccountResponse.from_account(account)


@router.get("", response_model=List[BankAccountResponse])
def list_accounts(
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """List the caller's accounts"""
    return [BankAccountResponse.from_account(account) for account in system.list_accounts(principal)]


@router.get("/{account_id}", response_model=BankAccountResponse)
def get_account(
    account_id: str,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get one of the caller's accounts"""
    return BankAccountResponse.from_account(system.get_account(account_id, principal))


@router.patch("/{account_id}", response_model=BankAccountResponse)
def update_account(
    account_id: str,
    request: UpdateBankAccountRequest,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Update the descriptive fields of one of the caller's accounts"""
    account = system.update_account(
        account_id,
        principal,
        account_type=request.account_type,
        bank_name=request.bank_name,
        sort_code=request.sort_code,
        account_number=request.account_number
    )
    return BankAccountResponse.from_account(account)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: str,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Close one of the caller's accounts"""
    system.delete_account(account_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{account_id}/deposit", response_model=BankAccountResponse)
def deposit(
    account_id: str,
    amount: Decimal = Query(..., gt=0),
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Deposit into one of the caller's accounts"""
    return BankAccountResponse.from_account(system.deposit(account_id, amount, principal))


@router.post("/{account_id}/withdraw", response_model=BankAccountResponse)
def withdraw(
    account_id: str,
    amount: Decimal = Query(..., gt=0),
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Withdraw from one of the caller's accounts"""
    return BankAccountResponse.from_account(system.withdraw(account_id, amount, principal))


@router.get("/{account_id}/transactions", response_model=List[TransactionResponse])
def list_account_transactions(
    account_id: str,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transaction history for one of the caller's accounts, newest first"""
    ledger = system.transaction_ledger
    return [
        TransactionResponse.from_transaction(txn, ledger.describe(txn))
        for txn in system.list_account_transactions(account_id, principal)
    ]
