"""
Pydantic schemas for API requests and responses
"""

from decimal import Decimal
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from ..accounts import BankAccount
from ..transactions import Transaction
from ..users import Address, User


PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class AddressModel(BaseModel):
    line1: str = Field(..., min_length=1)
    line2: Optional[str] = None
    line3: Optional[str] = None
    town: Optional[str] = None
    county: Optional[str] = None
    postcode: Optional[str] = None

    def to_address(self) -> Address:
        return Address(
            line1=self.line1,
            line2=self.line2,
            line3=self.line3,
            town=self.town,
            county=self.county,
            postcode=self.postcode
        )

    @classmethod
    def from_address(cls, address: Address) -> 'AddressModel':
        return cls(
            line1=address.line1,
            line2=address.line2,
            line3=address.line3,
            town=address.town,
            county=address.county,
            postcode=address.postcode
        )


# Auth schemas
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str


# User schemas
class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone_number: str = Field(..., pattern=PHONE_PATTERN, description="E.164, e.g. +447123456789")
    address: AddressModel
    password: str = Field(..., min_length=1)


class UpdateUserRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    address: AddressModel


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    phone_number: str
    address: AddressModel
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> 'UserResponse':
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone_number=user.phone_number,
            address=AddressModel.from_address(user.address),
            created_at=user.created_at,
            updated_at=user.updated_at
        )


# Bank account schemas
class CreateBankAccountRequest(BaseModel):
    account_type: str = Field(..., min_length=1)
    bank_name: str = Field(..., min_length=1)
    sort_code: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)
    balance: Decimal = Field(Decimal("0.00"), ge=0, description="Opening balance")


class UpdateBankAccountRequest(BaseModel):
    account_type: str = Field(..., min_length=1)
    bank_name: str = Field(..., min_length=1)
    sort_code: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)


class BankAccountResponse(BaseModel):
    id: str
    account_type: str
    bank_name: str
    sort_code: str
    account_number: str
    balance: Decimal
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: BankAccount) -> 'BankAccountResponse':
        return cls(
            id=account.id,
            account_type=account.account_type,
            bank_name=account.bank_name,
            sort_code=account.sort_code,
            account_number=account.account_number,
            balance=account.balance,
            created_at=account.created_at,
            updated_at=account.updated_at
        )


# Transaction schemas
class CreateTransactionRequest(BaseModel):
    from_account_id: str = Field(..., min_length=1)
    to_account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)


class AccountRefModel(BaseModel):
    id: str
    deleted: bool = False
    bank_name: Optional[str] = None
    sort_code: Optional[str] = None
    account_number: Optional[str] = None


class TransactionResponse(BaseModel):
    id: str
    from_account_id: str
    to_account_id: str
    amount: Decimal
    created_at: datetime
    from_account: Optional[AccountRefModel] = None
    to_account: Optional[AccountRefModel] = None

    @classmethod
    def from_transaction(cls, transaction: Transaction, described: Optional[dict] = None) -> 'TransactionResponse':
        response = cls(
            id=transaction.id,
            from_account_id=transaction.from_account_id,
            to_account_id=transaction.to_account_id,
            amount=transaction.amount,
            created_at=transaction.created_at
        )
        if described:
            response.from_account = AccountRefModel(**described["from_account"])
            response.to_account = AccountRefModel(**described["to_account"])
        return response
