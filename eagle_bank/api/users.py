"""
User endpoints
"""

from fastapi import APIRouter, Depends, Response, status

from ..system import BankingSystem
from .deps import get_banking_system, get_principal
from .schemas import CreateUserRequest, UpdateUserRequest, UserResponse


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
def create_user(
    request: CreateUserRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Register a new user"""
    user = system.create_user(
        name=request.name,
        email=request.email,
        phone_number=request.phone_number,
        address=request.address.to_address(),
        password=request.password
    )
    return UserResponse.from_user(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Get the caller's own user record"""
    return UserResponse.from_user(system.get_user(user_id, principal))


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    request: UpdateUserRequest,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Update the caller's own user record"""
    user = system.update_user(
        user_id,
        principal,
        name=request.name,
        email=request.email,
        phone_number=request.phone_number,
        address=request.address.to_address()
    )
    return UserResponse.from_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    principal: str = Depends(get_principal),
    system: BankingSystem = Depends(get_banking_system)
):
    """Delete the caller's own user record"""
    system.delete_user(user_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
