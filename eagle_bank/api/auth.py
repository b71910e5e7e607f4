"""
Login endpoint
"""

from fastapi import APIRouter, Depends, HTTPException

from ..errors import ForbiddenError
from ..logging_config import get_logger, log_action
from ..system import BankingSystem
from .deps import get_banking_system
from .schemas import LoginRequest, LoginResponse
from .tokens import create_access_token


router = APIRouter()
logger = get_logger("eagle_bank.api.auth")


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Authenticate a user and return a JWT"""
    try:
        user = system.user_manager.authenticate(request.email, request.password)
    except ForbiddenError as e:
        raise HTTPException(status_code=401, detail=e.message)

    log_action(
        logger, "info", "User authenticated successfully",
        user_id=user.id, action="login", resource="auth"
    )
    return LoginResponse(token=create_access_token(user.email))
