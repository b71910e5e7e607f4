"""
Request dependencies: the banking system instance and the authenticated principal
"""

from typing import Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..system import BankingSystem
from .tokens import decode_access_token


security = HTTPBearer(auto_error=False)

_banking_system: Optional[BankingSystem] = None


def get_banking_system() -> BankingSystem:
    """Get the process-wide banking system, creating it on first use"""
    global _banking_system
    if _banking_system is None:
        _banking_system = BankingSystem()
    return _banking_system


def get_principal(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    """Dependency that validates the bearer JWT and returns the caller's email"""
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        return decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")
