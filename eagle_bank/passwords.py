"""
Password Hashing

Salted scrypt hashes stored as "salt$hash". The ledger core never inspects
the stored value; only this module creates and verifies it.
"""

import hashlib
import hmac
import secrets


def _generate_salt() -> str:
    """Generate random salt for password hashing"""
    return secrets.token_hex(16)


def _scrypt(password: str, salt: str) -> str:
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


def hash_password(password: str) -> str:
    """Hash a raw password with a fresh salt"""
    salt = _generate_salt()
    return f"{salt}${_scrypt(password, salt)}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a raw password against a stored hash"""
    if not password_hash or "$" not in password_hash:
        return False
    salt, expected = password_hash.split("$", 1)
    return hmac.compare_digest(_scrypt(password, salt), expected)
