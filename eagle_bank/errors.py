"""
Banking Error Taxonomy

Every failure raised by the core is a BankingError subclass. The kind string
lets the HTTP layer translate errors to status codes without the core knowing
about transport.
"""


class BankingError(Exception):
    """Base class for all domain errors raised by the core"""

    kind = "unexpected"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(BankingError):
    """Referenced user, bank account or transaction does not exist"""

    kind = "not_found"


class ForbiddenError(BankingError):
    """Principal is authenticated but not allowed to act on the resource"""

    kind = "forbidden"


class ConflictError(BankingError):
    """Uniqueness or referential precondition would be violated"""

    kind = "conflict"


class ValidationError(BankingError):
    """Out-of-domain input: non-positive amount, insufficient funds, etc."""

    kind = "validation"


class UnexpectedError(BankingError):
    """Any other failure. The message is safe to show to callers."""

    kind = "unexpected"

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)
