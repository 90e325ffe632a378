"""
SessionPay Exception Hierarchy

All exceptions inherit from SessionPayError for easy catching.
Every protocol error is a precondition failure: it is raised before
any state mutation, so a rejected call leaves all state unchanged.
"""


class SessionPayError(Exception):
    """Base exception for all SessionPay errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(SessionPayError):
    """Raised when input validation fails"""
    pass


class InvalidAmount(ValidationError):
    """Raised when an amount is negative, or zero where it must be positive"""
    pass


class InvalidSignatureLength(ValidationError):
    """Raised when a signature blob is not exactly 65 bytes"""
    pass


class BalanceError(SessionPayError):
    """Raised when a balance operation fails"""
    pass


class InsufficientBalance(BalanceError):
    """Raised when a principal's balance cannot cover an amount"""
    pass


class DirectoryError(SessionPayError):
    """Raised when the node directory rejects a lookup"""
    pass


class NodeNotFound(DirectoryError):
    """Raised when a node id is not registered"""
    pass


class NodeInactive(DirectoryError):
    """Raised when a node exists but is not accepting sessions"""
    pass


class SessionError(SessionPayError):
    """Raised when a session state transition is rejected"""
    pass


class SessionNotFound(SessionError):
    """Raised when a session id was never allocated"""
    pass


class SessionNotActive(SessionError):
    """Raised when closing a session that is already closed"""
    pass


class NotSessionOwner(SessionError):
    """Raised when someone other than the session's user closes it"""
    pass


class AmountExceedsLimit(SessionError):
    """Raised when a settlement amount is above the session's cost limit"""
    pass


class SessionNotClaimable(SessionError):
    """Raised when a session is neither closed nor past its timeout"""
    pass


class NoClaimableAmount(SessionError):
    """Raised when a closed session has nothing left to claim"""
    pass


class AuthorizationError(SessionPayError):
    """Raised when authorization fails"""
    pass


class InvalidSignature(AuthorizationError):
    """Raised when a settlement signature does not recover to the node owner"""
    pass


class NotNodeOwner(AuthorizationError):
    """Raised when a caller acts on a node it does not own"""
    pass


class TransferFailed(SessionPayError):
    """Raised when an outbound value transfer fails (state is rolled back)"""
    pass


class JournalError(SessionPayError):
    """Raised when event journal operations fail"""
    pass
