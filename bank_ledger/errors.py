"""
Error Taxonomy

Every failure a ledger operation can report. All of them are recoverable:
callers catch LedgerError, report it and return to their session loop.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors"""


# Validation

class ValidationError(LedgerError, ValueError):
    """Raised when caller input is malformed"""


class InvalidAmount(ValidationError):
    """Raised when an amount is not a number, or not positive where required"""


class InvalidCardFormat(ValidationError):
    """Raised when a card number is not exactly 16 digits"""


class InvalidPinFormat(ValidationError):
    """Raised when a PIN is not exactly 4 digits"""


# Lookups

class NotFoundError(LedgerError, LookupError):
    """Raised when a referenced account or card does not exist"""


class AccountNotFound(NotFoundError):
    pass


class CardNotFound(NotFoundError):
    pass


# Conflicts

class ConflictError(LedgerError):
    """Raised when a mutation would break a uniqueness invariant"""


class DuplicateId(ConflictError):
    pass


class CardAlreadyBound(ConflictError):
    pass


class CredentialAlreadySet(ConflictError):
    pass


class InsufficientFunds(LedgerError):
    """Raised when a withdrawal would take the balance below zero"""


# Authentication

class AuthenticationError(LedgerError):
    """Raised when a secret or PIN does not match"""


class IncorrectPin(AuthenticationError):
    pass


class InvalidStaffSecret(AuthenticationError):
    pass


class SessionStateError(LedgerError):
    """Raised when an operation is not allowed in the current session state"""


# Persistence

class PersistenceError(LedgerError):
    """Raised when the durable store cannot be read or written"""


class StoreLoadError(PersistenceError):
    pass


class StoreSaveError(PersistenceError):
    pass
