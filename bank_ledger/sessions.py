"""
Session Module

One interactive session at a time, in exactly one of three states:
unauthenticated, operator (after the shared staff secret) or customer
(after card + PIN, bound to a single account until logout).
"""

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from .errors import InvalidStaffSecret, SessionStateError
from .hashing import secrets_match
from .ledger import AccountSummary, Ledger
from .logging_config import get_logger, log_action
from .money import ZERO


class SessionRole(Enum):
    """Session states"""
    UNAUTHENTICATED = "unauthenticated"
    OPERATOR = "operator"
    CUSTOMER = "customer"


class BankSession:
    """
    Gatekeeper in front of the ledger: every command checks the session
    state before reaching a ledger operation
    """
    
    def __init__(self, ledger: Ledger, staff_secret: str):
        self.ledger = ledger
        self._staff_secret = staff_secret
        self.role = SessionRole.UNAUTHENTICATED
        self.account_id: Optional[str] = None
        self.closed = False
        self.logger = get_logger("bank_ledger.sessions")
    
    def _require(self, role: SessionRole, command: str) -> None:
        if self.closed:
            raise SessionStateError("Session has ended")
        if self.role != role:
            raise SessionStateError(
                f"'{command}' is not available while {self.role.value}"
            )
    
    def _reset(self) -> None:
        self.role = SessionRole.UNAUTHENTICATED
        self.account_id = None
    
    # Top level
    
    def staff_login(self, secret: str) -> None:
        self._require(SessionRole.UNAUTHENTICATED, "staff_login")
        if not secrets_match(secret, self._staff_secret):
            log_action(self.logger, "warning", "Staff login rejected",
                       role="operator", action="staff_login")
            raise InvalidStaffSecret("Wrong password.")
        self.role = SessionRole.OPERATOR
        log_action(self.logger, "info", "Staff login", role="operator", action="staff_login")
    
    def customer_login(self, card_number: str, pin: str) -> AccountSummary:
        """Authenticate and bind the session to the card's account"""
        self._require(SessionRole.UNAUTHENTICATED, "customer_login")
        account_id = self.ledger.authenticate(card_number, pin)
        self.role = SessionRole.CUSTOMER
        self.account_id = account_id
        return self.ledger.get_summary(account_id)
    
    def exit(self) -> None:
        """Persist and end the session"""
        self._require(SessionRole.UNAUTHENTICATED, "exit")
        try:
            self.ledger.save()
        finally:
            self.closed = True
    
    # Operator session
    
    def create_account(self, owner_name: str, initial_balance=ZERO) -> str:
        self._require(SessionRole.OPERATOR, "create_account")
        return self.ledger.create_account(owner_name, initial_balance)
    
    def register_card(self, account_id: str, card_number: str, pin: str) -> None:
        self._require(SessionRole.OPERATOR, "register_card")
        self.ledger.register_card(account_id, card_number, pin)
    
    def list_accounts(self) -> List[AccountSummary]:
        self._require(SessionRole.OPERATOR, "list_accounts")
        return self.ledger.list_accounts()
    
    def back(self) -> None:
        """Persist, then return to the top level"""
        self._require(SessionRole.OPERATOR, "back")
        try:
            self.ledger.save()
        finally:
            self._reset()
    
    # Customer session
    
    def check_balance(self) -> Decimal:
        self._require(SessionRole.CUSTOMER, "check_balance")
        return self.ledger.get_balance(self.account_id)
    
    def deposit(self, amount) -> Decimal:
        self._require(SessionRole.CUSTOMER, "deposit")
        return self.ledger.deposit(self.account_id, amount)
    
    def withdraw(self, amount) -> Decimal:
        self._require(SessionRole.CUSTOMER, "withdraw")
        return self.ledger.withdraw(self.account_id, amount)
    
    def logout(self) -> None:
        self._require(SessionRole.CUSTOMER, "logout")
        self._reset()
