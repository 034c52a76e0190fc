"""
Test suite for the session state machine
"""

import pytest
from decimal import Decimal

from bank_ledger.errors import (
    AuthenticationError, CardNotFound, IncorrectPin, InvalidStaffSecret,
    SessionStateError, StoreSaveError
)
from bank_ledger.ledger import Ledger
from bank_ledger.sessions import BankSession, SessionRole
from bank_ledger.storage import InMemoryStorage, LedgerGateway

SECRET = "correct horse battery staple"
CARD = "1111222233334444"


class TestBankSession:
    """Test role transitions and per-role command gating"""
    
    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.ledger = Ledger(LedgerGateway(self.storage))
        self.session = BankSession(self.ledger, SECRET)
    
    def _provision_customer(self, balance="100.00"):
        self.session.staff_login(SECRET)
        account_id = self.session.create_account("Ada", Decimal(balance))
        self.session.register_card(account_id, CARD, "1234")
        self.session.back()
        return account_id
    
    def test_starts_unauthenticated(self):
        assert self.session.role == SessionRole.UNAUTHENTICATED
        assert self.session.account_id is None
        assert not self.session.closed
    
    def test_staff_login(self):
        self.session.staff_login(SECRET)
        assert self.session.role == SessionRole.OPERATOR
    
    def test_wrong_staff_secret(self):
        with pytest.raises(InvalidStaffSecret):
            self.session.staff_login("admin123")
        assert self.session.role == SessionRole.UNAUTHENTICATED
    
    def test_empty_configured_secret_disables_staff_login(self):
        session = BankSession(self.ledger, "")
        with pytest.raises(AuthenticationError):
            session.staff_login("")
        assert session.role == SessionRole.UNAUTHENTICATED
    
    def test_operator_commands_require_operator(self):
        with pytest.raises(SessionStateError):
            self.session.create_account("Ada", 0)
        with pytest.raises(SessionStateError):
            self.session.register_card("ACC1", CARD, "1234")
        with pytest.raises(SessionStateError):
            self.session.list_accounts()
        with pytest.raises(SessionStateError):
            self.session.back()
    
    def test_customer_commands_require_customer(self):
        self.session.staff_login(SECRET)
        with pytest.raises(SessionStateError):
            self.session.check_balance()
        with pytest.raises(SessionStateError):
            self.session.deposit(5)
        with pytest.raises(SessionStateError):
            self.session.withdraw(5)
        with pytest.raises(SessionStateError):
            self.session.logout()
    
    def test_operator_flow(self):
        self.session.staff_login(SECRET)
        account_id = self.session.create_account("Ada", Decimal("100.00"))
        self.session.register_card(account_id, CARD, "1234")
        
        listing = self.session.list_accounts()
        assert [(s.account_id, s.has_card) for s in listing] == [("ACC1", True)]
    
    def test_back_persists_and_returns_to_top_level(self):
        self.session.staff_login(SECRET)
        writes = self.storage.write_count
        
        self.session.back()
        
        assert self.session.role == SessionRole.UNAUTHENTICATED
        assert self.storage.write_count == writes + 1
    
    def test_back_returns_to_top_level_even_when_save_fails(self):
        self.session.staff_login(SECRET)
        self.storage.write = _failing_write
        
        with pytest.raises(StoreSaveError):
            self.session.back()
        assert self.session.role == SessionRole.UNAUTHENTICATED
    
    def test_customer_flow(self):
        account_id = self._provision_customer()
        
        summary = self.session.customer_login(CARD, "1234")
        
        assert summary.owner_name == "Ada"
        assert self.session.role == SessionRole.CUSTOMER
        assert self.session.account_id == account_id
        assert self.session.check_balance() == Decimal("100.00")
        assert self.session.deposit("25") == Decimal("125.00")
        assert self.session.withdraw("125") == Decimal("0.00")
        
        self.session.logout()
        assert self.session.role == SessionRole.UNAUTHENTICATED
        assert self.session.account_id is None
    
    def test_failed_customer_login_stays_unauthenticated(self):
        self._provision_customer()
        
        with pytest.raises(IncorrectPin):
            self.session.customer_login(CARD, "0000")
        with pytest.raises(CardNotFound):
            self.session.customer_login("9999888877776666", "1234")
        
        assert self.session.role == SessionRole.UNAUTHENTICATED
        assert self.session.account_id is None
    
    def test_no_nested_sessions(self):
        self._provision_customer()
        self.session.customer_login(CARD, "1234")
        
        with pytest.raises(SessionStateError):
            self.session.staff_login(SECRET)
        with pytest.raises(SessionStateError):
            self.session.customer_login(CARD, "1234")
        with pytest.raises(SessionStateError):
            self.session.exit()
    
    def test_exit_persists_and_closes(self):
        writes = self.storage.write_count
        
        self.session.exit()
        
        assert self.session.closed
        assert self.storage.write_count == writes + 1
        with pytest.raises(SessionStateError, match="Session has ended"):
            self.session.staff_login(SECRET)


def _failing_write(document):
    raise StoreSaveError("Failed to save data: read-only file system")
