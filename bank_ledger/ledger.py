"""
Ledger Operations Module

The transactional verbs of the ledger: create account, register card,
deposit, withdraw and authenticate. Each mutation is applied to a staged copy
of the account store, persisted, and only then committed to the live store,
so memory and disk cannot diverge when a save fails.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, List, Optional
import threading

from .accounts import Account, AccountStore, validate_card_number, validate_pin
from .config import LedgerConfig, get_config
from .errors import AccountNotFound, CardNotFound, IncorrectPin, InvalidAmount, LedgerError
from .hashing import hash_pin, verify_pin
from .logging_config import get_logger, log_action, mask_card
from .money import ZERO, as_money, require_positive
from .storage import JSONFileStorage, LedgerGateway


@dataclass(frozen=True)
class AccountSummary:
    """Read-only projection of an account for listings"""
    account_id: str
    owner_name: str
    balance: Decimal
    card_number: Optional[str] = None
    
    @property
    def has_card(self) -> bool:
        return self.card_number is not None
    
    @classmethod
    def from_account(cls, account: Account) -> "AccountSummary":
        return cls(
            account_id=account.account_id,
            owner_name=account.owner_name,
            balance=account.balance,
            card_number=account.card_number
        )


class Ledger:
    """
    Validates requests, mutates the account store and persists the result
    """
    
    def __init__(self, gateway: LedgerGateway, store: Optional[AccountStore] = None):
        self.gateway = gateway
        self.store = store if store is not None else gateway.load()
        self.logger = get_logger("bank_ledger.ledger")
        # Single global mutex over every operation
        self._lock = threading.RLock()
    
    @classmethod
    def from_config(cls, config: Optional[LedgerConfig] = None) -> "Ledger":
        """Build a file-backed ledger from configuration and load it"""
        config = config or get_config()
        storage = JSONFileStorage(config.data_file, atomic_writes=config.atomic_writes)
        gateway = LedgerGateway(
            storage,
            id_prefix=config.account_id_prefix,
            backup_corrupt=config.backup_corrupt_store
        )
        return cls(gateway)
    
    @property
    def load_error(self) -> Optional[LedgerError]:
        """Error reported while loading the store, if it degraded to empty"""
        return self.gateway.load_error
    
    @contextmanager
    def _transaction(self) -> Iterator[AccountStore]:
        """Yield a staged copy of the store; persist and commit it on success"""
        with self._lock:
            staged = self.store.snapshot()
            yield staged
            self.gateway.save(staged)
            self.store.restore(staged)
    
    def _require_account(self, store: AccountStore, account_id: str) -> Account:
        account = store.find_by_id(account_id)
        if account is None:
            raise AccountNotFound(f"Account {account_id} not found")
        return account
    
    def save(self) -> None:
        """Flush the live store"""
        with self._lock:
            self.gateway.save(self.store)
    
    # Operator operations
    
    def create_account(self, owner_name: str, initial_balance=ZERO) -> str:
        """
        Create an account with no credential
        
        Args:
            owner_name: Free-text owner name
            initial_balance: Opening balance, zero or positive
            
        Returns:
            The allocated account id
            
        Raises:
            InvalidAmount: If the opening balance is negative or not a number
        """
        opening = as_money(initial_balance)
        if opening < ZERO:
            raise InvalidAmount("Initial balance cannot be negative")
        
        with self._transaction() as staged:
            account_id = staged.allocate_id()
            staged.insert(Account(account_id=account_id, owner_name=owner_name, balance=opening))
        
        log_action(
            self.logger, "info", f"Account created: {account_id}",
            role="operator", action="create_account", resource=f"account:{account_id}",
            extra={"initial_balance": str(opening)}
        )
        return account_id
    
    def register_card(self, account_id: str, card_number: str, pin: str) -> None:
        """
        Bind a card number and PIN to an account
        
        Raises:
            AccountNotFound: If the account does not exist
            InvalidCardFormat: If the card is not 16 digits
            InvalidPinFormat: If the PIN is not 4 digits
            CardAlreadyBound: If another account holds the card
            CredentialAlreadySet: If the account already has a card
        """
        with self._lock:
            self._require_account(self.store, account_id)
            validate_card_number(card_number)
            validate_pin(pin)
            
            with self._transaction() as staged:
                account = self._require_account(staged, account_id)
                staged.bind_credential(account, card_number, hash_pin(pin))
        
        log_action(
            self.logger, "info", f"Card registered for {account_id}",
            role="operator", action="register_card", resource=f"account:{account_id}",
            extra={"card": mask_card(card_number)}
        )
    
    def list_accounts(self) -> List[AccountSummary]:
        """All accounts in insertion order"""
        with self._lock:
            return [AccountSummary.from_account(account) for account in self.store]
    
    # Customer operations
    
    def authenticate(self, card_number: str, pin: str) -> str:
        """
        Resolve a card + PIN pair to the account it is bound to
        
        Returns:
            The bound account id
            
        Raises:
            CardNotFound: If no account holds the card
            IncorrectPin: If the PIN does not match the stored verifier
        """
        with self._lock:
            account = self.store.find_by_card(card_number)
            if account is None:
                log_action(
                    self.logger, "warning", "Login with unknown card",
                    role="customer", action="authenticate",
                    extra={"card": mask_card(card_number)}
                )
                raise CardNotFound("Card not found")
            
            if not verify_pin(pin, account.pin_verifier):
                log_action(
                    self.logger, "warning", "Incorrect PIN",
                    role="customer", action="authenticate",
                    resource=f"account:{account.account_id}"
                )
                raise IncorrectPin("Incorrect PIN")
            
            return account.account_id
    
    def get_balance(self, account_id: str) -> Decimal:
        with self._lock:
            return self._require_account(self.store, account_id).balance
    
    def get_summary(self, account_id: str) -> AccountSummary:
        with self._lock:
            return AccountSummary.from_account(self._require_account(self.store, account_id))
    
    def deposit(self, account_id: str, amount) -> Decimal:
        """
        Credit a positive amount
        
        Returns:
            The new balance
        """
        value = require_positive(amount)
        
        with self._transaction() as staged:
            account = self._require_account(staged, account_id)
            balance = staged.adjust_balance(account, value)
        
        log_action(
            self.logger, "info", f"Deposit to {account_id}",
            role="customer", action="deposit", resource=f"account:{account_id}",
            extra={"amount": str(value), "balance": str(balance)}
        )
        return balance
    
    def withdraw(self, account_id: str, amount) -> Decimal:
        """
        Debit a positive amount no larger than the balance
        
        Returns:
            The new balance
            
        Raises:
            InvalidAmount: If the amount is not positive
            InsufficientFunds: If the amount exceeds the balance
        """
        value = require_positive(amount)
        
        with self._transaction() as staged:
            account = self._require_account(staged, account_id)
            balance = staged.adjust_balance(account, -value)
        
        log_action(
            self.logger, "info", f"Withdrawal from {account_id}",
            role="customer", action="withdraw", resource=f"account:{account_id}",
            extra={"amount": str(value), "balance": str(balance)}
        )
        return balance
