"""
Account Management Module

Holds the in-memory ledger: accounts keyed by id in insertion order, a card
index, and the invariants that must hold after every mutation:

- no two accounts share an account id
- no two accounts share a card number
- an account has a card number exactly when it has a PIN verifier
- no balance is ever negative
"""

import copy
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional

from .errors import (
    CardAlreadyBound, CredentialAlreadySet, DuplicateId, InsufficientFunds,
    InvalidAmount, InvalidCardFormat, InvalidPinFormat,
)
from .money import MAX_AMOUNT, ZERO, as_money, format_money

CARD_PATTERN = re.compile(r"[0-9]{16}")
PIN_PATTERN = re.compile(r"[0-9]{4}")


def validate_card_number(card_number: str) -> str:
    """Return the card number if it is exactly 16 ASCII digits"""
    if not isinstance(card_number, str) or not CARD_PATTERN.fullmatch(card_number):
        raise InvalidCardFormat("Card must be 16 digits")
    return card_number


def validate_pin(pin: str) -> str:
    """Return the PIN if it is exactly 4 ASCII digits"""
    if not isinstance(pin, str) or not PIN_PATTERN.fullmatch(pin):
        raise InvalidPinFormat("PIN must be 4 digits")
    return pin


@dataclass
class Account:
    """
    One customer's funds plus an optional card + PIN credential.
    
    The credential fields are set together, once, through
    AccountStore.bind_credential; the balance only moves through
    AccountStore.adjust_balance.
    """
    account_id: str
    owner_name: str
    balance: Decimal = ZERO
    card_number: Optional[str] = None
    pin_verifier: Optional[str] = None
    
    def __post_init__(self):
        self.balance = as_money(self.balance)
        if self.balance < ZERO:
            raise InvalidAmount("Balance cannot be negative")
        if (self.card_number is None) != (self.pin_verifier is None):
            raise ValueError("Card number and PIN verifier must be set together")
    
    @property
    def has_card(self) -> bool:
        """Check if a credential is bound to this account"""
        return self.card_number is not None


class AccountStore:
    """
    Mapping of account id to Account with uniqueness enforcement
    """
    
    def __init__(self, accounts: Optional[Iterable[Account]] = None, id_prefix: str = "ACC"):
        self.id_prefix = id_prefix
        self._id_pattern = re.compile(re.escape(id_prefix) + r"([0-9]+)")
        self._accounts: Dict[str, Account] = {}
        self._cards: Dict[str, str] = {}  # card number -> account id
        
        for account in accounts or ():
            self.insert(account)
    
    def __len__(self) -> int:
        return len(self._accounts)
    
    def __iter__(self) -> Iterator[Account]:
        return iter(list(self._accounts.values()))
    
    def __contains__(self, account_id: str) -> bool:
        return account_id in self._accounts
    
    def accounts(self) -> List[Account]:
        """All accounts in insertion order"""
        return list(self._accounts.values())
    
    def allocate_id(self) -> str:
        """
        Produce an id not currently in use.
        
        Scans ids of the form <prefix><number>, takes the highest number and
        returns the next one. Ids outside the scheme are ignored, gaps are
        tolerated, and a number seen in the store is never handed out again.
        """
        highest = 0
        for account_id in self._accounts:
            match = self._id_pattern.fullmatch(account_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{self.id_prefix}{highest + 1}"
    
    def insert(self, account: Account) -> None:
        """
        Add a new account
        
        Raises:
            DuplicateId: If the account id is already present
            CardAlreadyBound: If the account carries a card already bound elsewhere
        """
        if account.account_id in self._accounts:
            raise DuplicateId(f"Account {account.account_id} already exists")
        if account.card_number is not None and account.card_number in self._cards:
            raise CardAlreadyBound("Card already registered")
        
        self._accounts[account.account_id] = account
        if account.card_number is not None:
            self._cards[account.card_number] = account.account_id
    
    def find_by_id(self, account_id: str) -> Optional[Account]:
        """Look up an account by id; None when absent"""
        return self._accounts.get(account_id)
    
    def find_by_card(self, card_number: str) -> Optional[Account]:
        """Look up an account by card number; None when absent"""
        account_id = self._cards.get(card_number)
        if account_id is None:
            return None
        return self._accounts[account_id]
    
    def bind_credential(self, account: Account, card_number: str, pin_verifier: str) -> None:
        """
        Bind a card number and PIN verifier to an account, both at once
        
        Raises:
            CardAlreadyBound: If another account already holds the card
            CredentialAlreadySet: If the account already has a card
        """
        holder = self._cards.get(card_number)
        if holder is not None and holder != account.account_id:
            raise CardAlreadyBound("Card already registered")
        if account.has_card:
            raise CredentialAlreadySet(f"Account {account.account_id} already has a card")
        
        account.card_number, account.pin_verifier = card_number, pin_verifier
        self._cards[card_number] = account.account_id
    
    def adjust_balance(self, account: Account, delta: Decimal) -> Decimal:
        """
        Apply a signed delta to an account balance
        
        Returns:
            The new balance
            
        Raises:
            InsufficientFunds: If the result would be negative
            InvalidAmount: If the result would exceed MAX_AMOUNT
        """
        new_balance = account.balance + as_money(delta)
        if new_balance < ZERO:
            raise InsufficientFunds("Insufficient funds")
        if new_balance > MAX_AMOUNT:
            raise InvalidAmount(f"Balance cannot exceed {format_money(MAX_AMOUNT)}")
        account.balance = new_balance
        return new_balance
    
    def snapshot(self) -> "AccountStore":
        """Independent deep copy, used to stage or roll back a mutation"""
        return AccountStore(copy.deepcopy(self.accounts()), id_prefix=self.id_prefix)
    
    def restore(self, other: "AccountStore") -> None:
        """Replace this store's contents with another store's, in place"""
        self._accounts = {a.account_id: a for a in other.accounts()}
        self._cards = {a.card_number: a.account_id for a in other.accounts() if a.card_number is not None}
