"""
Storage Backend Module

Provides the durable store for the ledger: an abstract storage interface with
JSON file (persistence) and in-memory (testing) implementations, the pydantic
schema of the on-disk records, and the gateway that turns an AccountStore into
a document and back.

On-disk document:

    {"accounts": [{"accountId": "ACC1", "ownerName": "Ada", "balance": 100.50,
                   "cardNumber": null, "pinVerifier": null}, ...]}

Record order is insertion order and survives a load/save round trip.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import copy
import json
import os
import shutil
import tempfile
import threading

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaError

from .accounts import Account, AccountStore
from .errors import LedgerError, StoreLoadError, StoreSaveError
from .logging_config import get_logger, log_action
from .money import CENT

logger = get_logger("bank_ledger.storage")


class AccountRecord(BaseModel):
    """One account as stored on disk; field names are fixed for compatibility"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    
    account_id: str = Field(..., alias="accountId", min_length=1)
    owner_name: str = Field(..., alias="ownerName")
    balance: Decimal
    card_number: Optional[str] = Field(None, alias="cardNumber")
    pin_verifier: Optional[str] = Field(None, alias="pinVerifier")
    
    @field_validator("balance")
    @classmethod
    def _round_to_cents(cls, balance: Decimal) -> Decimal:
        # Files from the earlier tool hold binary doubles such as 0.30000000000000004
        try:
            return balance.quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            raise ValueError(f"balance out of range: {balance}")
    
    @classmethod
    def from_account(cls, account: Account) -> "AccountRecord":
        return cls(
            account_id=account.account_id,
            owner_name=account.owner_name,
            balance=account.balance,
            card_number=account.card_number,
            pin_verifier=account.pin_verifier
        )
    
    def to_account(self) -> Account:
        return Account(
            account_id=self.account_id,
            owner_name=self.owner_name,
            balance=self.balance,
            card_number=self.card_number,
            pin_verifier=self.pin_verifier
        )


class LedgerDocument(BaseModel):
    """The whole store: a sequence of account records"""
    accounts: List[AccountRecord] = Field(default_factory=list)


def dumps_exact(value: Any, indent: int = 2, level: int = 0) -> str:
    """
    Serialise a document like json.dumps(indent=2, ensure_ascii=False), but
    write Decimal values as JSON numbers digit for digit.
    
    Raises:
        TypeError: For keys that are not strings or values JSON cannot hold
        ValueError: For non-finite numbers
    """
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Out of range decimal value: {value}")
        return str(value)
    
    pad = "\n" + " " * (indent * (level + 1))
    closing = "\n" + " " * (indent * level)
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"Keys must be str, not {type(key).__name__}")
            items.append(f"{pad}{json.dumps(key, ensure_ascii=False)}: "
                         f"{dumps_exact(item, indent, level + 1)}")
        return "{" + ",".join(items) + closing + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [f"{pad}{dumps_exact(item, indent, level + 1)}" for item in value]
        return "[" + ",".join(items) + closing + "]"
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


class StorageInterface(ABC):
    """Abstract interface for storage backends"""
    
    @abstractmethod
    def exists(self) -> bool:
        """Check if the store has ever been written"""
        pass
    
    @abstractmethod
    def read(self) -> Any:
        """Read and parse the stored document; None for an empty store"""
        pass
    
    @abstractmethod
    def write(self, document: Dict[str, Any]) -> None:
        """Replace the stored document"""
        pass
    
    def backup(self, label: str) -> Optional[str]:
        """Copy the current document aside (default no-op)"""
        return None


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""
    
    def __init__(self, document: Any = None, exists: bool = False):
        self._document = self._copy(document)
        self._exists = exists or document is not None
        self._lock = threading.RLock()
        self.write_count = 0
    
    @staticmethod
    def _copy(document: Any) -> Any:
        # Deep copy to prevent external mutation
        return copy.deepcopy(document)
    
    def exists(self) -> bool:
        with self._lock:
            return self._exists
    
    def read(self) -> Any:
        with self._lock:
            return self._copy(self._document)
    
    def write(self, document: Dict[str, Any]) -> None:
        with self._lock:
            try:
                self._document = self._copy(document)
            except (TypeError, copy.Error) as e:
                raise StoreSaveError(f"Failed to save data: {e}") from e
            self._exists = True
            self.write_count += 1
    
    def get_document(self) -> Any:
        """Get the stored document for debugging/inspection"""
        return self.read()


class JSONFileStorage(StorageInterface):
    """JSON file storage implementation for persistence"""
    
    def __init__(self, path: Union[str, Path], atomic_writes: bool = True):
        self.path = Path(path)
        self.atomic_writes = atomic_writes
        self._lock = threading.RLock()
    
    def exists(self) -> bool:
        return self.path.exists()
    
    def read(self) -> Any:
        """Parse the file; numbers come back as Decimal, a blank file as None"""
        with self._lock:
            try:
                text = self.path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise StoreLoadError(f"Failed to load data: {e}") from e
            
            if not text.strip():
                return None
            try:
                return json.loads(text, parse_float=Decimal)
            except json.JSONDecodeError as e:
                raise StoreLoadError(f"Failed to load data: {e}") from e
    
    def write(self, document: Dict[str, Any]) -> None:
        """Write a complete snapshot, through a temp file when atomic_writes is on"""
        with self._lock:
            try:
                payload = dumps_exact(document) + "\n"
            except (TypeError, ValueError) as e:
                raise StoreSaveError(f"Failed to save data: {e}") from e
            
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                if self.atomic_writes:
                    self._write_atomic(payload)
                else:
                    self.path.write_text(payload, encoding="utf-8")
            except OSError as e:
                raise StoreSaveError(f"Failed to save data: {e}") from e
    
    def _write_atomic(self, payload: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    
    def backup(self, label: str) -> Optional[str]:
        """Copy the file to <path>.<label>-<UTC timestamp>"""
        with self._lock:
            if not self.path.exists():
                return None
            stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
            target = self.path.with_name(f"{self.path.name}.{label}-{stamp}")
            try:
                shutil.copy2(self.path, target)
            except OSError as e:
                logger.error(f"Failed to back up {self.path}: {e}")
                return None
            return str(target)


class LedgerGateway:
    """
    Loads the ledger on startup and flushes it after every mutation.
    
    load() never raises: a missing store bootstraps an empty ledger and writes
    it, a malformed store is reported through load_error and yields an empty
    ledger. save() raises StoreSaveError and leaves recovery to the caller.
    """
    
    def __init__(self, storage: StorageInterface, id_prefix: str = "ACC",
                 backup_corrupt: bool = True):
        self.storage = storage
        self.id_prefix = id_prefix
        self.backup_corrupt = backup_corrupt
        self.load_error: Optional[LedgerError] = None
        self.backup_path: Optional[str] = None
    
    def load(self) -> AccountStore:
        """Load the ledger, degrading to an empty one rather than failing"""
        self.load_error = None
        self.backup_path = None
        
        if not self.storage.exists():
            store = AccountStore(id_prefix=self.id_prefix)
            try:
                self.save(store)
            except StoreSaveError as e:
                self.load_error = e
                logger.error(f"Failed to initialise empty store: {e}")
            else:
                log_action(logger, "info", "Initialised empty store", action="bootstrap_store")
            return store
        
        try:
            store = self.from_document(self.storage.read())
        except StoreLoadError as e:
            self.load_error = e
            if self.backup_corrupt:
                self.backup_path = self.storage.backup("corrupt")
            log_action(
                logger, "error", f"Store unreadable, continuing with empty ledger: {e}",
                action="load_store", extra={"backup": self.backup_path}
            )
            return AccountStore(id_prefix=self.id_prefix)
        
        log_action(logger, "info", f"Loaded {len(store)} accounts", action="load_store")
        return store
    
    def save(self, store: AccountStore) -> None:
        """Write a complete snapshot of the ledger"""
        try:
            self.storage.write(self.to_document(store))
        except StoreSaveError as e:
            log_action(logger, "error", str(e), action="save_store")
            raise
        logger.debug(f"Saved {len(store)} accounts")
    
    def to_document(self, store: AccountStore) -> Dict[str, Any]:
        """Serialise a store to the on-disk document shape"""
        records = [AccountRecord.from_account(account) for account in store]
        return {"accounts": [r.model_dump(mode="python", by_alias=True) for r in records]}
    
    def from_document(self, document: Any) -> AccountStore:
        """
        Validate a parsed document and build a store from it
        
        Accepts {"accounts": [...]}, a bare list of records, or None (empty).
        
        Raises:
            StoreLoadError: If the schema or any ledger invariant is violated
        """
        if document is None:
            return AccountStore(id_prefix=self.id_prefix)
        if isinstance(document, list):
            document = {"accounts": document}
        
        try:
            parsed = LedgerDocument.model_validate(document)
            return AccountStore(
                (record.to_account() for record in parsed.accounts),
                id_prefix=self.id_prefix
            )
        except (SchemaError, LedgerError, ValueError, TypeError) as e:
            raise StoreLoadError(f"Malformed store: {e}") from e
