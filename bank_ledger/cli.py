"""
Interactive Text Menu

Drives a BankSession from line-oriented input. Input and output functions are
injectable so the menu can be scripted.
"""

import argparse
import getpass
from decimal import Decimal
from typing import Callable, List, Optional

from .config import get_config
from .errors import InvalidAmount, LedgerError
from .ledger import Ledger
from .logging_config import setup_logging
from .money import as_money, format_money
from .sessions import BankSession, SessionRole

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


class BankCLI:
    """Top-level, staff and customer menus over one session"""
    
    def __init__(self, session: BankSession, input_fn: Optional[InputFn] = None,
                 output_fn: Optional[OutputFn] = None, secret_fn: Optional[InputFn] = None):
        self.session = session
        self._input = input_fn or input
        self._output = output_fn or print
        self._secret = secret_fn or self._input
    
    def ask(self, prompt: str) -> str:
        return self._input(prompt).strip()
    
    def ask_amount(self, prompt: str) -> Decimal:
        """Re-prompt until a whole-cent amount within range is entered"""
        while True:
            try:
                return as_money(self.ask(prompt))
            except InvalidAmount as e:
                self._output(f"Enter a valid number. {e}")
    
    def run(self) -> None:
        while not self.session.closed:
            self._output("\n--- Simple Bank ---")
            self._output("1) Staff login")
            self._output("2) Customer login (card + PIN)")
            self._output("3) Exit")
            try:
                choice = self.ask("Choose: ")
            except EOFError:
                choice = "3"
            
            if choice == "1":
                self._guarded(self.staff_menu)
            elif choice == "2":
                self._guarded(self.customer_menu)
            elif choice == "3":
                self._guarded(self.session.exit)
                self._output("Goodbye.")
            else:
                self._output("Invalid option.")
    
    def _guarded(self, action: Callable[[], None]) -> None:
        """Run a menu action, reporting ledger errors without leaving the loop"""
        try:
            action()
        except LedgerError as e:
            self._output(str(e))
        except EOFError:
            self._output("")
            self._shutdown()

    def _shutdown(self) -> None:
        """Leave any open session and persist when input runs out"""
        try:
            if self.session.role == SessionRole.OPERATOR:
                self.session.back()
            elif self.session.role == SessionRole.CUSTOMER:
                self.session.logout()
        except LedgerError as e:
            self._output(str(e))
        if not self.session.closed:
            try:
                self.session.exit()
            except LedgerError as e:
                self._output(str(e))
    
    def staff_menu(self) -> None:
        self.session.staff_login(self._secret("Enter staff password: "))
        
        while True:
            self._output("\n--- Staff Menu ---")
            self._output("1) Create new account (no card)")
            self._output("2) Register card + PIN")
            self._output("3) List accounts")
            self._output("4) Back")
            choice = self.ask("Choose: ")
            
            if choice == "4":
                self.session.back()
                return
            try:
                if choice == "1":
                    self.create_account()
                elif choice == "2":
                    self.register_card()
                elif choice == "3":
                    self.list_accounts()
                else:
                    self._output("Invalid option.")
            except LedgerError as e:
                self._output(str(e))
    
    def create_account(self) -> None:
        owner = self.ask("Owner name: ")
        initial = self.ask_amount("Initial deposit: ")
        account_id = self.session.create_account(owner, initial)
        self._output(f"Created account ID: {account_id}")
    
    def register_card(self) -> None:
        account_id = self.ask("Enter account ID: ")
        card = self.ask("16-digit card number: ")
        pin = self._secret("4-digit PIN: ").strip()
        self.session.register_card(account_id, card, pin)
        self._output("Card registered successfully.")
    
    def list_accounts(self) -> None:
        self._output("\nAccounts:")
        for summary in self.session.list_accounts():
            card = f"card:{summary.card_number}" if summary.has_card else "(no card)"
            self._output(
                f"ID={summary.account_id} | Owner={summary.owner_name} | "
                f"Balance={format_money(summary.balance)} | {card}"
            )
    
    def customer_menu(self) -> None:
        card = self.ask("Enter 16-digit card: ")
        pin = self._secret("Enter 4-digit PIN: ").strip()
        summary = self.session.customer_login(card, pin)
        self._output(f"Welcome, {summary.owner_name}!")
        
        while True:
            self._output("\n--- Customer Menu ---")
            self._output("1) Check balance  2) Deposit  3) Withdraw  4) Logout")
            choice = self.ask("Choose: ")
            
            if choice == "4":
                self.session.logout()
                self._output("Logged out.")
                return
            try:
                if choice == "1":
                    self._output(f"Balance: {format_money(self.session.check_balance())}")
                elif choice == "2":
                    self.session.deposit(self.ask_amount("Deposit amount: "))
                    self._output("Deposited.")
                elif choice == "3":
                    self.session.withdraw(self.ask_amount("Withdraw amount: "))
                    self._output("Withdrawn.")
                else:
                    self._output("Invalid option.")
            except LedgerError as e:
                self._output(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bank-ledger",
        description="Single-operator card ledger with a text menu"
    )
    parser.add_argument("--data-file", help="Path of the JSON store (default from BANK_LEDGER_DATA_FILE)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    parser.add_argument("--log-file", help="Write logs to this file instead of stderr")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    
    config = get_config()
    updates = {
        key: value for key, value in (
            ("data_file", args.data_file),
            ("log_level", args.log_level),
            ("log_file", args.log_file),
        ) if value
    }
    if updates:
        config = config.model_copy(update=updates)
    
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    
    ledger = Ledger.from_config(config)
    if ledger.load_error:
        print(f"Warning: {ledger.load_error}")
        if ledger.gateway.backup_path:
            print(f"Unreadable store copied to {ledger.gateway.backup_path}")
    if not config.staff_secret:
        print("Staff login disabled: set BANK_LEDGER_STAFF_SECRET to enable it.")
    
    session = BankSession(ledger, config.staff_secret)
    try:
        BankCLI(session, secret_fn=getpass.getpass).run()
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 130
    return 0
