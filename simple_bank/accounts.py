"""
Account Ledger Module

A single account's balance and its append-only transaction history.
Deposits, withdrawals and transfers never raise for business failures;
they return an OperationResult carrying the user-facing message.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from contextlib import ExitStack, contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple
from enum import Enum
import threading

from .currency import Amount, ZERO, display_plain, to_decimal
from .logging_config import get_logger, log_action


class TransactionKind(Enum):
    """Kinds of ledger entries"""
    OPEN = "Initial Balance"  # Written once, at account creation
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"     # Also used for the sending side of a transfer
    TRANSFER = "Transfer"     # Receiving side of a transfer


@dataclass(frozen=True)
class Transaction:
    """
    Immutable ledger entry

    debit is money leaving the account, credit is money arriving.
    resulting_balance is the account balance right after the entry.
    """
    timestamp: datetime
    kind: TransactionKind
    debit: Decimal
    credit: Decimal
    resulting_balance: Decimal
    description: str = ""

    @property
    def date(self) -> str:
        """Timestamp as shown in the history table, e.g. '2024-05-01 09:30'"""
        return self.timestamp.strftime('%Y-%m-%d %H:%M')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'date': self.date,
            'kind': self.kind.value,
            'debit': display_plain(self.debit),
            'credit': display_plain(self.credit),
            'resulting_balance': display_plain(self.resulting_balance),
            'description': self.description
        }


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a balance-changing operation"""
    success: bool
    message: str
    new_balance: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message,
            'new_balance': display_plain(self.new_balance)
        }


@contextmanager
def _hold_locks(*accounts: 'BankAccount') -> Iterator[None]:
    """Acquire the locks of several accounts in a stable order"""
    unique = {id(account): account for account in accounts}
    with ExitStack() as stack:
        for key in sorted(unique):
            stack.enter_context(unique[key]._lock)
        yield


class BankAccount:
    """
    Bank account with a balance and an append-only transaction log

    Every balance change and its ledger entry happen together under the
    account's lock. The ledger is only ever appended to.
    """

    def __init__(self, owner: str, initial_balance: Amount = 0):
        self._owner = owner
        self._balance = to_decimal(initial_balance)
        self._transactions: List[Transaction] = []
        self._lock = threading.RLock()
        self.logger = get_logger("simple_bank.accounts")

        if self._balance < ZERO:
            self.logger.warning(f"Account {owner} opened with negative balance {self._balance}")

        self._log_transaction(TransactionKind.OPEN, ZERO, ZERO, "Account created")
        log_action(
            self.logger, "info", f"Account created for {owner}",
            user_id=owner, action="create_account", resource=f"account:{owner}",
            extra={"initial_balance": display_plain(self._balance)}
        )

    def __repr__(self) -> str:
        return f"BankAccount(owner={self._owner!r}, balance={self._balance!r})"

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        """Snapshot of the ledger in chronological order"""
        with self._lock:
            return tuple(self._transactions)

    def get_username(self) -> str:
        return self._owner

    def get_balance(self) -> Decimal:
        return self._balance

    def get_transactions(self) -> Tuple[Transaction, ...]:
        return self.transactions

    def deposit(self, amount: Amount) -> OperationResult:
        """
        Add funds to the account

        Args:
            amount: Amount to deposit, must be positive

        Returns:
            OperationResult; a non-positive amount fails without side effects
        """
        amount = to_decimal(amount)

        with self._lock:
            if amount <= ZERO:
                return self._reject("deposit", amount, "Deposit amount must be positive.")

            self._balance += amount
            self._log_transaction(TransactionKind.DEPOSIT, ZERO, amount)
            new_balance = self._balance

        self._log_mutation("deposit", amount, new_balance)
        return OperationResult(
            True,
            f"Deposit of {display_plain(amount)} successful! New Balance: {display_plain(new_balance)}.",
            new_balance
        )

    def withdraw(self, amount: Amount) -> OperationResult:
        """
        Take funds out of the account

        Insufficient funds is checked before positivity, so an amount larger
        than the balance always reports insufficient funds.

        Args:
            amount: Amount to withdraw

        Returns:
            OperationResult; failures leave balance and ledger unchanged
        """
        amount = to_decimal(amount)

        with self._lock:
            if amount > self._balance:
                return self._reject("withdraw", amount, "Your balance is insufficient.")
            if amount <= ZERO:
                return self._reject("withdraw", amount, "Withdrawal amount must be positive.")

            self._balance -= amount
            self._log_transaction(TransactionKind.WITHDRAW, amount, ZERO)
            new_balance = self._balance

        self._log_mutation("withdraw", amount, new_balance)
        return OperationResult(
            True,
            f"Withdrawal of {display_plain(amount)} successful! New Balance: {display_plain(new_balance)}.",
            new_balance
        )

    def transfer(self, amount: Amount, recipient: 'BankAccount') -> OperationResult:
        """
        Move funds to another account

        The sender records a Withdraw entry and the recipient a Transfer
        entry. Both steps run while holding both accounts' locks; if the
        recipient side fails the sender is re-credited and the error is
        raised.

        Args:
            amount: Amount to transfer
            recipient: Existing account receiving the funds

        Returns:
            OperationResult naming the recipient and the sender's new balance

        Raises:
            ValueError: If recipient is missing
        """
        if recipient is None:
            raise ValueError("Recipient account is required for transfer")

        amount = to_decimal(amount)

        with _hold_locks(self, recipient):
            if amount > self._balance:
                return self._reject("transfer", amount, "Your balance is insufficient for transfer.")
            if amount <= ZERO:
                return self._reject("transfer", amount, "Transfer amount must be positive.")

            self.withdraw(amount)
            try:
                recipient._receive_transfer(amount, self._owner)
            except Exception:
                self._reverse_transfer(amount, recipient.owner)
                raise
            new_balance = self._balance

        log_action(
            self.logger, "info", f"Transfer of {amount} from {self._owner} to {recipient.owner}",
            user_id=self._owner, action="transfer", resource=f"account:{self._owner}",
            extra={
                "amount": display_plain(amount),
                "recipient": recipient.owner,
                "new_balance": display_plain(new_balance)
            }
        )
        return OperationResult(
            True,
            f"Transfer of {display_plain(amount)} to {recipient.owner} successful! New Balance: {display_plain(new_balance)}.",
            new_balance
        )

    def _receive_transfer(self, amount: Decimal, from_owner: str) -> None:
        """Credit side of a transfer; the sender has already validated amount"""
        with self._lock:
            self._balance += amount
            self._log_transaction(TransactionKind.TRANSFER, ZERO, amount, f"Transfer from {from_owner}")
            new_balance = self._balance

        self._log_mutation("receive_transfer", amount, new_balance)

    def _reverse_transfer(self, amount: Decimal, recipient_owner: str) -> None:
        """Re-credit the sender when the recipient side of a transfer failed"""
        with self._lock:
            self._balance += amount
            self._log_transaction(
                TransactionKind.DEPOSIT, ZERO, amount, f"Transfer to {recipient_owner} reversed"
            )
        self.logger.error(f"Transfer of {amount} from {self._owner} to {recipient_owner} failed, reversed")

    def _log_transaction(self, kind: TransactionKind, debit: Decimal, credit: Decimal,
                         description: str = "") -> None:
        """Append a ledger entry for the current balance (caller holds the lock)"""
        self._transactions.append(Transaction(
            timestamp=datetime.now(timezone.utc),
            kind=kind,
            debit=debit,
            credit=credit,
            resulting_balance=self._balance,
            description=description
        ))

    def _reject(self, action: str, amount: Decimal, message: str) -> OperationResult:
        log_action(
            self.logger, "warning", f"{action} rejected: {message}",
            user_id=self._owner, action=action, resource=f"account:{self._owner}",
            extra={"amount": display_plain(amount), "balance": display_plain(self._balance)}
        )
        return OperationResult(False, message, self._balance)

    def _log_mutation(self, action: str, amount: Decimal, new_balance: Decimal) -> None:
        log_action(
            self.logger, "info", f"{action} of {amount} on {self._owner}",
            user_id=self._owner, action=action, resource=f"account:{self._owner}",
            extra={"amount": display_plain(amount), "new_balance": display_plain(new_balance)}
        )


def create_account(owner: str, initial_balance: Amount = 0) -> BankAccount:
    """Open an account; initial_balance is not validated"""
    return BankAccount(owner, initial_balance)


def deposit(account: BankAccount, amount: Amount) -> OperationResult:
    return account.deposit(amount)


def withdraw(account: BankAccount, amount: Amount) -> OperationResult:
    return account.withdraw(amount)


def transfer(account: BankAccount, amount: Amount,
             recipient: Optional[BankAccount]) -> OperationResult:
    return account.transfer(amount, recipient)


def get_balance(account: BankAccount) -> Decimal:
    return account.get_balance()


def get_transactions(account: BankAccount) -> Tuple[Transaction, ...]:
    return account.get_transactions()
