"""
Session Directory Module

Maps usernames to accounts for one browser session and tracks which user is
logged in. Login claims a username; there is no authentication.
"""

from decimal import Decimal
from typing import Callable, Dict, Optional, Tuple
import threading
import time
import uuid

from .accounts import BankAccount, OperationResult
from .currency import Amount, ZERO, parse_amount, to_decimal
from .logging_config import get_logger, log_action


class SessionError(Exception):
    """Base class for session-level failures; str() is the user-facing message"""
    message = "Session error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class NoUserLoggedInError(SessionError):
    message = "No user is logged in."


class RecipientNotFoundError(SessionError):
    message = "Recipient does not exist."


class SessionDirectory:
    """
    Accounts known to one session plus the current user

    Accounts are created on first login and kept for the lifetime of the
    directory, so logging out and back in returns the same account.
    """

    def __init__(self, default_initial_balance: Amount = ZERO):
        self.default_initial_balance = to_decimal(default_initial_balance)
        self._accounts: Dict[str, BankAccount] = {}
        self._current_user: Optional[str] = None
        self.logger = get_logger("simple_bank.session")

    @property
    def current_user(self) -> Optional[str]:
        return self._current_user

    @property
    def usernames(self):
        return list(self._accounts)

    def login(self, username: str) -> str:
        """Log in as username, opening an account on first use"""
        if username is None or not username.strip():
            raise ValueError("Username must be a non-empty string")

        self._current_user = username
        if username not in self._accounts:
            self._accounts[username] = BankAccount(username, self.default_initial_balance)

        log_action(self.logger, "info", f"User {username} logged in",
                   user_id=username, action="login")
        return f"Welcome, {username}!"

    def logout(self) -> str:
        if self._current_user is None:
            return NoUserLoggedInError.message

        log_action(self.logger, "info", f"User {self._current_user} logged out",
                   user_id=self._current_user, action="logout")
        self._current_user = None
        return "Logout successful."

    def get_account(self, username: str) -> Optional[BankAccount]:
        return self._accounts.get(username)

    def current_account(self) -> Optional[BankAccount]:
        if self._current_user is None:
            return None
        return self._accounts.get(self._current_user)

    def require_current_account(self) -> BankAccount:
        account = self.current_account()
        if account is None:
            raise NoUserLoggedInError()
        return account

    def deposit(self, amount: Amount) -> OperationResult:
        return self.require_current_account().deposit(amount)

    def withdraw(self, amount: Amount) -> OperationResult:
        return self.require_current_account().withdraw(amount)

    def transfer(self, amount: Amount, recipient_name: str) -> OperationResult:
        account = self.require_current_account()
        recipient = self._accounts.get(recipient_name)
        if recipient is None:
            log_action(self.logger, "warning", f"Transfer to unknown recipient {recipient_name}",
                       user_id=account.owner, action="transfer",
                       extra={"recipient": recipient_name})
            raise RecipientNotFoundError()
        return account.transfer(amount, recipient)

    def handle(self, action: str, amount: Optional[str] = None,
               username: Optional[str] = None, recipient: Optional[str] = None) -> str:
        """
        Dispatch one form submission and return the message to display

        Amounts arrive as raw text and are parsed loosely; anything
        unparseable becomes zero and is rejected as non-positive.
        Any action other than login/logout needs a logged-in user; an
        unrecognised one produces an empty message. Session errors are
        turned into their messages.
        """
        try:
            if action == "login":
                return self.login(username or "")
            if action == "logout":
                return self.logout()

            self.require_current_account()
            value: Decimal = parse_amount(amount)
            if action == "deposit":
                return self.deposit(value).message
            if action == "withdraw":
                return self.withdraw(value).message
            if action == "transfer":
                return self.transfer(value, recipient or "").message
            return ""
        except SessionError as e:
            return str(e)


class SessionStore:
    """
    In-memory session directories keyed by session id

    Sessions idle for longer than idle_timeout seconds are swept whenever a
    session is created or looked up. A timeout of None keeps them until
    they are dropped.
    """

    def __init__(self, default_initial_balance: Amount = ZERO,
                 idle_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.default_initial_balance = to_decimal(default_initial_balance)
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._sessions: Dict[str, SessionDirectory] = {}
        self._last_seen: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("simple_bank.session")

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            self._expire_idle()
            self._sessions[session_id] = SessionDirectory(self.default_initial_balance)
            self._last_seen[session_id] = self._clock()
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[SessionDirectory]:
        if not session_id:
            return None
        with self._lock:
            self._expire_idle()
            directory = self._sessions.get(session_id)
            if directory is not None:
                self._last_seen[session_id] = self._clock()
            return directory

    def get_or_create(self, session_id: Optional[str]) -> Tuple[str, SessionDirectory]:
        """Return (session_id, directory), starting a new session if needed"""
        directory = self.get(session_id)
        if directory is not None:
            return session_id, directory
        new_id = self.create()
        return new_id, self._sessions[new_id]

    def drop(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)

    def expire_idle(self) -> int:
        """Drop idle sessions now; returns how many were removed"""
        with self._lock:
            return self._expire_idle()

    def _expire_idle(self) -> int:
        if self.idle_timeout is None:
            return 0
        cutoff = self._clock() - self.idle_timeout
        expired = [sid for sid, seen in self._last_seen.items() if seen <= cutoff]
        for sid in expired:
            self._sessions.pop(sid, None)
            del self._last_seen[sid]
        if expired:
            self.logger.info(f"Expired {len(expired)} idle session(s)")
        return len(expired)
