"""
Local credential provider standing in for the hosted auth service.

Accounts and sessions live in the same DataStore as everything else. A
session is an opaque token; signing out flips it inactive rather than
deleting it, since the store contract has no delete.
"""
import hashlib
import hmac
import secrets
from typing import Optional

from .data import DataStore
from .logs import get_logger
from .models import Account, AuthSession
from .recovery import NotAuthenticated, ValidationError

log = get_logger("auth")

HASH_ITERATIONS = 120_000


def hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), bytes.fromhex(salt), HASH_ITERATIONS)
    return digest.hex()


class LocalAuthProvider:

    def __init__(self, store: DataStore):
        self.store = store

    def _find_account(self, email: str) -> Optional[Account]:
        row = self.store.select_one(Account.table, {"email": email.strip().lower()})
        return Account.from_record(row) if row else None

    def _open_session(self, account: Account) -> AuthSession:
        session = AuthSession(user_id=account.id)
        self.store.insert(AuthSession.table, session.to_record())
        log.info(f"Session opened for account {account.id}")
        return session

    def sign_up(self, email: str, password: str) -> AuthSession:
        """Register an account and sign it in."""
        if self._find_account(email) is not None:
            raise ValidationError("User already registered")

        salt = secrets.token_hex(16)
        account = Account(email=email.strip().lower(), salt=salt, password_hash=hash_password(password, salt))
        self.store.insert(Account.table, account.to_record())
        log.info(f"Account registered: {account.email}")
        return self._open_session(account)

    def sign_in(self, email: str, password: str) -> AuthSession:
        account = self._find_account(email)
        if account is None or not hmac.compare_digest(account.password_hash, hash_password(password, account.salt)):
            log.warning(f"Failed sign-in for {email!r}")
            raise NotAuthenticated("Invalid login credentials")
        return self._open_session(account)

    def sign_out(self, session_id: str) -> None:
        row = self.store.get(AuthSession.table, session_id)
        if row is None or not row.get("active"):
            return
        self.store.update(AuthSession.table, session_id, {"active": False})
        log.info(f"Session closed for account {row['user_id']}")

    def current(self, session_id: Optional[str]) -> Account:
        """Return the account behind an active session."""
        if not session_id:
            raise NotAuthenticated("No active session")
        row = self.store.get(AuthSession.table, session_id)
        if row is None or not row.get("active"):
            raise NotAuthenticated("Session expired or signed out")
        account = self.store.get(Account.table, row["user_id"])
        if account is None:
            raise NotAuthenticated("Session account no longer exists")
        return Account.from_record(account)
