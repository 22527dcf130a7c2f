from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
from dataclasses import dataclass

from supabase import Client

from src.domain.entities.request import Identity
from src.domain.errors import EmailExistsError, InvalidCredentialsError, InvalidTokenError
from src.infrastructure.logging_config import get_logger

_log = get_logger("auth")

_PBKDF2_ROUNDS = 100_000
MAX_LOCAL_TOKENS = 1000


@dataclass(frozen=True)
class _LocalUser:
    subject_id: str
    email: str
    salt: bytes
    password_hash: bytes


class SupabaseAuthService:
    """Token verification, sign-up and sign-in backed by Supabase Auth.

    Without a Supabase client (SUPABASE_DISABLED=1 or no credentials) it runs
    in local mode: users live in process memory, ``login`` hands out opaque
    random tokens, and any other non-empty token maps to a deterministic fake
    user so local development works without an auth server. Only the newest
    MAX_LOCAL_TOKENS issued tokens stay valid.
    """

    def __init__(self, client: Client | None) -> None:
        self.client = client
        self._users: dict[str, _LocalUser] = {}
        self._tokens: dict[str, Identity] = {}
        self._lock = threading.Lock()

    @property
    def local_mode(self) -> bool:
        return self.client is None

    def verify_token(self, token: str) -> Identity:
        if not token:
            raise InvalidTokenError("Invalid or expired token")
        if self.local_mode:
            identity = self._tokens.get(token)
            if identity is not None:
                return identity
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
            return Identity(subject_id=f"fake-{digest}")
        try:  # pragma: no cover - network
            res = self.client.auth.get_user(token)
            user = res.user if res else None
        except Exception as exc:  # pragma: no cover - network
            raise InvalidTokenError("Invalid or expired token") from exc
        if not user:  # pragma: no cover - network
            raise InvalidTokenError("Invalid or expired token")
        return Identity(subject_id=user.id, email=user.email)  # pragma: no cover

    def register(self, email: str, password: str) -> None:
        email = email.strip().lower()
        if self.local_mode:
            with self._lock:
                if email in self._users:
                    raise EmailExistsError("Email already registered")
                salt = secrets.token_bytes(16)
                self._users[email] = _LocalUser(
                    subject_id=f"local-{secrets.token_hex(8)}",
                    email=email,
                    salt=salt,
                    password_hash=_hash_password(password, salt),
                )
            _log.info("Registered local user %s", email)
            return
        try:  # pragma: no cover - network
            self.client.auth.sign_up({"email": email, "password": password})
        except Exception as exc:  # pragma: no cover - network
            if "already" in str(exc).lower():
                raise EmailExistsError("Email already registered") from exc
            raise

    def login(self, email: str, password: str) -> str:
        email = email.strip().lower()
        if self.local_mode:
            user = self._users.get(email)
            if user is None or not hmac.compare_digest(
                user.password_hash, _hash_password(password, user.salt)
            ):
                raise InvalidCredentialsError("Invalid credentials")
            token = secrets.token_urlsafe(32)
            with self._lock:
                self._tokens[token] = Identity(subject_id=user.subject_id, email=user.email)
                while len(self._tokens) > MAX_LOCAL_TOKENS:
                    self._tokens.pop(next(iter(self._tokens)))
            return token
        try:  # pragma: no cover - network
            res = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as exc:  # pragma: no cover - network
            raise InvalidCredentialsError("Invalid credentials") from exc
        if not res.session:  # pragma: no cover - network
            raise InvalidCredentialsError("Invalid credentials")
        return res.session.access_token  # pragma: no cover


def _hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS)
