"""
Credential verification and bearer token issuance.

Access tokens carry the subject identifier and role; refresh tokens carry the
subject only. Both are HMAC-signed JWTs sharing one process-wide secret.
Tokens hold a copy of the subject identifier, so a deleted user's tokens keep
verifying until they expire; resolving them back to a user fails instead.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from storefront.db import DbClient, UserRecord
from storefront.errors import InvalidToken, NotFound, Unauthorized

logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Salted bcrypt hashing for stored user passwords."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._dummy_hash: Optional[bytes] = None

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        hashed = bcrypt.hashpw(self._encode(password), bcrypt.gensalt(self.rounds))
        return hashed.decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(self._encode(password), hashed.encode("utf-8"))
        except ValueError:
            # Malformed or legacy stored hash.
            return False

    def burn(self, password: str) -> None:
        """Spend one hash check so unknown emails cost the same as wrong passwords."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"dummy", bcrypt.gensalt(self.rounds))
        bcrypt.checkpw(self._encode(password), self._dummy_hash)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class TokenClaims:
    subject: str
    token_type: str
    role: Optional[str] = None


class CredentialService:
    def __init__(
        self,
        db: DbClient,
        hasher: PasswordHasher,
        *,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(days=1),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        if not secret:
            raise ValueError("A token signing secret is required")
        self.db = db
        self.hasher = hasher
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def login(self, email: str, password: str) -> TokenPair:
        candidates = self.db.find_users_by_email(email)
        if not candidates:
            self.hasher.burn(password)
        for user in candidates:
            if self.hasher.verify(password, user.password_hash):
                logger.info("User %s logged in", user.id)
                return self.issue_tokens(user)
        logger.info("Rejected login attempt")
        raise Unauthorized("Invalid credentials")

    def refresh(self, refresh_token: str) -> TokenPair:
        claims = self.verify_token(refresh_token, expected_type=REFRESH_TOKEN)
        user = self._load_subject(claims.subject)
        return self.issue_tokens(user)

    def verify_access_token(self, access_token: str) -> TokenClaims:
        return self.verify_token(access_token, expected_type=ACCESS_TOKEN)

    def current_user(self, access_token: str) -> UserRecord:
        claims = self.verify_access_token(access_token)
        return self._load_subject(claims.subject)

    def issue_tokens(self, user: UserRecord) -> TokenPair:
        return TokenPair(
            access_token=self._encode(
                {"sub": user.id, "role": user.role, "type": ACCESS_TOKEN},
                self.access_ttl,
            ),
            refresh_token=self._encode(
                {"sub": user.id, "type": REFRESH_TOKEN}, self.refresh_ttl
            ),
        )

    def verify_token(self, token: str, *, expected_type: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.warning("Token verification failed: %s", exc.__class__.__name__)
            raise InvalidToken("Invalid or expired token") from exc
        if payload.get("type") != expected_type:
            logger.warning("Token verification failed: wrong token type")
            raise InvalidToken("Invalid or expired token")
        return TokenClaims(
            subject=str(payload["sub"]),
            token_type=expected_type,
            role=payload.get("role"),
        )

    def _encode(self, claims: dict, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": now,
            "exp": now + ttl,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def _load_subject(self, subject: str) -> UserRecord:
        user = self.db.get_record(UserRecord, subject)
        if user is None:
            raise NotFound("User", subject)
        return user
