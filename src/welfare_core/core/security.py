"""JWT handling for caller identity.

Tokens are issued by the organisation's identity provider and carry the
caller id in ``sub``, the caller ``kind`` (claimant or reviewer) and, for
reviewers, the ``role``. This module only verifies them; ``create_access_token``
exists for tooling and tests that need to mint a token with the shared secret.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from attrs import field, frozen
from beartype import beartype
from pydantic import BaseModel, ConfigDict

from ..models.actor import Actor, ActorKind, ReviewerRole
from .config import get_settings
from .logging_utils import get_logger

logger = get_logger(__name__)


@frozen
class TokenPayload:
    """Immutable JWT token payload."""

    sub: str = field()
    kind: str = field()
    exp: datetime = field()
    iat: datetime = field()
    jti: str = field()
    role: str | None = field(default=None)


class TokenData(BaseModel):
    """Token data for API responses."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class Security:
    """Encode and verify access tokens with the shared secret."""

    def __init__(self) -> None:
        settings = get_settings()
        self._jwt_secret = settings.jwt_secret
        self._jwt_algorithm = settings.jwt_algorithm
        self._jwt_expiration_minutes = settings.jwt_expiration_minutes

    @beartype
    def create_access_token(
        self,
        actor: Actor,
        expires_delta: timedelta | None = None,
    ) -> TokenData:
        """Create a JWT access token for ``actor``."""
        now = datetime.now(timezone.utc)

        if expires_delta is None:
            expires_delta = timedelta(minutes=self._jwt_expiration_minutes)

        payload: dict[str, object] = {
            "sub": str(actor.actor_id),
            "kind": actor.kind.value,
            "exp": now + expires_delta,
            "iat": now,
            "jti": str(uuid.uuid4()),
        }
        if actor.role is not None:
            payload["role"] = actor.role.value

        token = jwt.encode(payload, self._jwt_secret, algorithm=self._jwt_algorithm)
        return TokenData(
            access_token=token,
            expires_in=int(expires_delta.total_seconds()),
        )

    @beartype
    def decode_token(self, token: str) -> TokenPayload | None:
        """Decode and validate a JWT, returning ``None`` when it is unusable."""
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=[self._jwt_algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return None
        except jwt.InvalidTokenError:
            logger.info("Rejected invalid token")
            return None

        return TokenPayload(
            sub=str(payload["sub"]),
            kind=str(payload.get("kind", "")),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            jti=str(payload.get("jti", "")),
            role=payload.get("role"),
        )

    @beartype
    def actor_from_token(self, token: str) -> Actor | None:
        """Resolve the calling actor, or ``None`` if the token is not acceptable."""
        payload = self.decode_token(token)
        if payload is None:
            return None

        try:
            actor_id = uuid.UUID(payload.sub)
            kind = ActorKind(payload.kind)
            role = ReviewerRole(payload.role) if payload.role else None
        except ValueError:
            logger.info("Rejected token with malformed identity claims")
            return None

        if kind is ActorKind.REVIEWER and role is None:
            logger.info("Rejected reviewer token without a role")
            return None

        try:
            return Actor(actor_id=actor_id, kind=kind, role=role)
        except ValueError:
            logger.info("Rejected claimant token carrying a reviewer role")
            return None


_security: Security | None = None


@beartype
def get_security() -> Security:
    """Get global security instance."""
    global _security
    if _security is None:
        _security = Security()
    return _security
