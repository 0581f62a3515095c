"""Bearer token verification interfaces."""

from abc import ABC, abstractmethod

from streamhub.schemas.auth import AuthPrincipal

KNOWN_ROLES = frozenset({"user", "admin"})


class AuthVerificationError(Exception):
    """Raised when a token cannot be verified or normalized."""


class TokenVerifier(ABC):
    """Provider-neutral token verification interface."""

    @abstractmethod
    def verify_token(self, token: str) -> AuthPrincipal:
        """Verify token and return a principal whose role is one of ``KNOWN_ROLES``."""


def normalize_role(raw_role: object) -> str:
    role = str(raw_role or "user").strip().lower()
    if role not in KNOWN_ROLES:
        raise AuthVerificationError("Bearer token carries an unknown role")
    return role


__all__ = ["AuthVerificationError", "KNOWN_ROLES", "TokenVerifier", "normalize_role"]
