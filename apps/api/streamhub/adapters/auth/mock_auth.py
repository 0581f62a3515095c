"""Mock auth verifier for local development and tests."""

from streamhub.adapters.auth.base import AuthVerificationError, TokenVerifier, normalize_role
from streamhub.schemas.auth import AuthPrincipal


class MockTokenVerifier(TokenVerifier):
    """Accepts deterministic test tokens only.

    Expected token format:
    - ``test:<user_id>`` for a regular viewer account
    - ``test:<user_id>:admin`` for a content administrator
    """

    def verify_token(self, token: str) -> AuthPrincipal:
        parts = token.split(":")
        if len(parts) not in (2, 3) or parts[0] != "test":
            raise AuthVerificationError("Invalid bearer token")

        user_id = parts[1].strip()
        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")

        role = normalize_role(parts[2] if len(parts) == 3 else None)
        return AuthPrincipal(user_id=user_id, role=role)


__all__ = ["MockTokenVerifier"]
