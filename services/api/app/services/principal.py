from __future__ import annotations

import jwt
import structlog

logger = structlog.get_logger(__name__)

_ALGORITHMS = ["HS256"]


class JwtPrincipalVerifier:
    """Resolve an optional bearer token to a principal id.

    Guest checkout is allowed, so every failure mode (no header, wrong scheme, bad
    signature, expired token, no secret configured) resolves to None instead of raising.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret

    def resolve(self, authorization: str | None) -> str | None:
        token = _bearer_token(authorization)
        if token is None or not self._secret:
            return None

        try:
            claims = jwt.decode(token, self._secret, algorithms=_ALGORITHMS)
        except jwt.PyJWTError as e:
            logger.info("bearer_token_rejected", reason=type(e).__name__)
            return None

        principal = claims.get("userId") or claims.get("sub")
        return str(principal) if principal else None


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
