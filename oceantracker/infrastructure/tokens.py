import logging

import jwt

from oceantracker.core.models import Actor

logger = logging.getLogger(__name__)


class InvalidToken(Exception):
    pass


class TokenDecoder:
    """Verifies tokens issued by the auth service and maps claims to an Actor."""

    def __init__(self, secret_key: str, algorithm: str | None = "HS256"):
        self._secret_key = secret_key
        self._algorithm = algorithm or "HS256"

    def decode(self, token: str) -> Actor:
        try:
            claims = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected token: {e}")
            raise InvalidToken("Token is not valid") from e

        user_id = claims.get("userID")
        role = claims.get("role")
        if not user_id or not role:
            raise InvalidToken("Token is missing required claims")

        name = claims.get("name")
        if not name:
            parts = [claims.get("firstName"), claims.get("lastName")]
            name = " ".join(p for p in parts if p) or None

        return Actor(
            id=str(claims.get("id") or user_id),
            user_id=str(user_id),
            role=role,
            name=name,
        )

    def encode(self, actor: Actor) -> str:
        """Issue a token for the given actor; used by the seed script and tests."""
        claims = {"id": actor.id, "userID": actor.user_id, "role": actor.role}
        if actor.name:
            claims["name"] = actor.name
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
