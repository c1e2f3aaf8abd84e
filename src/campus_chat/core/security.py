"""JWT helpers used to issue and verify chat credentials."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from campus_chat.core.settings import settings
from campus_chat.services.errors import AuthenticationFailed


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token identifying ``user_id``."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


class TokenVerifier:
    """Credential-verification collaborator: bearer token to user id."""

    def __init__(self, secret_key: str | None = None, algorithm: str | None = None) -> None:
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.jwt_algorithm

    def verify(self, token: str | None) -> int:
        """Return the user id carried by ``token``.

        Raises:
            AuthenticationFailed: If the token is missing, malformed, expired or
                does not carry a positive integer subject.
        """
        if not token:
            raise AuthenticationFailed("Authentication token missing")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as err:
            raise AuthenticationFailed("Invalid authentication token") from err

        subject = payload.get("sub")
        try:
            user_id = int(subject)
        except (TypeError, ValueError) as err:
            raise AuthenticationFailed("Invalid authentication token") from err
        if user_id < 1:
            raise AuthenticationFailed("Invalid authentication token")
        return user_id
