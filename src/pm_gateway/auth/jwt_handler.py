"""JWT token creation and verification.

Identity is owned by an upstream auth provider; this service only verifies
the HS256 bearer tokens it issues and reads the subject claim.

MVP NOTE: No token revocation. Once issued, tokens are valid until expiry.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from src.pm_common.errors import InvalidCredentialsError


def create_access_token(
    user_id: str,
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(minutes=30),
) -> str:
    """Issue a short-lived access token. Used by tooling and tests."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + expires_in,
    }
    return str(jwt.encode(payload, secret, algorithm=algorithm))


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature, expiry or token type is wrong.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidCredentialsError()
    return payload
