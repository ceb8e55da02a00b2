"""Short-lived HS256 tokens for providers that require per-request signing."""

import logging
import time
from typing import Any, Callable, Optional
from uuid import uuid4

import jwt

from genstudio.utils.errors import AuthError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
# Tolerates small clock drift between us and the provider
NOT_BEFORE_SKEW_SECONDS = 5


class TokenSigner:
    """Mints signed bearer tokens from an access key / secret key pair."""

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        ttl_seconds: int = 300,
        subject: Optional[str] = None,
        audience: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the TokenSigner.

        Args:
            access_key: Issuer claim, identifies the account to the provider
            secret_key: Shared HMAC secret, never leaves the server
            ttl_seconds: Token lifetime
            subject: Optional ``sub`` claim
            audience: Optional ``aud`` claim
            clock: Returns the current unix time; injectable for tests
        """
        self.access_key = access_key
        self.secret_key = secret_key
        self.ttl_seconds = ttl_seconds
        self.subject = subject
        self.audience = audience
        self._clock = clock

    def _require_keys(self) -> None:
        if not self.access_key or not self.secret_key:
            raise AuthError(
                "Missing provider signing credentials",
                suggestions=[
                    "Set KLING_ACCESS_KEY and KLING_SECRET_KEY in the environment",
                    "Check the credential configuration of this deployment",
                ],
            )

    def claims(self) -> dict[str, Any]:
        """Build the claim set for a new token."""
        now = int(self._clock())
        claims: dict[str, Any] = {
            "iss": self.access_key,
            "iat": now,
            "nbf": now - NOT_BEFORE_SKEW_SECONDS,
            "exp": now + self.ttl_seconds,
            "jti": uuid4().hex,
        }
        if self.subject:
            claims["sub"] = self.subject
        if self.audience:
            claims["aud"] = self.audience
        return claims

    def issue(self) -> str:
        """Mint a new signed token."""
        self._require_keys()
        token = jwt.encode(
            self.claims(),
            self.secret_key,
            algorithm=JWT_ALGORITHM,
            headers={"typ": "JWT"},
        )
        logger.debug(f"Issued provider token expiring in {self.ttl_seconds}s")
        return token

    def auth_header(self) -> dict[str, str]:
        """Authorization header carrying a freshly minted token."""
        return {"Authorization": f"Bearer {self.issue()}"}

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify a token minted by this signer and return its claims.

        Raises:
            AuthError: If the token is expired, not yet valid or badly signed
        """
        self._require_keys()
        options = {"verify_aud": self.audience is not None}
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[JWT_ALGORITHM],
                audience=self.audience,
                options=options,
                leeway=0,
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("Provider token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthError(f"Invalid provider token: {e}")


def create_token_signer() -> TokenSigner:
    """
    Create a TokenSigner for Kling using application settings.

    Returns:
        Configured TokenSigner instance
    """
    from genstudio.config import get_settings

    settings = get_settings()
    return TokenSigner(
        access_key=settings.kling_access_key,
        secret_key=settings.kling_secret_key,
        ttl_seconds=settings.kling_token_ttl_seconds,
    )
