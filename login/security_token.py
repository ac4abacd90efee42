"""
Local security tokens, minted once the provider has vouched for a user.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol

import jwt
from loguru import logger

from login.errors import SecurityTokenError


class SecurityTokenMinter(Protocol):
    def mint(self, user_id: str) -> str:
        ...


class JWTSecurityTokenMinter:
    """HS256 security tokens bound to a provider user id"""

    def __init__(self, secret: Optional[str], provider: str = "facebook",
                 issuer: str = "explorer", ttl: int = 3600):
        if not secret:
            raise ValueError("SECURITY_TOKEN_SECRET not set. Cannot mint security tokens.")
        if len(secret) < 32:
            logger.warning("SECURITY_TOKEN_SECRET is less than 32 bytes - use a stronger secret!")
        self.secret = secret
        self.provider = provider
        self.issuer = issuer
        self.ttl = ttl

    def mint(self, user_id: str) -> str:
        if not user_id or not user_id.strip():
            raise SecurityTokenError("Empty user id")

        now = datetime.utcnow()
        try:
            token = jwt.encode(
                {
                    "sub": f"{self.provider}:{user_id}",
                    "provider": self.provider,
                    "iss": self.issuer,
                    "iat": now,
                    "exp": now + timedelta(seconds=self.ttl),
                },
                self.secret,
                algorithm="HS256"
            )
        except jwt.PyJWTError as e:
            logger.error(f"[SECURITY_TOKEN] Encoding failed: {type(e).__name__}: {e}")
            raise SecurityTokenError(str(e)) from e

        logger.debug(f"[SECURITY_TOKEN] Token minted for {self.provider} user: {user_id}")
        return token

    def verify(self, token: str) -> Optional[dict]:
        """Decode a token minted here; None when invalid or expired"""
        try:
            return jwt.decode(token, self.secret, algorithms=["HS256"], issuer=self.issuer)
        except jwt.ExpiredSignatureError:
            logger.warning("[SECURITY_TOKEN] Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"[SECURITY_TOKEN] Invalid token: {e}")
            return None
