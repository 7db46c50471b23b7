from __future__ import annotations

import asyncio
import logging

import jwt
from jwt import PyJWKClient

from exchange_chat.application.dto.principal import Principal
from exchange_chat.infrastructure.auth.claims import principal_from_claims

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url, cache_keys=True)

    async def verify(self, token: str) -> Principal:
        # key fetch is blocking HTTP
        signing_key = await asyncio.to_thread(self._jwk_client.get_signing_key_from_jwt, token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256", "ES256"],
        )
        logger.debug("Verified token for sub=%s via %s", payload.get("sub"), self._jwks_url)
        return principal_from_claims(payload)
