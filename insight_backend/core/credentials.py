# insight_backend/core/credentials.py
import logging
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import httpx

from insight_backend.core.config import Settings
from insight_backend.core.exceptions import AuthenticationFailure

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    async def get_access_token(self, scope: str) -> str:
        ...


class StaticTokenProvider:
    """Returns a pre-issued bearer token regardless of scope (local runs)."""

    def __init__(self, token: str):
        if not token:
            raise AuthenticationFailure("Static access token is empty")
        self._token = token

    async def get_access_token(self, scope: str) -> str:
        return self._token


class ClientCredentialProvider:
    """
    OAuth2 client-credentials grant against the Microsoft identity platform.
    Tokens are cached per scope until shortly before they expire.
    """

    OAUTH_URL_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
    # refresh this many seconds before the token actually expires
    EXPIRY_BUFFER_SECONDS = 60

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self._client = http_client or httpx.AsyncClient(timeout=30.0)
        self._clock = clock
        self._tokens: Dict[str, Tuple[str, float]] = {}

    async def get_access_token(self, scope: str) -> str:
        cached = self._tokens.get(scope)
        if cached and self._clock() < cached[1] - self.EXPIRY_BUFFER_SECONDS:
            return cached[0]

        if not (self.tenant_id and self.client_id and self.client_secret):
            raise AuthenticationFailure("Fabric client credentials are not configured")

        oauth_url = self.OAUTH_URL_TEMPLATE.format(tenant_id=self.tenant_id)
        try:
            response = await self._client.post(
                oauth_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": scope,
                },
            )
        except httpx.HTTPError as e:
            logger.error("Failed to reach token endpoint: %s", e)
            raise AuthenticationFailure("Authentication failed for Fabric Data Agent") from e

        if response.status_code != 200:
            logger.error("Failed to get Fabric access token: %s - %s", response.status_code, response.text)
            raise AuthenticationFailure("Authentication failed for Fabric Data Agent")

        try:
            data = response.json()
            token = data.get("access_token")
            expires_in = float(data.get("expires_in", 3600))
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Malformed token response: %s", response.text)
            raise AuthenticationFailure("Token endpoint returned a malformed response") from e

        if not token:
            raise AuthenticationFailure("Token endpoint returned no access_token")

        self._tokens[scope] = (token, self._clock() + expires_in)
        logger.info("Obtained Fabric access token")
        return token

    async def aclose(self) -> None:
        await self._client.aclose()


def build_credential_provider(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> CredentialProvider:
    if settings.FABRIC_ACCESS_TOKEN:
        return StaticTokenProvider(settings.FABRIC_ACCESS_TOKEN)
    return ClientCredentialProvider(
        tenant_id=settings.FABRIC_TENANT_ID,
        client_id=settings.FABRIC_CLIENT_ID,
        client_secret=settings.FABRIC_CLIENT_SECRET,
        http_client=http_client,
    )
