"""
Facebook login: authorization code in, local security token out.

Initiate:
  Redirect the popup to Facebook's consent dialog.

Callback:
  1. User declined -> Facebook sends `error`; close the popup.
  2. Exchange the one-time `code` for a user access token.
  3. Request an app token (client credentials grant).
  4. Introspect the user token with the app token via /debug_token.
  5. If Facebook says the token is valid, mint a security token for
     `data.user_id`.

The three provider calls run in order and are never retried; codes are
single-use, so a failed run has to start again from the popup.
"""

import urllib.parse
from typing import Any, Dict, Mapping, Optional

from loguru import logger

from login.config import ProviderCredentials
from login.errors import CallbackResult, ErrorKind, LoginError
from login.provider_client import JsonErrorBody, ProviderClient, TokenResponse, build_url
from login.security_token import SecurityTokenMinter

GRANT_TYPE = "client_credentials"
TOKEN_PATH = "/oauth/access_token"
DEBUG_TOKEN_PATH = "/debug_token"


class FacebookLoginService:
    """Drives the provider calls of one login attempt"""

    def __init__(self, credentials: ProviderCredentials, client: ProviderClient,
                 minter: SecurityTokenMinter, graph_host: str = "graph.facebook.com",
                 dialog_url: str = "https://www.facebook.com/dialog/oauth"):
        self.credentials = credentials
        self.client = client
        self.minter = minter
        self.graph_host = graph_host
        self.dialog_url = dialog_url

    # ==================== INITIATE ====================

    def authorization_url(self) -> str:
        """URL of the consent dialog the popup is sent to"""
        if not self.credentials.client_id or not self.credentials.redirect_uri:
            raise LoginError(ErrorKind.MISSING_CONFIGURATION, "client id or redirect uri not configured")

        query = urllib.parse.urlencode([
            ("redirect_uri", self.credentials.redirect_uri),
            ("client_id", self.credentials.client_id),
            ("response_type", "code"),
        ])
        return f"{self.dialog_url}?{query}"

    # ==================== CALLBACK ====================

    async def handle_callback(self, query: Mapping[str, str]) -> CallbackResult:
        """Run the callback state machine and report how it ended"""
        if "error" in query:
            logger.info(f"[FB_LOGIN] User declined authorization: {query.get('error_reason', query['error'])}")
            return CallbackResult.declined()

        try:
            user_id = await self.verify_code(query.get("code"))
            security_token = self.minter.mint(user_id)
        except LoginError as e:
            logger.warning(f"[FB_LOGIN] Login failed ({e.kind.value}): {e}")
            return CallbackResult.failed(e.kind)

        return CallbackResult.success(security_token, user_id)

    async def verify_code(self, code: Optional[str]) -> str:
        """Turn an authorization code into a provider-verified user id"""
        if not self.credentials.is_complete():
            raise LoginError(ErrorKind.MISSING_CONFIGURATION, "client id, secret or redirect uri not configured")
        if not code:
            raise LoginError(ErrorKind.MISSING_CONFIGURATION, "callback carried no authorization code")

        access_token = await self.exchange_code(code)
        app_token = await self.request_app_token()
        verification = await self.inspect_token(access_token, app_token)
        return self._verified_user_id(verification)

    async def exchange_code(self, code: str) -> str:
        """Code exchange: authorization code -> user access token"""
        logger.info("[FB_LOGIN] Exchanging authorization code")
        url = build_url("https", self.graph_host, TOKEN_PATH, [
            ("client_id", self.credentials.client_id),
            ("redirect_uri", self.credentials.redirect_uri),
            ("client_secret", self.credentials.client_secret),
            ("code", code),
        ])
        return self._access_token(await self.client.fetch_token(url))

    async def request_app_token(self) -> str:
        """Client credentials grant: app id + secret -> app token"""
        logger.info("[FB_LOGIN] Requesting app token")
        url = build_url("https", self.graph_host, TOKEN_PATH, [
            ("client_id", self.credentials.client_id),
            ("client_secret", self.credentials.client_secret),
            ("grant_type", GRANT_TYPE),
        ])
        return self._access_token(await self.client.fetch_token(url))

    async def inspect_token(self, access_token: str, app_token: str) -> Dict[str, Any]:
        """Ask the provider whether the user token is genuine"""
        logger.info("[FB_LOGIN] Inspecting user access token")
        url = build_url("https", self.graph_host, DEBUG_TOKEN_PATH, [
            ("input_token", access_token),
            ("access_token", app_token),
        ])
        return await self.client.fetch_json(url)

    @staticmethod
    def _access_token(response: TokenResponse) -> str:
        if isinstance(response, JsonErrorBody):
            raise LoginError(ErrorKind.INVALID_CREDENTIALS, _provider_error(response.payload))

        token = response.values.get("access_token")
        if not token:
            raise LoginError(ErrorKind.PARSE_FAILURE, "token response has no access_token")
        return token

    @staticmethod
    def _verified_user_id(verification: Dict[str, Any]) -> str:
        if "data" not in verification:
            raise LoginError(ErrorKind.MALFORMED_PROVIDER_RESPONSE)

        data = verification["data"]
        if not isinstance(data, dict):
            raise LoginError(ErrorKind.PARSE_FAILURE, "introspection data is not an object")

        if data.get("is_valid") is not True:
            raise LoginError(ErrorKind.TOKEN_REJECTED)

        user_id = data.get("user_id")
        if user_id is None or user_id == "":
            raise LoginError(ErrorKind.MISSING_USER_ID, "valid token without user_id")
        return str(user_id)


def _provider_error(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"].get("message")
    return None
