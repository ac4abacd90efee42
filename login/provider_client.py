"""
Outbound calls to the identity provider.

Builds provider request URLs, fetches them over an injected
httpx.AsyncClient and parses the two body shapes the provider answers
with: URL-encoded query strings (token grants) and JSON objects
(introspection and error responses). Interpreting the parsed values is
left to the login service.
"""

import json
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import httpx
from loguru import logger

from login.errors import ErrorKind, LoginError


@dataclass(frozen=True)
class QueryStringBody:
    values: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class JsonErrorBody:
    payload: Optional[Any] = None


TokenResponse = Union[QueryStringBody, JsonErrorBody]


def build_url(scheme: str, host: str, path: str, params: Sequence[Tuple[str, str]] = ()) -> str:
    """Assemble a request URL, keeping the query parameters in the given order."""
    query = urllib.parse.urlencode(list(params))
    return urllib.parse.urlunsplit((scheme, host, path, query, ""))


def parse_token_response(body: str) -> TokenResponse:
    """
    Split a token endpoint body into its two possible shapes.

    The provider answers a good grant with `access_token=...&...` and a bad
    one with a JSON error object on the same endpoint.
    """
    text = body.strip()
    if text.startswith("{"):
        try:
            payload = json.loads(text)
        except ValueError:
            payload = None
        return JsonErrorBody(payload)

    try:
        pairs = urllib.parse.parse_qsl(text, keep_blank_values=True, strict_parsing=bool(text))
    except ValueError as e:
        raise LoginError(ErrorKind.PARSE_FAILURE, f"Undecodable token response: {e}")
    return QueryStringBody(dict(pairs))


def parse_json(body: str) -> Dict[str, Any]:
    """Decode a JSON object body."""
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise LoginError(ErrorKind.PARSE_FAILURE, f"Undecodable JSON response: {e}")

    if not isinstance(payload, dict):
        raise LoginError(ErrorKind.PARSE_FAILURE, "JSON response is not an object")
    return payload


class ProviderClient:
    """Thin wrapper over httpx for provider GETs"""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    async def fetch(self, url: str) -> httpx.Response:
        """
        GET a provider URL.

        Status codes are passed through untouched; only failures below the
        HTTP layer raise.
        """
        try:
            response = await self.client.get(url, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.error(f"[PROVIDER] Request failed: {type(e).__name__}: {e}")
            raise LoginError(ErrorKind.TRANSPORT_FAILURE, str(e)) from e

        logger.debug(f"[PROVIDER] {response.request.url.path} answered {response.status_code}")
        return response

    async def fetch_text(self, url: str) -> str:
        response = await self.fetch(url)
        return response.text

    async def fetch_token(self, url: str) -> TokenResponse:
        return parse_token_response(await self.fetch_text(url))

    async def fetch_json(self, url: str) -> Dict[str, Any]:
        return parse_json(await self.fetch_text(url))
