import json

import httpx
import pytest
from loguru import logger

from login.config import LoginSettings, ProviderCredentials
from login.facebook_login import FacebookLoginService
from login.provider_client import ProviderClient
from login.security_token import JWTSecurityTokenMinter

TEST_SECRET = "test-secret-that-is-at-least-32-bytes-long"


class FakeGraphAPI:
    """
    Stand-in for graph.facebook.com behind httpx.MockTransport.

    Each response may be a str (sent as-is), a dict (sent as JSON with
    status 400 when it holds an "error" key) or an httpx exception class
    (raised as a transport failure).
    """

    def __init__(self, code_response="access_token=U1&expires=5183999",
                 app_response="access_token=A1",
                 debug_response=None):
        self.code_response = code_response
        self.app_response = app_response
        self.debug_response = debug_response or {"data": {"is_valid": True, "user_id": "42"}}
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)

        if request.url.path == "/oauth/access_token":
            if request.url.params.get("grant_type") == "client_credentials":
                return self._respond(request, self.app_response)
            return self._respond(request, self.code_response)
        if request.url.path == "/debug_token":
            return self._respond(request, self.debug_response)
        return httpx.Response(404, text="unknown path")

    @staticmethod
    def _respond(request, response):
        if isinstance(response, type) and issubclass(response, httpx.HTTPError):
            raise response("provider unreachable", request=request)
        if isinstance(response, dict):
            status = 400 if "error" in response else 200
            return httpx.Response(status, text=json.dumps(response))
        return httpx.Response(200, text=response)

    def paths(self):
        return [call.url.path for call in self.calls]


class RecordingMinter:
    def __init__(self, token="minted-token"):
        self.token = token
        self.user_ids = []

    def mint(self, user_id):
        self.user_ids.append(user_id)
        return self.token


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted while the test runs"""
    messages = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)


@pytest.fixture
def graph():
    return FakeGraphAPI()


@pytest.fixture
def credentials():
    return ProviderCredentials(
        client_id="app-id",
        client_secret="app-secret",
        redirect_uri="https://explorer.example.com/facebookLogin/callback",
    )


@pytest.fixture
def minter():
    return RecordingMinter()


@pytest.fixture
def service(graph, credentials, minter):
    client = httpx.AsyncClient(transport=httpx.MockTransport(graph))
    return FacebookLoginService(credentials, ProviderClient(client), minter)


@pytest.fixture
def settings():
    return LoginSettings(
        client_id="app-id",
        client_secret="app-secret",
        redirect_uri_template="%origin%%contextRoot%/facebookLogin/callback",
        origin="https://explorer.example.com",
        context_root="",
        token_secret=TEST_SECRET,
    )


@pytest.fixture
def jwt_minter():
    return JWTSecurityTokenMinter(TEST_SECRET)
