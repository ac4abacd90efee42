import asyncio
import dataclasses
import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from apps.api.main import create_app
from login import login_routes
from login.errors import CallbackResult, ErrorKind
from login.login_routes import render_callback, run_until_disconnected
from login.security_token import JWTSecurityTokenMinter
from tests.conftest import TEST_SECRET


@pytest.fixture(name="client")
def client_fixture(settings, graph):
    app = create_app(settings, transport=httpx.MockTransport(graph))
    with TestClient(app) as client:
        yield client


def _posted_message(html):
    match = re.search(r"postMessage\((\{.*?\}), (\".*?\")\)", html)
    assert match, html
    return json.loads(match.group(1)), json.loads(match.group(2))


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.parametrize("path", ["initiate", "popup"])
def test_initiate_redirects_to_dialog(client, graph, path):
    response = client.get(f"/facebookLogin/{path}", follow_redirects=False)

    assert response.status_code == 302
    location = httpx.URL(response.headers["location"])
    assert location.host == "www.facebook.com"
    assert location.path == "/dialog/oauth"
    assert location.params["client_id"] == "app-id"
    assert location.params["response_type"] == "code"
    assert location.params["redirect_uri"] == "https://explorer.example.com/facebookLogin/callback"
    assert graph.calls == []


def test_empty_path_is_not_found(client):
    response = client.get("/facebookLogin/")

    assert response.status_code == 404
    assert response.text == ErrorKind.NOT_FOUND.message


def test_unknown_path_is_not_found(client):
    response = client.get("/facebookLogin/somewhere")

    assert response.status_code == 404


def test_declined_callback_closes_popup(client, graph):
    response = client.get("/facebookLogin/callback", params={"error": "access_denied", "code": "x"})

    assert response.status_code == 200
    assert "window.close()" in response.text
    assert "postMessage" not in response.text
    assert graph.calls == []


@pytest.mark.parametrize("path", ["callback", "token"])
def test_callback_returns_security_token(client, path):
    response = client.get(f"/facebookLogin/{path}", params={"code": "auth-code"})

    assert response.status_code == 200
    message, origin = _posted_message(response.text)
    assert origin == "https://explorer.example.com"
    assert message["provider"] == "facebook"

    payload = JWTSecurityTokenMinter(TEST_SECRET).verify(message["securityToken"])
    assert payload["sub"] == "facebook:42"


def test_callback_with_reused_code_reports_invalid_credentials(client, graph):
    graph.code_response = {"error": {"message": "This authorization code has been used."}}

    response = client.get("/facebookLogin/callback", params={"code": "used"})

    assert response.status_code == 500
    assert response.text == "invalid client id or secret"


def test_callback_rejected_token(client, graph):
    graph.debug_response = {"data": {"is_valid": False, "user_id": "42"}}

    response = client.get("/facebookLogin/callback", params={"code": "auth-code"})

    assert response.status_code == 500
    assert response.text == "invalid response token"


def test_callback_transport_failure(client, graph):
    graph.debug_response = httpx.ConnectError

    response = client.get("/facebookLogin/callback", params={"code": "auth-code"})

    assert response.status_code == 500
    assert response.text == "error making request"


def test_security_headers_present(client):
    response = client.get("/facebookLogin/callback", params={"error": "access_denied"})

    assert response.headers["X-Frame-Options"] == "DENY"
    assert "'unsafe-inline'" in response.headers["Content-Security-Policy"]
    assert response.headers["Cache-Control"] == "no-store"


def test_context_root_prefixes_routes(settings, graph):
    settings = dataclasses.replace(settings, context_root="/explorer")
    app = create_app(settings, transport=httpx.MockTransport(graph))

    with TestClient(app) as client:
        response = client.get("/explorer/facebookLogin/initiate", follow_redirects=False)

    assert response.status_code == 302
    location = httpx.URL(response.headers["location"])
    assert location.params["redirect_uri"] == "https://explorer.example.com/explorer/facebookLogin/callback"


def test_token_is_escaped_inside_script():
    result = CallbackResult.success("</script><script>alert(1)</script>", "42")

    response = render_callback(result, "https://explorer.example.com")

    assert "</script><script>" not in response.body.decode()


@pytest.mark.asyncio
async def test_disconnect_cancels_callback(monkeypatch):
    monkeypatch.setattr(login_routes, "DISCONNECT_POLL_INTERVAL", 0.01)
    cancelled = asyncio.Event()

    async def slow_callback():
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    class DisconnectedRequest:
        class url:
            path = "/facebookLogin/callback"

        async def is_disconnected(self):
            return True

    result = await run_until_disconnected(DisconnectedRequest(), slow_callback())
    await asyncio.wait_for(cancelled.wait(), timeout=1)

    assert result is None


def test_each_login_request_is_logged_once(client, log_messages):
    client.get("/facebookLogin/callback", params={"code": "auth-code"})

    request_lines = [m for m in log_messages if "/facebookLogin/callback" in m and m.startswith("Request:")]
    assert len(request_lines) == 1
    assert not any("auth-code" in m for m in log_messages)


def test_success_is_logged_with_user_id(client, log_messages):
    client.get("/facebookLogin/callback", params={"code": "auth-code"})

    assert "[FB_LOGIN] Security token issued for user: 42" in log_messages


def test_context_root_without_leading_slash(settings, graph):
    settings = dataclasses.replace(settings, context_root="explorer/")
    app = create_app(settings, transport=httpx.MockTransport(graph))

    with TestClient(app) as client:
        response = client.get("/explorer/facebookLogin/initiate", follow_redirects=False)

    assert response.status_code == 302
