"""
FastAPI endpoints for the Facebook login popup.

GET /facebookLogin/initiate   (alias: popup)
  Redirects the popup to Facebook's consent dialog.

GET /facebookLogin/callback   (alias: token)
  Facebook's redirect target. Answers with a small page whose script
  either closes the popup (user declined) or hands the security token to
  the opener window and then closes the popup.
"""

import asyncio
import json
from typing import Awaitable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response
from loguru import logger

from login.errors import CallbackResult, CallbackStatus, ErrorKind, LoginError
from login.facebook_login import FacebookLoginService

router = APIRouter(prefix="/facebookLogin", tags=["login"])

INITIATE_PATHS = ("initiate", "popup")
CALLBACK_PATHS = ("callback", "token")
DISCONNECT_POLL_INTERVAL = 0.5

CLOSE_POPUP_PAGE = "<html><body><script>window.close();</script></body></html>"

SECURITY_TOKEN_PAGE = """<html><body><script>
if (window.opener) {{
  window.opener.postMessage({message}, {origin});
}}
window.close();
</script></body></html>"""


# ==================== DEPENDENCIES ====================

def get_login_service(request: Request) -> FacebookLoginService:
    return request.app.state.login_service


def get_opener_origin(request: Request) -> str:
    return request.app.state.settings.origin


# ==================== HELPER FUNCTIONS ====================

def _script_literal(value) -> str:
    """JSON-encode a value for embedding inside a <script> block"""
    return json.dumps(value).replace("</", "<\\/")


def error_response(kind: ErrorKind) -> Response:
    return PlainTextResponse(kind.message, status_code=kind.status_code)


def render_callback(result: CallbackResult, origin: str) -> Response:
    if result.status is CallbackStatus.DECLINED:
        return HTMLResponse(CLOSE_POPUP_PAGE)

    if result.status is CallbackStatus.FAILED:
        return error_response(result.error)

    message = {"provider": "facebook", "securityToken": result.security_token}
    return HTMLResponse(
        SECURITY_TOKEN_PAGE.format(message=_script_literal(message), origin=_script_literal(origin))
    )


async def run_until_disconnected(request: Request, work: Awaitable) -> Optional[object]:
    """
    Await `work`, cancelling it if the client goes away first.

    Returns None when the client disconnected.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(f"[FB_LOGIN] Client disconnected from {request.url.path} - aborting provider calls")
                task.cancel()
                return None
    finally:
        if not task.done():
            task.cancel()


# ==================== ENTRY DISPATCHER ====================

@router.get("/{path:path}")
async def facebook_login(
    path: str,
    request: Request,
    service: FacebookLoginService = Depends(get_login_service),
    origin: str = Depends(get_opener_origin),
):
    """Route the popup to the initiate or callback stage."""
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return error_response(ErrorKind.NOT_FOUND)

    if segments[0] in INITIATE_PATHS:
        try:
            destination = service.authorization_url()
        except LoginError as e:
            logger.error(f"[FB_LOGIN] Cannot build authorization url: {e}")
            return error_response(e.kind)
        return RedirectResponse(destination, status_code=302)

    if segments[0] in CALLBACK_PATHS:
        result = await run_until_disconnected(request, service.handle_callback(request.query_params))
        if result is None:
            return Response(status_code=499)
        if result.status is CallbackStatus.SUCCESS:
            logger.info(f"[FB_LOGIN] Security token issued for user: {result.user_id}")
        return render_callback(result, origin)

    logger.warning(f"[FB_LOGIN] Unknown login path: {path}")
    return error_response(ErrorKind.NOT_FOUND)
