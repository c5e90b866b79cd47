"""
Gateway HTTP surface.

Login endpoints are open; everything else passes the auth gate first.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import (
    HTMLResponse,
    JSONResponse,
    RedirectResponse,
    Response,
    StreamingResponse,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.concurrency import cancel_on_disconnect
from ..models.auth import LoginForm
from ..models.context import InputContext
from .deps import AuthGateDep, GatewayConfigDep, ProcessorDep, require_access

logger = logging.getLogger("gateway.routes")

LOGIN_HTML = (Path(__file__).resolve().parent.parent / "static" / "login.html").read_text(
    encoding="utf-8"
)
# Answer the NAS management UI expects from its login check, kept byte-for-byte.
WEBMAN_LOGIN_STUB = '{"SynoToken", ""}'
# Every method the catch-all forwards to the CGI program.
CGI_METHODS = [
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
    "TRACE",
    "CONNECT",
]

public_router = APIRouter()
protected_router = APIRouter(dependencies=[Depends(require_access)])


# ===========================================
# Login
# ===========================================


@public_router.get("/login", response_class=HTMLResponse)
async def get_login():
    """Login form."""
    return HTMLResponse(LOGIN_HTML)


async def _read_login_form(request: Request) -> LoginForm:
    """Password field of the posted form; any other body counts as an empty password."""
    try:
        form = await request.form()
    except StarletteHTTPException:
        return LoginForm()
    password = form.get("password")
    return LoginForm(password=password if isinstance(password, str) else "")


@public_router.post("/login")
async def post_login(request: Request, auth_gate: AuthGateDep, gateway_config: GatewayConfigDep):
    """
    Exchange the password for an access token cookie.

    Every failure looks the same to the client: a redirect back to the form.
    """
    form = await _read_login_form(request)
    token = auth_gate.authenticate(form.password)
    if token is None:
        return RedirectResponse(gateway_config.LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)

    logger.info("Login succeeded, access token issued")
    response = Response(status_code=status.HTTP_303_SEE_OTHER)
    response.headers["Location"] = gateway_config.MOUNT_PREFIX
    response.headers["Set-Cookie"] = auth_gate.session_cookie(token)
    return response


# ===========================================
# Protected routes
# ===========================================


@protected_router.get("/webman/login.cgi")
async def get_webman_login():
    """Compatibility shim for the management UI login check."""
    return JSONResponse(WEBMAN_LOGIN_STUB)


@protected_router.api_route("/", methods=CGI_METHODS)
@protected_router.api_route("/{path:path}", methods=CGI_METHODS)
async def cgi_handler(request: Request, processor: ProcessorDep, gateway_config: GatewayConfigDep):
    """
    Catch-all route: run the CGI program for anything under the mount prefix.
    """
    if not processor.in_scope(request.url.path):
        return RedirectResponse(
            gateway_config.MOUNT_PREFIX, status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )

    context = await InputContext.from_request(request)
    result = await cancel_on_disconnect(request.receive, processor.process(context))

    response = StreamingResponse(result.iter_body(), status_code=result.status_code)
    # raw_headers keeps repeated headers (Set-Cookie) and emitted order.
    response.raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in result.headers
    )
    return response
