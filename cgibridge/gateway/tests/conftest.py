import stat
import sys
import textwrap

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from cgibridge.gateway.config import GatewayConfig
from cgibridge.gateway.main import create_app

TEST_TOKEN_SECRET = "test-secret-key-must-be-at-least-32-chars"


@pytest.fixture
def cgi_script(tmp_path):
    """
    Factory writing an executable Python CGI program into tmp_path.

    The body is dedented and prefixed with a shebang for the running interpreter.
    """
    counter = {"n": 0}

    def _make(body: str, name: str = None) -> str:
        counter["n"] += 1
        path = tmp_path / (name or f"cgi_{counter['n']}.py")
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides) -> GatewayConfig:
        values = {
            "CGI_EXECUTABLE": "/nonexistent/cgi",
            "CGI_WORKING_DIR": str(tmp_path),
            "TOKEN_SECRET_KEY": TEST_TOKEN_SECRET,
            "BIND_ADDR": "127.0.0.1:5051",
            "LOG_CONFIG_PATH": str(tmp_path / "missing-logging.yml"),
        }
        values.update(overrides)
        return GatewayConfig(_env_file=None, **values)

    return _make


@pytest.fixture
def make_client(make_config):
    """Factory for a TestClient whose lifespan has run."""
    clients = []

    def _make(**overrides) -> TestClient:
        app = create_app(make_config(**overrides))
        client = TestClient(app, follow_redirects=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def echo_env_script(cgi_script):
    """CGI program answering with selected CGI variables, one per header."""
    return cgi_script(
        """
        import os
        import sys

        body = sys.stdin.buffer.read()
        out = sys.stdout.buffer
        out.write(("Content-Type: %s\\r\\n" % os.environ.get("CONTENT_TYPE", "text/plain")).encode())
        for name in ("REQUEST_METHOD", "QUERY_STRING", "REQUEST_URI", "PATH_INFO", "HTTP_HOST"):
            out.write(("X-Cgi-%s: %s\\r\\n" % (name.replace("_", "-"), os.environ.get(name, ""))).encode())
        out.write(("X-Body-Length: %d\\r\\n" % len(body)).encode())
        out.write(b"\\r\\n")
        out.write(body)
        """
    )


@pytest_asyncio.fixture
async def async_client(make_config, echo_env_script):
    app = create_app(make_config(CGI_EXECUTABLE=echo_env_script))
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client

