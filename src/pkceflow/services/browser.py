"""Browser authentication capability.

The flow controller only needs one thing from the outside world: open the
authorization URL for the user and hand back the URL the provider redirected
to. BrowserAuthenticator describes that; LoopbackBrowserAuthenticator is the
implementation for desktop and CLI apps using a loopback redirect URI.
"""

from __future__ import annotations

import asyncio
import html
import logging
import socket
import webbrowser
from typing import Callable, Protocol
from urllib.parse import urlsplit

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse
from starlette.routing import Route

from pkceflow.models.errors import AuthenticationFailedError, UserCancelledError

logger = logging.getLogger(__name__)

_SUCCESS_PAGE = (
    "<html><body><h2>Authorization complete. You can close this window "
    "and return to the application.</h2></body></html>"
)
_ERROR_PAGE = "<html><body><h2>Authorization failed: {error}</h2></body></html>"
_WAITING_PAGE = (
    "<html><body><h2>No authorization response in this request. "
    "Finish signing in from the authorization page.</h2></body></html>"
)


class BrowserAuthenticator(Protocol):
    """Protocol for the user authorization step.

    Allows different strategies for browser interaction:
    - System browser + loopback redirect receiver
    - Platform web authentication sessions with custom URL schemes
    - Scripted fakes for headless tests
    """

    async def authenticate(self, url: str, callback_scheme: str) -> str:
        """Send the user to ``url`` and wait for the redirect back.

        Args:
            url: Authorization URL for the user to visit
            callback_scheme: Scheme of the registered redirect URI

        Returns:
            The full callback URL the provider redirected to

        Raises:
            UserCancelledError: If the user dismissed the authorization
            AuthenticationFailedError: If the browser step failed
        """
        ...


class LoopbackBrowserAuthenticator:
    """Opens the system browser and receives the redirect on a loopback port.

    Serves a single route (the redirect URI path) on the redirect URI's host
    and port, returns the first callback carrying a ``code`` or ``error``,
    then shuts down.
    """

    def __init__(
        self,
        redirect_uri: str,
        timeout: float = 300.0,
        open_browser: Callable[[str], object] = webbrowser.open,
    ):
        """Initialize the loopback receiver.

        Args:
            redirect_uri: Registered loopback redirect, e.g.
                ``http://127.0.0.1:8080/oauth2callback``
            timeout: Seconds to wait for the user to finish
            open_browser: Called in a worker thread with the authorization URL
        """
        parsed = urlsplit(redirect_uri)
        if parsed.scheme != "http" or not parsed.hostname or not parsed.port:
            raise ValueError(
                "Loopback redirect URI must be http://<host>:<port>/<path>, "
                f"got {redirect_uri!r}"
            )

        self.host = parsed.hostname
        self.port = parsed.port
        self.path = parsed.path or "/"
        self.timeout = timeout
        self._open_browser = open_browser

    async def authenticate(self, url: str, callback_scheme: str) -> str:
        if callback_scheme != "http":
            raise AuthenticationFailedError(
                f"Loopback receiver cannot serve {callback_scheme!r} callbacks"
            )

        loop = asyncio.get_running_loop()
        callback: asyncio.Future[str] = loop.create_future()

        async def handle_callback(request: Request) -> HTMLResponse:
            error = request.query_params.get("error")
            # Prefetches and stray requests carry neither field
            if not error and "code" not in request.query_params:
                logger.debug("Ignoring request without an authorization response")
                return HTMLResponse(_WAITING_PAGE, status_code=400)

            if not callback.done():
                callback.set_result(str(request.url))
            if error:
                return HTMLResponse(
                    _ERROR_PAGE.format(error=html.escape(error)), status_code=400
                )
            return HTMLResponse(_SUCCESS_PAGE)

        app = Starlette(routes=[Route(self.path, handle_callback, methods=["GET"])])
        server = uvicorn.Server(
            uvicorn.Config(app=app, log_level="warning", lifespan="off")
        )

        sock = self._bind_socket()
        serve_task = asyncio.create_task(server.serve(sockets=[sock]))
        try:
            await self._wait_until_started(server, serve_task)
            logger.info(f"Waiting for authorization callback on {self.host}:{self.port}")
            await asyncio.to_thread(self._open_browser, url)

            try:
                return await asyncio.wait_for(callback, timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise UserCancelledError(
                    f"No authorization callback within {self.timeout} seconds"
                ) from e
        finally:
            server.should_exit = True
            await asyncio.gather(serve_task, return_exceptions=True)
            sock.close()

    def _bind_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise AuthenticationFailedError(
                f"Cannot listen on {self.host}:{self.port}: {e}"
            ) from e
        return sock

    async def _wait_until_started(
        self, server: uvicorn.Server, serve_task: asyncio.Task
    ) -> None:
        while not server.started:
            if serve_task.done():
                raise AuthenticationFailedError("Loopback callback server stopped")
            await asyncio.sleep(0.01)
