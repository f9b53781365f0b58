"""Local HTTP server that receives the OAuth redirect.

The server accepts exactly one completing request (a ``code`` or an
``error`` query parameter) and is shut down on every exit path.
"""

from __future__ import annotations

import html
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlsplit

from gtcli.google.exceptions import (
    AuthorizationDeniedError,
    AuthorizationTimeoutError,
    CallbackServerError,
)

logger = logging.getLogger(__name__)

SUCCESS_PAGE = (
    "<html><body><h1>Authorization Successful</h1>"
    "<p>You can close this window.</p></body></html>"
)
FAILURE_PAGE = "<html><body><h1>Authorization Failed</h1><p>{error}</p></body></html>"
INVALID_PAGE = "<html><body><h1>Invalid Request</h1></body></html>"

# Seconds an accepted connection may stay silent before it is dropped.
REQUEST_TIMEOUT = 5


class _CallbackHTTPServer(ThreadingHTTPServer):
    """Threaded HTTPServer carrying the single-shot result of the redirect.

    Each connection is served on its own daemon thread, so an idle browser
    connection cannot hold up the redirect or the shutdown.
    """

    daemon_threads = True

    def __init__(self, server_address, handler_class):
        super().__init__(server_address, handler_class)
        self.code: str | None = None
        self.error: str | None = None
        self.done = threading.Event()
        self.lock = threading.Lock()


class _CallbackHandler(BaseHTTPRequestHandler):
    """Handle the provider's redirect to localhost."""

    server: _CallbackHTTPServer
    timeout = REQUEST_TIMEOUT

    def do_GET(self) -> None:
        params = parse_qs(urlsplit(self.path).query)
        code = params.get("code", [None])[0]
        error = params.get("error", [None])[0]

        with self.server.lock:
            if self.server.done.is_set() or not (code or error):
                logger.debug(f"Ignoring callback request: {self.path}")
                self._send_page(400, INVALID_PAGE)
                return

            if error:
                self._send_page(400, FAILURE_PAGE.format(error=html.escape(error)))
                self.server.error = error
            else:
                self._send_page(200, SUCCESS_PAGE)
                self.server.code = code
            self.server.done.set()

    def _send_page(self, status: int, body: str) -> None:
        content = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(content)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(content)

    def log_message(self, format: str, *args) -> None:
        """Route request logging through the module logger."""
        logger.debug(format % args)


class CallbackServer:
    """Single-shot OAuth redirect listener.

    Usage:
        with CallbackServer(port=3000) as server:
            webbrowser.open(auth_url)
            code = server.wait(timeout=300)
    """

    def __init__(self, port: int = 3000, host: str = "127.0.0.1"):
        self.host = host
        self.requested_port = port
        self._httpd: _CallbackHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        """Port the server is bound to (resolves port 0)."""
        if self._httpd is None:
            return self.requested_port
        return self._httpd.server_address[1]

    def start(self) -> None:
        """Bind the listener and start serving in a background thread.

        Raises:
            CallbackServerError: If the port cannot be bound.
        """
        try:
            self._httpd = _CallbackHTTPServer((self.host, self.requested_port), _CallbackHandler)
        except OSError as e:
            raise CallbackServerError(self.requested_port, str(e)) from e

        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        logger.info(f"Waiting for authorization on port {self.port}...")

    def wait(self, timeout: float) -> str:
        """Block until the redirect arrives.

        Args:
            timeout: Seconds to wait.

        Returns:
            The authorization code.

        Raises:
            AuthorizationTimeoutError: If nothing arrived in time.
            AuthorizationDeniedError: If the redirect carried an error.
        """
        if self._httpd is None:
            raise RuntimeError("Callback server is not running")

        if not self._httpd.done.wait(timeout):
            logger.error(f"Timed out waiting for authorization callback after {timeout} seconds")
            raise AuthorizationTimeoutError(timeout)

        if self._httpd.error:
            raise AuthorizationDeniedError(self._httpd.error)

        return self._httpd.code

    def close(self) -> None:
        """Stop serving and release the socket. Safe to call twice."""
        if self._httpd is None:
            return

        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join()
        self._httpd = None
        self._thread = None
        logger.debug("Callback server closed")

    def __enter__(self) -> CallbackServer:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
