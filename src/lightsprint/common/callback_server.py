"""
One-shot local callback server

A headless CLI process cannot receive the result of a browser interaction
directly, so it listens on a loopback port and lets the browser redirect to
http://127.0.0.1:<port>/callback?... when the human is done. The server
resolves with the first callback, answers it with a short confirmation page
and is torn down; no listening socket outlives the wait.
"""

import html
import logging
import socket
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, Generic, Optional, Set, TypeVar, cast
from urllib.parse import parse_qs, urlsplit

from .errors import CallbackTimeout

CALLBACK_PATH = "/callback"
LOOPBACK_HOST = "127.0.0.1"

T = TypeVar("T")

logger = logging.getLogger("lightsprint")

PAGE_TEMPLATE = (
    '<html><body style="font-family:system-ui;display:flex;align-items:center;'
    'justify-content:center;min-height:100vh;margin:0"><div style="text-align:center">'
    "<h1>{title}</h1><p>{body}</p></div></body></html>"
)


def render_page(title: str, body: str) -> str:
    return PAGE_TEMPLATE.format(title=html.escape(title), body=html.escape(body))


def find_free_port(host: str = LOOPBACK_HOST) -> int:
    """Ask the OS for a free TCP port by binding to port 0"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


@dataclass
class OAuthCallback:
    """Result of the authorize-cli browser flow"""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[str] = None
    project_name: Optional[str] = None
    project_id: Optional[str] = None
    skipped: bool = False

    @classmethod
    def from_query(cls, params: Dict[str, str]) -> "OAuthCallback":
        if params.get("skipped") == "true":
            return cls(skipped=True)
        return cls(
            access_token=params.get("access_token") or None,
            refresh_token=params.get("refresh_token") or None,
            expires_in=params.get("expires_in") or None,
            project_name=params.get("project") or None,
            project_id=params.get("project_id") or None,
        )

    def page(self) -> str:
        if self.skipped:
            return render_page(
                "Skipped",
                "Lightsprint won't be connected for this folder. You can close this tab.",
            )
        return render_page("Authorized!", "You can close this tab and return to your terminal.")


@dataclass
class ReviewCallback:
    """Decision posted back by the plan review page"""

    decision: str = "allow"
    feedback: str = ""

    @classmethod
    def from_query(cls, params: Dict[str, str]) -> "ReviewCallback":
        return cls(
            decision=params.get("decision") or "allow",
            feedback=params.get("feedback") or "",
        )

    def page(self) -> str:
        return render_page(
            "Review submitted!", "You can close this tab and return to your terminal."
        )


class _CallbackHTTPServer(ThreadingHTTPServer):
    """ThreadingHTTPServer that remembers its open connections"""

    daemon_threads = True
    block_on_close = False

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.open_sockets: Set[socket.socket] = set()
        self.sockets_lock = threading.Lock()
        self.callback_server: Optional["CallbackServer[Any]"] = None

    def process_request(self, request: Any, client_address: Any) -> None:
        with self.sockets_lock:
            self.open_sockets.add(request)
        super().process_request(request, client_address)

    def shutdown_request(self, request: Any) -> None:
        with self.sockets_lock:
            self.open_sockets.discard(request)
        super().shutdown_request(request)

    def handle_error(self, request: Any, client_address: Any) -> None:
        # Sockets torn down by close_open_sockets land here
        logger.debug(f"callback server: error serving {client_address}", exc_info=True)

    def close_open_sockets(self) -> None:
        """Force-close connections still held by handler threads (idle keep-alives)"""
        with self.sockets_lock:
            sockets = list(self.open_sockets)
            self.open_sockets.clear()
        for sock in sockets:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackHTTPServer

    # Idle connections are dropped instead of pinning a thread
    timeout = 10

    def do_GET(self) -> None:
        parsed = urlsplit(self.path)
        if parsed.path != CALLBACK_PATH or self.server.callback_server is None:
            self._respond(404, render_page("Not found", "Nothing to see here."))
            return

        params = {key: values[0] for key, values in parse_qs(parsed.query).items()}
        self.server.callback_server._handle(self, params)

    def _respond(self, status: int, body: str) -> None:
        payload = body.encode("utf-8")
        self.close_connection = True
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(payload)
        self.wfile.flush()

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format % args)


class CallbackServer(Generic[T]):
    """Loopback HTTP listener that resolves once with a parsed callback.

    Use as a context manager; the listener is always closed on exit:

        with CallbackServer(port, ReviewCallback.from_query) as server:
            open_browser(f"...?callback={server.url}")
            result = server.wait(timeout)
    """

    def __init__(
        self,
        port: int,
        parse: Callable[[Dict[str, str]], T],
        page: Optional[Callable[[T], str]] = None,
        host: str = LOOPBACK_HOST,
        timeout_message: str = "Timed out waiting for the browser callback.",
    ) -> None:
        """Initialize the server (nothing is bound until __enter__)

        Args:
            port: Port to listen on; 0 lets the OS pick
            parse: Builds the result from the callback's query parameters
            page: Renders the confirmation page for a result
            host: Interface to bind
            timeout_message: Message of the CallbackTimeout raised by wait()
        """
        self.port = port
        self.host = host
        self.parse = parse
        self.page = page or (lambda result: render_page("Done!", "You can close this tab."))
        self.timeout_message = timeout_message

        self._httpd: Optional[_CallbackHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._claimed = False
        self._done = threading.Event()
        self._result: Optional[T] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{CALLBACK_PATH}"

    @property
    def is_listening(self) -> bool:
        return self._httpd is not None

    def start(self) -> "CallbackServer[T]":
        httpd = _CallbackHTTPServer((self.host, self.port), _CallbackHandler)
        httpd.callback_server = self
        self._httpd = httpd
        self.port = httpd.server_address[1]
        self._thread = threading.Thread(
            target=httpd.serve_forever,
            kwargs={"poll_interval": 0.1},
            name=f"lightsprint-callback-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Callback server listening on {self.url}")
        return self

    def close(self) -> None:
        httpd = self._httpd
        if httpd is None:
            return
        self._httpd = None
        httpd.shutdown()
        httpd.close_open_sockets()
        httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.debug(f"Callback server on port {self.port} closed")

    def __enter__(self) -> "CallbackServer[T]":
        return self.start()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def wait(self, timeout: Optional[float]) -> T:
        """Block until the callback arrives

        Args:
            timeout: Seconds to wait; None waits forever

        Returns:
            The parsed callback result

        Raises:
            CallbackTimeout: Nothing arrived in time
        """
        if not self._done.wait(timeout):
            raise CallbackTimeout(self.timeout_message)
        return cast(T, self._result)

    def _handle(self, handler: _CallbackHandler, params: Dict[str, str]) -> None:
        with self._lock:
            first = not self._claimed
            self._claimed = True

        if not first:
            # Only the first callback counts; replays are answered and ignored
            handler._respond(409, render_page("Already submitted", "You can close this tab."))
            return

        result = self.parse(params)
        self._result = result
        try:
            handler._respond(200, self.page(result))
        finally:
            self._done.set()


def wait_for_callback(
    port: int,
    timeout: Optional[float],
    parse: Callable[[Dict[str, str]], T],
    page: Optional[Callable[[T], str]] = None,
    timeout_message: str = "Timed out waiting for the browser callback.",
    on_ready: Optional[Callable[[str], None]] = None,
) -> T:
    """Serve one callback on port and return its parsed result

    Args:
        port: Port to listen on
        timeout: Seconds to wait before raising CallbackTimeout
        parse: Builds the result from query parameters
        page: Renders the confirmation page
        timeout_message: Message for the timeout error
        on_ready: Called with the callback URL once the server is listening

    Returns:
        The parsed callback result
    """
    with CallbackServer(port, parse, page, timeout_message=timeout_message) as server:
        if on_ready is not None:
            on_ready(server.url)
        return server.wait(timeout)
