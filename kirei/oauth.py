"""GitHub OAuth authorization-code flow with a loopback redirect listener.

The listener binds an OS-assigned port on 127.0.0.1 before the authorization
URL is built, serves on a background thread, and is shut down after the first
request or when the wait times out.
"""

import logging
import queue
import secrets
import string
import threading
from collections.abc import Callable
from enum import Enum
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
from pydantic import BaseModel, ConfigDict

from kirei.errors import AuthorizationExchangeFailed, AuthorizationTimedOut, TransportError
from kirei.models import ProviderId

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
CALLBACK_PATH = "/callback"
DEFAULT_SCOPE = "repo"
DEFAULT_TIMEOUT = 300.0
STATE_LENGTH = 32
HANDLER_TIMEOUT = 5.0  # seconds a connection may stay silent
STOP_TIMEOUT = 1.0

_STATE_ALPHABET = string.digits + string.ascii_lowercase

CALLBACK_PAGE = (
    b"<html><body><h1>Authentication Complete</h1>"
    b"<p>You can close this window and return to the terminal.</p></body></html>"
)

logger = logging.getLogger(__name__)


class AuthorizationState(str, Enum):
    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGED = "token_exchanged"
    FAILED = "failed"


class CallbackResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    state: str | None = None


def generate_state() -> str:
    """Random 32-character anti-forgery token from [0-9a-z]."""
    return "".join(secrets.choice(_STATE_ALPHABET) for _ in range(STATE_LENGTH))


def redirect_uri(port: int) -> str:
    return f"http://localhost:{port}{CALLBACK_PATH}"


def build_authorization_url(client_id: str, port: int, state: str, scope: str = DEFAULT_SCOPE) -> str:
    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect_uri(port),
            "scope": scope,
            "state": state,
        }
    )
    return f"{AUTHORIZE_URL}?{query}"


class _CallbackHandler(BaseHTTPRequestHandler):
    server: "CallbackServer"

    # Browsers open speculative connections that never send anything.
    timeout = HANDLER_TIMEOUT

    def handle_one_request(self) -> None:
        self.raw_requestline = b""
        try:
            super().handle_one_request()
        finally:
            # Any request line ends the wait, whatever its method or shape.
            # A connection that sent nothing does not.
            if self.raw_requestline:
                self.server.completed.put(None)

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        params = parse_qs(parsed.query)
        if parsed.path == CALLBACK_PATH and params.get("code"):
            state = params.get("state", [None])[0]
            # The code is enqueued strictly before the completion signal.
            self.server.codes.put(CallbackResult(code=params["code"][0], state=state))
        self._send_page()

    def send_error(self, code: int, message: str | None = None, explain: str | None = None) -> None:
        # Unsupported methods and malformed requests get the same page.
        logger.debug("callback listener: answering %d with the static page", code)
        self._send_page()

    def _send_page(self) -> None:
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.send_header("Content-Length", str(len(CALLBACK_PAGE)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(CALLBACK_PAGE)

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("callback listener: " + format, *args)


class CallbackServer(ThreadingHTTPServer):
    """One-shot loopback listener for the OAuth redirect.

    ``codes`` receives a CallbackResult for each GET to the callback path
    that carries a code; ``completed`` receives a token for every request
    and only exists to unblock the caller's wait. Requests are handled on
    daemon threads, so a stalled connection never holds up ``stop()``.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        super().__init__((host, port), _CallbackHandler)
        self.codes: queue.Queue[CallbackResult] = queue.Queue()
        self.completed: queue.Queue[None] = queue.Queue()
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self.server_address[1]

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self.serve_forever,
            kwargs={"poll_interval": 0.1},
            name="kirei-oauth-callback",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Callback listener started on 127.0.0.1:%d", self.port)

    def stop(self) -> None:
        """Stop serving and release the port."""
        if self._thread is not None:
            self.shutdown()
            self._thread.join(timeout=STOP_TIMEOUT)
            self._thread = None
        self.server_close()
        logger.debug("Callback listener on port %d closed", self.port)


class GitHubOAuthFlow:
    """Browser-based authorization-code exchange for a GitHub OAuth app.

    Usage::

        flow = GitHubOAuthFlow(client_id, client_secret)
        token = flow.authorize(on_url=typer.launch)

    A failed or timed-out attempt is retried by calling ``authorize`` again,
    which generates a new state token and a new listener.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        scope: str = DEFAULT_SCOPE,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.Client | None = None,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.scope = scope
        self.timeout = timeout
        self._http = http or httpx.Client(timeout=30)
        self.state = AuthorizationState.IDLE
        self._state_token: str | None = None
        self._server: CallbackServer | None = None

    def close(self) -> None:
        self._release_listener()
        self._http.close()

    def _transition(self, new_state: AuthorizationState) -> None:
        logger.debug("OAuth flow %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def _fail(self, exc: Exception) -> Exception:
        self._transition(AuthorizationState.FAILED)
        return exc

    def _release_listener(self) -> None:
        if self._server is not None:
            self._server.stop()
            self._server = None

    def start(self) -> str:
        """Bind the listener, start it, and return the authorization URL to open."""
        self._release_listener()
        self.state = AuthorizationState.IDLE
        self._state_token = generate_state()
        self._server = CallbackServer()
        url = build_authorization_url(self.client_id, self._server.port, self._state_token, self.scope)
        self._server.start()
        self._transition(AuthorizationState.AWAITING_REDIRECT)
        return url

    def wait_for_code(self) -> str:
        """Block until the first request reaches the listener, or the timeout elapses."""
        if self._server is None or self.state is not AuthorizationState.AWAITING_REDIRECT:
            raise RuntimeError("start() must be called before wait_for_code()")
        server = self._server
        try:
            server.completed.get(timeout=self.timeout)
        except queue.Empty:
            logger.warning("No OAuth callback within %gs", self.timeout)
            raise self._fail(AuthorizationTimedOut(self.timeout)) from None
        finally:
            self._release_listener()

        try:
            result = server.codes.get_nowait()
        except queue.Empty:
            raise self._fail(AuthorizationExchangeFailed("failed to receive authorization code")) from None
        if result.state != self._state_token:
            raise self._fail(AuthorizationExchangeFailed("state mismatch in OAuth callback"))

        self._transition(AuthorizationState.CODE_RECEIVED)
        return result.code

    def exchange_code(self, code: str) -> str:
        """Trade the authorization code for an access token."""
        try:
            response = self._http.post(
                TOKEN_URL,
                data={"client_id": self.client_id, "client_secret": self._client_secret, "code": code},
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise self._fail(TransportError(ProviderId.GITHUB, str(exc) or type(exc).__name__)) from exc

        try:
            payload = response.json()
        except ValueError:
            raise self._fail(AuthorizationExchangeFailed(f"token endpoint returned non-JSON: {response.text}")) from None

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            reason = (payload.get("error_description") or payload.get("error")) if isinstance(payload, dict) else None
            detail = "no access token in response"
            if reason:
                detail = f"{detail} ({reason})"
            raise self._fail(AuthorizationExchangeFailed(detail))

        self._transition(AuthorizationState.TOKEN_EXCHANGED)
        logger.info("GitHub OAuth token exchange complete")
        return token

    def authorize(self, on_url: Callable[[str], object] | None = None) -> str:
        """Run the whole flow and return the access token.

        ``on_url`` receives the authorization URL once the listener is up,
        e.g. to print it or open a browser.
        """
        url = self.start()
        try:
            if on_url is not None:
                on_url(url)
        except BaseException:
            self._release_listener()
            self._transition(AuthorizationState.FAILED)
            raise
        code = self.wait_for_code()
        return self.exchange_code(code)
