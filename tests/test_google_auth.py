"""Tests for the Google OAuth authorization flow."""

import socket
import time
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from gtcli.google import (
    AuthorizationDeniedError,
    AuthorizationError,
    AuthorizationTimeoutError,
    CallbackServer,
    CallbackServerError,
    InvalidRedirectError,
    MissingRefreshTokenError,
    OAuthFlow,
    OAuthResult,
    TokenError,
    extract_code,
)
from gtcli.google.oauth import DEFAULT_SCOPES, TASKS_SCOPE


@pytest.fixture
def http():
    """requests session that ignores proxy environment variables."""
    session = requests.Session()
    session.trust_env = False
    yield session
    session.close()


@pytest.fixture
def flow():
    return OAuthFlow(client_id="test-client-id", client_secret="test-client-secret")


class TestExtractCode:
    """Test authorization code extraction from redirect URLs."""

    def test_valid_url(self):
        """Should read the code query parameter."""
        url = "http://localhost:3000?code=auth_code_123&scope=tasks"
        assert extract_code(url) == "auth_code_123"

    def test_percent_encoded_code(self):
        """Should decode the code value."""
        assert extract_code("http://localhost:3000/?code=4%2F0Abc&scope=x") == "4/0Abc"

    def test_fallback_for_non_url(self):
        """Should scan strings that are not absolute URLs."""
        assert extract_code("not-a-url?code=fallback_code") == "fallback_code"

    def test_fallback_decodes(self):
        """Should percent-decode the fallback match."""
        assert extract_code("localhost:3000/?state=s&code=4%2Fxyz") == "4/xyz"

    def test_surrounding_whitespace(self):
        """Should tolerate whitespace from pasted input."""
        assert extract_code("  http://localhost:3000?code=abc \n") == "abc"

    def test_error_redirect_fails(self):
        """Should report the provider's error."""
        with pytest.raises(AuthorizationDeniedError, match="access_denied"):
            extract_code("http://localhost:3000?error=access_denied")

    def test_no_code_fails(self):
        """Should fail when there is no code at all."""
        with pytest.raises(InvalidRedirectError, match="Invalid redirect URL"):
            extract_code("no-code-here")

    def test_error_code_param_is_not_a_code(self):
        """Should not mistake error_code= for code=."""
        with pytest.raises(AuthorizationError):
            extract_code("garbage?error_code=123")


class TestAuthorizationUrl:
    """Test the authorization URL."""

    def test_default_scopes(self, flow):
        """Should request the Tasks scope by default."""
        assert flow.scopes == [TASKS_SCOPE]
        assert DEFAULT_SCOPES == [TASKS_SCOPE]

    def test_url_parameters(self, flow):
        """Should request offline access with forced consent."""
        url = flow.get_authorization_url()
        parts = urlsplit(url)
        params = parse_qs(parts.query)

        assert parts.netloc == "accounts.google.com"
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == ["http://localhost:3000"]
        assert params["response_type"] == ["code"]
        assert params["scope"] == [TASKS_SCOPE]
        assert params["access_type"] == ["offline"]
        assert params["prompt"] == ["consent"]

    def test_custom_scopes_and_port(self):
        """Should honor caller-supplied scopes and port."""
        flow = OAuthFlow(
            client_id="id",
            client_secret="secret",
            scopes=["scope-a", "scope-b"],
            redirect_port=8765,
        )
        params = parse_qs(urlsplit(flow.get_authorization_url()).query)
        assert params["scope"] == ["scope-a scope-b"]
        assert params["redirect_uri"] == ["http://localhost:8765"]


class TestExchangeCode:
    """Test the authorization code exchange."""

    def test_returns_both_tokens(self, flow):
        """Should return the refresh and access tokens unchanged."""
        token = {"access_token": "access-1", "refresh_token": "refresh-1", "token_type": "Bearer"}
        with patch.object(flow.session, "fetch_token", return_value=token) as fetch:
            result = flow.exchange_code("auth-code")

        assert result == OAuthResult(refresh_token="refresh-1", access_token="access-1")
        assert fetch.call_args.kwargs["code"] == "auth-code"

    def test_access_token_optional(self, flow):
        """Should succeed with only a refresh token."""
        with patch.object(flow.session, "fetch_token", return_value={"refresh_token": "r"}):
            result = flow.exchange_code("auth-code")
        assert result.refresh_token == "r"
        assert result.access_token is None

    def test_missing_refresh_token(self, flow):
        """Should fail with an actionable message."""
        with (
            patch.object(flow.session, "fetch_token", return_value={"access_token": "a"}),
            pytest.raises(MissingRefreshTokenError, match="No refresh token received"),
        ):
            flow.exchange_code("auth-code")

    def test_transport_error(self, flow):
        """Should wrap request failures in TokenError."""
        with (
            patch.object(
                flow.session, "fetch_token", side_effect=requests.ConnectionError("boom")
            ),
            pytest.raises(TokenError, match="Token exchange failed"),
        ):
            flow.exchange_code("auth-code")


class TestAuthorize:
    """Test the manual and interactive modes."""

    def test_manual_mode(self, flow, capsys):
        """Should print the URL and exchange the pasted code."""
        prompts = []

        def fake_input(prompt):
            prompts.append(prompt)
            return "http://localhost:3000/?code=pasted-code&scope=tasks"

        token = {"access_token": "a", "refresh_token": "r"}
        with patch.object(flow.session, "fetch_token", return_value=token) as fetch:
            result = flow.authorize(manual=True, input_func=fake_input)

        assert result == OAuthResult(refresh_token="r", access_token="a")
        assert fetch.call_args.kwargs["code"] == "pasted-code"
        assert prompts == ["Redirect URL: "]
        assert "accounts.google.com" in capsys.readouterr().out

    def test_manual_mode_invalid_redirect(self, flow):
        """Should fail without contacting the token endpoint."""
        with (
            patch.object(flow.session, "fetch_token") as fetch,
            pytest.raises(InvalidRedirectError),
        ):
            flow.authorize(manual=True, input_func=lambda prompt: "no-code-here")
        fetch.assert_not_called()

    def test_manual_mode_eof(self, flow):
        """Should fail cleanly when stdin is closed."""

        def closed_input(prompt):
            raise EOFError

        with pytest.raises(InvalidRedirectError, match="No redirect URL"):
            flow.authorize(manual=True, input_func=closed_input)

    def test_interactive_mode_closes_server_before_exchange(self, flow):
        """Should tear down the listener, then exchange the code once."""
        events = []

        class FakeServer:
            def __init__(self, port):
                events.append(("init", port))

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                events.append("closed")

            def wait(self, timeout):
                events.append(("wait", timeout))
                return "browser-code"

        def fake_fetch(url, code):
            events.append(("exchange", code))
            return {"refresh_token": "r"}

        with (
            patch("gtcli.google.oauth.CallbackServer", FakeServer),
            patch("gtcli.google.oauth.webbrowser.open", return_value=True) as open_browser,
            patch.object(flow.session, "fetch_token", side_effect=fake_fetch),
        ):
            result = flow.authorize()

        assert result.refresh_token == "r"
        assert events == [("init", 3000), ("wait", 300), "closed", ("exchange", "browser-code")]
        open_browser.assert_called_once()

    def test_interactive_mode_browser_failure_is_not_fatal(self, flow, capsys):
        """Should print the URL when the browser cannot be opened."""

        class FakeServer:
            def __init__(self, port):
                pass

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                pass

            def wait(self, timeout):
                return "code"

        with (
            patch("gtcli.google.oauth.CallbackServer", FakeServer),
            patch("gtcli.google.oauth.webbrowser.open", return_value=False),
            patch.object(flow.session, "fetch_token", return_value={"refresh_token": "r"}),
        ):
            flow.authorize()

        out = capsys.readouterr().out
        assert "Could not open browser automatically." in out
        assert "accounts.google.com" in out


class TestCallbackServer:
    """Test the local redirect listener on an ephemeral port."""

    def test_receives_code(self, http):
        """Should return the code and answer with a success page."""
        with CallbackServer(port=0, host="127.0.0.1") as server:
            response = http.get(f"http://127.0.0.1:{server.port}/?code=abc&scope=tasks", timeout=5)
            code = server.wait(timeout=5)

        assert code == "abc"
        assert response.status_code == 200
        assert "Authorization Successful" in response.text

    def test_error_redirect(self, http):
        """Should render a failure page and report the denial."""
        with CallbackServer(port=0, host="127.0.0.1") as server:
            response = http.get(f"http://127.0.0.1:{server.port}/?error=access_denied", timeout=5)
            with pytest.raises(AuthorizationDeniedError, match="access_denied") as exc_info:
                server.wait(timeout=5)

        assert exc_info.value.error == "access_denied"
        assert response.status_code == 400
        assert "Authorization Failed" in response.text

    def test_other_requests_are_rejected(self, http):
        """Should answer 400 without completing the flow."""
        with CallbackServer(port=0, host="127.0.0.1") as server:
            response = http.get(f"http://127.0.0.1:{server.port}/favicon.ico", timeout=5)
            assert response.status_code == 400
            assert "Invalid Request" in response.text

            http.get(f"http://127.0.0.1:{server.port}/?code=late", timeout=5)
            assert server.wait(timeout=5) == "late"

    def test_only_first_completion_counts(self, http):
        """Should ignore redirects after the first completing one."""
        with CallbackServer(port=0, host="127.0.0.1") as server:
            http.get(f"http://127.0.0.1:{server.port}/?code=first", timeout=5)
            second = http.get(f"http://127.0.0.1:{server.port}/?code=second", timeout=5)
            assert server.wait(timeout=5) == "first"

        assert second.status_code == 400

    def test_timeout_closes_listener(self, http):
        """Should time out with a short window and release the port."""
        with CallbackServer(port=0, host="127.0.0.1") as server:
            port = server.port
            with pytest.raises(AuthorizationTimeoutError, match="timed out"):
                server.wait(timeout=0.2)

        with pytest.raises(requests.ConnectionError):
            http.get(f"http://127.0.0.1:{port}/?code=abc", timeout=2)

    def test_bind_failure(self):
        """Should fail immediately when the port is taken."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = CallbackServer(port=port, host="127.0.0.1")
            with pytest.raises(CallbackServerError, match=f"port {port}"):
                server.start()

    def test_close_is_idempotent(self):
        """Should allow closing twice."""
        server = CallbackServer(port=0, host="127.0.0.1")
        server.start()
        server.close()
        server.close()

    def test_idle_connection_does_not_block_redirect(self, http):
        """Should serve the redirect while another connection sends nothing."""
        with CallbackServer(port=0, host="127.0.0.1") as server:
            with socket.create_connection(("127.0.0.1", server.port)):
                response = http.get(f"http://127.0.0.1:{server.port}/?code=abc", timeout=3)
                assert server.wait(timeout=3) == "abc"

        assert response.status_code == 200

    def test_idle_connection_does_not_block_timeout(self):
        """Should time out and shut down promptly with an idle connection open."""
        started = time.monotonic()
        with CallbackServer(port=0, host="127.0.0.1") as server:
            port = server.port
            with socket.create_connection(("127.0.0.1", port)):
                with pytest.raises(AuthorizationTimeoutError):
                    server.wait(timeout=0.5)
                server.close()

        assert time.monotonic() - started < 3

        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1).close()

    def test_default_host_is_ipv4_loopback(self, http):
        """Should listen on 127.0.0.1 unless told otherwise."""
        with CallbackServer(port=0) as server:
            assert server.host == "127.0.0.1"
            http.get(f"http://127.0.0.1:{server.port}/?code=abc", timeout=5)
            assert server.wait(timeout=5) == "abc"
