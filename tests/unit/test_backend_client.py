"""Unit tests for BackendClient.

Backend replies are simulated with httpx.MockTransport.
"""

import json
from collections.abc import Callable
from decimal import Decimal

import httpx
import pytest

from services.backend.client import BackendClient, BackendNotConfiguredError, UpstreamError
from services.shared.config import Settings

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    """Create test settings pointing at a fake backend."""
    return Settings(api_base_url="http://backend.test/")


def make_client(settings: Settings, handler: Handler) -> BackendClient:
    """Create a client whose requests are answered by handler."""
    return BackendClient(settings, transport=httpx.MockTransport(handler))


class TestSend:
    """Test request forwarding."""

    def test_not_configured(self) -> None:
        """Should refuse to send without a base URL."""
        client = BackendClient(Settings(api_base_url=""))

        assert client.is_configured() is False
        with pytest.raises(BackendNotConfiguredError, match="API base is not configured."):
            client.send("GET", "/item/getlist")

    def test_bearer_token_and_url(self, settings: Settings) -> None:
        """Should join the base URL and send the token as a bearer credential."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        client = make_client(settings, handler)
        client.send("GET", "/item/getlist", token="tok-123", params={"page": 2})

        assert str(seen[0].url) == "http://backend.test/item/getlist?page=2"
        assert seen[0].headers["Authorization"] == "Bearer tok-123"

    def test_no_token_no_authorization_header(self, settings: Settings) -> None:
        """Anonymous calls (login, signup) carry no Authorization header."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        make_client(settings, handler).send("POST", "/account/login/post", json_body={"a": 1})

        assert "Authorization" not in seen[0].headers
        assert json.loads(seen[0].content) == {"a": 1}

    def test_get_retries_transport_errors(self, settings: Settings) -> None:
        """Reads are retried and succeed once the backend answers."""
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            if calls["count"] < 3:
                raise httpx.ConnectError("Connection refused")
            return httpx.Response(200, json={"ok": True})

        response = make_client(settings, handler).send("GET", "/company/info")

        assert response.status_code == 200
        assert calls["count"] == 3

    def test_get_gives_up_after_three_attempts(self, settings: Settings) -> None:
        """The transport error surfaces once retries are exhausted."""
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            raise httpx.ConnectError("Connection refused")

        with pytest.raises(httpx.ConnectError):
            make_client(settings, handler).send("GET", "/company/info")
        assert calls["count"] == 3

    def test_post_is_not_retried(self, settings: Settings) -> None:
        """Writes are sent once."""
        calls = {"count": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["count"] += 1
            raise httpx.ConnectError("Connection refused")

        with pytest.raises(httpx.ConnectError):
            make_client(settings, handler).send("POST", "/invoice/insertupdate", json_body={})
        assert calls["count"] == 1


class TestFetch:
    """Test response decoding and error mapping."""

    def test_json_reply(self, settings: Settings) -> None:
        """JSON replies are decoded."""
        client = make_client(settings, lambda r: httpx.Response(200, json={"exists": False}))
        assert client.fetch("POST", "/account/signup/checkEmailExists") == {"exists": False}

    def test_text_reply(self, settings: Settings) -> None:
        """Non-JSON replies are returned as text."""
        client = make_client(settings, lambda r: httpx.Response(200, text="saved"))
        assert client.fetch("POST", "/item/delete") == "saved"

    def test_json_error_is_relayed(self, settings: Settings) -> None:
        """A JSON error body is kept as the payload."""
        client = make_client(
            settings, lambda r: httpx.Response(409, json={"message": "Item was modified"})
        )

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch("POST", "/item/insertupdate")
        assert exc_info.value.status_code == 409
        assert exc_info.value.payload == {"message": "Item was modified"}

    def test_text_error_is_wrapped(self, settings: Settings) -> None:
        """A text error body becomes {"error": text}."""
        client = make_client(settings, lambda r: httpx.Response(401, text="Invalid credentials"))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch("POST", "/account/login/post")
        assert exc_info.value.status_code == 401
        assert exc_info.value.payload == {"error": "Invalid credentials"}

    def test_wrapped_json_error(self, settings: Settings) -> None:
        """With wrap_errors a JSON error body is kept as text."""
        body = b'{"message": "Item in use"}'
        client = make_client(
            settings,
            lambda r: httpx.Response(
                409, content=body, headers={"Content-Type": "application/json"}
            ),
        )

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch("POST", "/item/delete", wrap_errors=True)
        assert exc_info.value.status_code == 409
        assert exc_info.value.payload == {"error": '{"message": "Item in use"}'}

    def test_empty_error_uses_reason(self, settings: Settings) -> None:
        """An empty error body falls back to the reason phrase."""
        client = make_client(settings, lambda r: httpx.Response(404))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch("GET", "/Item/5")
        assert exc_info.value.payload == {"error": "Not Found"}


class TestTypedHelpers:
    """Test typed convenience calls."""

    def test_get_lookup_list(self, settings: Settings) -> None:
        """Lookup rows are parsed into catalog entries."""
        rows = [{"itemID": 7, "itemName": "Widget", "saleRate": 19.99, "discountPct": 10}]
        client = make_client(settings, lambda r: httpx.Response(200, json=rows))

        entries = client.get_lookup_list("tok")
        assert entries[0].item_id == 7
        assert entries[0].item_name == "Widget"
        assert entries[0].sale_rate == Decimal("19.99")

    def test_get_invoice(self, settings: Settings) -> None:
        """The first matching invoice is returned."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"invoiceID": 5}])

        invoice = make_client(settings, handler).get_invoice("tok", 5)

        assert invoice == {"invoiceID": 5}
        assert seen[0].url.params["invoiceID"] == "5"

    def test_get_invoice_missing(self, settings: Settings) -> None:
        """An empty list means no such invoice."""
        client = make_client(settings, lambda r: httpx.Response(200, json=[]))
        assert client.get_invoice("tok", 5) is None
