"""HTTP client for the backend invoicing API.

Every data operation of the app is forwarded here. The client attaches the
user's bearer token, retries idempotent reads on transport errors and turns
non-2xx replies into ``UpstreamError`` so the API layer can relay them.

Based on HTTPX documentation:
https://www.python-httpx.org/
"""

import json
import logging
import time
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from services.api import metrics
from services.shared.config import Settings
from services.totals.schema import CatalogEntry

logger = logging.getLogger(__name__)


class BackendNotConfiguredError(RuntimeError):
    """Raised when no backend API base URL is configured."""

    def __init__(self) -> None:
        super().__init__("API base is not configured.")


class UpstreamError(Exception):
    """Non-2xx reply from the backend API.

    Attributes:
        status_code: Status returned by the backend
        payload: Parsed JSON error body, or ``{"error": <text>}`` when the body
            is not JSON
    """

    def __init__(self, status_code: int, payload: Any) -> None:
        super().__init__(f"Backend returned {status_code}")
        self.status_code = status_code
        self.payload = payload

    @classmethod
    def from_response(cls, response: httpx.Response, wrap: bool = False) -> "UpstreamError":
        """Build the error from a failed backend response.

        Args:
            response: Non-2xx backend response
            wrap: Always report the body as ``{"error": <text>}``, even when it is JSON
        """
        text = response.text
        fallback = {"error": text or response.reason_phrase}
        if wrap:
            return cls(response.status_code, fallback)
        try:
            payload = json.loads(text)
        except ValueError:
            payload = fallback
        return cls(response.status_code, payload)


class BackendClient:
    """Thin client for the backend API.

    One instance is shared by all requests; the token is passed per call since
    it belongs to the browser session, not to the client.
    """

    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize backend client.

        Args:
            settings: Application settings
            transport: Optional HTTPX transport (tests use ``httpx.MockTransport``)
        """
        self.settings = settings
        self._base_url = settings.api_base_url.rstrip("/")
        self._client = httpx.Client(timeout=settings.upstream_timeout, transport=transport)

    def is_configured(self) -> bool:
        """Check whether a backend base URL is set.

        Returns:
            True if requests can be forwarded
        """
        return bool(self._base_url)

    def send(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json_body: Any = None,
        params: Any = None,
        data: dict[str, Any] | None = None,
        files: Any = None,
    ) -> httpx.Response:
        """Forward one request to the backend.

        Args:
            method: HTTP method
            path: Backend path, starting with '/'
            token: Auth token to send as a bearer credential
            json_body: JSON body
            params: Query parameters
            data: Multipart/form fields
            files: Multipart files

        Returns:
            Raw backend response, whatever its status

        Raises:
            BackendNotConfiguredError: If no base URL is configured
            httpx.HTTPError: On transport failure (after retries for GET)
        """
        if not self.is_configured():
            raise BackendNotConfiguredError()

        request = self._client.build_request(
            method,
            f"{self._base_url}{path}",
            headers=self._headers(token),
            json=json_body,
            params=params,
            data=data,
            files=files,
        )

        start = time.time()
        try:
            if method == "GET":
                response = self._send_with_retry(request)
            else:
                response = self._client.send(request)
        except httpx.HTTPError as e:
            metrics.upstream_requests_total.labels(method=method, path=path, status="error").inc()
            logger.error(f"Backend request {method} {path} failed: {e}")
            raise
        finally:
            metrics.upstream_request_duration_seconds.labels(method=method).observe(
                time.time() - start
            )

        metrics.upstream_requests_total.labels(
            method=method, path=path, status=response.status_code
        ).inc()
        logger.debug(f"Backend {method} {path} -> {response.status_code}")
        return response

    def fetch(self, method: str, path: str, *, wrap_errors: bool = False, **kwargs: Any) -> Any:
        """Forward a request and decode a successful reply.

        Args:
            method: HTTP method
            path: Backend path
            wrap_errors: Report error bodies as ``{"error": <text>}`` without parsing them
            **kwargs: Passed to ``send``

        Returns:
            Decoded JSON when the backend replies with JSON, else the body text

        Raises:
            UpstreamError: If the backend replies with a non-2xx status
        """
        response = self.send(method, path, **kwargs)
        if not response.is_success:
            error = UpstreamError.from_response(response, wrap=wrap_errors)
            logger.warning(f"Backend {method} {path} returned {error.status_code}")
            raise error

        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    def get_lookup_list(self, token: str) -> list[CatalogEntry]:
        """Load the catalog entries offered in the line item picker."""
        rows = self.fetch("GET", "/item/getlookuplist", token=token)
        return [CatalogEntry.model_validate(row) for row in rows or []]

    def get_invoice(self, token: str, invoice_id: int) -> dict[str, Any] | None:
        """Load one invoice with its lines.

        Returns:
            Invoice record, or None if the backend has no such invoice
        """
        rows = self.fetch("GET", "/invoice/getlist", token=token, params={"invoiceID": invoice_id})
        if not rows:
            return None
        invoice: dict[str, Any] = rows[0]
        return invoice

    def get_company_info(self, token: str) -> dict[str, Any]:
        """Load the signed-in user's company profile."""
        info: dict[str, Any] = self.fetch("GET", "/company/info", token=token) or {}
        return info

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        wait=wait_exponential_jitter(initial=0.1, max=2),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _send_with_retry(self, request: httpx.Request) -> httpx.Response:
        """Send an idempotent request, retrying transient transport errors.

        Args:
            request: Prepared request

        Returns:
            Backend response

        Raises:
            httpx.TransportError: After all retry attempts exhausted
        """
        return self._client.send(request)

    def _headers(self, token: str | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers
