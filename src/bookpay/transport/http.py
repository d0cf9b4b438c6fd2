"""
REST HTTP client for the payment service provider.
"""

from typing import Any, Optional

import httpx

from bookpay.errors import NetworkError

DEFAULT_BASE_URL = "http://localhost:3000"


class HttpError(Exception):
    """A non-2xx PSP response. Carries the status and the decoded error body for classification."""

    def __init__(self, status: int, body: Any, text: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status}: {text[:200]}")


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: Optional[float] = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": "bookpay/0.1.0", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def _auth_headers(self, idempotency_key: Optional[str] = None) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap { "status": "success", "data": <actual_data> } envelopes; plain bodies pass through."""
        if isinstance(json_data, dict) and "status" in json_data and "data" in json_data:
            return json_data["data"]
        return json_data

    @staticmethod
    def _decode(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"Could not reach payment provider: {e}")
        if resp.status_code >= 400:
            raise HttpError(resp.status_code, self._decode(resp), resp.text)
        return self._unwrap(self._decode(resp))

    async def post(self, path: str, body: Optional[dict[str, Any]] = None, idempotency_key: Optional[str] = None) -> Any:
        return await self._request("POST", path, json=body, headers=self._auth_headers(idempotency_key))

    async def close(self) -> None:
        await self._client.aclose()
