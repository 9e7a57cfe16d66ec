"""
REST HTTP client for the orchestrator's auxiliary API.
"""

from typing import Any, Optional

import httpx

from jisi_code.errors import JisiCodeError

DEFAULT_API_URL = "http://127.0.0.1:3001"
USER_AGENT = "jisi-code/0.1.0"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return
        message = resp.text[:200]
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            message = str(body["error"])
        raise JisiCodeError(
            "http_error",
            f"HTTP {resp.status_code}: {message}",
            details={"status_code": resp.status_code},
        )

    async def get(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise JisiCodeError("http_error", f"Request to {path} failed: {e}")
        self._raise_for_status(resp)
        return resp.json()

    async def close(self) -> None:
        await self._client.aclose()
