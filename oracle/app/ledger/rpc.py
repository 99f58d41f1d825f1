"""Minimal JSON-RPC 2.0 client for reading ledger state."""

import itertools
from typing import Any, List, Optional

import httpx

from oracle.app.core.http_client import get_http_client
from oracle.app.core.logging import get_logger
from oracle.app.exceptions import ExternalReadError
from oracle.app.ledger.retry import RetryPolicy, with_retry

logger = get_logger(__name__)


class JsonRpcClient:
    """Issue JSON-RPC requests against a ledger node.

    Transport failures and 5xx responses are retried according to the
    retry policy; every failure that survives the retries, as well as
    RPC-level error objects, surfaces as ExternalReadError.
    """

    def __init__(
        self,
        url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.url = url
        self._http_client = http_client
        self._ids = itertools.count(1)
        self._post = with_retry(retry_policy or RetryPolicy.from_settings())(self._post_once)

    @property
    def http_client(self) -> httpx.AsyncClient:
        # Fall back to the lifespan-managed client when none was injected
        return self._http_client or get_http_client()

    async def _post_once(self, payload: dict) -> Any:
        response = await self.http_client.post(self.url, json=payload)
        response.raise_for_status()
        return response.json()

    async def call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            body = await self._post(payload)
        except httpx.HTTPError as e:
            raise ExternalReadError(f"RPC request failed for {method}: {e}") from e
        except ValueError as e:
            raise ExternalReadError(f"RPC returned invalid JSON for {method}") from e
        except Exception as e:
            raise ExternalReadError(
                f"RPC request failed for {method}: {type(e).__name__}: {e}"
            ) from e

        if not isinstance(body, dict):
            raise ExternalReadError(f"RPC returned invalid response for {method}")
        if body.get("error"):
            raise ExternalReadError(f"RPC error for {method}: {body['error']}")
        return body.get("result")

    async def eth_call(self, to: str, data: str, block: str = "latest") -> bytes:
        """Execute a read-only contract call and return the raw return data."""
        result = await self.call("eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise ExternalReadError(f"Invalid eth_call result: {result!r}")
        if result == "0x":
            # Calls to an address without code return empty data
            raise ExternalReadError(f"Empty eth_call result from {to}")
        try:
            return bytes.fromhex(result[2:])
        except ValueError as e:
            raise ExternalReadError("eth_call result is not valid hex") from e
