from __future__ import annotations
import json
import logging
from typing import Any, Dict, Iterator, Optional

import httpx

from mansplain.core.errors import DecodeError, TransportError

logger = logging.getLogger(__name__)


def make_http_client() -> httpx.Client:
    # A hung backend blocks; the run is interrupted with Ctrl+C
    return httpx.Client(timeout=None)


class HttpTransport:
    """
    POSTs JSON and hands back the response body as raw byte chunks.
    Maps httpx failures to TransportError (before the body) and
    DecodeError (while reading the body).
    """

    def __init__(self, client: Optional[httpx.Client] = None):
        self._client = client or make_http_client()

    def close(self) -> None:
        self._client.close()

    def stream_bytes(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Iterator[bytes]:
        logger.debug("URL: %s", url)
        logger.debug("Payload: %s", json.dumps(payload, indent=2, ensure_ascii=False))

        request = self._client.build_request("POST", url, json=payload, headers=headers)
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to connect to LLM API: {e}") from e

        try:
            self._raise_for_status(response)
            try:
                for chunk in response.iter_bytes():
                    yield chunk
            except httpx.HTTPError as e:
                raise DecodeError(f"Failed to read stream chunk: {e}") from e
        finally:
            response.close()

    def read_body(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> bytes:
        return b"".join(self.stream_bytes(url, payload, headers))

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            details = response.read().decode("utf-8", errors="replace").strip()
        except httpx.HTTPError:
            details = ""
        msg = f"LLM API returned error: {response.status_code} {response.reason_phrase}".rstrip()
        if details:
            msg += f"\nDetails: {details}"
        raise TransportError(msg)
