"""Pluggable HTTP transports for botocore clients.

botocore emits ``before-send.<service>.<operation>`` with the prepared request
right before handing it to its urllib3 session; the first handler returning a
response replaces the network call. A ``Transport`` is installed on that
event.
"""

import logging
import ssl
from abc import ABC, abstractmethod
from io import BytesIO
from typing import Any, Optional

import httpx
from botocore.awsrequest import AWSPreparedRequest, AWSResponse
from botocore.exceptions import (
    ConnectTimeoutError,
    EndpointConnectionError,
    HTTPClientError,
    ReadTimeoutError,
    ResponseStreamingError,
)

from s3opts.rootcas import get_root_cas

logger = logging.getLogger(__name__)

TRANSPORT_ID = "s3opts.Transport"


class Transport(ABC):
    """Sends a signed request and returns the raw response."""

    @abstractmethod
    def send(self, request: AWSPreparedRequest) -> AWSResponse:
        pass


class BufferedRawResponse(BytesIO):
    """In-memory body exposing the urllib3 ``stream`` API botocore reads.

    For transports that produce the whole response body up front.
    """

    def stream(self, amt=1024, decode_content=None):
        while True:
            chunk = self.read(amt)
            if not chunk:
                break
            yield chunk


class HTTPXRawResponse:
    """Undecoded body of a streamed httpx response.

    botocore reads urllib3 responses with ``decode_content=False`` and checks
    the byte count against ``Content-Length``, so the body is handed over
    exactly as it came off the wire. The httpx response is closed once the
    body is exhausted.
    """

    def __init__(self, response: httpx.Response, chunk_size: int = 64 * 1024):
        self._response = response
        self._chunks = response.iter_raw(chunk_size)
        self._buffer = bytearray()

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def readable(self) -> bool:
        return True

    def _next_chunk(self) -> bytes:
        if self.closed:
            return b""
        try:
            chunk = next(self._chunks, b"")
        except httpx.ReadTimeout as e:
            self.close()
            raise ReadTimeoutError(endpoint_url=str(self._response.url), error=e) from e
        except httpx.TransportError as e:
            self.close()
            raise ResponseStreamingError(error=e) from e
        if not chunk:
            self.close()
        return chunk

    def read(self, amt: Optional[int] = None) -> bytes:
        if amt is None:
            while True:
                chunk = self._next_chunk()
                if not chunk:
                    break
                self._buffer += chunk
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        while len(self._buffer) < amt:
            chunk = self._next_chunk()
            if not chunk:
                break
            self._buffer += chunk
        data = bytes(self._buffer[:amt])
        del self._buffer[:amt]
        return data

    def stream(self, amt=1024, decode_content=None):
        while True:
            chunk = self.read(amt)
            if not chunk:
                break
            yield chunk

    def close(self) -> None:
        self._response.close()


class HTTPXTransport(Transport):
    """Transport sending requests with httpx.

    Args:
        client: httpx client to send with. When omitted, a client verifying
            TLS against ``get_root_cas()`` is created and owned by the
            transport.
        timeout: Timeout in seconds for the owned client.
    """

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = 60.0):
        self._owns_client = client is None
        if client is None:
            context = ssl.create_default_context(cafile=get_root_cas())
            client = httpx.Client(verify=context, timeout=timeout)
        self._client = client

    def send(self, request: AWSPreparedRequest) -> AWSResponse:
        """Send a prepared botocore request.

        The response body is streamed and handed to botocore undecoded,
        whatever its ``Content-Encoding``.

        Raises:
            EndpointConnectionError: If the endpoint cannot be reached.
            ConnectTimeoutError: If connecting times out.
            ReadTimeoutError: If reading the response times out.
            HTTPClientError: For any other transport failure.
        """
        request.reset_stream()
        body = request.body
        if hasattr(body, "read"):
            body = body.read()
        http_request = httpx.Request(
            request.method,
            request.url,
            headers=list(request.headers.items()),
            content=body,
        )
        try:
            response = self._client.send(http_request, stream=True)
        except httpx.ConnectTimeout as e:
            raise ConnectTimeoutError(endpoint_url=request.url, error=e) from e
        except httpx.ConnectError as e:
            raise EndpointConnectionError(endpoint_url=request.url, error=e) from e
        except httpx.ReadTimeout as e:
            raise ReadTimeoutError(endpoint_url=request.url, error=e) from e
        except httpx.TransportError as e:
            raise HTTPClientError(request=request, error=e) from e

        if response.is_stream_consumed:
            # Loaded in memory already, e.g. a response built from bytes
            raw: Any = BufferedRawResponse(response.content)
        else:
            raw = HTTPXRawResponse(response)
        return AWSResponse(
            request.url, response.status_code, dict(response.headers), raw
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HTTPXTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def install_transport(client: Any, transport: Transport) -> None:
    """Route every request of a boto3 client through ``transport``."""
    service_id = client.meta.service_model.service_id.hyphenize()

    def send(request, **kwargs):
        return transport.send(request)

    event_name = f"before-send.{service_id}"
    client.meta.events.register(event_name, send, unique_id=TRANSPORT_ID)
    logger.debug("Installed %s on %s", type(transport).__name__, event_name)
