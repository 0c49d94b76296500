"""Shared fixtures for s3opts tests."""

import re
import threading

import pytest
from botocore.awsrequest import AWSResponse

from s3opts.options import Options
from s3opts.transport import BufferedRawResponse, Transport

SIGNED_HEADERS_RE = re.compile(r"SignedHeaders=([^,]+)")


class RecordingTransport(Transport):
    """Transport that records every request and answers 200 with no body."""

    def __init__(self):
        self.requests = []
        self._lock = threading.Lock()

    def send(self, request):
        with self._lock:
            self.requests.append(request)
        return AWSResponse(request.url, 200, {}, BufferedRawResponse(b""))

    @property
    def last(self):
        return self.requests[-1]


def signed_headers(request) -> list[str]:
    """Return the header names covered by the request's SigV4 signature."""
    match = SIGNED_HEADERS_RE.search(request.headers["Authorization"])
    assert match, "request has no SigV4 Authorization header"
    return match.group(1).split(";")


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def base_options(transport: RecordingTransport) -> Options:
    """Options pointing at a local endpoint with a recording transport."""
    return (
        Options()
        .with_static_credentials("test-access-key", "test-secret-key")
        .with_region("us-east-1")
        .with_uri("http://localhost:9000")
        .with_force_path_style(True)
        .with_transport(transport)
    )
