"""Signing exclusion for selected request headers.

Some S3-compatible backends reject a signature that covers certain headers.
Google Cloud Storage, for instance, does not tolerate a signed
Accept-Encoding header. ``UnsignedHeaders`` hooks around botocore's signing
step so that those headers are carried on the wire but never signed:

    ... -> remove unsigned headers -> signing -> add unsigned headers -> ...

botocore signs inside the ``RequestSigner`` handler registered on
``request-created.<service>``. Right before calling the signer it emits
``before-sign.<service>.<operation>``, which is where the headers are
removed. Registering last on ``request-created.<service>`` runs right after
the signer, which is where they are put back.
"""

import logging
import string
from enum import Enum
from typing import Any, Callable, Iterable

import botocore

from s3opts.models import PipelineWiringError

logger = logging.getLogger(__name__)

# Event botocore's RequestSigner handler is registered on
SIGNING_EVENT = "request-created"

# Event the RequestSigner emits immediately before adding auth
BEFORE_SIGNING_EVENT = "before-sign"

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")


def canonical_header_key(name: str) -> str:
    """Return the canonical MIME form of a header name.

    The first letter and every letter following a hyphen are upper-cased,
    the rest lower-cased: ``accept-encoding`` becomes ``Accept-Encoding``.
    Names containing characters that are not valid in a header token are
    returned unchanged.
    """
    if not name or any(c not in _TOKEN_CHARS for c in name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class Position(Enum):
    """Where a handler is inserted relative to the signing stage."""

    BEFORE = "before"
    AFTER = "after"


class SigningStage:
    """The signing stage of a botocore client's request pipeline.

    Args:
        events: The client's event emitter (``client.meta.events``).
        service_id: Hyphenized service id, e.g. ``s3``.
    """

    def __init__(self, events: Any, service_id: str):
        self.events = events
        self.service_id = service_id

    @classmethod
    def of(cls, client: Any) -> "SigningStage":
        """Locate the signing stage of a boto3 client.

        Raises:
            PipelineWiringError: If the client exposes no event emitter.
        """
        try:
            events = client.meta.events
            service_id = client.meta.service_model.service_id.hyphenize()
        except AttributeError as e:
            raise PipelineWiringError(
                f"client has no request pipeline to hook into: {e}"
            ) from e
        return cls(events, service_id)

    def event_name(self, position: Position) -> str:
        if position is Position.BEFORE:
            return f"{BEFORE_SIGNING_EVENT}.{self.service_id}"
        return f"{SIGNING_EVENT}.{self.service_id}"

    def insert(
        self,
        handler: Callable[..., Any],
        position: Position,
        unique_id: str,
    ) -> None:
        """Insert a handler immediately before or after signing.

        Inserting the same ``unique_id`` twice is a no-op.

        Raises:
            PipelineWiringError: If the handler cannot be registered.
        """
        event_name = self.event_name(position)
        try:
            self.events.register_last(event_name, handler, unique_id=unique_id)
        except Exception as e:
            raise PipelineWiringError(
                f"cannot insert {unique_id} {position.value} signing "
                f"({event_name}): {e}"
            ) from e
        logger.debug("Inserted %s on %s", unique_id, event_name)


class UnsignedHeaders:
    """Client option that keeps the named headers out of the signature.

    Instances are immutable and may be shared between clients. The removed
    headers are parked in the botocore request context, which is created
    per API call, so concurrent calls never see each other's headers.

    Args:
        headers: Header names, matched case-insensitively.
    """

    REMOVE_ID = "s3opts.RemoveUnsignedHeaders"
    ADD_ID = "s3opts.AddUnsignedHeaders"

    def __init__(self, headers: Iterable[str]):
        self._headers = tuple(dict.fromkeys(canonical_header_key(h) for h in headers))
        suffix = ",".join(self._headers)
        self._remove_id = f"{self.REMOVE_ID}:{suffix}"
        self._add_id = f"{self.ADD_ID}:{suffix}"

    @property
    def headers(self) -> tuple[str, ...]:
        return self._headers

    def __call__(self, client: Any) -> None:
        self.install(SigningStage.of(client))

    def __repr__(self) -> str:
        return f"UnsignedHeaders({list(self._headers)!r})"

    def install(self, stage: SigningStage) -> None:
        """Insert the remove and add handlers around the signing stage.

        Raises:
            PipelineWiringError: If either handler cannot be inserted.
        """
        stage.insert(self.remove_headers, Position.BEFORE, self._remove_id)
        stage.insert(self.add_headers, Position.AFTER, self._add_id)

    def remove_headers(self, request, signature_version=None, **kwargs) -> None:
        """Move the unsigned headers from the request to its context."""
        if signature_version is botocore.UNSIGNED:
            # Nothing is signed for this operation, leave the request alone.
            return
        removed: dict[str, list[str]] = {}
        for name in self._headers:
            values = request.headers.get_all(name)
            if values:
                removed[name] = values
                del request.headers[name]
        if removed:
            request.context[self._remove_id] = removed

    def add_headers(self, request, **kwargs) -> None:
        """Put the headers parked by ``remove_headers`` back on the request."""
        removed = request.context.pop(self._remove_id, None)
        if not removed:
            return
        for name, values in removed.items():
            del request.headers[name]
            for value in values:
                request.headers[name] = value
