"""Layered S3 client options.

Options are built from zero or more partial overlays. ``new_options`` merges
them in order: for every field the last overlay that sets a non-empty value
wins, and an unset value never erases an earlier one.

Example:
    >>> opts = new_options(
    ...     Options().with_region("us-east-1"),
    ...     Options(region=None),
    ...     Options().with_buffer_size(20 * MIB),
    ... )
    >>> opts.region, opts.buffer_size
    ('us-east-1', 20971520)
"""

from dataclasses import dataclass, fields, replace
from datetime import timedelta
from typing import Iterable, Optional

from s3opts.models import StaticCredentials, ValidationError
from s3opts.pipeline import canonical_header_key
from s3opts.transport import Transport

KIB = 1024
MIB = 1024 * KIB

# Upload buffer allocated per object when nothing else is configured
DEFAULT_BUFFER_SIZE = 10 * MIB

# Smallest part size S3 accepts for a multipart upload
MULTIPART_MIN_SIZE = 5 * MIB

# Fallback lifetime of presigned URLs
DEFAULT_EXPIRE = timedelta(minutes=15)

BUFFER_SIZE_MESSAGE = "must be at least 5MiB"


def _canonical_headers(headers: Iterable[str]) -> tuple[str, ...]:
    # A bare string would otherwise be split into one-letter header names
    if isinstance(headers, (str, bytes)):
        raise TypeError(
            "unsigned headers must be a sequence of names, "
            f"not {type(headers).__name__}"
        )
    seen: dict[str, None] = {}
    for header in headers:
        seen.setdefault(canonical_header_key(header), None)
    return tuple(seen)


@dataclass(frozen=True)
class Options:
    """S3 client options.

    The same type is used for partial overlays and for the effective
    configuration returned by ``new_options``. On an overlay ``None`` means
    "not set here"; on the effective configuration the boolean flags are
    always ``True`` or ``False``.
    """

    # Static credentials that override the AWS config chain
    credentials: Optional[StaticCredentials] = None

    # Region where the bucket lives
    region: Optional[str] = None
    # Content type of uploaded objects
    content_type: Optional[str] = None
    # Suffix appended to the content-disposition filename on downloads
    filename_suffix: Optional[str] = None
    # Endpoint used when presigning URLs for external clients
    external_uri: Optional[str] = None
    # Endpoint for the S3 API
    uri: Optional[str] = None

    # Encode the bucket in the request path instead of the host
    force_path_style: Optional[bool] = None
    # Use S3 Transfer Acceleration endpoints
    use_accelerate: Optional[bool] = None

    default_expire: Optional[timedelta] = None
    # Upload buffer size, implicitly capping uploads at buffer_size * 10000
    buffer_size: Optional[int] = None

    # Headers removed from the signature but still sent
    unsigned_headers: tuple[str, ...] = ()

    transport: Optional[Transport] = None

    def __post_init__(self):
        object.__setattr__(
            self, "unsigned_headers", _canonical_headers(self.unsigned_headers)
        )

    def validate(self) -> None:
        """Validate the options.

        Raises:
            ValidationError: If the credentials are invalid or the buffer
                size is below ``MULTIPART_MIN_SIZE``.
        """
        if self.credentials is not None:
            self.credentials.validate()
        if self.buffer_size is not None and self.buffer_size < MULTIPART_MIN_SIZE:
            raise ValidationError("buffer_size", BUFFER_SIZE_MESSAGE)

    def with_static_credentials(
        self, key: str, secret: str, session_token: str = ""
    ) -> "Options":
        return replace(
            self, credentials=StaticCredentials(key, secret, session_token)
        )

    def with_region(self, region: str) -> "Options":
        return replace(self, region=region)

    def with_content_type(self, content_type: str) -> "Options":
        return replace(self, content_type=content_type)

    def with_filename_suffix(self, suffix: str) -> "Options":
        return replace(self, filename_suffix=suffix)

    def with_external_uri(self, external_uri: str) -> "Options":
        return replace(self, external_uri=external_uri)

    def with_uri(self, uri: str) -> "Options":
        return replace(self, uri=uri)

    def with_force_path_style(self, force_path_style: bool) -> "Options":
        return replace(self, force_path_style=force_path_style)

    def with_use_accelerate(self, use_accelerate: bool) -> "Options":
        return replace(self, use_accelerate=use_accelerate)

    def with_default_expire(self, default_expire: timedelta) -> "Options":
        return replace(self, default_expire=default_expire)

    def with_buffer_size(self, buffer_size: int) -> "Options":
        return replace(self, buffer_size=buffer_size)

    def with_unsigned_headers(self, unsigned_headers: Iterable[str]) -> "Options":
        return replace(self, unsigned_headers=unsigned_headers)

    def with_transport(self, transport: Transport) -> "Options":
        return replace(self, transport=transport)


def _is_set(value) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, tuple)) and not value:
        return False
    return True


def new_options(*opts: Optional[Options]) -> Options:
    """Merge option overlays into the effective configuration.

    Args:
        *opts: Partial options, applied in order. ``None`` entries are
            skipped.

    Returns:
        Options with ``buffer_size`` defaulted to ``DEFAULT_BUFFER_SIZE``,
        the boolean flags resolved to ``False`` unless set, and every other
        field taken from the last overlay that set it.
    """
    merged = {
        "buffer_size": DEFAULT_BUFFER_SIZE,
        "force_path_style": False,
        "use_accelerate": False,
    }
    for opt in opts:
        if opt is None:
            continue
        for f in fields(opt):
            value = getattr(opt, f.name)
            if _is_set(value):
                merged[f.name] = value
    return Options(**merged)
