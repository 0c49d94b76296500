"""Projection of effective options onto boto3 S3 clients.

``to_s3_options`` turns validated ``Options`` into two independent
callables: one configures the settings of the API client, the other the
settings of the presign client. ``new_client`` and ``new_presign_client``
hand those settings to ``boto3.client``.

The signature version is pinned to 's3v4'; unsigned headers only make sense
for SigV4 signatures.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Callable, Optional, Union

import boto3
from botocore.client import Config

from s3opts.models import StaticCredentials
from s3opts.options import DEFAULT_EXPIRE, Options
from s3opts.pipeline import UnsignedHeaders
from s3opts.rootcas import get_root_cas
from s3opts.transport import Transport, install_transport

logger = logging.getLogger(__name__)

SERVICE_NAME = "s3"

# Applied to a freshly created client, e.g. to hook into its request pipeline
APIOption = Callable[[Any], None]


def addressing_style(force_path_style: bool) -> str:
    """Path-style pins the endpoint host; otherwise botocore may prefix it
    with the bucket name."""
    return "path" if force_path_style else "auto"


@dataclass
class ClientSettings:
    """Construction settings for a boto3 S3 client."""

    region_name: Optional[str] = None
    endpoint_url: Optional[str] = None
    credentials: Optional[StaticCredentials] = None
    use_path_style: bool = False
    use_accelerate: bool = False
    transport: Optional[Transport] = None
    verify: Union[str, bool, None] = None
    api_options: list[APIOption] = field(default_factory=list)

    def boto_config(self) -> Config:
        return Config(
            signature_version="s3v4",
            s3={
                "addressing_style": addressing_style(self.use_path_style),
                "use_accelerate_endpoint": self.use_accelerate,
            },
        )

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``boto3.client``."""
        kwargs: dict[str, Any] = {"config": self.boto_config()}
        if self.region_name is not None:
            kwargs["region_name"] = self.region_name
        if self.endpoint_url is not None:
            kwargs["endpoint_url"] = self.endpoint_url
        if self.verify is not None:
            kwargs["verify"] = self.verify
        if self.credentials is not None:
            kwargs.update(self.credentials.client_kwargs())
        return kwargs


@dataclass
class PresignSettings:
    """Settings for generating presigned URLs."""

    expires: timedelta = DEFAULT_EXPIRE
    # Alternative endpoint the presigned URLs point at
    endpoint_url: Optional[str] = None
    use_path_style: bool = False
    content_type: Optional[str] = None
    filename_suffix: Optional[str] = None


def to_s3_options(
    opts: Options,
) -> tuple[
    Callable[[ClientSettings], ClientSettings],
    Callable[[PresignSettings], PresignSettings],
]:
    """Derive client and presign settings from effective options.

    Args:
        opts: Effective options, as returned by ``new_options`` and already
            validated.

    Returns:
        A ``(client_opts, presign_opts)`` pair. Each callable updates the
        settings object it is given and returns it.
    """
    force_path_style = bool(opts.force_path_style)

    def client_opts(settings: ClientSettings) -> ClientSettings:
        if opts.credentials is not None:
            settings.credentials = opts.credentials
        if opts.region:
            settings.region_name = opts.region
        if opts.unsigned_headers:
            settings.api_options.append(UnsignedHeaders(opts.unsigned_headers))
        if opts.uri:
            settings.endpoint_url = opts.uri
        if opts.transport is not None:
            settings.transport = opts.transport
        else:
            settings.verify = get_root_cas()
        settings.use_path_style = force_path_style
        settings.use_accelerate = bool(opts.use_accelerate)
        return settings

    expires = opts.default_expire if opts.default_expire is not None else DEFAULT_EXPIRE

    def presign_opts(settings: PresignSettings) -> PresignSettings:
        settings.expires = expires
        if opts.external_uri:
            settings.endpoint_url = opts.external_uri
            settings.use_path_style = force_path_style
        if opts.content_type:
            settings.content_type = opts.content_type
        if opts.filename_suffix:
            settings.filename_suffix = opts.filename_suffix
        return settings

    return client_opts, presign_opts


def new_client(settings: ClientSettings, session: Optional[boto3.Session] = None):
    """Build a boto3 S3 client from settings.

    Args:
        settings: Client settings, typically filled by ``to_s3_options``.
        session: boto3 session to create the client from. Defaults to the
            boto3 default session.

    Returns:
        A boto3 S3 client with every API option and the transport applied.

    Raises:
        PipelineWiringError: If an API option cannot hook into the client.
    """
    factory = session if session is not None else boto3
    client = factory.client(SERVICE_NAME, **settings.client_kwargs())
    for option in settings.api_options:
        option(client)
    if settings.transport is not None:
        install_transport(client, settings.transport)
    logger.debug(
        "Created S3 client for %s with %d API options",
        settings.endpoint_url or "default endpoint",
        len(settings.api_options),
    )
    return client


class PresignClient:
    """Generates presigned URLs with a fixed expiry.

    Args:
        client: boto3 S3 client pointing at the endpoint URLs are built for.
        settings: Presign settings.
    """

    def __init__(self, client: Any, settings: PresignSettings):
        self.client = client
        self.settings = settings

    @property
    def expires_in(self) -> int:
        return int(self.settings.expires.total_seconds())

    def presign(self, client_method: str, params: dict[str, Any]) -> str:
        return self.client.generate_presigned_url(
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=self.expires_in,
        )

    def presign_get_object(
        self, bucket: str, key: str, filename: Optional[str] = None
    ) -> str:
        """Presign a download, optionally as an attachment named ``filename``."""
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if filename:
            suffix = self.settings.filename_suffix or ""
            params["ResponseContentDisposition"] = (
                f'attachment; filename="{filename}{suffix}"'
            )
        return self.presign("get_object", params)

    def presign_put_object(
        self, bucket: str, key: str, content_type: Optional[str] = None
    ) -> str:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        content_type = content_type or self.settings.content_type
        if content_type:
            params["ContentType"] = content_type
        return self.presign("put_object", params)

    def presign_head_object(self, bucket: str, key: str) -> str:
        return self.presign("head_object", {"Bucket": bucket, "Key": key})

    def presign_delete_object(self, bucket: str, key: str) -> str:
        return self.presign("delete_object", {"Bucket": bucket, "Key": key})


def new_presign_client(
    client_settings: ClientSettings,
    presign_settings: PresignSettings,
    session: Optional[boto3.Session] = None,
) -> PresignClient:
    """Build a presign client sharing the API client's settings.

    When the presign settings name an alternative endpoint, the underlying
    client is pointed there so URLs carry the external host.
    """
    settings = replace(client_settings, api_options=list(client_settings.api_options))
    if presign_settings.endpoint_url:
        settings.endpoint_url = presign_settings.endpoint_url
        settings.use_path_style = presign_settings.use_path_style
    return PresignClient(new_client(settings, session), presign_settings)


def new_clients(
    opts: Options, session: Optional[boto3.Session] = None
) -> tuple[Any, PresignClient]:
    """Validate effective options and build the API and presign clients.

    A second boto3 client is only built when presigned URLs point at an
    external endpoint.

    Raises:
        ValidationError: If the options are invalid.
        PipelineWiringError: If the unsigned headers cannot be installed.
    """
    opts.validate()
    client_opts, presign_opts = to_s3_options(opts)
    client_settings = client_opts(ClientSettings())
    presign_settings = presign_opts(PresignSettings())
    client = new_client(client_settings, session)
    if not presign_settings.endpoint_url:
        # URLs point at the API endpoint, so the API client signs them
        return client, PresignClient(client, presign_settings)
    return client, new_presign_client(client_settings, presign_settings, session)
