"""Configuration loading for S3 client options.

Supports two configuration sources, merged with ``new_options``:
1. config.json file (for local development)
2. Environment variables (for deployments) - overlaid on top of the file

Environment Variable Format:
    S3_ACCESS_KEY_ID=xxx
    S3_SECRET_ACCESS_KEY=xxx
    S3_SESSION_TOKEN=xxx
    S3_REGION=us-east-1
    S3_URI=http://minio.internal:9000
    S3_EXTERNAL_URI=https://storage.example.com
    S3_FORCE_PATH_STYLE=true
    S3_USE_ACCELERATE=false
    S3_DEFAULT_EXPIRE=900
    S3_BUFFER_SIZE=10485760
    S3_UNSIGNED_HEADERS=Accept-Encoding,X-Custom
    S3_CONTENT_TYPE=application/octet-stream
    S3_FILENAME_SUFFIX=.mender

The JSON file uses the same fields in snake case, with credentials under
``auth``:

    {
        "auth": {"key": "xxx", "secret": "xxx", "token": ""},
        "uri": "http://minio.internal:9000",
        "force_path_style": true,
        "default_expire": 900,
        "unsigned_headers": ["Accept-Encoding"]
    }
"""

import json
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

from s3opts.models import ConfigError, StaticCredentials
from s3opts.options import Options, new_options

ENV_PREFIX = "S3_"

_STRING_FIELDS = ["region", "content_type", "filename_suffix", "external_uri", "uri"]
_BOOL_FIELDS = ["force_path_style", "use_accelerate"]

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid integer for {name}: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid integer for {name}: {value!r}") from e


def _parse_seconds(name: str, value: Any) -> timedelta:
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid duration in seconds for {name}: {value!r}") from e
    if seconds <= 0:
        raise ConfigError(f"Duration for {name} must be positive: {value!r}")
    return timedelta(seconds=seconds)


def options_from_dict(data: Mapping[str, Any]) -> Options:
    """Build a partial Options overlay from a JSON-style mapping.

    Raises:
        ConfigError: If a field has the wrong type or unknown keys are
            present.
    """
    known = set(_STRING_FIELDS) | set(_BOOL_FIELDS) | {
        "auth",
        "default_expire",
        "buffer_size",
        "unsigned_headers",
    }
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    opts = Options()

    auth = data.get("auth")
    if auth is not None:
        if not isinstance(auth, dict):
            raise ConfigError("Field 'auth' must be an object")
        opts = opts.with_static_credentials(
            str(auth.get("key", "")),
            str(auth.get("secret", "")),
            str(auth.get("token", "")),
        )

    for name in _STRING_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ConfigError(f"Field '{name}' must be a string")
        opts = getattr(opts, f"with_{name}")(value)

    for name in _BOOL_FIELDS:
        if data.get(name) is not None:
            opts = getattr(opts, f"with_{name}")(_parse_bool(name, data[name]))

    if data.get("default_expire") is not None:
        opts = opts.with_default_expire(
            _parse_seconds("default_expire", data["default_expire"])
        )
    if data.get("buffer_size") is not None:
        opts = opts.with_buffer_size(_parse_int("buffer_size", data["buffer_size"]))

    headers = data.get("unsigned_headers")
    if headers is not None:
        if not isinstance(headers, list) or not all(
            isinstance(h, str) for h in headers
        ):
            raise ConfigError("Field 'unsigned_headers' must be a list of strings")
        opts = opts.with_unsigned_headers(headers)

    return opts


def load_from_json(config_path: str) -> Options:
    """Load an options overlay from a JSON file.

    Args:
        config_path: Path to the config.json file.

    Returns:
        Partial Options with the fields present in the file.

    Raises:
        ConfigError: If the file doesn't exist, contains invalid JSON,
                    or has malformed fields.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")

    return options_from_dict(data)


def load_from_env(environ: Optional[Mapping[str, str]] = None) -> Options:
    """Load an options overlay from ``S3_*`` environment variables.

    Args:
        environ: Environment to read (defaults to ``os.environ``).

    Returns:
        Partial Options with the fields whose variables are set.

    Raises:
        ConfigError: If a variable is malformed or only half of the
                    access key pair is set.
    """
    if environ is None:
        environ = os.environ

    def get(name: str) -> Optional[str]:
        value = environ.get(ENV_PREFIX + name.upper())
        return value if value else None

    opts = Options()

    key, secret = get("access_key_id"), get("secret_access_key")
    if key or secret:
        if not (key and secret):
            raise ConfigError(
                "Both S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be set"
            )
        opts = opts.with_static_credentials(key, secret, get("session_token") or "")

    for name in _STRING_FIELDS:
        value = get(name)
        if value is not None:
            opts = getattr(opts, f"with_{name}")(value)

    for name in _BOOL_FIELDS:
        value = get(name)
        if value is not None:
            opts = getattr(opts, f"with_{name}")(
                _parse_bool(ENV_PREFIX + name.upper(), value)
            )

    value = get("default_expire")
    if value is not None:
        opts = opts.with_default_expire(_parse_seconds("S3_DEFAULT_EXPIRE", value))

    value = get("buffer_size")
    if value is not None:
        opts = opts.with_buffer_size(_parse_int("S3_BUFFER_SIZE", value))

    value = get("unsigned_headers")
    if value is not None:
        opts = opts.with_unsigned_headers(
            h.strip() for h in value.split(",") if h.strip()
        )

    return opts


def has_env_options(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if any S3_* environment variables exist."""
    if environ is None:
        environ = os.environ
    return any(key.startswith(ENV_PREFIX) for key in environ)


def load_options(
    config_path: str = "config.json",
    environ: Optional[Mapping[str, str]] = None,
) -> Options:
    """Load effective options with environment priority.

    Priority order (highest first):
    1. Environment variables
    2. config.json file (skipped when missing)
    3. Built-in defaults

    Args:
        config_path: Path to config.json.
        environ: Environment to read (defaults to ``os.environ``).

    Returns:
        Effective, unvalidated Options.

    Raises:
        ConfigError: If either source is malformed.
    """
    file_opts = None
    if Path(config_path).exists():
        file_opts = load_from_json(config_path)

    env_opts = None
    if has_env_options(environ):
        env_opts = load_from_env(environ)

    return new_options(file_opts, env_opts)
