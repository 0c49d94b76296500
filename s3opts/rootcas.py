"""Trusted root certificates for TLS connections to the storage service."""

import os

import certifi

# Environment variable pointing at a PEM bundle that replaces the default
CERT_FILE_ENV = "SSL_CERT_FILE"


def get_root_cas() -> str:
    """Return the path of the CA bundle used to verify the storage endpoint.

    ``SSL_CERT_FILE`` wins when it names an existing file, otherwise the
    Mozilla bundle shipped with certifi is used.
    """
    path = os.environ.get(CERT_FILE_ENV)
    if path and os.path.isfile(path):
        return path
    return certifi.where()
