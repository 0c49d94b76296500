"""
S3 client options with unsigned-header support.

Builds boto3 S3 clients for S3-compatible storage from layered options, and
keeps selected headers out of the request signature while still sending them.
"""

__version__ = "1.0.0"

from s3opts.adapter import new_clients, to_s3_options
from s3opts.options import Options, new_options

__all__ = ["Options", "new_options", "new_clients", "to_s3_options", "__version__"]
