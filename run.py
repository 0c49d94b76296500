#!/usr/bin/env python3
"""
S3 client options tool

Run this script to inspect the effective S3 options or presign object URLs.

Usage:
    python run.py check                          # Use config.json
    python run.py -c custom.json check           # Use custom config
    python run.py presign get my-bucket a.bin    # Presigned download URL
    python run.py presign put my-bucket a.bin -e 300
"""

import sys
from s3opts.cli import main

if __name__ == "__main__":
    sys.exit(main())
