"""aws_clients.py — Lazy-singleton S3 client.

The client is built on first use and cached for the life of the Lambda
container. SigV4 is forced so presigned URLs carry X-Amz-* query auth.
"""
from __future__ import annotations

from typing import Optional

import boto3
from botocore.config import Config

from unity_store import config

__all__ = [
    "_get_s3",
    "_reset_clients",
]

# ---------------------------------------------------------------------------
# AWS client singletons
# ---------------------------------------------------------------------------

_s3 = None


def _get_s3(region: Optional[str] = None):
    """Get (or create) the S3 client singleton."""
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=region or config.AWS_REGION,
            config=Config(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )
    return _s3


def _reset_clients() -> None:
    global _s3
    _s3 = None
