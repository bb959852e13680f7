"""boto3 client construction for the Bedrock services."""

from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config


def bedrock_client(service_name: str, region: str, timeout_seconds: float) -> Any:
    """Return a boto3 client with bounded timeouts and no retries.

    A single attempt per call: ``max_attempts`` in standard mode counts the
    initial request.
    """
    config = Config(
        region_name=region,
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
        retries={"max_attempts": 1, "mode": "standard"},
    )
    session = boto3.session.Session()
    return session.client(service_name, config=config)
