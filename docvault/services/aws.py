from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config

from ..config import AwsSettings

# Retries belong to the calling layer; each request is attempted once.
_CLIENT_CONFIG = Config(retries={"total_max_attempts": 1, "mode": "standard"}, signature_version="s3v4")


def boto3_client(service: str, aws: AwsSettings) -> Any:
    kwargs: dict[str, Any] = {"region_name": aws.region, "config": _CLIENT_CONFIG}
    if aws.access_key_id and aws.secret_access_key:
        kwargs["aws_access_key_id"] = aws.access_key_id
        kwargs["aws_secret_access_key"] = aws.secret_access_key
    if aws.s3_endpoint_url and service == "s3":
        kwargs["endpoint_url"] = aws.s3_endpoint_url
    return boto3.client(service, **kwargs)
