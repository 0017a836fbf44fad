from typing import Callable, Iterable, Iterator, List, Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from . import config as cfg
from .errors import ProvisioningError, TransferError
from .files import LocalFile, content_type_for

MISSING_BUCKET_CODES = {"404", "NoSuchBucket", "NotFound"}
ALREADY_EXISTS_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}

# Fragments seen when an S3 request lands on MinIO's web console instead of the API.
CONSOLE_PORT_MARKERS = (
    "console port",
    "api port",
    "unable to parse",
    "not well-formed",
    "<html",
    "<!doctype",
)


def make_s3_client(
    endpoint_url: Optional[str],
    credentials: Optional[dict],
    region: Optional[str] = None,
    use_path_style: bool = cfg.DEFAULT_USE_PATH_STYLE,
    max_pool_connections: Optional[int] = None,
):
    session = boto3.session.Session()
    config_kwargs = {"s3": {"addressing_style": "path" if use_path_style else "virtual"}}
    if max_pool_connections:
        config_kwargs["max_pool_connections"] = max_pool_connections
    client_kwargs = {"region_name": region, "config": BotoConfig(**config_kwargs), "endpoint_url": endpoint_url}
    if credentials:
        client_kwargs.update(credentials)
    return session.client("s3", **{k: v for k, v in client_kwargs.items() if v is not None})


def error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def console_port_hint(exc: Exception, endpoint_url: Optional[str]) -> Optional[str]:
    """Return guidance when a failure looks like the console port was configured."""
    text = str(exc).lower()
    port = None
    if endpoint_url:
        try:
            port = urlparse(endpoint_url).port
        except ValueError:
            port = None
    if port == cfg.CONSOLE_PORT or any(marker in text for marker in CONSOLE_PORT_MARKERS):
        return (
            f"The endpoint {endpoint_url or '(default)'} looks like the MinIO web console, not the S3 API. "
            "Set MINIO_URL to the API port (usually 9000, e.g. http://localhost:9000)."
        )
    return None


def ensure_bucket(
    s3,
    bucket: str,
    region: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    create: bool = True,
) -> bool:
    """Make sure ``bucket`` exists, creating it when absent.

    Returns True when the bucket already existed. With ``create=False`` a
    missing bucket is only reported (False) and left alone.
    """
    try:
        s3.head_bucket(Bucket=bucket)
        return True
    except ClientError as exc:
        if error_code(exc) not in MISSING_BUCKET_CODES:
            raise ProvisioningError(
                f"Could not access bucket '{bucket}': {exc}", hint=console_port_hint(exc, endpoint_url)
            ) from exc
    except BotoCoreError as exc:
        raise ProvisioningError(
            f"Could not reach {endpoint_url or 'S3'} to check bucket '{bucket}': {exc}",
            hint=console_port_hint(exc, endpoint_url),
        ) from exc

    if not create:
        return False

    kwargs = {"Bucket": bucket}
    # us-east-1 is the implicit location and is rejected as an explicit constraint.
    if region and region != "us-east-1":
        kwargs["CreateBucketConfiguration"] = {"LocationConstraint": region}
    try:
        s3.create_bucket(**kwargs)
    except ClientError as exc:
        if error_code(exc) in ALREADY_EXISTS_CODES:
            return True
        raise ProvisioningError(
            f"Could not create bucket '{bucket}': {exc}", hint=console_port_hint(exc, endpoint_url)
        ) from exc
    except BotoCoreError as exc:
        raise ProvisioningError(
            f"Could not create bucket '{bucket}': {exc}", hint=console_port_hint(exc, endpoint_url)
        ) from exc
    return False


def list_remote_keys(s3, bucket: str, prefix: str = "") -> Iterator[str]:
    """Yield every object key under ``prefix``, paging transparently.

    A non-empty prefix is listed as ``prefix + "/"`` so sibling prefixes
    sharing the same leading characters are never included.
    """
    paginator = s3.get_paginator("list_objects_v2")
    kwargs = {"Bucket": bucket}
    if prefix:
        kwargs["Prefix"] = f"{prefix}/"
    for page in paginator.paginate(**kwargs):
        for obj in page.get("Contents", []) or []:
            yield obj["Key"]


def upload_one(s3, bucket: str, item: LocalFile, key: str, callback: Optional[Callable[[int], None]] = None) -> None:
    extra = {"ContentType": content_type_for(item.relative_path)}
    kwargs = {"ExtraArgs": extra}
    if callback is not None:
        kwargs["Callback"] = callback
    s3.upload_file(str(item.absolute_path), bucket, key, **kwargs)


def _batches(keys: List[str], size: int) -> Iterable[List[str]]:
    for start in range(0, len(keys), size):
        yield keys[start : start + size]


def delete_keys(s3, bucket: str, keys: Iterable[str], batch_size: int = cfg.DELETE_BATCH_SIZE) -> int:
    """Delete ``keys`` in DeleteObjects batches. Returns the number deleted."""
    keys = list(keys)
    deleted = 0
    for batch in _batches(keys, max(1, int(batch_size))):
        try:
            resp = s3.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
            )
        except (ClientError, BotoCoreError) as exc:
            raise TransferError(f"Delete batch failed: {exc}", completed=deleted, total=len(keys)) from exc
        errors = resp.get("Errors") or []
        if errors:
            first = errors[0]
            raise TransferError(
                f"Could not delete {len(errors)} object(s), first: {first.get('Key')} ({first.get('Code')}: {first.get('Message')})",
                completed=deleted + len(batch) - len(errors),
                total=len(keys),
            )
        deleted += len(batch)
    return deleted
