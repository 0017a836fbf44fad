"""Shared test fixtures for minio-deploy."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from minio_deploy.settings import DeployConfig

ENV_KEYS = (
    "MINIO_URL",
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
    "MINIO_BUCKET",
    "MINIO_PREFIX",
    "MINIO_REGION",
    "MINIO_ALIAS",
    "MINIO_REMOVE_EXTRA",
    "SOURCE_DIR",
)


def client_error(code: str, message: str = "", operation: str = "HeadBucket") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


class FakePaginator:
    def __init__(self, client: "FakeS3") -> None:
        self.client = client

    def paginate(self, Bucket: str, Prefix: str = ""):
        self.client.list_calls.append((Bucket, Prefix))
        keys = sorted(k for (b, k) in self.client.objects if b == Bucket and k.startswith(Prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        size = self.client.page_size
        for start in range(0, len(keys), size):
            yield {"Contents": [{"Key": k, "Size": 0} for k in keys[start : start + size]]}


class FakeS3:
    """In-memory stand-in for the parts of a boto3 S3 client the tool calls."""

    def __init__(self, buckets=("site",), page_size: int = 1000) -> None:
        self.buckets = set(buckets)
        self.page_size = page_size
        self.objects: Dict[Tuple[str, str], dict] = {}
        self.created: List[dict] = []
        self.uploads: List[str] = []
        self.list_calls: List[Tuple[str, str]] = []
        self.delete_batches: List[List[str]] = []
        self.fail_upload_keys: set = set()
        self.delete_errors: List[dict] = []
        self.head_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def put(self, key: str, body: bytes = b"old", bucket: str = "site") -> None:
        self.objects[(bucket, key)] = {"Body": body, "ContentType": "application/octet-stream"}

    def keys(self, bucket: str = "site") -> set:
        return {k for (b, k) in self.objects if b == bucket}

    def head_bucket(self, Bucket: str) -> dict:
        if self.head_error is not None:
            raise self.head_error
        if Bucket not in self.buckets:
            raise client_error("404", "Not Found")
        return {}

    def create_bucket(self, **kwargs) -> dict:
        if self.create_error is not None:
            raise self.create_error
        self.created.append(kwargs)
        self.buckets.add(kwargs["Bucket"])
        return {}

    def get_paginator(self, name: str) -> FakePaginator:
        assert name == "list_objects_v2"
        return FakePaginator(self)

    def upload_file(self, Filename: str, Bucket: str, Key: str, ExtraArgs=None, Callback=None) -> None:
        if Key in self.fail_upload_keys:
            raise S3UploadFailedError(f"Failed to upload {Filename} to {Bucket}/{Key}: boom")
        body = Path(Filename).read_bytes()
        with self._lock:
            self.objects[(Bucket, Key)] = {"Body": body, "ContentType": (ExtraArgs or {}).get("ContentType")}
            self.uploads.append(Key)
        if Callback is not None:
            Callback(len(body))

    def delete_objects(self, Bucket: str, Delete: dict) -> dict:
        batch = [o["Key"] for o in Delete["Objects"]]
        self.delete_batches.append(batch)
        if self.delete_errors:
            return {"Errors": self.delete_errors}
        for key in batch:
            self.objects.pop((Bucket, key), None)
        return {"Deleted": [{"Key": k} for k in batch]}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's MINIO_* variables out of every test."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small build output: index.html and assets/app.js."""
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<!doctype html><title>hi</title>")
    (root / "assets" / "app.js").write_text("console.log('hi')")
    return root


@pytest.fixture
def make_config(site_dir: Path):
    def _make(**overrides) -> DeployConfig:
        values = {
            "endpoint_url": "http://localhost:9000",
            "access_key": "minioadmin",
            "secret_key": "minioadmin",
            "bucket": "site",
            "source_dir": str(site_dir),
        }
        values.update(overrides)
        return DeployConfig(**values)

    return _make
