"""
Mirror a local file set onto a bucket prefix.

Every local file is uploaded unconditionally (overwrite always). When removal
is enabled, remote keys under the prefix that have no local counterpart are
deleted afterwards. The deletion set is computed once, from a listing taken
before any upload starts, and never contains a local key.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from . import config as cfg
from . import s3 as storage
from .errors import TransferError
from .files import LocalFile
from .progress import UploadProgress

UPLOAD_ERRORS = (ClientError, BotoCoreError, S3UploadFailedError, OSError)

SEPARATORS = "/\\"


def normalize_prefix(prefix: Optional[str]) -> str:
    return (prefix or "").strip().strip(SEPARATORS)


def map_key(relative_path: str, prefix: str = "") -> str:
    prefix = normalize_prefix(prefix)
    return f"{prefix}/{relative_path}" if prefix else relative_path


def compute_deletions(remote_keys: Iterable[str], local_keys: Set[str]) -> List[str]:
    return sorted(set(remote_keys) - set(local_keys))


@dataclass
class SyncPlan:
    uploads: List[Tuple[LocalFile, str]]
    deletions: List[str] = field(default_factory=list)

    @property
    def local_keys(self) -> Set[str]:
        return {key for _, key in self.uploads}

    @property
    def total_bytes(self) -> int:
        return sum(item.size_bytes for item, _ in self.uploads)


@dataclass
class MirrorResult:
    uploaded: int
    deleted: int
    total_bytes: int
    duration_sec: float


def build_plan(files: Iterable[LocalFile], prefix: str = "", remote_keys: Optional[Iterable[str]] = None) -> SyncPlan:
    """Pair every file with its key; diff against ``remote_keys`` when given."""
    plan = SyncPlan(uploads=[(item, map_key(item.relative_path, prefix)) for item in files])
    if remote_keys is not None:
        plan.deletions = compute_deletions(remote_keys, plan.local_keys)
    return plan


def upload_sequential(s3, bucket: str, plan: SyncPlan, progress: Optional[UploadProgress] = None) -> int:
    total = len(plan.uploads)
    for done, (item, key) in enumerate(plan.uploads):
        try:
            storage.upload_one(s3, bucket, item, key, progress.add_bytes if progress else None)
        except UPLOAD_ERRORS as exc:
            raise TransferError(f"Upload of {key} failed: {exc}", completed=done, total=total) from exc
        if progress:
            progress.file_done()
    return total


async def upload_concurrent(
    s3,
    bucket: str,
    plan: SyncPlan,
    concurrency: int = 8,
    progress: Optional[UploadProgress] = None,
) -> int:
    """Upload with at most ``concurrency`` transfers in flight.

    The first failure stops any upload that has not started yet. Transfers
    already running are awaited so ``completed`` counts every finished file.
    """
    sem = asyncio.Semaphore(max(1, int(concurrency)))
    total = len(plan.uploads)
    done = 0
    failure: Optional[Tuple[str, BaseException]] = None

    async def do_one(item: LocalFile, key: str) -> None:
        nonlocal done, failure
        async with sem:
            if failure is not None:
                return
            try:
                await asyncio.to_thread(
                    storage.upload_one, s3, bucket, item, key, progress.add_bytes if progress else None
                )
            except UPLOAD_ERRORS as exc:
                if failure is None:
                    failure = (key, exc)
                return
            done += 1
            if progress:
                progress.file_done()

    await asyncio.gather(*(do_one(item, key) for item, key in plan.uploads))
    if failure is not None:
        key, exc = failure
        raise TransferError(f"Upload of {key} failed: {exc}", completed=done, total=total) from exc
    return done


def run_mirror(
    s3,
    bucket: str,
    files: List[LocalFile],
    prefix: str = "",
    remove_extra: bool = False,
    concurrency: int = cfg.DEFAULT_CONCURRENCY,
    progress: Optional[UploadProgress] = None,
    batch_size: int = cfg.DELETE_BATCH_SIZE,
) -> MirrorResult:
    """Mirror ``files`` onto ``bucket``/``prefix`` and return what was done."""
    prefix = normalize_prefix(prefix)
    remote = None
    if remove_extra:
        try:
            remote = list(storage.list_remote_keys(s3, bucket, prefix))
        except (ClientError, BotoCoreError) as exc:
            raise TransferError(f"Listing s3://{bucket}/{prefix} failed: {exc}") from exc
    plan = build_plan(files, prefix, remote)

    start = time.perf_counter()
    try:
        if concurrency and int(concurrency) > 1:
            uploaded = asyncio.run(upload_concurrent(s3, bucket, plan, int(concurrency), progress))
        else:
            uploaded = upload_sequential(s3, bucket, plan, progress)
    finally:
        if progress:
            progress.finish()

    deleted = storage.delete_keys(s3, bucket, plan.deletions, batch_size) if plan.deletions else 0
    return MirrorResult(
        uploaded=uploaded,
        deleted=deleted,
        total_bytes=plan.total_bytes,
        duration_sec=time.perf_counter() - start,
    )
