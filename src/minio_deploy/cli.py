import argparse
from pathlib import Path
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from . import config as cfg
from .console import error, hint, status, success
from .errors import ConfigError, DeployError, ProvisioningError, SourceNotFoundError, TransferError
from .files import walk_directory
from .init_env import init_env
from .mc import mirror_with_mc
from .mirror import build_plan, run_mirror
from .progress import UploadProgress, format_bytes
from .s3 import ensure_bucket, list_remote_keys, make_s3_client
from .settings import DeployConfig, load_config, load_environment


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="minio-deploy",
        description="Mirror a local static build directory into an S3-compatible (MinIO) bucket.",
    )
    sub = p.add_subparsers(dest="command", required=True)

    d = sub.add_parser("deploy", help="Upload the build directory and optionally prune remote-only objects")
    d.add_argument(
        "--source-dir",
        "-s",
        default=None,
        help=f"Local directory to mirror (or env SOURCE_DIR, default: {cfg.DEFAULT_SOURCE_DIR})",
    )
    d.add_argument("--bucket", default=None, help="Target bucket (or env MINIO_BUCKET)")
    d.add_argument("--prefix", "-p", default=None, help="Key prefix inside the bucket (or env MINIO_PREFIX)")
    d.add_argument(
        "--endpoint-url",
        default=None,
        help="S3 API endpoint, e.g. http://localhost:9000 (or env MINIO_URL)",
    )
    d.add_argument("--region", default=None, help="Region used when creating the bucket (or env MINIO_REGION)")
    d.add_argument(
        "--remove-extra",
        dest="remove_extra",
        action="store_const",
        const=True,
        default=None,
        help="Delete remote objects under the prefix that do not exist locally (or env MINIO_REMOVE_EXTRA=1)",
    )
    d.add_argument(
        "--keep-extra",
        dest="remove_extra",
        action="store_const",
        const=False,
        help="Never delete remote objects, even if MINIO_REMOVE_EXTRA is set",
    )
    d.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Configuration file to read (default: ./.env)",
    )
    d.add_argument(
        "--concurrency",
        "-c",
        type=int,
        default=cfg.DEFAULT_CONCURRENCY,
        help="Concurrent uploads via asyncio.to_thread (1 = sequential)",
    )
    d.add_argument(
        "--transport",
        choices=["sdk", "mc"],
        default="sdk",
        help="Talk to the bucket through boto3 (sdk) or the MinIO Client binary (mc)",
    )
    d.add_argument(
        "--virtual-host-style",
        action="store_true",
        help="Use virtual-host addressing instead of path-style (sdk transport only)",
    )
    d.add_argument("--dry-run", action="store_true", help="Show what would be uploaded and deleted, change nothing")
    d.add_argument("--no-progress", action="store_true", help="Do not draw the upload progress bar")

    i = sub.add_parser("init-env", help="Create a .env template, or print the current values")
    i.add_argument(
        "--env-file",
        type=Path,
        default=Path(cfg.DEFAULT_ENV_FILE),
        help="Path of the configuration file (default: ./.env)",
    )
    return p.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> DeployConfig:
    values = load_environment(args.env_file)
    return load_config(
        values,
        endpoint_url=args.endpoint_url,
        bucket=args.bucket,
        prefix=args.prefix,
        region=args.region,
        remove_extra=args.remove_extra,
        source_dir=args.source_dir,
    )


def print_plan(conf: DeployConfig, s3, files, bucket_exists: bool) -> None:
    remote = None
    if conf.remove_extra:
        try:
            remote = list(list_remote_keys(s3, conf.bucket, conf.prefix)) if bucket_exists else []
        except (ClientError, BotoCoreError) as exc:
            raise TransferError(f"Listing {conf.destination} failed: {exc}") from exc
    plan = build_plan(files, conf.prefix, remote)
    for item, key in plan.uploads:
        print(f"upload {item.relative_path} -> {key} ({item.size_bytes}B)")
    for key in plan.deletions:
        print(f"delete {key}")
    print(f"Dry run: {len(plan.uploads)} upload(s), {len(plan.deletions)} deletion(s), nothing changed.")


def deploy(args: argparse.Namespace) -> int:
    conf = resolve_config(args)
    source = Path(conf.source_dir)
    status(f"Deploying '{conf.source_dir}' to {conf.destination}")
    if not source.is_dir():
        raise SourceNotFoundError(conf.source_dir)

    if args.transport == "mc":
        mirror_with_mc(conf, dry_run=args.dry_run)
        success("Deploy finished." if not args.dry_run else "Dry run finished.")
        return 0

    concurrency = max(1, int(args.concurrency or 1))
    s3 = make_s3_client(
        endpoint_url=conf.endpoint_url,
        credentials=conf.credentials,
        region=conf.region,
        use_path_style=not args.virtual_host_style,
        max_pool_connections=concurrency if concurrency > 10 else None,
    )

    status(f"Checking bucket: {conf.bucket}" + (f" via {conf.endpoint_url}" if conf.endpoint_url else ""))
    existed = ensure_bucket(s3, conf.bucket, conf.region, conf.endpoint_url, create=not args.dry_run)
    if not existed:
        print(f"Bucket '{conf.bucket}' " + ("does not exist yet." if args.dry_run else "created."), flush=True)

    files = walk_directory(source)
    total_bytes = sum(f.size_bytes for f in files)
    status(f"Found {len(files)} file(s), {format_bytes(total_bytes)}, under '{conf.source_dir}'")

    if args.dry_run:
        print_plan(conf, s3, files, existed)
        return 0

    progress = None if args.no_progress or not files else UploadProgress(total_bytes, len(files))
    result = run_mirror(
        s3,
        conf.bucket,
        files,
        prefix=conf.prefix,
        remove_extra=conf.remove_extra,
        concurrency=concurrency,
        progress=progress,
    )

    print(
        f"Summary: uploaded={result.uploaded} deleted={result.deleted} "
        f"bytes={result.total_bytes} time={result.duration_sec:.3f}s",
        flush=True,
    )
    success("Deploy finished.")
    return 0


def report(exc: Exception) -> None:
    if isinstance(exc, DeployError):
        error(exc.message)
    else:
        error(str(exc))
    if isinstance(exc, ConfigError) and exc.missing:
        print("Set the variables (environment or .env) and run again:")
        print("  MINIO_URL (e.g. http://localhost:9000)")
        print("  MINIO_ACCESS_KEY")
        print("  MINIO_SECRET_KEY")
        print("  MINIO_BUCKET")
    if isinstance(exc, ProvisioningError) and exc.hint:
        hint(exc.hint)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        if args.command == "init-env":
            init_env(args.env_file.resolve())
            return 0
        return deploy(args)
    except (DeployError, OSError) as exc:
        report(exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
