"""Create the `.env` file used by `minio-deploy`, or show what it holds."""

import argparse
from pathlib import Path
from typing import List, Mapping, Optional

from . import config as cfg
from .console import error
from .settings import read_env_file

ENV_VARS = [
    "MINIO_URL",
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
    "MINIO_BUCKET",
    "MINIO_PREFIX",
    "MINIO_REGION",
    "MINIO_ALIAS",
    "MINIO_REMOVE_EXTRA",
    "SOURCE_DIR",
]

TEMPLATE = f"""# MinIO deploy settings
# NEVER commit real credentials. Keep this file in .gitignore.

MINIO_URL=http://localhost:9000
MINIO_ACCESS_KEY=
MINIO_SECRET_KEY=
MINIO_BUCKET=

# Optional: sub-path inside the bucket (e.g. widgets/info)
MINIO_PREFIX=

# Optional: region passed when the bucket has to be created
MINIO_REGION=

# Optional: alias name used with the mc transport (default: {cfg.DEFAULT_ALIAS})
MINIO_ALIAS={cfg.DEFAULT_ALIAS}

# Optional: set to 1 to delete remote files that no longer exist locally
MINIO_REMOVE_EXTRA=

# Optional: local directory to upload (default: {cfg.DEFAULT_SOURCE_DIR})
SOURCE_DIR={cfg.DEFAULT_SOURCE_DIR}
"""


def format_values(values: Mapping[str, str]) -> List[str]:
    return [f"{key}={values.get(key, '')}" for key in ENV_VARS]


def init_env(path: Path) -> bool:
    """Write the template to ``path`` unless it exists. Returns True if written."""
    if path.exists():
        print(f"{path.name} already exists at: {path}")
        print(f"Current values in {path.name}:")
        for line in format_values(read_env_file(path)):
            print(line)
        return False

    path.write_text(TEMPLATE, encoding="utf-8")
    print(f"{path.name} created at: {path}")
    print("Fill in the values, then run: minio-deploy deploy")
    return True


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="minio-init-env",
        description="Create a .env template for minio-deploy, or print the current values if it exists.",
    )
    p.add_argument(
        "--env-file",
        type=Path,
        default=Path(cfg.DEFAULT_ENV_FILE),
        help="Path of the configuration file (default: ./.env)",
    )
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        init_env(args.env_file.resolve())
    except OSError as exc:
        error(f"Could not set up {args.env_file}: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
