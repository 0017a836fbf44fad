"""Deploy configuration: `.env` loading and the immutable `DeployConfig`.

Values are resolved in priority order: explicit CLI flag, non-empty process
environment variable, `.env` file entry, then the defaults in `config.py`.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional
from urllib.parse import urlparse

from dotenv import dotenv_values

from . import config as cfg
from .errors import ConfigError
from .mirror import normalize_prefix

REQUIRED_KEYS = ("MINIO_URL", "MINIO_ACCESS_KEY", "MINIO_SECRET_KEY", "MINIO_BUCKET")

TRUTHY = {"1", "true", "yes", "on"}

URL_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class DeployConfig:
    endpoint_url: str
    access_key: str
    secret_key: str = field(repr=False)
    bucket: str
    prefix: str = ""
    region: Optional[str] = None
    remove_extra: bool = False
    source_dir: str = cfg.DEFAULT_SOURCE_DIR
    alias: str = cfg.DEFAULT_ALIAS

    @property
    def credentials(self) -> dict:
        return {"aws_access_key_id": self.access_key, "aws_secret_access_key": self.secret_key}

    @property
    def destination(self) -> str:
        """Human readable target, e.g. ``s3://site/widgets/info/``."""
        return f"s3://{self.bucket}/{self.prefix}" + ("/" if self.prefix else "")


def read_env_file(path: Path) -> Dict[str, str]:
    """Parse a `.env` file into a dict. Missing files yield an empty dict.

    Comment lines are ignored and quoted values are unquoted. Bare keys without
    ``=`` are dropped.
    """
    if not path.is_file():
        return {}
    return {k: v for k, v in dotenv_values(path, encoding="utf-8").items() if v is not None}


def load_environment(env_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Merge the `.env` file with the process environment.

    A process variable only wins when it is non-empty, so an exported but blank
    variable does not mask the value written in `.env`.
    """
    path = env_file or Path.cwd() / cfg.DEFAULT_ENV_FILE
    merged = read_env_file(path)
    for key, value in (os.environ if environ is None else environ).items():
        if value and value.strip():
            merged[key] = value
    return merged


def is_http_url(value: str) -> bool:
    try:
        url = urlparse(value)
    except ValueError:
        return False
    return url.scheme in URL_SCHEMES and bool(url.netloc)


def parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in TRUTHY


def load_config(
    values: Mapping[str, str],
    *,
    endpoint_url: Optional[str] = None,
    bucket: Optional[str] = None,
    prefix: Optional[str] = None,
    region: Optional[str] = None,
    remove_extra: Optional[bool] = None,
    source_dir: Optional[str] = None,
    alias: Optional[str] = None,
) -> DeployConfig:
    """Build a `DeployConfig`.

    Raises `ConfigError` listing every missing key, or naming a `MINIO_URL`
    that is not an http(s) URL with a host.
    """

    def pick(flag: Optional[str], key: str) -> str:
        return (flag or values.get(key) or "").strip()

    resolved = {
        "MINIO_URL": pick(endpoint_url, "MINIO_URL"),
        "MINIO_ACCESS_KEY": pick(None, "MINIO_ACCESS_KEY"),
        "MINIO_SECRET_KEY": pick(None, "MINIO_SECRET_KEY"),
        "MINIO_BUCKET": pick(bucket, "MINIO_BUCKET"),
    }
    missing = [key for key in REQUIRED_KEYS if not resolved[key]]
    if missing:
        raise ConfigError(missing)

    if not is_http_url(resolved["MINIO_URL"]):
        raise ConfigError(
            [],
            f"MINIO_URL must be an http(s) URL with a host, got '{resolved['MINIO_URL']}' (e.g. http://localhost:9000)",
        )

    return DeployConfig(
        endpoint_url=resolved["MINIO_URL"],
        access_key=resolved["MINIO_ACCESS_KEY"],
        secret_key=resolved["MINIO_SECRET_KEY"],
        bucket=resolved["MINIO_BUCKET"],
        prefix=normalize_prefix(prefix if prefix is not None else values.get("MINIO_PREFIX", "")),
        region=pick(region, "MINIO_REGION") or None,
        remove_extra=remove_extra if remove_extra is not None else parse_bool(values.get("MINIO_REMOVE_EXTRA")),
        source_dir=pick(source_dir, "SOURCE_DIR") or cfg.DEFAULT_SOURCE_DIR,
        alias=pick(alias, "MINIO_ALIAS") or cfg.DEFAULT_ALIAS,
    )
