"""Mirror through the MinIO Client (`mc`) instead of boto3.

Same contract as the SDK path: configure an alias, create the bucket if
needed, then `mc mirror --overwrite`, adding `--remove` when remote-only
objects should be deleted. `mc` output goes straight to the terminal.

A dry run only calls `mc mirror --dry-run`, with the alias passed through
the environment, so neither the bucket nor the saved aliases change.
"""

import os
import subprocess
from typing import Dict, List, Optional, Type
from urllib.parse import quote, urlparse

from .console import status
from .errors import DeployError, ProvisioningError, ToolNotFoundError, TransferError
from .s3 import console_port_hint
from .settings import DeployConfig

MC_INSTALL_URL = "https://min.io/docs/minio/linux/reference/minio-mc.html"


def mc_available(mc: str = "mc") -> bool:
    try:
        subprocess.run([mc, "--version"], check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except (OSError, subprocess.CalledProcessError):
        return False
    return True


def _run(
    args: List[str],
    failure: Type[DeployError],
    what: str,
    config: DeployConfig,
    env: Optional[Dict[str, str]] = None,
) -> None:
    try:
        subprocess.run(args, check=True, env=env)
    except FileNotFoundError as exc:
        raise ToolNotFoundError(f"'{args[0]}' not found in PATH. Install it: {MC_INSTALL_URL}") from exc
    except subprocess.CalledProcessError as exc:
        message = f"{what} failed: {args[0]} exited with code {exc.returncode}"
        if failure is ProvisioningError:
            raise ProvisioningError(message, hint=console_port_hint(exc, config.endpoint_url)) from exc
        raise failure(message) from exc


def mc_target(config: DeployConfig) -> str:
    target = f"{config.alias}/{config.bucket}"
    return f"{target}/{config.prefix}" if config.prefix else target


def mc_host_env(config: DeployConfig) -> Dict[str, str]:
    """Process environment defining ``config.alias`` for a single mc call.

    mc reads ``MC_HOST_<alias>`` before its config file, so nothing is saved.
    """
    url = urlparse(config.endpoint_url)
    userinfo = f"{quote(config.access_key, safe='')}:{quote(config.secret_key, safe='')}"
    env = dict(os.environ)
    env[f"MC_HOST_{config.alias}"] = f"{url.scheme}://{userinfo}@{url.netloc}{url.path}"
    return env


def mirror_with_mc(config: DeployConfig, dry_run: bool = False, mc: str = "mc") -> None:
    if not mc_available(mc):
        raise ToolNotFoundError(f"MinIO Client '{mc}' not found in PATH. Install it: {MC_INSTALL_URL}")

    env = None
    if dry_run:
        status(f"Dry run: using alias '{config.alias}' for this run only, bucket {config.bucket} is not created")
        env = mc_host_env(config)
    else:
        status(f"Configuring alias '{config.alias}' -> {config.endpoint_url}")
        _run(
            [mc, "alias", "set", config.alias, config.endpoint_url, config.access_key, config.secret_key],
            ProvisioningError,
            "mc alias set",
            config,
        )
        status(f"Creating bucket (if needed): {config.bucket}")
        mb = [mc, "mb", "--ignore-existing"]
        if config.region:
            mb += ["--region", config.region]
        _run(mb + [f"{config.alias}/{config.bucket}"], ProvisioningError, "mc mb", config)

    dest = mc_target(config)
    status(f"Mirroring '{config.source_dir}' -> '{dest}'")
    args = [mc, "mirror", "--overwrite"]
    if config.remove_extra:
        args.append("--remove")
    if dry_run:
        args.append("--dry-run")
    _run(args + [config.source_dir, dest], TransferError, "mc mirror", config, env=env)
