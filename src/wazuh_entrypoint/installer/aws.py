"""Pull custom rules and decoders from S3"""

from pathlib import Path, PurePosixPath
from typing import Any, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from wazuh_entrypoint.config.manager import BootstrapConfig
from wazuh_entrypoint.errors import CommandError, ConfigError
from wazuh_entrypoint.installer.base import Reporter, StepResult

CLIENT_CONFIG = BotoConfig(connect_timeout=10, read_timeout=60)


def parse_s3_path(path: str) -> Tuple[str, str]:
    """Split s3://bucket/prefix into bucket and a prefix ending in '/' (or empty)"""
    if not path.startswith("s3://"):
        raise ConfigError(f"parse {path}", "expected s3://bucket[/prefix]")

    bucket, _, prefix = path[len("s3://"):].partition("/")
    if not bucket:
        raise ConfigError(f"parse {path}", "missing bucket name")

    prefix = prefix.strip("/")
    return bucket, f"{prefix}/" if prefix else ""


def _destination(root: Path, relative: str) -> Path:
    parts = PurePosixPath(relative).parts
    if not parts or ".." in parts or relative.startswith("/"):
        raise ConfigError(f"sync {relative}", "object key escapes the destination directory")
    return root.joinpath(*parts)


def sync_ruleset(cfg: BootstrapConfig, log: Reporter, client: Optional[Any] = None) -> StepResult:
    """Download every object under the configured S3 path into the ruleset directory"""
    result = StepResult("ruleset sync")

    if not cfg.ruleset_s3_path:
        log.debug("No S3 ruleset path configured")
        result.skipped = True
        return result

    log.section("Syncing ruleset from S3")
    bucket, prefix = parse_s3_path(cfg.ruleset_s3_path)
    dest_root = cfg.ruleset_dest or cfg.install_root / "etc"

    try:
        client = client or boto3.client("s3", config=CLIENT_CONFIG)
        paginator = client.get_paginator("list_objects_v2")

        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                if key.endswith("/"):
                    continue

                dest = _destination(dest_root, key[len(prefix):])
                dest.parent.mkdir(parents=True, exist_ok=True)
                log.debug(f"  s3://{bucket}/{key} -> {dest}")
                client.download_file(bucket, key, str(dest))
                result.changed.append(dest)
    except (BotoCoreError, ClientError, OSError) as e:
        raise CommandError(f"sync {cfg.ruleset_s3_path}", stderr=str(e))

    log.success(f"Synced {len(result.changed)} files from {cfg.ruleset_s3_path}")
    return result
