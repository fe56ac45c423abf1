"""Startup sequence for the Wazuh container"""

import os
import shutil
from pathlib import Path
from typing import Callable, List, Optional

from wazuh_entrypoint.config.manager import BootstrapConfig, rerooted
from wazuh_entrypoint.errors import FilesystemError, MissingInputError
from wazuh_entrypoint.installer.aws import sync_ruleset
from wazuh_entrypoint.installer.base import Reporter, StepResult
from wazuh_entrypoint.installer.credentials import provision_credentials
from wazuh_entrypoint.installer.cron import install_cron

NODE_NAME_PLACEHOLDER = "<node_name>to_be_replaced_by_hostname</node_name>"
CLUSTER_KEY_PLACEHOLDER = "<key>to_be_replaced_by_cluster_key</key>"


def _is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def _copy_with_owner(src: str, dst: str) -> str:
    """copy2 that also keeps ownership when running as root"""
    shutil.copy2(src, dst)
    if _is_root():
        st = os.stat(src)
        os.chown(dst, st.st_uid, st.st_gid)
    return dst


def _copy_dir_owners(src: Path, dst: Path):
    if not _is_root():
        return
    for root, dirs, _files in os.walk(src):
        for name in [""] + dirs:
            source = Path(root) / name
            st = os.lstat(source)
            os.chown(dst / source.relative_to(src), st.st_uid, st.st_gid, follow_symlinks=False)


def is_populated(directory: Path) -> bool:
    """True if the directory exists and holds at least one entry"""
    if not directory.is_dir():
        return False
    with os.scandir(directory) as entries:
        return any(True for _ in entries)


def mount_permanent_data(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Populate empty persistent directories from the bundled backup"""
    log.section("Mounting permanent data")
    result = StepResult("permanent data")

    for permanent_dir in cfg.permanent_data:
        if is_populated(permanent_dir):
            log.info(f"  The path {permanent_dir} is already mounted")
            continue

        backup = rerooted(cfg.backup_root, permanent_dir)
        if not backup.is_dir():
            raise MissingInputError(f"install {permanent_dir}", f"no bundled backup at {backup}")

        log.info(f"  Installing {permanent_dir}")
        try:
            shutil.copytree(backup, permanent_dir, symlinks=True, copy_function=_copy_with_owner, dirs_exist_ok=True)
            _copy_dir_owners(backup, permanent_dir)
        except (OSError, shutil.Error) as e:
            raise FilesystemError(f"copy {backup} to {permanent_dir}", str(e))

        result.changed.append(permanent_dir)
        log.success(f"Installed {permanent_dir}")

    return result


def apply_exclusion_data(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Refresh version-tracked files from the image"""
    log.section("Applying exclusion data")
    result = StepResult("exclusion data")

    for exclusion_file in cfg.exclusion_data:
        fresh = rerooted(cfg.exclusion_root, exclusion_file)
        if not fresh.exists():
            log.debug(f"  No bundled copy of {exclusion_file}")
            continue

        log.info(f"  Updating {exclusion_file}")
        try:
            exclusion_file.parent.mkdir(parents=True, exist_ok=True)
            _copy_with_owner(str(fresh), str(exclusion_file))
        except OSError as e:
            raise FilesystemError(f"copy {fresh} to {exclusion_file}", str(e))

        result.changed.append(exclusion_file)

    return result


def remove_data_files(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Delete files that must never persist"""
    log.section("Removing stale data files")
    result = StepResult("deleted files")

    for del_file in cfg.deletion_data:
        if not (del_file.exists() or del_file.is_symlink()):
            continue

        log.info(f"  Removing {del_file}")
        try:
            del_file.unlink()
        except OSError as e:
            raise FilesystemError(f"remove {del_file}", str(e))

        result.changed.append(del_file)

    return result


def _overlay_file(src: Path, dst: Path):
    if src.is_symlink():
        if dst.is_symlink() or dst.exists():
            dst.unlink()
        os.symlink(os.readlink(src), dst)
    elif dst.exists():
        # writes through a symlinked destination and keeps the target's mode
        shutil.copyfile(src, dst)
    elif dst.is_symlink():
        raise FileNotFoundError(f"not writing through dangling symlink {dst}")
    else:
        shutil.copy(src, dst)


def mount_config_files(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Copy the operator's config mount over the install tree"""
    log.section("Mounting configuration files")
    result = StepResult("config mount")

    if not cfg.config_mount.is_dir():
        log.info("  No Wazuh configuration files to mount...")
        result.skipped = True
        return result

    log.info("  Identified Wazuh configuration files to mount...")
    for root, dirs, files in os.walk(cfg.config_mount):
        dirs.sort()
        rel_root = Path(root).relative_to(cfg.config_mount)
        target_root = cfg.install_root / rel_root

        try:
            target_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"create {target_root}", str(e))

        for name in sorted(dirs):
            src = Path(root) / name
            if src.is_symlink():
                files.append(name)

        for name in sorted(files):
            src = Path(root) / name
            dst = target_root / name
            try:
                _overlay_file(src, dst)
            except OSError as e:
                raise FilesystemError(f"copy {src} to {dst}", str(e))
            log.info(f"  '{src}' -> '{dst}'")
            result.changed.append(dst)

    return result


def _encode(text: str) -> bytes:
    # surrogateescape round-trips undecodable bytes from os.environ
    return text.encode("utf-8", "surrogateescape")


def apply_custom_args(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Fill in the node name and cluster key placeholders of ossec.conf"""
    log.section("Applying node name and cluster key")
    result = StepResult("template substitution")

    if not cfg.main_config.is_file():
        raise MissingInputError(f"edit {cfg.main_config}", "configuration file not found")

    # bytes in, bytes out: line endings and non-UTF-8 content stay untouched
    replacements = (
        (NODE_NAME_PLACEHOLDER, f"<node_name>{cfg.hostname}</node_name>"),
        (CLUSTER_KEY_PLACEHOLDER, f"<key>{cfg.cluster_key}</key>"),
    )
    try:
        original = cfg.main_config.read_bytes()
        data = original
        for placeholder, value in replacements:
            data = data.replace(_encode(placeholder), _encode(value))
        if data != original:
            cfg.main_config.write_bytes(data)
            result.changed.append(cfg.main_config)
    except OSError as e:
        raise FilesystemError(f"edit {cfg.main_config}", str(e))

    if result.changed:
        log.success(f"Updated {cfg.main_config}")
    else:
        log.debug(f"  No placeholders left in {cfg.main_config}")
    return result


def remove_staging(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Drop the temporary staging directory"""
    result = StepResult("cleanup")

    if not cfg.staging_root.exists():
        result.skipped = True
        return result

    log.debug(f"Removing {cfg.staging_root}")
    try:
        shutil.rmtree(cfg.staging_root)
    except OSError as e:
        raise FilesystemError(f"remove {cfg.staging_root}", str(e))

    result.changed.append(cfg.staging_root)
    return result


Step = Callable[[BootstrapConfig, Reporter], StepResult]

STEPS: List[Step] = [
    mount_permanent_data,
    apply_exclusion_data,
    remove_data_files,
    provision_credentials,
    mount_config_files,
    apply_custom_args,
    sync_ruleset,
    install_cron,
]


def run_bootstrap(cfg: BootstrapConfig, log: Optional[Reporter] = None, cleanup: bool = True) -> List[StepResult]:
    """Run every startup step in order, stopping at the first failure"""
    log = log or Reporter(cfg.log_level)
    log.info("[bold green]Wazuh container startup[/bold green]")
    if not cfg.permanent_data:
        log.warning("No permanent data directories configured")

    results = [step(cfg, log) for step in STEPS]

    if cleanup:
        results.append(remove_staging(cfg, log))

    log.info("\n[bold green]✓ Startup complete[/bold green]")
    return results
