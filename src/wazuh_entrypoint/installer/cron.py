"""Optional crontab installation"""

import stat

from wazuh_entrypoint.config.manager import BootstrapConfig
from wazuh_entrypoint.errors import FilesystemError, MissingInputError
from wazuh_entrypoint.installer.base import Reporter, StepResult, run_command

EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def install_cron(cfg: BootstrapConfig, log: Reporter) -> StepResult:
    """Mark cron job scripts executable and load the crontab"""
    result = StepResult("cron")

    if not cfg.cron_enabled:
        log.debug("Cron disabled")
        result.skipped = True
        return result

    log.section("Installing crontab")

    if cfg.cron_file is None or not cfg.cron_file.is_file():
        raise MissingInputError("install crontab", f"crontab file not found: {cfg.cron_file}")

    scripts_dir = cfg.cron_scripts_dir
    if scripts_dir is not None and scripts_dir.is_dir():
        for script in sorted(scripts_dir.iterdir()):
            if not script.is_file():
                continue
            try:
                mode = script.stat().st_mode
                if mode & EXEC_BITS != EXEC_BITS:
                    script.chmod(mode | EXEC_BITS)
                    result.changed.append(script)
            except OSError as e:
                raise FilesystemError(f"chmod +x {script}", str(e))
            log.debug(f"  {script} is executable")

    run_command(["crontab", str(cfg.cron_file)], log)
    log.success(f"Installed {cfg.cron_file}")
    return result
