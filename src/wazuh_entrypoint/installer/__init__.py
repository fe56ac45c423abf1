"""Startup steps for the Wazuh container"""

from .bootstrap import (
    apply_custom_args,
    apply_exclusion_data,
    mount_config_files,
    mount_permanent_data,
    remove_data_files,
    remove_staging,
    run_bootstrap,
)
from .aws import sync_ruleset
from .credentials import provision_credentials
from .cron import install_cron

__all__ = [
    "mount_permanent_data",
    "apply_exclusion_data",
    "remove_data_files",
    "provision_credentials",
    "mount_config_files",
    "apply_custom_args",
    "sync_ruleset",
    "install_cron",
    "remove_staging",
    "run_bootstrap",
]
