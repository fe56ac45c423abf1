"""Shared fixtures: a throwaway install tree, staging area and config mount"""

import io
from dataclasses import replace
from pathlib import Path

import pytest
from rich.console import Console

from wazuh_entrypoint.config.manager import BootstrapConfig, rerooted
from wazuh_entrypoint.installer import credentials
from wazuh_entrypoint.installer.base import Reporter

OSSEC_CONF = """<ossec_config>
  <cluster>
    <name>wazuh</name>
    <node_name>to_be_replaced_by_hostname</node_name>
    <key>to_be_replaced_by_cluster_key</key>
  </cluster>
</ossec_config>
"""


@pytest.fixture
def layout(tmp_path):
    """Directories the entrypoint works on"""
    root = tmp_path / "ossec"
    paths = {
        "install_root": root,
        "staging_root": root / "data_tmp",
        "config_mount": tmp_path / "wazuh-config-mount",
    }
    root.mkdir()
    return paths


@pytest.fixture
def make_config(layout):
    """Build a BootstrapConfig rooted in tmp_path"""

    def factory(**overrides) -> BootstrapConfig:
        root = layout["install_root"]
        cfg = BootstrapConfig(
            install_root=root,
            staging_root=layout["staging_root"],
            config_mount=layout["config_mount"],
            main_config=root / "etc" / "ossec.conf",
            ssl_key=root / "etc" / "sslmanager.key",
            ssl_cert=root / "etc" / "sslmanager.cert",
            auto_enrollment=False,
            hostname="mgr01",
            cluster_key="c98b62a9b6169ac5f67dae55ae4a9088",
            cron_file=root / "etc" / "crontab",
            cron_scripts_dir=root / "cron-jobs",
        )
        return replace(cfg, **overrides)

    return factory


@pytest.fixture
def quiet():
    """Reporter that only prints warnings and errors"""
    return Reporter("warning", Console(file=io.StringIO()))


@pytest.fixture
def captured():
    """Reporter writing everything to a buffer, exposed as .buffer"""
    buffer = io.StringIO()
    reporter = Reporter("debug", Console(file=buffer, width=400, soft_wrap=True, highlight=False))
    reporter.buffer = buffer
    return reporter


@pytest.fixture
def fast_keys(monkeypatch):
    """Smaller RSA keys so full runs stay quick"""
    monkeypatch.setattr(credentials, "KEY_SIZE", 2048)


def stage_backup(cfg: BootstrapConfig, directory: Path, files: dict):
    """Put files into the bundled backup of a persistent directory"""
    backup = rerooted(cfg.backup_root, directory)
    for name, content in files.items():
        target = backup / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return backup


def stage_exclusion(cfg: BootstrapConfig, path: Path, content: str, mode: int = 0o640):
    """Put a fresh copy of an exclusion file into the staging area"""
    fresh = rerooted(cfg.exclusion_root, path)
    fresh.parent.mkdir(parents=True, exist_ok=True)
    fresh.write_text(content)
    fresh.chmod(mode)
    return fresh


def snapshot(root: Path) -> dict:
    """Contents and modes of every file under root"""
    state = {}
    for path in sorted(root.rglob("*")):
        if path.is_file():
            state[str(path.relative_to(root))] = (path.read_bytes(), path.stat().st_mode)
        else:
            state[str(path.relative_to(root))] = None
    return state
