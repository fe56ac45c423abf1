"""Configuration management for the entrypoint"""

import os
import re
import shlex
import socket
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from wazuh_entrypoint.errors import ConfigError, FilesystemError

TRUE_VALUES = ("true", "yes", "1", "on")
FALSE_VALUES = ("false", "no", "0", "off")

PERMANENT_DATA = "PERMANENT_DATA"
PERMANENT_DATA_EXCP = "PERMANENT_DATA_EXCP"
PERMANENT_DATA_DEL = "PERMANENT_DATA_DEL"

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_INDEXED = re.compile(rf"^({_NAME})\[[^\]]*\]=(.*)$")
_ARRAY = re.compile(rf"^(?:export\s+)?({_NAME})=\((.*)$")
_SCALAR = re.compile(rf"^(?:export\s+)?({_NAME})=(.*)$")


@dataclass(frozen=True)
class BootstrapConfig:
    """Everything the startup sequence needs, resolved once"""

    install_root: Path
    staging_root: Path
    config_mount: Path
    main_config: Path
    ssl_key: Path
    ssl_cert: Path
    permanent_data: Tuple[Path, ...] = ()
    exclusion_data: Tuple[Path, ...] = ()
    deletion_data: Tuple[Path, ...] = ()
    auto_enrollment: bool = True
    hostname: str = ""
    cluster_key: str = ""
    ruleset_s3_path: Optional[str] = None
    ruleset_dest: Optional[Path] = None
    cron_enabled: bool = False
    cron_file: Optional[Path] = None
    cron_scripts_dir: Optional[Path] = None
    log_level: str = "info"
    env_file: Optional[Path] = field(default=None, compare=False)

    @property
    def backup_root(self) -> Path:
        """Bundled copy of the persistent directories"""
        return self.staging_root / "permanent"

    @property
    def exclusion_root(self) -> Path:
        """Bundled copy of the files refreshed on every start"""
        return self.staging_root / "exclusion"

    def to_dict(self) -> Dict[str, Any]:
        def plain(value):
            if isinstance(value, Path):
                return str(value)
            if isinstance(value, tuple):
                return [plain(v) for v in value]
            return value

        data = {name: plain(getattr(self, name)) for name in (f.name for f in fields(self))}
        if data["cluster_key"]:
            data["cluster_key"] = "********"
        return data


def rerooted(base: Path, path: Path) -> Path:
    """Place an absolute path underneath base, e.g. data_tmp/permanent/var/ossec/etc"""
    return base / path.relative_to(path.anchor)


def parse_bool(value: Any, name: str) -> bool:
    """Interpret a yes/no style flag"""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"parse {name}", f"expected a boolean, got {value!r}")


def _tokens(text: str) -> List[str]:
    lexer = shlex.shlex(text, posix=True, punctuation_chars="()")
    lexer.whitespace_split = True
    return list(lexer)


def _first_word(text: str) -> List[str]:
    words = _tokens(text)
    return words[:1]


def parse_env_file(text: str) -> Dict[str, List[str]]:
    """Parse the shell assignments of a permanent data env file

    Understands indexed appends (``NAME[((i++))]="value"``), array literals
    (``NAME=("a" "b")``, possibly over several lines) and plain scalars.
    Variables are not expanded.
    """
    values: Dict[str, List[str]] = {}
    pending_name: Optional[str] = None
    pending: List[str] = []

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()

        if pending_name is not None:
            pending.append(line)
            words = _tokens("\n".join(pending))
            if ")" in words:
                values[pending_name] = words[: words.index(")")]
                pending_name = None
            continue

        if not line or line.startswith("#"):
            continue

        try:
            if match := _INDEXED.match(line):
                values.setdefault(match.group(1), []).extend(_first_word(match.group(2)))
            elif match := _ARRAY.match(line):
                words = _tokens(match.group(2))
                if ")" in words:
                    values[match.group(1)] = words[: words.index(")")]
                else:
                    pending_name, pending = match.group(1), [match.group(2)]
            elif match := _SCALAR.match(line):
                values[match.group(1)] = _first_word(match.group(2))
        except ValueError as e:
            raise ConfigError(f"parse env file line {lineno}", str(e))

    if pending_name is not None:
        raise ConfigError("parse env file", f"unterminated array {pending_name}")

    return values


def load_env_file(path: Path) -> Dict[str, List[str]]:
    """Read and parse a permanent data env file"""
    try:
        text = path.read_text()
    except OSError as e:
        raise FilesystemError(f"read {path}", str(e))
    return parse_env_file(text)


class ConfigManager:
    """Resolve entrypoint configuration from defaults, a YAML file and the environment"""

    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ

    def load(self) -> Dict[str, Any]:
        """Load configuration from file and environment"""
        config = self._load_defaults()

        # Load from file if exists
        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path) as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"load {self.config_path}", str(e))
            if not isinstance(file_config, dict):
                raise ConfigError(f"load {self.config_path}", "top level must be a mapping")
            config = self._merge(config, file_config)

        # Override with environment variables
        config = self._apply_env_overrides(config)

        return config

    def build(self, config: Optional[Dict[str, Any]] = None) -> BootstrapConfig:
        """Turn a loaded configuration mapping into a BootstrapConfig"""
        if config is None:
            config = self.load()

        paths = config["paths"]
        install_root = Path(paths["install_root"])

        def path_or(value: Optional[str], default: Path) -> Path:
            return Path(value) if value else default

        data = dict(config["data"])
        env_file = Path(paths["permanent_data_env"]) if paths.get("permanent_data_env") else None
        if env_file is not None and env_file.exists():
            declared = load_env_file(env_file)
            for key, name in (
                ("permanent", PERMANENT_DATA),
                ("exclusion", PERMANENT_DATA_EXCP),
                ("deletion", PERMANENT_DATA_DEL),
            ):
                if name in declared:
                    data[key] = declared[name]

        cron = config["cron"]
        ruleset = config["ruleset"]
        level = str(config["logging"]["level"]).lower()
        if level not in ("debug", "info", "warning"):
            raise ConfigError("parse logging.level", f"unknown level {level!r}")

        return BootstrapConfig(
            install_root=install_root,
            staging_root=path_or(paths.get("staging_root"), install_root / "data_tmp"),
            config_mount=Path(paths["config_mount"]),
            main_config=path_or(paths.get("main_config"), install_root / "etc" / "ossec.conf"),
            ssl_key=path_or(paths.get("ssl_key"), install_root / "etc" / "sslmanager.key"),
            ssl_cert=path_or(paths.get("ssl_cert"), install_root / "etc" / "sslmanager.cert"),
            permanent_data=tuple(Path(p) for p in data.get("permanent") or ()),
            exclusion_data=tuple(Path(p) for p in data.get("exclusion") or ()),
            deletion_data=tuple(Path(p) for p in data.get("deletion") or ()),
            auto_enrollment=parse_bool(config["enrollment"]["enabled"], "enrollment.enabled"),
            hostname=config["cluster"]["node_name"] or socket.gethostname(),
            cluster_key=config["cluster"]["key"] or "",
            ruleset_s3_path=ruleset["s3_path"] or None,
            ruleset_dest=path_or(ruleset.get("dest"), install_root / "etc"),
            cron_enabled=parse_bool(cron["enabled"], "cron.enabled"),
            cron_file=path_or(cron.get("file"), install_root / "etc" / "crontab"),
            cron_scripts_dir=path_or(cron.get("scripts_dir"), install_root / "cron-jobs"),
            log_level=level,
            env_file=env_file,
        )

    def _load_defaults(self) -> Dict[str, Any]:
        """Load default configuration"""
        return {
            "paths": {
                "install_root": "/var/ossec",
                "staging_root": None,
                "config_mount": "/wazuh-config-mount",
                "permanent_data_env": "/permanent_data.env",
                "main_config": None,
                "ssl_key": None,
                "ssl_cert": None,
            },
            "data": {
                "permanent": [],
                "exclusion": [],
                "deletion": [],
            },
            "enrollment": {
                "enabled": True,
            },
            "cluster": {
                "node_name": None,
                "key": "",
            },
            "ruleset": {
                "s3_path": None,
                "dest": None,
            },
            "cron": {
                "enabled": False,
                "file": None,
                "scripts_dir": None,
            },
            "logging": {
                "level": "info",
            },
        }

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides"""
        env = self.environ

        if install := env.get("WAZUH_INSTALL_PATH"):
            config["paths"]["install_root"] = install

        if staging := env.get("WAZUH_DATA_TMP_PATH"):
            config["paths"]["staging_root"] = staging

        if mount := env.get("WAZUH_CONFIG_MOUNT"):
            config["paths"]["config_mount"] = mount

        if env_file := env.get("WAZUH_PERMANENT_DATA_ENV"):
            config["paths"]["permanent_data_env"] = env_file

        if enrollment := env.get("AUTO_ENROLLMENT_ENABLED"):
            config["enrollment"]["enabled"] = enrollment

        if key := env.get("WAZUH_CLUSTER_KEY"):
            config["cluster"]["key"] = key

        if hostname := env.get("HOSTNAME"):
            config["cluster"]["node_name"] = hostname

        if s3_path := env.get("AWS_S3_RULESET_PATH"):
            config["ruleset"]["s3_path"] = s3_path

        if cron := env.get("CRON_ENABLED"):
            config["cron"]["enabled"] = cron

        if cron_file := env.get("WAZUH_CRON_FILE"):
            config["cron"]["file"] = cron_file

        if scripts := env.get("WAZUH_CRON_SCRIPTS"):
            config["cron"]["scripts_dir"] = scripts

        if level := env.get("WAZUH_ENTRYPOINT_LOG_LEVEL"):
            config["logging"]["level"] = level

        return config
