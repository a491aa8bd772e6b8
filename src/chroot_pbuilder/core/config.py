import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml  # pip install pyyaml

from .errors import ConfigError
from .invocation import DEFAULT_ARCHITECTURE
from .paths import APP_NAME, config_root

DEFAULT_SUDO = "sudo"
DEFAULT_PBUILDER = "/usr/sbin/pbuilder"


@dataclass(frozen=True)
class ToolConfig:
    architecture: str = DEFAULT_ARCHITECTURE
    sudo: str = DEFAULT_SUDO
    pbuilder: str = DEFAULT_PBUILDER
    source: Path | None = None

    @property
    def required_commands(self) -> tuple[str, str]:
        return (self.sudo, self.pbuilder)


# ---------- Config file discovery ----------


def global_config_search_paths() -> list[Path]:
    """Return the ordered list of paths that will be checked for global config.

    - If CHROOT_PBUILDER_CONFIG_FILE is set, only that single path is considered.
    - Otherwise, check in order:
        1) ${XDG_CONFIG_HOME:-~/.config}/chroot-pbuilder/config.yml
        2) /etc/chroot-pbuilder/config.yml
    """
    env_file = os.environ.get("CHROOT_PBUILDER_CONFIG_FILE")
    if env_file:
        return [Path(env_file).expanduser().resolve()]

    return [config_root() / "config.yml", Path("/etc") / APP_NAME / "config.yml"]


def global_config_path() -> Path:
    """Global config file path (resolved based on search paths).

    The explicit override is returned even if missing to make intent visible
    to the user. Otherwise the first existing file wins; if none exist, the
    last candidate is returned.
    """
    candidates = global_config_search_paths()
    if len(candidates) == 1:
        return candidates[0]

    for c in candidates:
        if c.is_file():
            return c.resolve()
    return candidates[-1]


def load_global_config() -> dict[str, Any]:
    cfg_path = global_config_path()
    if not cfg_path.is_file():
        return {}
    try:
        data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {cfg_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {cfg_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {cfg_path} must contain a mapping")
    return data


def _section(cfg: dict[str, Any], key: str) -> dict[str, Any]:
    value = cfg.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return value


def _string(section: dict[str, Any], key: str, label: str, default: str) -> str:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Config value '{label}' must be a non-empty string")
    return value


# ---------- Effective settings ----------


def load_tool_config() -> ToolConfig:
    """Read the global config and fill in defaults for anything unset.

    Recognised keys are ``defaults.architecture``, ``commands.sudo`` and
    ``commands.pbuilder``; anything else is ignored.
    """
    cfg = load_global_config()
    defaults = _section(cfg, "defaults")
    commands = _section(cfg, "commands")
    cfg_path = global_config_path()
    return ToolConfig(
        architecture=_string(
            defaults, "architecture", "defaults.architecture", DEFAULT_ARCHITECTURE
        ),
        sudo=_string(commands, "sudo", "commands.sudo", DEFAULT_SUDO),
        pbuilder=_string(commands, "pbuilder", "commands.pbuilder", DEFAULT_PBUILDER),
        source=cfg_path if cfg_path.is_file() else None,
    )
