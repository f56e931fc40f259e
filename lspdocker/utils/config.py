import copy
import os
from pathlib import Path
from typing import Any

import tomli
import tomli_w

from ..lsp.errors import ConfigurationError


def get_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base = Path(xdg)
    else:
        base = Path.home() / ".config"
    return base / "lspdocker"


def get_config_path() -> Path:
    return get_config_dir() / "config.toml"


DEFAULT_CONFIG: dict[str, Any] = {
    "log_level": "warning",
    "docker": {
        "executable": "docker",
        "image": "emacslsp/lsp-docker-langservers",
        "container_name": "lsp-container",
        "priority": 10,
        "launch": "new",
        "default_mapping": [],
        "mappings": [],
        "clients": [],
    },
}


def load_config() -> dict[str, Any]:
    config_path = get_config_path()
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path.exists():
        with open(config_path, "rb") as f:
            user_config = tomli.load(f)
            _merge_config(config, user_config)

    return config


def save_config(config: dict[str, Any]) -> None:
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)


def _merge_config(base: dict, override: dict) -> None:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_config(base[key], value)
        else:
            base[key] = value


def _parse_pair(value: Any) -> tuple[str, str]:
    if isinstance(value, dict):
        value = (value.get("host"), value.get("container"))
    if not isinstance(value, (list, tuple)) or len(value) != 2 or not all(isinstance(v, str) and v for v in value):
        raise ConfigurationError(f"Invalid path mapping {value!r}: expected [host, container]")
    return value[0], value[1]


def path_mappings_from_config(config: dict) -> tuple[list[tuple[str, str]], tuple[str, str] | None]:
    """Return (explicit mappings, default mapping) from the [docker] section.

    Mappings may be written as [host, container] arrays or as tables with
    host and container keys.
    """
    docker = config.get("docker", {})
    mappings = [_parse_pair(m) for m in docker.get("mappings", [])]
    default = docker.get("default_mapping")
    return mappings, _parse_pair(default) if default else None


def add_path_mapping(host: Path, container: str, config: dict) -> bool:
    """Persist a mapping; returns False if it was already configured."""
    mappings = config.setdefault("docker", {}).setdefault("mappings", [])
    pair = [str(host.resolve()), container]
    if pair in [list(_parse_pair(m)) for m in mappings]:
        return False
    mappings.append(pair)
    save_config(config)
    return True
