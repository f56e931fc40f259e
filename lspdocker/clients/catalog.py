import importlib
import logging
from dataclasses import dataclass
from typing import Any

from ..docker.launcher import DEFAULT_CONTAINER_NAME, DEFAULT_IMAGE, ContainerLauncher, LaunchFn, default_launcher
from ..docker.mappings import LocatorLike, MappingLike
from ..lsp.errors import ConfigurationError
from ..utils.config import path_mappings_from_config
from .registry import ClientDescriptor, ClientRegistry, register_client

logger = logging.getLogger(__name__)


@dataclass
class ClientConfig:
    server_id: str
    docker_server_id: str
    server_command: str | list[str]
    image_id: LocatorLike | None = None
    container_name: LocatorLike | None = None
    launch: str | LaunchFn | None = None


DEFAULT_CLIENT_CONFIGS: list[ClientConfig] = [
    ClientConfig("bash-ls", "bashls-docker", "bash-language-server start"),
    ClientConfig("clangd", "clangd-docker", "clangd"),
    ClientConfig("css-ls", "cssls-docker", "css-languageserver --stdio"),
    ClientConfig("dockerfile-ls", "dockerfilels-docker", "docker-langserver --stdio"),
    ClientConfig("gopls", "gopls-docker", "gopls"),
    ClientConfig("html-ls", "htmls-docker", "html-languageserver --stdio"),
    ClientConfig("pyls", "pyls-docker", "pyls"),
    ClientConfig("ts-ls", "tsls-docker", "typescript-language-server --stdio"),
]

# Optional modules that must import before a client family is registered
DEFAULT_CLIENT_PACKAGES: dict[str, str] = {}


def probe_package(name: str) -> bool:
    try:
        importlib.import_module(name)
    except ImportError as e:
        logger.debug(f"Optional package {name} not available: {e}")
        return False
    return True


def _resolve_launch(launch: str | LaunchFn | None, launcher: ContainerLauncher) -> LaunchFn:
    if launch is None:
        return launcher.launch_new
    if isinstance(launch, str):
        return launcher.strategy(launch)
    return launch


def init_clients(
    path_mappings: list[MappingLike] | None = None,
    default_path_mapping: MappingLike | None = None,
    priority: int = 10,
    client_configs: list[ClientConfig] | None = None,
    registry: ClientRegistry | None = None,
    launcher: ContainerLauncher | None = None,
    packages: dict[str, str] | None = None,
) -> list[ClientDescriptor]:
    """Register a docker client for every configured language server.

    Entries whose optional package does not import are skipped.
    """
    launcher = launcher or default_launcher
    packages = DEFAULT_CLIENT_PACKAGES if packages is None else packages
    if client_configs is None:
        client_configs = DEFAULT_CLIENT_CONFIGS

    registered = []
    for config in client_configs:
        package = packages.get(config.server_id)
        if package and not probe_package(package):
            logger.debug(f"Skipping {config.docker_server_id}: {package} not installed")
            continue

        client = register_client(
            config.server_id,
            config.docker_server_id,
            path_mappings=path_mappings,
            default_path_mapping=default_path_mapping,
            image_id=config.image_id or DEFAULT_IMAGE,
            container_name=config.container_name or DEFAULT_CONTAINER_NAME,
            priority=priority,
            server_command=config.server_command,
            launch_fn=_resolve_launch(config.launch, launcher),
            registry=registry,
        )
        registered.append(client)

    return registered


def _client_config_from_dict(data: dict[str, Any]) -> ClientConfig:
    try:
        return ClientConfig(
            server_id=data["server_id"],
            docker_server_id=data["docker_server_id"],
            server_command=data["server_command"],
            image_id=data.get("image"),
            container_name=data.get("container_name"),
            launch=data.get("launch"),
        )
    except KeyError as e:
        raise ConfigurationError(f"Client config is missing {e.args[0]}: {data!r}")


def init_clients_from_config(
    config: dict[str, Any],
    registry: ClientRegistry | None = None,
) -> list[ClientDescriptor]:
    """Register clients as described by the [docker] section of config."""
    docker = config.get("docker", {})
    launcher = ContainerLauncher(
        executable=docker.get("executable", "docker"),
        counter=default_launcher.counter,
    )
    default_launch = docker.get("launch", "new")

    if docker.get("clients"):
        client_configs = [_client_config_from_dict(c) for c in docker["clients"]]
    else:
        client_configs = [
            ClientConfig(c.server_id, c.docker_server_id, c.server_command) for c in DEFAULT_CLIENT_CONFIGS
        ]

    for client_config in client_configs:
        client_config.image_id = client_config.image_id or docker.get("image")
        client_config.container_name = client_config.container_name or docker.get("container_name")
        client_config.launch = client_config.launch or default_launch

    path_mappings, default_path_mapping = path_mappings_from_config(config)
    return init_clients(
        path_mappings=path_mappings,
        default_path_mapping=default_path_mapping,
        priority=docker.get("priority", 10),
        client_configs=client_configs,
        registry=registry,
        launcher=launcher,
    )
