import logging
import threading
from fnmatch import fnmatch
from pathlib import PurePosixPath
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

from ..docker.launcher import (
    DEFAULT_CONTAINER_NAME,
    DEFAULT_IMAGE,
    LaunchFn,
    SpawnFn,
    default_launcher,
    spawn_process,
    split_command,
)
from ..docker.mappings import LocatorLike, MappingLike, MappingTable
from ..lsp.errors import ConfigurationError, UnknownClientError

logger = logging.getLogger(__name__)


class ClientDescriptor(BaseModel):
    """A protocol client the outer framework can select and connect.

    Templates describe a language server as installed on the host. Docker
    variants are derived from a template with `model_copy`, so neither side
    is ever mutated after construction.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    server_id: str
    base_server_id: str | None = None
    command: list[str]
    languages: list[str] = []
    file_patterns: list[str] = []
    priority: int = 0
    image_id: Any = None
    container_name: Any = None
    mappings: MappingTable | None = None
    ownership_test: Callable[[str], bool] | None = None
    uri_to_path: Callable[[str], str] | None = None
    path_to_uri: Callable[[str], str] | None = None
    connection_factory: Callable[[], list[str]] | None = None
    spawn: SpawnFn | None = None

    @property
    def is_docker_client(self) -> bool:
        return self.base_server_id is not None

    def owns(self, path: str) -> bool:
        if self.ownership_test is None:
            return False
        return self.ownership_test(str(path))

    def handles_file(self, path: str) -> bool:
        if not self.file_patterns:
            return True
        name = PurePosixPath(str(path)).name
        return any(fnmatch(name, pattern) for pattern in self.file_patterns)

    def command_line(self) -> list[str]:
        if self.connection_factory is None:
            return list(self.command)
        return self.connection_factory()

    async def connect(self, spawn: SpawnFn | None = None):
        spawn = spawn or self.spawn or spawn_process
        return await spawn(self.command_line())


TEMPLATE_CLIENTS: list[ClientDescriptor] = [
    ClientDescriptor(
        server_id="bash-ls",
        command=["bash-language-server", "start"],
        languages=["shellscript"],
        file_patterns=["*.sh", "*.bash"],
    ),
    ClientDescriptor(
        server_id="clangd",
        command=["clangd"],
        languages=["c", "cpp"],
        file_patterns=["*.c", "*.h", "*.cpp", "*.hpp", "*.cc", "*.cxx"],
    ),
    ClientDescriptor(
        server_id="css-ls",
        command=["css-languageserver", "--stdio"],
        languages=["css", "scss", "less"],
        file_patterns=["*.css", "*.scss", "*.less"],
    ),
    ClientDescriptor(
        server_id="dockerfile-ls",
        command=["docker-langserver", "--stdio"],
        languages=["dockerfile"],
        file_patterns=["Dockerfile", "*.dockerfile"],
    ),
    ClientDescriptor(
        server_id="gopls",
        command=["gopls"],
        languages=["go"],
        file_patterns=["*.go"],
    ),
    ClientDescriptor(
        server_id="html-ls",
        command=["html-languageserver", "--stdio"],
        languages=["html"],
        file_patterns=["*.html", "*.htm"],
    ),
    ClientDescriptor(
        server_id="pyls",
        command=["pyls"],
        languages=["python"],
        file_patterns=["*.py", "*.pyi"],
        priority=-1,
    ),
    ClientDescriptor(
        server_id="pyright",
        command=["pyright-langserver", "--stdio"],
        languages=["python"],
        file_patterns=["*.py", "*.pyi"],
    ),
    ClientDescriptor(
        server_id="rust-analyzer",
        command=["rust-analyzer"],
        languages=["rust"],
        file_patterns=["*.rs"],
    ),
    ClientDescriptor(
        server_id="ts-ls",
        command=["typescript-language-server", "--stdio"],
        languages=["typescript", "typescriptreact", "javascript", "javascriptreact"],
        file_patterns=["*.ts", "*.tsx", "*.js", "*.jsx"],
    ),
]


class ClientRegistry:
    def __init__(self, clients: list[ClientDescriptor] | None = None):
        self._clients: dict[str, ClientDescriptor] = {}
        self._lock = threading.Lock()
        for client in clients or []:
            self._clients[client.server_id] = client

    def register(self, client: ClientDescriptor) -> None:
        with self._lock:
            if client.server_id in self._clients:
                logger.debug(f"Replacing client {client.server_id}")
            self._clients[client.server_id] = client

    def get(self, server_id: str) -> ClientDescriptor | None:
        return self._clients.get(server_id)

    def lookup(self, server_id: str) -> ClientDescriptor:
        client = self._clients.get(server_id)
        if client is None:
            raise UnknownClientError(server_id, list(self._clients))
        return client

    def remove(self, server_id: str) -> None:
        with self._lock:
            self._clients.pop(server_id, None)

    def all(self) -> list[ClientDescriptor]:
        return list(self._clients.values())

    def __contains__(self, server_id: str) -> bool:
        return server_id in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def client_for_file(self, path: str) -> ClientDescriptor | None:
        """Highest priority docker client that owns and handles path."""
        candidates = [
            c for c in self.all()
            if c.is_docker_client and c.owns(path) and c.handles_file(path)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda c: c.priority)


default_registry = ClientRegistry(TEMPLATE_CLIENTS)


def register_client(
    server_id: str,
    docker_server_id: str,
    path_mappings: list[MappingLike] | None = None,
    default_path_mapping: MappingLike | None = None,
    image_id: LocatorLike = DEFAULT_IMAGE,
    container_name: LocatorLike = DEFAULT_CONTAINER_NAME,
    priority: int | None = None,
    server_command: str | list[str] | None = None,
    launch_fn: LaunchFn | None = None,
    registry: ClientRegistry | None = None,
    spawn: SpawnFn | None = None,
) -> ClientDescriptor:
    """Register a docker variant of the template client `server_id`.

    The new client is stored under `docker_server_id`, replacing any client
    already registered with that id.

    Raises:
        ConfigurationError: if neither path_mappings nor default_path_mapping is given
        UnknownClientError: if no template client is registered as server_id
    """
    if not path_mappings and not default_path_mapping:
        raise ConfigurationError(
            f"Cannot register {docker_server_id}: no path mappings or default path mapping given"
        )

    registry = registry if registry is not None else default_registry
    mappings = MappingTable.build(path_mappings, default_path_mapping)
    template = registry.lookup(server_id)

    launch_fn = launch_fn or default_launcher.launch_new
    command = server_command if server_command is not None else template.command

    def connection_factory() -> list[str]:
        return launch_fn(image_id, container_name, mappings, command)

    update: dict[str, Any] = {
        "server_id": docker_server_id,
        "command": split_command(command),
        "base_server_id": template.server_id,
        "image_id": image_id,
        "container_name": container_name,
        "mappings": mappings,
        "ownership_test": mappings.owns,
        "uri_to_path": mappings.uri_translator(container_name),
        "path_to_uri": mappings.path_translator(),
        "connection_factory": connection_factory,
    }
    if priority is not None:
        update["priority"] = priority
    if spawn is not None:
        update["spawn"] = spawn

    client = template.model_copy(update=update)
    registry.register(client)
    logger.info(f"Registered {docker_server_id} from template {server_id}")
    return client
