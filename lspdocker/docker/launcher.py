import asyncio
import logging
import threading
from typing import Awaitable, Callable, Protocol

from ..lsp.errors import ConfigurationError, ContainerRuntimeNotFound
from .mappings import LocatorLike, MappingTable, to_locator

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "docker"
DEFAULT_IMAGE = "emacslsp/lsp-docker-langservers"
DEFAULT_CONTAINER_NAME = "lsp-container"


class ContainerNameCounter:
    """Process-wide suffix source for container names."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


class LaunchFn(Protocol):
    def __call__(
        self,
        image_id: LocatorLike,
        container_name: LocatorLike,
        mappings: MappingTable,
        server_command: str | list[str],
    ) -> list[str]: ...


def split_command(server_command: str | list[str]) -> list[str]:
    # Plain whitespace split, no shell quoting
    if isinstance(server_command, str):
        return server_command.split()
    return list(server_command)


class ContainerLauncher:
    def __init__(self, executable: str = DEFAULT_EXECUTABLE, counter: ContainerNameCounter | None = None):
        self.executable = executable
        self.counter = counter or ContainerNameCounter()

    def launch_new(
        self,
        image_id: LocatorLike,
        container_name: LocatorLike,
        mappings: MappingTable,
        server_command: str | list[str],
    ) -> list[str]:
        name = f"{to_locator(container_name).resolve()}-{self.counter.next()}"
        argv = [self.executable, "run", "--name", name, "--rm", "-i"]
        for spec in mappings.volume_specs():
            argv.extend(["-v", spec])
        argv.append(to_locator(image_id).resolve())
        argv.extend(split_command(server_command))
        logger.debug(f"Launch command for new container {name}: {argv}")
        return argv

    def exec_existing(
        self,
        image_id: LocatorLike,
        container_name: LocatorLike,
        mappings: MappingTable,
        server_command: str | list[str],
    ) -> list[str]:
        name = to_locator(container_name).resolve()
        argv = [self.executable, "exec", "-i", name, *split_command(server_command)]
        logger.debug(f"Exec command for container {name}: {argv}")
        return argv

    def strategy(self, name: str) -> LaunchFn:
        if name == "new":
            return self.launch_new
        if name == "exec":
            return self.exec_existing
        raise ConfigurationError(f"Unknown launch strategy '{name}' (expected 'new' or 'exec')")


default_launcher = ContainerLauncher()


async def spawn_process(argv: list[str]) -> asyncio.subprocess.Process:
    logger.info(f"Starting container process: {' '.join(argv)}")
    try:
        return await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise ContainerRuntimeNotFound(argv[0], argv)


SpawnFn = Callable[[list[str]], Awaitable[asyncio.subprocess.Process]]
