import posixpath
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Callable, Iterable, Union

from ..lsp.errors import ConfigurationError


@dataclass(frozen=True)
class Literal:
    value: str

    is_computed = False

    def resolve(self) -> str:
        return self.value


@dataclass(frozen=True)
class Computed:
    """A path produced on demand, e.g. a temp dir only known at launch time."""

    producer: Callable[[], str]

    is_computed = True

    def resolve(self) -> str:
        return str(self.producer())


Locator = Union[Literal, Computed]
LocatorLike = Union[Literal, Computed, str, Callable[[], str]]


def to_locator(value: LocatorLike) -> Locator:
    if isinstance(value, (Literal, Computed)):
        return value
    if isinstance(value, str):
        return Literal(value)
    if callable(value):
        return Computed(value)
    raise ConfigurationError(f"Invalid path locator: {value!r}")


@dataclass(frozen=True)
class MappingEntry:
    host: Locator
    container: Locator

    @classmethod
    def create(cls, host: LocatorLike, container: LocatorLike) -> "MappingEntry":
        return cls(to_locator(host), to_locator(container))

    def volume_spec(self) -> str:
        return f"{self.host.resolve()}:{self.container.resolve()}"

    def owns(self, path: str) -> bool:
        """True if path lies inside the host directory tree of this entry."""
        root = PurePosixPath(posixpath.normpath(self.host.resolve()))
        try:
            PurePosixPath(posixpath.normpath(path)).relative_to(root)
        except ValueError:
            return False
        return True


MappingLike = Union[MappingEntry, tuple[LocatorLike, LocatorLike], list]


def to_entry(value: MappingLike) -> MappingEntry:
    if isinstance(value, MappingEntry):
        return value
    try:
        host, container = value
    except (TypeError, ValueError):
        raise ConfigurationError(f"Path mapping must be a (host, container) pair: {value!r}")
    return MappingEntry.create(host, container)


class MappingTable:
    """Ordered host/container path pairs.

    Entries are tried in declaration order and the first match wins. The
    default entry, if any, goes in front of the explicit ones.
    """

    def __init__(self, entries: Iterable[MappingLike]):
        self._entries = tuple(to_entry(e) for e in entries)

    @classmethod
    def build(
        cls,
        path_mappings: Iterable[MappingLike] | None = None,
        default_path_mapping: MappingLike | None = None,
    ) -> "MappingTable":
        entries = list(path_mappings or [])
        if default_path_mapping:
            entries.insert(0, default_path_mapping)
        if not entries:
            raise ConfigurationError("At least one path mapping or a default path mapping is required")
        return cls(entries)

    @property
    def entries(self) -> tuple[MappingEntry, ...]:
        return self._entries

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __repr__(self) -> str:
        return f"MappingTable({list(self._entries)!r})"

    def owns(self, path: str) -> bool:
        return any(entry.owns(str(path)) for entry in self._entries)

    def volume_specs(self) -> list[str]:
        return [entry.volume_spec() for entry in self._entries]

    def uri_translator(self, container_name: LocatorLike) -> Callable[[str], str]:
        from .translate import to_host_path

        name = to_locator(container_name)

        def uri_to_path(uri: str) -> str:
            return to_host_path(self, name.resolve(), uri)

        return uri_to_path

    def path_translator(self) -> Callable[[str], str]:
        from .translate import to_container_uri

        def path_to_uri(path: str) -> str:
            return to_container_uri(self, path)

        return path_to_uri
