from pathlib import Path
from urllib.parse import quote, unquote, urlparse

REMOTE_PREFIX = "/docker:"


def path_to_uri(path: str | Path) -> str:
    """Encode an absolute path as a file URI without touching the filesystem.

    Container paths do not exist on the host, so unlike host-side code this
    never resolves symlinks or relative components.
    """
    return "file://" + quote(str(path), safe="/:")


def uri_to_path(uri: str) -> str:
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        raise ValueError(f"Not a file URI: {uri}")
    return unquote(parsed.path)


def make_remote_path(container_name: str, path: str) -> str:
    return f"{REMOTE_PREFIX}{container_name}:{path}"


def is_remote_path(path: str | Path) -> bool:
    return str(path).startswith(REMOTE_PREFIX)


def parse_remote_path(path: str) -> tuple[str, str]:
    """Split a remote-path marker into (container name, container path)."""
    if not is_remote_path(path):
        raise ValueError(f"Not a remote path: {path}")
    container_name, sep, container_path = path[len(REMOTE_PREFIX):].partition(":")
    if not sep:
        raise ValueError(f"Malformed remote path: {path}")
    return container_name, container_path
