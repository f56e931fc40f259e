"""Translation between host paths and container URIs.

Matching is substring based and honours declaration order: the first entry
whose locator occurs in the path wins, even if a later entry would match a
longer stretch of it.
"""

import logging
from pathlib import Path

from ..utils.uri import make_remote_path, path_to_uri, uri_to_path
from .mappings import MappingTable

logger = logging.getLogger(__name__)


def to_host_path(mappings: MappingTable, container_name: str, uri: str) -> str:
    """Turn a URI sent by the containerized server into a host path.

    Files with no host counterpart (library sources installed in the image,
    for example) come back as a `/docker:<container>:<path>` marker which
    callers must treat as opaque.
    """
    raw_path = uri_to_path(uri)
    for entry in mappings:
        container_path = entry.container.resolve()
        if container_path in raw_path:
            return raw_path.replace(container_path, entry.host.resolve(), 1)

    logger.info(f"No path mapping for {raw_path}, treating it as remote to container {container_name}")
    return make_remote_path(container_name, raw_path)


def to_container_uri(mappings: MappingTable, host_path: str | Path) -> str:
    host_path = str(host_path)
    for entry in mappings:
        # Computed host locators are not evaluated just to test a match
        if entry.host.is_computed:
            continue
        host_root = entry.host.resolve()
        if host_root in host_path:
            return path_to_uri(host_path.replace(host_root, entry.container.resolve(), 1))

    if not mappings:
        return path_to_uri(host_path)

    first = mappings.entries[0]
    host_root = first.host.resolve()
    logger.debug(f"No literal path mapping for {host_path}, falling back to {host_root}")
    return path_to_uri(host_path.replace(host_root, first.container.resolve(), 1))
