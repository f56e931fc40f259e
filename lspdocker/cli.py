import json
import logging
import shlex
from pathlib import Path

import click

from .clients.catalog import init_clients_from_config
from .clients.registry import ClientRegistry, TEMPLATE_CLIENTS
from .docker.mappings import MappingTable
from .docker.translate import to_container_uri, to_host_path
from .lsp.errors import ConfigurationError, UnknownClientError
from .utils.config import (
    add_path_mapping,
    get_config_path,
    load_config,
    path_mappings_from_config,
)


class OrderedGroup(click.Group):
    def __init__(self, *args, commands_order: list[str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.commands_order = commands_order or []

    def list_commands(self, ctx):
        commands = super().list_commands(ctx)
        if self.commands_order:
            ordered = [c for c in self.commands_order if c in commands]
            remaining = [c for c in commands if c not in self.commands_order]
            return ordered + remaining
        return commands


def get_mapping_table(config: dict) -> MappingTable:
    try:
        path_mappings, default_path_mapping = path_mappings_from_config(config)
        return MappingTable.build(path_mappings, default_path_mapping)
    except ConfigurationError as e:
        raise click.ClickException(f"{e}\nRun: lspdocker mapping add HOST CONTAINER")


def get_registry(config: dict) -> ClientRegistry:
    registry = ClientRegistry(TEMPLATE_CLIENTS)
    try:
        init_clients_from_config(config, registry=registry)
    except (ConfigurationError, UnknownClientError) as e:
        raise click.ClickException(str(e))
    return registry


@click.group(
    cls=OrderedGroup,
    commands_order=["clients", "command", "to-container", "to-host", "mapping", "config"],
)
@click.option("--log-level", default=None, help="Logging level (default from config).")
@click.pass_context
def cli(ctx, log_level):
    """Run language servers inside docker containers."""
    ctx.ensure_object(dict)
    config = load_config()
    logging.basicConfig(
        level=(log_level or config.get("log_level", "warning")).upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    ctx.obj["config"] = config


@cli.command("clients")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def clients(ctx, as_json):
    """List the docker clients registered from the configuration."""
    registry = get_registry(ctx.obj["config"])
    docker_clients = [c for c in registry.all() if c.is_docker_client]

    if as_json:
        click.echo(json.dumps([
            {
                "id": c.server_id,
                "template": c.base_server_id,
                "priority": c.priority,
                "command": c.command,
            }
            for c in docker_clients
        ], indent=2))
        return

    for c in docker_clients:
        click.echo(f"{c.server_id} ({c.base_server_id}, priority {c.priority}): {shlex.join(c.command)}")


@cli.command("command")
@click.argument("file", type=click.Path(path_type=Path))
@click.pass_context
def command(ctx, file):
    """Print the command that starts the container client for FILE.

    Each call takes a new container name suffix, as a real launch would.
    """
    registry = get_registry(ctx.obj["config"])
    path = str(file.resolve())
    client = registry.client_for_file(path)
    if client is None:
        raise click.ClickException(f"No docker client owns {path}")
    click.echo(shlex.join(client.command_line()))


@cli.command("to-container")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def to_container(ctx, path):
    """Translate a host PATH to the URI the container sees."""
    mappings = get_mapping_table(ctx.obj["config"])
    click.echo(to_container_uri(mappings, str(path.resolve())))


@cli.command("to-host")
@click.argument("uri")
@click.option("--container", "container_name", default=None, help="Container name for unmapped paths.")
@click.pass_context
def to_host(ctx, uri, container_name):
    """Translate a container URI to a host path."""
    config = ctx.obj["config"]
    mappings = get_mapping_table(config)
    container_name = container_name or config["docker"]["container_name"]
    try:
        click.echo(to_host_path(mappings, container_name, uri))
    except ValueError as e:
        raise click.ClickException(str(e))


@cli.group("mapping")
def mapping():
    """Manage host to container path mappings."""


@mapping.command("add")
@click.argument("host", type=click.Path(path_type=Path))
@click.argument("container")
@click.pass_context
def mapping_add(ctx, host, container):
    """Map HOST directory to CONTAINER directory."""
    config = ctx.obj["config"]
    try:
        added = add_path_mapping(host, container, config)
    except ConfigurationError as e:
        raise click.ClickException(f"{e}\nFix the mappings in {get_config_path()}")
    if added:
        click.echo(f"Added mapping: {host.resolve()} -> {container}")
    else:
        click.echo(f"Mapping already configured: {host.resolve()} -> {container}")


@mapping.command("list")
@click.pass_context
def mapping_list(ctx):
    """List mappings in the order they are tried."""
    mappings = get_mapping_table(ctx.obj["config"])
    for entry in mappings:
        click.echo(f"{entry.host.resolve()} -> {entry.container.resolve()}")


@cli.command("config")
@click.pass_context
def config(ctx):
    """Show the configuration file and effective settings."""
    click.echo(f"Config file: {get_config_path()}")
    click.echo()
    click.echo(json.dumps(ctx.obj["config"], indent=2))


if __name__ == "__main__":
    cli()
