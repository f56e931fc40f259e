import pytest
from pydantic import ValidationError

from lspdocker.clients.registry import ClientDescriptor, ClientRegistry, TEMPLATE_CLIENTS, register_client
from lspdocker.docker.launcher import ContainerLauncher
from lspdocker.lsp.errors import ConfigurationError, UnknownClientError

MAPPINGS = [("/home/u/proj", "/workspace")]


class TestRegisterClient:
    def test_registers_under_docker_id(self, registry):
        client = register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, registry=registry)
        assert registry.get("gopls-docker") is client
        assert client.server_id == "gopls-docker"
        assert client.base_server_id == "gopls"
        assert client.is_docker_client

    def test_template_is_untouched(self, registry):
        template = registry.get("gopls")
        register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, registry=registry)
        assert registry.get("gopls") is template
        assert template.ownership_test is None
        assert not template.is_docker_client

    def test_no_mappings_raises_before_registry(self, registry):
        before = {c.server_id for c in registry.all()}
        with pytest.raises(ConfigurationError):
            register_client("gopls", "gopls-docker", path_mappings=[], default_path_mapping=None, registry=registry)
        assert {c.server_id for c in registry.all()} == before

    def test_no_mappings_checked_before_template(self):
        empty = ClientRegistry()
        with pytest.raises(ConfigurationError):
            register_client("nope", "nope-docker", registry=empty)

    def test_unknown_client_raises(self, registry):
        before = {c.server_id for c in registry.all()}
        with pytest.raises(UnknownClientError) as exc_info:
            register_client("no-such-ls", "x-docker", path_mappings=MAPPINGS, registry=registry)
        assert exc_info.value.server_id == "no-such-ls"
        assert "No such client" in str(exc_info.value)
        assert "x-docker" not in registry
        assert {c.server_id for c in registry.all()} == before

    def test_default_mapping_only(self, registry):
        client = register_client("gopls", "gopls-docker", default_path_mapping=("/home/u/proj", "/workspace"), registry=registry)
        assert client.owns("/home/u/proj/main.go")

    def test_translators(self, registry):
        client = register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, container_name="cc", registry=registry)
        assert client.path_to_uri("/home/u/proj/src/a.go") == "file:///workspace/src/a.go"
        assert client.uri_to_path("file:///workspace/src/a.go") == "/home/u/proj/src/a.go"
        assert client.uri_to_path("file:///usr/share/x.go") == "/docker:cc:/usr/share/x.go"

    def test_ownership_is_directory_containment(self, registry):
        client = register_client("gopls", "gopls-docker", path_mappings=[("/home/u/project", "/w")], registry=registry)
        assert client.owns("/home/u/project/a.go")
        assert not client.owns("/home/u/project2/a.go")
        assert not client.owns("/home/u/project/../secret/a.go")

    def test_priority_kept_unless_given(self, registry):
        client = register_client("pyls", "pyls-docker", path_mappings=MAPPINGS, registry=registry)
        assert client.priority == -1
        client = register_client("pyls", "pyls-docker", path_mappings=MAPPINGS, priority=10, registry=registry)
        assert client.priority == 10

    def test_reregister_overwrites(self, registry):
        first = register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, registry=registry)
        second = register_client("gopls", "gopls-docker", path_mappings=[("/srv", "/srv")], registry=registry)
        assert registry.get("gopls-docker") is second
        assert second is not first

    def test_descriptor_is_frozen(self, registry):
        client = register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, registry=registry)
        with pytest.raises(ValidationError):
            client.priority = 99


class TestConnectionFactory:
    def test_launch_new_by_default(self, registry):
        client = register_client(
            "gopls", "gopls-docker",
            path_mappings=MAPPINGS,
            image_id="img",
            container_name="cc",
            registry=registry,
        )
        argv = client.command_line()
        assert argv[:3] == ["docker", "run", "--name"]
        assert argv[3].startswith("cc-")
        assert argv[4:] == ["--rm", "-i", "-v", "/home/u/proj:/workspace", "img", "gopls"]

    def test_server_command_override(self, registry):
        launcher = ContainerLauncher()
        client = register_client(
            "ts-ls", "tsls-docker",
            path_mappings=MAPPINGS,
            container_name="cc",
            server_command="typescript-language-server --stdio --log-level 4",
            launch_fn=launcher.exec_existing,
            registry=registry,
        )
        assert client.command_line() == [
            "docker", "exec", "-i", "cc",
            "typescript-language-server", "--stdio", "--log-level", "4",
        ]
        assert client.command == ["typescript-language-server", "--stdio", "--log-level", "4"]

    def test_each_launch_gets_new_name(self, registry):
        launcher = ContainerLauncher()
        client = register_client(
            "gopls", "gopls-docker",
            path_mappings=MAPPINGS,
            container_name="cc",
            launch_fn=launcher.launch_new,
            registry=registry,
        )
        assert client.command_line()[3] == "cc-1"
        assert client.command_line()[3] == "cc-2"

    @pytest.mark.asyncio
    async def test_connect_uses_spawn(self, registry):
        spawned = []

        async def fake_spawn(argv):
            spawned.append(argv)
            return "process"

        launcher = ContainerLauncher()
        client = register_client(
            "gopls", "gopls-docker",
            path_mappings=MAPPINGS,
            container_name="cc",
            launch_fn=launcher.exec_existing,
            registry=registry,
            spawn=fake_spawn,
        )
        assert await client.connect() == "process"
        assert spawned == [["docker", "exec", "-i", "cc", "gopls"]]

    @pytest.mark.asyncio
    async def test_spawn_errors_propagate(self, registry):
        async def failing_spawn(argv):
            raise OSError("boom")

        client = register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, registry=registry)
        with pytest.raises(OSError, match="boom"):
            await client.connect(spawn=failing_spawn)


class TestClientRegistry:
    def test_lookup_unknown(self):
        with pytest.raises(UnknownClientError):
            ClientRegistry().lookup("gopls")

    def test_get_unknown(self):
        assert ClientRegistry().get("gopls") is None

    def test_remove(self, registry):
        registry.remove("gopls")
        assert "gopls" not in registry

    def test_client_for_file(self, registry):
        register_client("gopls", "gopls-docker", path_mappings=MAPPINGS, registry=registry)
        register_client("pyls", "pyls-docker", path_mappings=MAPPINGS, registry=registry)
        assert registry.client_for_file("/home/u/proj/main.go").server_id == "gopls-docker"
        assert registry.client_for_file("/home/u/proj/main.py").server_id == "pyls-docker"
        assert registry.client_for_file("/elsewhere/main.go") is None

    def test_client_for_file_prefers_priority(self, registry):
        register_client("pyls", "pyls-docker", path_mappings=MAPPINGS, priority=1, registry=registry)
        register_client("pyright", "pyright-docker", path_mappings=MAPPINGS, priority=5, registry=registry)
        assert registry.client_for_file("/home/u/proj/main.py").server_id == "pyright-docker"

    def test_templates_not_selected(self, registry):
        assert registry.client_for_file("/home/u/proj/main.go") is None


class TestTemplates:
    def test_all_templates_have_command(self):
        for client in TEMPLATE_CLIENTS:
            assert len(client.command) > 0
            assert isinstance(client.command[0], str)

    def test_template_ids_are_unique(self):
        ids = [c.server_id for c in TEMPLATE_CLIENTS]
        assert len(ids) == len(set(ids))

    def test_handles_file(self):
        template = ClientDescriptor(server_id="x", command=["x"], file_patterns=["*.go"])
        assert template.handles_file("/a/b.go")
        assert not template.handles_file("/a/b.py")
