class ConfigurationError(ValueError):
    pass


class UnknownClientError(KeyError):
    server_id: str
    known_ids: list[str]

    def __init__(self, server_id: str, known_ids: list[str] | None = None):
        self.server_id = server_id
        self.known_ids = sorted(known_ids or [])
        super().__init__(server_id)

    def __str__(self) -> str:
        msg = f"No such client: {self.server_id}"
        if self.known_ids:
            msg += f" (known clients: {', '.join(self.known_ids)})"
        return msg


class SpawnError(Exception):
    argv: list[str]

    def __init__(self, message: str, argv: list[str]):
        self.argv = argv
        super().__init__(message)


class ContainerRuntimeNotFound(SpawnError):
    executable: str

    def __init__(self, executable: str, argv: list[str]):
        self.executable = executable
        super().__init__(
            f"Container runtime '{executable}' not found. "
            f"Make sure it's installed and in your PATH.",
            argv,
        )
