import tempfile
from pathlib import Path

import pytest

from lspdocker.clients.registry import ClientRegistry, TEMPLATE_CLIENTS


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def isolated_config(temp_dir, monkeypatch):
    config_dir = temp_dir / "config"
    config_dir.mkdir()

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))

    return {"config": config_dir}


@pytest.fixture
def registry():
    return ClientRegistry(TEMPLATE_CLIENTS)
