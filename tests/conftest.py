import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from termbridge.config import Settings
from termbridge.context import AppContext
from termbridge.web import create_app


@pytest.fixture
def root(tmp_path) -> Path:
    r = tmp_path / "workspace"
    r.mkdir()
    return Path(os.path.realpath(r))


@pytest.fixture
def settings(root, tmp_path) -> Settings:
    return Settings(
        workspace_root=root,
        shell="/bin/sh",
        static_dir=None,
        logs_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def context(settings) -> AppContext:
    return AppContext.from_settings(settings)


@pytest.fixture
def client(context):
    with TestClient(create_app(context)) as c:
        yield c
