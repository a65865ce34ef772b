"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from isoterm.core.models.platform import TargetTriple
from isoterm.core.services.layout import EnvironmentLayout

from tests.helpers import FakeTransport

_ENV_VARS = (
    "ISOTERM_HOME",
    "ISOTERM_API_URL",
    "ISOTERM_HTTP_TIMEOUT",
    "ISOTERM_CONFIG",
    "ISOTERM_LOG_LEVEL",
    "ISOTERM_LOG_FILE",
    "ISOTERM_LOG_FILE_LEVEL",
    "GITHUB_TOKEN",
    "TERMUX_VERSION",
    "PREFIX",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's config, tokens and Termux markers out of tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))


@pytest.fixture
def gnu_triple() -> TargetTriple:
    return TargetTriple(arch="x86_64", os="linux", env="gnu")


@pytest.fixture
def layout(tmp_path: Path) -> EnvironmentLayout:
    """A freshly created environment under the temp dir."""
    env = EnvironmentLayout(tmp_path / "env")
    env.ensure()
    return env


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    """Private parent for staging dirs so leftovers can be counted."""
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def system_bin(tmp_path: Path) -> Path:
    """A fake system directory on the lookup path."""
    path = tmp_path / "system-bin"
    path.mkdir()
    return path
