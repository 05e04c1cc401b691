"""
Pytest configuration and fixtures for FileVault tests.
"""

import base64
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from filevault.Config import ConfigManager
from filevault.FileVault import FileVault, VaultConfig

TEST_USER = "admin"
TEST_PASSWORD = "correct-horse"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp()).resolve()
    yield temp_path
    # Cleanup
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_root(temp_dir: Path) -> Path:
    """Create a vault root with a small tree of test files."""
    root = temp_dir / "root"
    root.mkdir(parents=True, exist_ok=True)

    (root / "readme.txt").write_text("Hello World")
    (root / "Annual_Report.pdf").write_bytes(b"%" * 1500)
    (root / "small_report.txt").write_bytes(b"x" * 500)

    reports = root / "reports"
    reports.mkdir()
    (reports / "q1.pdf").write_bytes(b"q" * 2000)

    nested = root / "subfolder"
    nested.mkdir()
    (nested / "nested.txt").write_text("Nested content")

    return root


@pytest.fixture
def make_vault(sample_root: Path):
    """Factory building a vault on the sample root with config overrides."""
    def _make(**overrides) -> FileVault:
        overrides.setdefault("root_path", str(sample_root))
        return FileVault(VaultConfig(**overrides))
    return _make


@pytest.fixture
def vault(make_vault) -> FileVault:
    """Vault over the sample root allowing .pdf and .txt uploads."""
    return make_vault(allowed_extensions=[".pdf", ".txt"])


@pytest.fixture
def config_manager(temp_dir: Path, sample_root: Path) -> ConfigManager:
    """ConfigManager isolated from the real environment and .env."""
    return ConfigManager(
        env_file=temp_dir / "missing.env",
        overrides={
            "VAULT_ROOT": str(sample_root),
            "ALLOWED_EXTENSIONS": ".pdf,.txt",
            "VAULT_USERNAME": TEST_USER,
            "VAULT_PASSWORD": TEST_PASSWORD,
            "STATIC_DIR": str(temp_dir / "no_ui"),
            "MAX_UPLOAD_MB": 1,
        },
    )


@pytest.fixture
def auth_headers() -> dict:
    """Valid Basic auth header for the test credentials."""
    token = base64.b64encode(f"{TEST_USER}:{TEST_PASSWORD}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


@pytest.fixture
def client(config_manager: ConfigManager):
    """TestClient over a fully wired app."""
    from fastapi.testclient import TestClient
    from portal.run import create_app

    with TestClient(create_app(config_manager)) as test_client:
        yield test_client
