"""Tests for DocVault settings loading.

Invalid values fail closed with ConfigError at load time.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from docvault.config import (
    DEFAULT_ALLOWED_FILE_TYPES,
    ENV_ALLOWED_FILE_TYPES,
    ENV_CHUNK_SIZE,
    ENV_DELETE_BATCH_SIZE,
    ENV_INGESTION_WORKER_ENABLED,
    ENV_OBJECT_STORE_BACKEND,
    ENV_OBJECT_STORE_BASE_DIR,
    ENV_S3_BUCKET,
    Settings,
    get_env_bool,
    load_settings,
)
from docvault.errors import ConfigError
from docvault.storage.factory import create_object_store
from docvault.storage.filesystem_store import FilesystemObjectStore
from docvault.storage.memory_store import InMemoryObjectStore


@pytest.fixture(autouse=True)
def clear_docvault_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        ENV_OBJECT_STORE_BACKEND,
        ENV_OBJECT_STORE_BASE_DIR,
        ENV_S3_BUCKET,
        ENV_ALLOWED_FILE_TYPES,
        ENV_CHUNK_SIZE,
        ENV_DELETE_BATCH_SIZE,
        ENV_INGESTION_WORKER_ENABLED,
    ):
        monkeypatch.delenv(name, raising=False)


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self) -> None:
        settings = load_settings()

        assert settings.object_store_backend == "filesystem"
        assert settings.presign_expiry_seconds == 3600
        assert settings.chunk_size == 1000
        assert settings.ingestion_batch_size == 100
        assert settings.folder_batch_size == 50
        assert settings.delete_batch_size == 1000
        assert settings.ingestion_worker_enabled is False
        assert settings.allowed_file_types == DEFAULT_ALLOWED_FILE_TYPES

    def test_overrides_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setenv(ENV_OBJECT_STORE_BACKEND, " Memory ")
        monkeypatch.setenv(ENV_OBJECT_STORE_BASE_DIR, str(tmp_path))
        monkeypatch.setenv(ENV_ALLOWED_FILE_TYPES, "PDF, txt ,,")
        monkeypatch.setenv(ENV_CHUNK_SIZE, "250")
        monkeypatch.setenv(ENV_INGESTION_WORKER_ENABLED, "yes")

        settings = load_settings()

        assert settings.object_store_backend == "memory"
        assert settings.object_store_base_dir == tmp_path
        assert settings.allowed_file_types == ("pdf", "txt")
        assert settings.chunk_size == 250
        assert settings.ingestion_worker_enabled is True

    @pytest.mark.parametrize("raw", ["abc", "0", "-5"])
    def test_non_positive_int_rejected(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv(ENV_CHUNK_SIZE, raw)

        with pytest.raises(ConfigError, match=ENV_CHUNK_SIZE):
            load_settings()

    def test_delete_batch_size_above_ceiling_rejected(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(ENV_DELETE_BATCH_SIZE, "1001")

        with pytest.raises(ConfigError, match=ENV_DELETE_BATCH_SIZE):
            load_settings()

    def test_unknown_backend_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_OBJECT_STORE_BACKEND, "gcs")

        with pytest.raises(ConfigError):
            load_settings()

    def test_s3_requires_bucket(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_OBJECT_STORE_BACKEND, "s3")

        with pytest.raises(ConfigError, match=ENV_S3_BUCKET):
            load_settings()


class TestGetEnvBool:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("TRUE", True), ("no", False), ("0", False), ("maybe", None)],
    )
    def test_parsing(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool | None
    ) -> None:
        monkeypatch.setenv("DOCVAULT_TEST_FLAG", raw)

        default = True
        result = get_env_bool("DOCVAULT_TEST_FLAG", default)

        assert result is (default if expected is None else expected)


class TestCreateObjectStore:
    """Tests for backend selection."""

    def test_memory_backend(self) -> None:
        store = create_object_store(Settings(object_store_backend="memory"))

        assert isinstance(store, InMemoryObjectStore)
        assert store.backend_name == "memory"

    def test_filesystem_backend(self, tmp_path: Path) -> None:
        store = create_object_store(
            Settings(object_store_backend="filesystem", object_store_base_dir=tmp_path)
        )

        assert isinstance(store, FilesystemObjectStore)
        assert store.base_dir == tmp_path.resolve()
