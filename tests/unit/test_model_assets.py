"""Unit tests for ModelAssetStore download and fallback behavior."""

import pytest
import aiohttp
from pathlib import Path
from unittest.mock import Mock

from meetingmind.errors import ModelAssetUnavailableError
from meetingmind.transcription.model_assets import ModelAssetStore, OPTIONAL_FILES, REQUIRED_FILES

PRIMARY = "https://primary.invalid/{model}"
MIRROR = "https://mirror.invalid/{model}"


def http_error(status, url):
    return aiohttp.ClientResponseError(Mock(real_url=url), (), status=status, message="HTTP error")


class FakeDownloads:
    """Stands in for ``_download_file``: serves files per host, records every URL."""

    def __init__(self, failing_hosts=(), missing_optional=True):
        self.failing_hosts = set(failing_hosts)
        self.missing_optional = missing_optional
        self.urls = []

    async def __call__(self, session, url, destination: Path):
        self.urls.append(url)
        host = url.split("/")[2]
        if host in self.failing_hosts:
            raise aiohttp.ClientConnectionError(f"Cannot connect to host {host}")
        if self.missing_optional and url.rsplit("/", 1)[1] in OPTIONAL_FILES:
            raise http_error(404, url)
        destination.write_bytes(f"from {host}".encode())


def make_store(temp_data_dir, downloads, sources=(PRIMARY, MIRROR)):
    store = ModelAssetStore(Path(temp_data_dir) / "models", sources=list(sources), timeout_seconds=5)
    store._download_file = downloads
    return store


@pytest.mark.unit
class TestModelAssetStore:

    def test_existing_model_is_not_downloaded(self, temp_data_dir):
        downloads = FakeDownloads()
        store = make_store(temp_data_dir, downloads)
        model_dir = store.model_path("tiny.en")
        model_dir.mkdir(parents=True)
        for name in REQUIRED_FILES:
            (model_dir / name).write_bytes(b"cached")

        assert store.is_available("tiny.en")
        assert store.ensure("tiny.en") == model_dir
        assert downloads.urls == []

    def test_downloads_from_first_source(self, temp_data_dir):
        downloads = FakeDownloads()
        store = make_store(temp_data_dir, downloads)

        path = store.ensure("tiny.en")

        assert path == store.model_path("tiny.en")
        assert store.is_available("tiny.en")
        assert (path / "model.bin").read_text() == "from primary.invalid"
        assert all("mirror.invalid" not in url for url in downloads.urls)
        assert downloads.urls[0] == "https://primary.invalid/tiny.en/config.json"

    def test_falls_back_to_mirror(self, temp_data_dir):
        downloads = FakeDownloads(failing_hosts={"primary.invalid"})
        store = make_store(temp_data_dir, downloads)

        path = store.ensure("base.en")

        assert (path / "config.json").read_text() == "from mirror.invalid"
        assert not (Path(temp_data_dir) / "models" / ".base.en.partial").exists()

    def test_all_sources_fail(self, temp_data_dir):
        downloads = FakeDownloads(failing_hosts={"primary.invalid", "mirror.invalid"})
        store = make_store(temp_data_dir, downloads)

        with pytest.raises(ModelAssetUnavailableError) as excinfo:
            store.ensure("tiny.en")

        error = excinfo.value
        assert error.model_name == "tiny.en"
        assert len(error.attempts) == 2
        assert "primary.invalid" in error.attempts[0]
        assert not store.is_available("tiny.en")
        assert not store.model_path("tiny.en").exists()

    def test_no_sources_configured(self, temp_data_dir):
        store = make_store(temp_data_dir, FakeDownloads(), sources=())
        with pytest.raises(ModelAssetUnavailableError, match="no sources configured"):
            store.ensure("tiny.en")

    def test_server_error_on_optional_file_fails_source(self, temp_data_dir):
        class OptionalServerError(FakeDownloads):
            async def __call__(self, session, url, destination):
                if "mirror" not in url and url.endswith("vocabulary.txt"):
                    raise http_error(500, url)
                await super().__call__(session, url, destination)

        store = make_store(temp_data_dir, OptionalServerError())
        path = store.ensure("tiny.en")
        assert (path / "model.bin").read_text() == "from mirror.invalid"

    def test_partial_files_are_not_available(self, temp_data_dir):
        store = make_store(temp_data_dir, FakeDownloads())
        model_dir = store.model_path("tiny.en")
        model_dir.mkdir(parents=True)
        (model_dir / "config.json").write_bytes(b"{}")
        (model_dir / "model.bin").write_bytes(b"")

        assert store.is_available("tiny.en") is False
