"""Local store for faster-whisper model files with multi-source download."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import List, Optional, Union

import aiohttp

from ..errors import ModelAssetUnavailableError

logger = logging.getLogger(__name__)

REQUIRED_FILES = ("config.json", "model.bin", "tokenizer.json")
# Present for most models; a 404 on these is not a failure
OPTIONAL_FILES = ("vocabulary.txt", "vocabulary.json", "preprocessor_config.json")


class ModelAssetStore:
    """Keeps one directory per model under ``directory``.

    ``sources`` are base URL templates containing ``{model}``; each file is
    fetched from ``<base>/<file name>``. Sources are tried in order and a
    model is only moved into place once every required file arrived.
    """

    def __init__(self,
                 directory: Union[str, Path],
                 sources: Optional[List[str]] = None,
                 timeout_seconds: float = 600.0):
        self.directory = Path(directory)
        self.sources = list(sources or [])
        self.timeout_seconds = timeout_seconds

    def model_path(self, model_name: str) -> Path:
        return self.directory / model_name

    def is_available(self, model_name: str) -> bool:
        path = self.model_path(model_name)
        return all((path / name).is_file() and (path / name).stat().st_size > 0
                   for name in REQUIRED_FILES)

    def ensure(self, model_name: str) -> Path:
        """Return the model directory, downloading it first if needed.

        Blocks until the download finishes; call from a worker thread.

        Raises:
            ModelAssetUnavailableError: every source failed
        """
        if self.is_available(model_name):
            logger.debug(f"Model '{model_name}' found at {self.model_path(model_name)}")
            return self.model_path(model_name)

        logger.info(f"Model '{model_name}' not found locally, downloading from {len(self.sources)} source(s)")
        return asyncio.run(self.fetch(model_name))

    async def fetch(self, model_name: str) -> Path:
        attempts = []
        target = self.model_path(model_name)
        staging = self.directory / f".{model_name}.partial"

        for template in self.sources:
            base_url = template.format(model=model_name).rstrip('/')
            shutil.rmtree(staging, ignore_errors=True)
            staging.mkdir(parents=True, exist_ok=True)
            try:
                await self._fetch_from_source(base_url, staging)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                logger.warning(f"Model download from {base_url} failed: {e}")
                attempts.append(f"{base_url}: {e}")
                continue

            shutil.rmtree(target, ignore_errors=True)
            staging.rename(target)
            logger.info(f"Model '{model_name}' downloaded from {base_url} to {target}")
            return target

        shutil.rmtree(staging, ignore_errors=True)
        raise ModelAssetUnavailableError(model_name, attempts)

    async def _fetch_from_source(self, base_url: str, staging: Path) -> None:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            for name in REQUIRED_FILES:
                await self._download_file(session, f"{base_url}/{name}", staging / name)
            for name in OPTIONAL_FILES:
                try:
                    await self._download_file(session, f"{base_url}/{name}", staging / name)
                except aiohttp.ClientResponseError as e:
                    if e.status != 404:
                        raise
                    logger.debug(f"Optional model file {name} not present at {base_url}")

    async def _download_file(self, session: aiohttp.ClientSession, url: str, destination: Path) -> None:
        logger.debug(f"Downloading {url}")
        async with session.get(url) as response:
            response.raise_for_status()
            with open(destination, 'wb') as f:
                async for block in response.content.iter_chunked(1 << 20):
                    f.write(block)
        logger.debug(f"Saved {destination} ({destination.stat().st_size} bytes)")
