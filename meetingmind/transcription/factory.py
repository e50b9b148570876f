"""Builds the live and final transcription engines from configuration."""

import logging
from typing import Tuple

from .base import TranscriptionEngine
from .model_assets import ModelAssetStore
from ..config import MeetingMindConfig

logger = logging.getLogger(__name__)

ENGINE_CHOICES = ("auto", "local", "google")


def create_model_store(config: MeetingMindConfig) -> ModelAssetStore:
    return ModelAssetStore(
        directory=config.get('models.directory', 'models'),
        sources=config.get_model_sources(),
        timeout_seconds=config.get('models.download_timeout_seconds', 600),
    )


def resolve_engine_kind(config: MeetingMindConfig) -> str:
    """Pick 'local' or 'google', degrading to local when credentials are missing."""
    requested = config.get('transcription.engine', 'auto')
    if requested not in ENGINE_CHOICES:
        raise ValueError(f"Unknown transcription engine '{requested}', expected one of {ENGINE_CHOICES}")

    if requested == "local":
        return "local"

    credentials_path = config.get_google_credentials_path()
    if credentials_path:
        return "google"
    if requested == "google":
        logger.warning("Google Speech requested but no credentials file is available, "
                       "falling back to the local Whisper engine")
    return "local"


def _create_local_engine(config: MeetingMindConfig, profile: str, store: ModelAssetStore) -> TranscriptionEngine:
    from .local_engine import LocalWhisperEngine

    settings = config.get(f'transcription.{profile}', {})
    return LocalWhisperEngine(
        asset_store=store,
        model_name=settings.get('model', 'tiny.en'),
        beam_size=settings.get('beam_size', 1),
        compute_type=settings.get('compute_type', 'int8'),
        device=settings.get('device', 'cpu'),
        language=config.get('transcription.language', 'en'),
    )


def _create_google_engine(config: MeetingMindConfig, profile: str) -> TranscriptionEngine:
    from .google_backend import GoogleSpeechEngine

    return GoogleSpeechEngine(
        credentials_path=config.get_google_credentials_path(),
        language=config.get('google_cloud.language', 'en-US'),
        model="latest_short" if profile == "live" else "latest_long",
        use_enhanced=config.get('google_cloud.use_enhanced_model', True),
        enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
    )


def create_engines(config: MeetingMindConfig) -> Tuple[TranscriptionEngine, TranscriptionEngine]:
    """Return ``(live_engine, final_engine)``; neither is initialized yet."""
    kind = resolve_engine_kind(config)
    logger.info(f"Using '{kind}' transcription engines")

    if kind == "google":
        return _create_google_engine(config, "live"), _create_google_engine(config, "final")

    store = create_model_store(config)
    return _create_local_engine(config, "live", store), _create_local_engine(config, "final", store)
