"""Application entry point: wire settings, logging, store and extension together."""

from __future__ import annotations

from vetstore.config import Settings, get_settings
from vetstore.core.logging import get_logger, setup_logging
from vetstore.extension.registry import ExtensionRegistry
from vetstore.services.vetting import VettingService
from vetstore.store import Store

logger = get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Apply the logging settings. Production always logs JSON."""
    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json or settings.is_production,
        log_file=settings.log_file or None,
    )


def create_service(settings: Settings | None = None, extension_name: str | None = None) -> VettingService:
    """Open the configured store and return a ready vetting service."""
    settings = settings or get_settings()
    configure_logging(settings)

    extensions = ExtensionRegistry(settings)
    extension = extensions.get_extension(extension_name)
    store = Store.open(settings=settings)
    logger.info(
        "Starting vetstore",
        data={
            "environment": settings.environment,
            "database_url": store.database_url,
            "extension": extension.name,
            "extensions": extensions.list_extensions(),
        },
    )
    return VettingService(store, extension)
