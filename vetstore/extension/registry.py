"""Extension registry for managing ecosystem extensions."""

from typing import Dict, List, Optional

from vetstore.config import Settings
from vetstore.core.exceptions import ExtensionNotFound
from vetstore.core.logging import get_logger
from vetstore.extension.base import Extension, ExtensionType

logger = get_logger(__name__)


class ExtensionRegistry:
    """Registry for managing ecosystem extensions."""

    def __init__(self, settings: Settings):
        """Initialize registry with settings."""
        self.settings = settings
        self.extensions: Dict[str, Extension] = {}
        self.default_extension = settings.default_extension

        self._init_extensions()

    def _init_extensions(self) -> None:
        """Initialize configured extensions."""
        for extension_name in self.settings.extensions_enabled_list:
            extension = self._create_extension(extension_name)
            if extension:
                self.extensions[extension_name] = extension
                logger.info(f"Initialized extension: {extension_name}")

    def _create_extension(self, name: str) -> Optional[Extension]:
        """Create an extension by name."""
        from vetstore.extension.js import JsExtension

        if name == ExtensionType.JS.value:
            return JsExtension(timeout=self.settings.registry_timeout_seconds)
        else:
            logger.warning(f"Unknown extension type: {name}")
            return None

    def register(self, extension: Extension) -> None:
        """Add an externally constructed extension (other ecosystems)."""
        if not isinstance(extension, Extension):
            raise TypeError(f"{extension!r} does not implement the Extension protocol")
        self.extensions[extension.name] = extension

    def get_extension(self, name: str = None) -> Extension:
        """Get an extension by name, or the default."""
        name = name or self.default_extension
        extension = self.extensions.get(name)
        if extension is None:
            raise ExtensionNotFound(name)
        return extension

    def list_extensions(self) -> List[str]:
        """List available extension names."""
        return list(self.extensions.keys())

    def close(self) -> None:
        """Close all extensions."""
        for name, extension in self.extensions.items():
            close = getattr(extension, "close", None)
            if close is not None:
                close()
