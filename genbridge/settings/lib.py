"""Read-only view of user settings consumed by the generation core.

Persistence and schema migration belong to the host application; the core
only asks a SettingsStore for the current PluginSettings before each
top-level request and never writes back.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import invalid_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pricing:
    """Price in USD per one million tokens.

    Attributes:
        input: Cost of prompt tokens.
        output: Cost of completion tokens.
    """

    input: float = 0.0
    output: float = 0.0


@dataclass(frozen=True)
class GenerationSettings:
    """Sampling settings passed through to a provider.

    Attributes:
        temperature: Sampling temperature (0.0-2.0).
        max_tokens: Maximum tokens to generate.
        system_prompt: Optional system instruction.
    """

    temperature: float = 0.7
    max_tokens: int = 2000
    system_prompt: str | None = None


class _SettingsModel(BaseModel):
    """Accepts both snake_case and the camelCase keys written by the UI."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


class ResolvedProviderConfig(_SettingsModel):
    """One user-configured provider, already merged and flattened.

    Attributes:
        id: Identifier referenced by generation requests.
        capability_id: Capability table row this config instantiates.
        name: Optional display name.
        api_key: Secret used for authentication.
        custom_url: Replaces the capability's API root when set.
        custom_pricing: Replaces the capability's pricing when set.
        folder_id: Cloud folder, required by the regional provider.
        model_name: Model override for the local server.
        enabled: Disabled configs are treated as missing.
    """

    id: str
    capability_id: str
    name: str | None = None
    api_key: str = ""
    custom_url: str | None = None
    custom_pricing: Pricing | None = None
    folder_id: str | None = None
    model_name: str | None = None
    enabled: bool = True

    def __repr__(self) -> str:
        # api_key omitted
        return (
            f"ResolvedProviderConfig(id={self.id!r}, "
            f"capability_id={self.capability_id!r}, enabled={self.enabled})"
        )


class GenerationDefaults(_SettingsModel):
    """User defaults for single-shot generation."""

    temperature: float = Field(0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(2000, gt=0, le=100000)
    system_prompt: str | None = None

    def to_generation_settings(self) -> GenerationSettings:
        return GenerationSettings(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            system_prompt=self.system_prompt or None,
        )


class PluginSettings(_SettingsModel):
    """Current settings snapshot.

    Attributes:
        provider_configs: Flattened provider configurations.
        generation: Defaults applied when a caller passes no settings.
    """

    provider_configs: list[ResolvedProviderConfig] = Field(default_factory=list)
    generation: GenerationDefaults = Field(default_factory=GenerationDefaults)

    def enabled_providers(self) -> list[ResolvedProviderConfig]:
        """Get enabled configs in declaration order."""
        return [config for config in self.provider_configs if config.enabled]

    def find_provider(self, provider_id: str) -> ResolvedProviderConfig | None:
        """Find an enabled config by id.

        Args:
            provider_id: Config identifier.

        Returns:
            The config, or None if absent or disabled.
        """
        for config in self.enabled_providers():
            if config.id == provider_id:
                return config
        return None


@runtime_checkable
class SettingsStore(Protocol):
    """Source of the current settings snapshot."""

    def load_settings(self) -> PluginSettings: ...


class StaticSettingsStore:
    """In-memory store returning a fixed snapshot.

    Example:
        >>> store = StaticSettingsStore(PluginSettings(provider_configs=[...]))
        >>> store.load_settings().find_provider("main")
    """

    def __init__(self, settings: PluginSettings | None = None):
        self._settings = settings or PluginSettings()

    def load_settings(self) -> PluginSettings:
        return self._settings


class JsonFileSettingsStore:
    """Store that re-reads a JSON file on every call.

    The file holds a PluginSettings document; keys may be snake_case or
    camelCase.
    """

    def __init__(self, path: Path | str):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load_settings(self) -> PluginSettings:
        """Read and validate the settings file.

        Returns:
            Parsed PluginSettings.

        Raises:
            PluginError: With kind INVALID_CONFIG if the file is missing,
                unreadable or does not validate.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise invalid_config(
                f"Settings file not found: {self._path}", path=str(self._path)
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise invalid_config(
                f"Cannot read settings file: {self._path} ({e})",
                path=str(self._path),
            ) from e

        try:
            settings = PluginSettings.model_validate_json(raw)
        except ValidationError as e:
            raise invalid_config(
                f"Settings file is invalid: {self._path} "
                f"({e.error_count()} errors)",
                path=str(self._path),
                errors=e.errors(include_url=False),
            ) from e

        logger.debug(
            f"Loaded {len(settings.provider_configs)} provider configs "
            f"from {self._path}"
        )
        return settings


__all__ = [
    "Pricing",
    "GenerationSettings",
    "ResolvedProviderConfig",
    "GenerationDefaults",
    "PluginSettings",
    "SettingsStore",
    "StaticSettingsStore",
    "JsonFileSettingsStore",
]
