"""Layered configuration loader for albsub."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import TranslationProviderConfigurationError
from .providers import PROVIDER_ALIASES

APP_NAME = "albsub"
ENV_PREFIX = "ALBSUB_"
LOCAL_CONFIG_NAMES = ("albsub.yml", "albsub.yaml", ".albsub.yml", ".albsub.yaml")

Provenance = Dict[str, str]


class AlbsubConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider: Literal["anthropic", "openai", "azure_openai", "ollama", "echo"] = Field(
        default="anthropic",
        description="Large language model provider selection.",
    )
    model: Optional[str] = Field(default=None)
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    batch_size: int = Field(default=25, alias="batchSize", gt=0)
    context_window: int = Field(default=3, alias="contextWindow", ge=0)
    workers: int = Field(default=2, gt=0)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_retries: int = Field(default=2, alias="maxRetries", ge=0)
    max_tokens: int = Field(default=4096, alias="maxTokens", gt=0)
    target_language: str = Field(default="Albanian", alias="targetLanguage")
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    azure_openai_api_key: Optional[str] = Field(default=None, alias="AZURE_OPENAI_API_KEY")
    azure_openai_endpoint: Optional[str] = Field(default=None, alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_api_version: Optional[str] = Field(
        default=None, alias="AZURE_OPENAI_API_VERSION"
    )
    azure_openai_deployment_name: Optional[str] = Field(
        default=None, alias="AZURE_OPENAI_DEPLOYMENT_NAME"
    )
    provider_debug: bool = Field(default=False, alias="ALBSUB_PROVIDER_DEBUG")

    @model_validator(mode="before")
    @classmethod
    def _normalise_provider(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("provider")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower()
                data["provider"] = PROVIDER_ALIASES.get(normalized, normalized)
        return data


def _env_key_map() -> Dict[str, str]:
    """Map recognised environment variable names to input keys."""

    keys: Dict[str, str] = {}
    for name, info in AlbsubConfig.model_fields.items():
        keys[f"{ENV_PREFIX}{name.upper()}"] = name
        if info.alias and info.alias.isupper():
            keys[info.alias] = name
    return keys


def _merge_layer(
    target: Dict[str, Any],
    values: Mapping[str, Any],
    *,
    provenance: Provenance,
    source: str,
) -> None:
    for key, value in values.items():
        target[key] = value
        provenance[key] = source


def _parse_yaml(path: Path) -> Mapping[str, Any]:
    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration file {path} could not be read: {exc}"
        ) from exc
    except yaml.YAMLError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration file {path} is not valid YAML: {exc}"
        ) from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise TranslationProviderConfigurationError(
            f"Invalid configuration file {path}: expected a mapping at the root."
        )
    return parsed


def discover_config_files(app_dir: Path) -> List[Path]:
    """Return the YAML files to load, lowest precedence first."""

    candidates = [Path.home() / ".config" / APP_NAME / "config.yaml"]
    candidates.extend(app_dir / name for name in LOCAL_CONFIG_NAMES)
    return [path for path in candidates if path.is_file()]


def _load_yaml_layers(
    *,
    app_dir: Path,
    config_path: Path | None,
    provenance: Provenance,
) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    if config_path is not None:
        if not config_path.is_file():
            raise TranslationProviderConfigurationError(
                f"Configuration file not found: {config_path}"
            )
        paths = [config_path]
    else:
        paths = discover_config_files(app_dir)

    for path in paths:
        layer = dict(_parse_yaml(path))
        _canonical_keys(layer)
        _merge_layer(
            result,
            layer,
            provenance=provenance,
            source=f"file:{path}",
        )
    return result


def _merge_env_sources(
    target: Dict[str, Any],
    *,
    provenance: Provenance,
    app_dir: Path,
) -> None:
    """Merge .env and process environment variables into the target mapping."""

    env_keys = _env_key_map()

    def merge_values(values: Mapping[str, Optional[str]], *, source_prefix: str) -> None:
        for key, value in sorted(values.items()):
            if value is None or key not in env_keys:
                continue
            _merge_layer(
                target,
                {env_keys[key]: value},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
            )

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path), source_prefix=".env")

    merge_values(dict(os.environ), source_prefix="process")


def _field_aliases() -> Dict[str, str]:
    return {
        info.alias: name
        for name, info in AlbsubConfig.model_fields.items()
        if info.alias
    }


def _canonical_keys(data: Dict[str, Any]) -> None:
    """Rewrite alias spellings to field names within one layer.

    Within a single file the snake_case spelling wins over the alias.
    """

    aliases = _field_aliases()
    for key in list(data):
        name = aliases.get(key)
        if name is None:
            continue
        value = data.pop(key)
        data.setdefault(name, value)


def _format_validation_errors(
    entries: Sequence[Mapping[str, Any]],
    provenance: Provenance,
) -> str:
    aliases = _field_aliases()
    details: List[str] = []
    for entry in entries:
        loc = entry.get("loc") or ()
        location = ".".join(str(part) for part in loc if part not in {None, ""})
        message = str(entry.get("msg") or "Invalid value")
        field_name = aliases.get(str(loc[0]), str(loc[0])) if loc else ""
        source = provenance.get(field_name)
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


@lru_cache(maxsize=8)
def _load_settings(app_dir: Path, config_path: Path | None) -> AlbsubConfig:
    """Load configuration layers once and cache the validated model."""

    provenance: Provenance = {}
    combined = _load_yaml_layers(
        app_dir=app_dir,
        config_path=config_path,
        provenance=provenance,
    )
    _merge_env_sources(combined, provenance=provenance, app_dir=app_dir)

    try:
        return AlbsubConfig.model_validate(combined)
    except ValidationError as exc:
        raise TranslationProviderConfigurationError(
            _format_validation_errors(exc.errors(), provenance)
        ) from exc


def get_settings(
    config_path: Path | str | None = None,
    app_dir: Path | None = None,
) -> AlbsubConfig:
    """Return the validated settings for the working directory."""

    base_dir = (app_dir or Path.cwd()).resolve()
    explicit = Path(config_path).expanduser().resolve() if config_path else None
    return _load_settings(base_dir, explicit)


def clear_settings_cache() -> None:
    _load_settings.cache_clear()


def resolve_credentials(
    settings: AlbsubConfig,
    api_key: str | None = None,
) -> Tuple[Optional[str], Optional[str]]:
    """Pick the API key and endpoint for the configured provider."""

    provider_keys = {
        "anthropic": settings.anthropic_api_key,
        "openai": settings.openai_api_key,
        "azure_openai": settings.azure_openai_api_key,
    }
    key = api_key or settings.api_key or provider_keys.get(settings.provider)
    base_url = settings.base_url
    if settings.provider == "azure_openai":
        base_url = base_url or settings.azure_openai_endpoint
    return key, base_url


def require_credentials(settings: AlbsubConfig, api_key: str | None = None) -> None:
    """Fail early when a hosted provider has no credentials to work with."""

    provider = settings.provider
    key, base_url = resolve_credentials(settings, api_key)
    errors: List[str] = []

    if provider == "anthropic" and not key:
        errors.append(
            "ANTHROPIC_API_KEY (or --api-key) is required when provider is 'anthropic'."
        )
    elif provider == "openai" and not key:
        errors.append(
            "OPENAI_API_KEY (or --api-key) is required when provider is 'openai'."
        )
    elif provider == "azure_openai":
        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": key,
                "AZURE_OPENAI_ENDPOINT": base_url,
                "AZURE_OPENAI_API_VERSION": settings.azure_openai_api_version,
                "AZURE_OPENAI_DEPLOYMENT_NAME": settings.azure_openai_deployment_name,
            }.items()
            if not value
        ]
        if missing:
            errors.append(
                "The following Azure OpenAI settings must be provided when "
                f"provider is 'azure_openai': {', '.join(missing)}."
            )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )
