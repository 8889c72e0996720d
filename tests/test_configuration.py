"""Tests for the layered configuration loader."""

from __future__ import annotations

import pytest

from albsub.configuration import (
    AlbsubConfig,
    get_settings,
    require_credentials,
    resolve_credentials,
)
from albsub.errors import TranslationProviderConfigurationError


def test_defaults(clean_config):
    settings = get_settings(app_dir=clean_config)
    assert settings.provider == "anthropic"
    assert settings.batch_size == 25
    assert settings.context_window == 3
    assert settings.workers == 2
    assert settings.max_retries == 2
    assert settings.temperature == 0.3
    assert settings.target_language == "Albanian"


def test_local_yaml_overrides_home_yaml(clean_config):
    home_config = clean_config / "home" / ".config" / "albsub"
    home_config.mkdir(parents=True)
    (home_config / "config.yaml").write_text("batchSize: 10\nworkers: 4\n")
    (clean_config / "albsub.yml").write_text("batchSize: 5\nprovider: gpt\n")

    settings = get_settings(app_dir=clean_config)

    assert settings.batch_size == 5
    assert settings.workers == 4
    assert settings.provider == "openai"


def test_later_file_wins_across_key_spellings(clean_config):
    home_config = clean_config / "home" / ".config" / "albsub"
    home_config.mkdir(parents=True)
    (home_config / "config.yaml").write_text("batch_size: 10\n")
    (clean_config / "albsub.yml").write_text("batchSize: 40\n")

    assert get_settings(app_dir=clean_config).batch_size == 40


def test_snake_case_wins_within_one_file(clean_config):
    (clean_config / "albsub.yml").write_text("batchSize: 40\nbatch_size: 12\n")

    assert get_settings(app_dir=clean_config).batch_size == 12


def test_environment_overrides_files(clean_config, monkeypatch):
    (clean_config / "albsub.yaml").write_text("context_window: 1\nmaxRetries: 4\n")
    (clean_config / ".env").write_text("ALBSUB_MAX_RETRIES=5\nOPENAI_API_KEY=from-dotenv\n")
    monkeypatch.setenv("ALBSUB_CONTEXT_WINDOW", "6")

    settings = get_settings(app_dir=clean_config)

    assert settings.context_window == 6
    assert settings.max_retries == 5
    assert settings.openai_api_key == "from-dotenv"


def test_explicit_config_skips_discovery(clean_config):
    (clean_config / "albsub.yml").write_text("workers: 9\n")
    explicit = clean_config / "custom.yaml"
    explicit.write_text("workers: 3\n")

    settings = get_settings(config_path=explicit, app_dir=clean_config)

    assert settings.workers == 3


def test_missing_explicit_config(clean_config):
    with pytest.raises(TranslationProviderConfigurationError, match="not found"):
        get_settings(config_path=clean_config / "absent.yaml", app_dir=clean_config)


def test_non_mapping_yaml_is_rejected(clean_config):
    (clean_config / "albsub.yml").write_text("- just\n- a list\n")
    with pytest.raises(TranslationProviderConfigurationError, match="mapping"):
        get_settings(app_dir=clean_config)


def test_validation_errors_name_their_source(clean_config, monkeypatch):
    monkeypatch.setenv("ALBSUB_BATCH_SIZE", "0")
    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        get_settings(app_dir=clean_config)
    message = str(excinfo.value)
    assert message.startswith("Configuration validation errors detected:")
    assert "env:process:ALBSUB_BATCH_SIZE" in message


def test_credentials_prefer_explicit_key():
    settings = AlbsubConfig(provider="anthropic", anthropic_api_key="env-key")
    assert resolve_credentials(settings) == ("env-key", None)
    assert resolve_credentials(settings, "cli-key") == ("cli-key", None)


def test_azure_endpoint_is_used_as_base_url():
    settings = AlbsubConfig(
        provider="azure",
        azure_openai_api_key="k",
        azure_openai_endpoint="https://example.openai.azure.com",
    )
    assert settings.provider == "azure_openai"
    assert resolve_credentials(settings) == ("k", "https://example.openai.azure.com")


def test_require_credentials_for_hosted_providers():
    with pytest.raises(TranslationProviderConfigurationError, match="OPENAI_API_KEY"):
        require_credentials(AlbsubConfig(provider="openai"))
    require_credentials(AlbsubConfig(provider="openai"), "cli-key")
    require_credentials(AlbsubConfig(provider="ollama"))
    require_credentials(AlbsubConfig(provider="echo"))


def test_require_credentials_lists_missing_azure_settings():
    settings = AlbsubConfig(provider="azure_openai", azure_openai_api_key="k")
    with pytest.raises(TranslationProviderConfigurationError) as excinfo:
        require_credentials(settings)
    message = str(excinfo.value)
    assert "AZURE_OPENAI_ENDPOINT" in message
    assert "AZURE_OPENAI_API_KEY" not in message
