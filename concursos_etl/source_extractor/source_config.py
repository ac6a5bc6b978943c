"""
Source configuration loader for the source-extractor service.

This module centralizes reading and validating scraper settings from
`config/sources.yml`. The CLI, the HTTP trigger and tests should all use this
helper to keep configuration handling consistent.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from ..normalizer.heuristics import HeuristicSettings
from .base import ContentType

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONCURSOS_SOURCES_CONFIG"


@dataclass
class ProviderConfig:
    """Configuration for a single source provider."""

    adapter: str
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineSettings:
    """Run settings for one content type."""

    table: str
    max_pages: int = 5
    consecutive_empty_threshold: int = 5
    batch_size: int = 100
    request_delay_seconds: float = 0.25
    max_retries: int = 3
    initial_retry_delay_seconds: float = 1.0
    minimum_listings_threshold: int = 0
    delete_stale: bool = False
    preload_existing_links: bool = False
    source_workers: int = 1


@dataclass
class SourcesConfig:
    """Parsed contents of the sources configuration file."""

    pipeline: dict[ContentType, PipelineSettings]
    providers: dict[ContentType, dict[str, ProviderConfig]]
    heuristics: HeuristicSettings = field(default_factory=HeuristicSettings)

    def enabled_providers(self, content_type: ContentType) -> dict[str, ProviderConfig]:
        return {
            name: cfg
            for name, cfg in self.providers.get(content_type, {}).items()
            if cfg.enabled
        }


def _project_root() -> Path:
    """Return the project root path based on this file's location."""
    return Path(__file__).resolve().parent.parent.parent


def _build_dataclass(cls: type, data: Mapping[str, Any], section: str) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in `{section}`: {', '.join(sorted(unknown))}")
    try:
        return cls(**data)
    except TypeError as exc:
        raise ValueError(f"Invalid `{section}` configuration: {exc}") from exc


def _parse_content_type(name: str, section: str) -> ContentType:
    try:
        return ContentType(name)
    except ValueError as exc:
        raise ValueError(f"Unknown content type '{name}' in `{section}`") from exc


def _parse_providers(name: str, section: Any) -> dict[str, ProviderConfig]:
    if not isinstance(section, Mapping):
        raise ValueError(f"`providers.{name}` must be a mapping")

    providers: dict[str, ProviderConfig] = {}
    for provider_name, provider_data in section.items():
        if not isinstance(provider_data, Mapping):
            raise ValueError(f"Invalid provider configuration for '{provider_name}'")

        adapter = provider_data.get("adapter")
        if not isinstance(adapter, str) or not adapter.strip():
            raise ValueError(f"Provider '{provider_name}' must define a non-empty `adapter` string")

        enabled = bool(provider_data.get("enabled", True))
        params = provider_data.get("params", {})
        if params and not isinstance(params, Mapping):
            raise ValueError(f"`params` for provider '{provider_name}' must be a mapping")

        providers[provider_name] = ProviderConfig(
            adapter=adapter,
            enabled=enabled,
            params=dict(params or {}),
        )
    return providers


def load_sources_config(config_path: str | None = None) -> SourcesConfig:
    """
    Load scraper configuration from YAML file.

    Args:
        config_path: Optional override for the config file path. When omitted,
            the function reads $CONCURSOS_SOURCES_CONFIG, falling back to
            `config/sources.yml` relative to the project root.

    Returns:
        SourcesConfig with pipeline settings, heuristics and providers.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the YAML file cannot be parsed or has invalid structure.
    """
    config_path = config_path or os.getenv(CONFIG_ENV_VAR)
    path = Path(config_path) if config_path else _project_root() / "config" / "sources.yml"
    if not path.exists():
        logger.error("Sources configuration file not found: %s", path)
        raise FileNotFoundError(f"Sources configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw_config: Mapping[str, Any] | None = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse sources configuration: %s", exc)
        raise ValueError(f"Invalid YAML in sources configuration: {exc}") from exc

    if not raw_config:
        raise ValueError(f"Sources configuration file is empty: {path}")

    pipeline_section = raw_config.get("pipeline")
    if not isinstance(pipeline_section, Mapping):
        raise ValueError("`pipeline` section is missing or invalid in sources configuration")

    pipeline: dict[ContentType, PipelineSettings] = {}
    for name, settings in pipeline_section.items():
        content_type = _parse_content_type(name, "pipeline")
        if not isinstance(settings, Mapping):
            raise ValueError(f"`pipeline.{name}` must be a mapping")
        pipeline[content_type] = _build_dataclass(PipelineSettings, settings, f"pipeline.{name}")

    heuristics_section = raw_config.get("heuristics") or {}
    if not isinstance(heuristics_section, Mapping):
        raise ValueError("`heuristics` section must be a mapping")
    heuristics = _build_dataclass(HeuristicSettings, heuristics_section, "heuristics")

    providers_section = raw_config.get("providers")
    if not isinstance(providers_section, Mapping):
        raise ValueError("`providers` section is missing or invalid in sources configuration")

    providers: dict[ContentType, dict[str, ProviderConfig]] = {}
    for name, section in providers_section.items():
        content_type = _parse_content_type(name, "providers")
        if content_type not in pipeline:
            raise ValueError(f"Providers defined for '{name}' but no `pipeline.{name}` settings")
        providers[content_type] = _parse_providers(name, section)

    config = SourcesConfig(pipeline=pipeline, providers=providers, heuristics=heuristics)

    logger.info(
        "Loaded sources configuration",
        extra={
            "content_types": [content_type.value for content_type in pipeline],
            "enabled_sources": {
                content_type.value: list(config.enabled_providers(content_type))
                for content_type in providers
            },
        },
    )
    return config


__all__ = ["PipelineSettings", "ProviderConfig", "SourcesConfig", "load_sources_config"]
