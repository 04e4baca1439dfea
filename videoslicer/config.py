"""Configuration model and loaders for videoslicer.

Responsibilities:
- Define runtime configuration as a typed dataclass.
- Validate rate bounds, worker counts, archive and tag settings.
- Provide loader entry points for YAML files and environment variables.

Key types:
- `SlicerConfig`: normalized settings for slicing and embedding runs.
- `ConfigLoader`: static construction helpers for `SlicerConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import normalize_optional_string, parse_permissive_boolean, parse_positive_int

_DEFAULT_RATE = 8
_DEFAULT_MAX_RATE = 60
_DEFAULT_JPEG_QUALITY = 5
_SUPPORTED_COMPRESSION = frozenset({"deflate", "stored"})
_SUPPORTED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})


@dataclass(frozen=True, slots=True)
class SlicerConfig:
    """Runtime configuration shared by the CLI and both pipelines.

    Attributes:
        rate: Chunks produced per second of source duration.
        max_rate: Upper bound accepted for `rate`.
        workers: Chunk worker threads; `1` keeps processing sequential.
        jpeg_quality: ffmpeg mjpeg quality scale for covers (2 best, 31 smallest).
        compression: Output zip compression, `deflate` or `stored`.
        tag_title_template: Title template for embedded tags, `{index}` placeholder.
        tag_artist: Artist text for embedded tags.
        tag_album: Album text for embedded tags.
        verbose: Whether DEBUG progress logs are shown.
    """

    rate: int = _DEFAULT_RATE
    max_rate: int = _DEFAULT_MAX_RATE
    workers: int = 1
    jpeg_quality: int = _DEFAULT_JPEG_QUALITY
    compression: str = "deflate"
    tag_title_template: str = "Track {index}"
    tag_artist: str = "Video Slicer"
    tag_album: str = "Sliced Audio"
    verbose: bool = False

    @property
    def log_level(self) -> str:
        return "DEBUG" if self.verbose else "INFO"

    def validate(self) -> None:
        """Validate configuration values before a pipeline run."""

        if self.max_rate < 1:
            raise ValueError("`max_rate` must be a positive integer.")
        if not 1 <= self.rate <= self.max_rate:
            raise ValueError(f"`rate` must be between 1 and {self.max_rate}, got {self.rate}.")
        if self.workers < 1:
            raise ValueError("`workers` must be a positive integer.")
        if not 2 <= self.jpeg_quality <= 31:
            raise ValueError("`jpeg_quality` must be between 2 and 31.")
        if self.compression not in _SUPPORTED_COMPRESSION:
            supported = ", ".join(sorted(_SUPPORTED_COMPRESSION))
            raise ValueError(
                f"Unsupported `compression` value `{self.compression}`; supported: {supported}."
            )
        if "{index}" not in self.tag_title_template:
            raise ValueError("`tag_title_template` must contain the `{index}` placeholder.")
        try:
            self.tag_title_template.format(index="001")
        except (IndexError, KeyError, ValueError) as exc:
            raise ValueError(f"`tag_title_template` is not a valid template: {exc}") from exc
        for field_name in ("tag_artist", "tag_album"):
            if not normalize_optional_string(getattr(self, field_name)):
                raise ValueError(f"`{field_name}` must be a non-empty string.")

    def with_overrides(self, **overrides: object) -> SlicerConfig:
        """Return a validated copy with non-`None` overrides applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        updated = replace(self, **applied)
        updated.validate()
        return updated


class ConfigLoader:
    """Factory methods for creating `SlicerConfig` from external sources.

    Precedence, lowest first: built-in defaults, `VIDEOSLICER_*` environment
    variables, YAML file values. CLI flags are applied on top by the caller.
    """

    _INT_KEYS = ("rate", "max_rate", "workers", "jpeg_quality")
    _STRING_KEYS = ("compression", "tag_title_template", "tag_artist", "tag_album")
    _BOOL_KEYS = ("verbose",)
    _SUPPORTED_YAML_KEYS = frozenset((*_INT_KEYS, *_STRING_KEYS, *_BOOL_KEYS))

    @staticmethod
    def from_yaml(path: Path) -> SlicerConfig:
        """Create a validated config from a YAML file."""

        values = ConfigLoader._parse_values(
            ConfigLoader._yaml_payload(path), source_label=f"YAML `{path}`"
        )
        return ConfigLoader._validated(values)

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> SlicerConfig:
        """Create a validated config from `VIDEOSLICER_*` environment variables."""

        values = ConfigLoader._parse_values(
            ConfigLoader._env_payload(env), source_label="environment"
        )
        return ConfigLoader._validated(values)

    @staticmethod
    def from_sources(
        path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> SlicerConfig:
        """Create a validated config from environment values overlaid by a YAML file."""

        values = ConfigLoader._parse_values(
            ConfigLoader._env_payload(env), source_label="environment"
        )
        if path is not None:
            values.update(
                ConfigLoader._parse_values(
                    ConfigLoader._yaml_payload(path), source_label=f"YAML `{path}`"
                )
            )
        return ConfigLoader._validated(values)

    @staticmethod
    def _yaml_payload(path: Path) -> Mapping[str, Any]:
        raw_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _env_payload(env: Mapping[str, str] | None) -> dict[str, Any]:
        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in ConfigLoader._SUPPORTED_YAML_KEYS:
            value = normalize_optional_string(env_map.get(f"VIDEOSLICER_{key.upper()}"))
            if value is not None:
                payload[key] = value
        return payload

    @staticmethod
    def _validated(values: Mapping[str, Any]) -> SlicerConfig:
        config = SlicerConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _parse_values(payload: Mapping[str, Any], source_label: str) -> dict[str, Any]:
        """Normalize one source's raw mapping into typed `SlicerConfig` values."""

        unknown = sorted(str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        values: dict[str, Any] = {}
        for key in ConfigLoader._INT_KEYS:
            if key in payload:
                try:
                    values[key] = parse_positive_int(payload[key], key)
                except ValueError as exc:
                    raise ValueError(f"{source_label}: {exc}") from exc
        for key in ConfigLoader._STRING_KEYS:
            if key in payload:
                value = normalize_optional_string(payload[key])
                if value is None:
                    raise ValueError(f"{source_label} requires non-empty `{key}` when provided.")
                values[key] = value.lower() if key == "compression" else value
        for key in ConfigLoader._BOOL_KEYS:
            if key in payload:
                parsed = parse_permissive_boolean(payload[key])
                if parsed is None:
                    raise ValueError(
                        f"{source_label}: `{key}` must be a boolean value "
                        "(`true`/`false`, `1`/`0`, `yes`/`no`)."
                    )
                values[key] = parsed
        return values
