"""Prepper-backed configuration loader for Novella."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Sequence

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .errors import TranslationProviderConfigurationError
from .structures import BaiduConfig, EchoConfig, SakuraConfig, TranslatorConfig

APP_NAME = "Novella"

TRANSLATOR_SYNONYMS = {
    "sakura_llm": "sakura",
    "sakurallm": "sakura",
    "baidu_fanyi": "baidu",
    "local": "echo",
    "noop": "echo",
}


class NovellaConfig(SchemaModel):
    """Schema describing all supported configuration options."""

    NOVELLA_TRANSLATOR: Literal["baidu", "sakura", "echo"] = Field(
        default="baidu",
        description="Translation backend selection.",
    )
    SAKURA_ENDPOINT: str | None = Field(default=None)
    SAKURA_SEG_LENGTH: int | None = Field(default=None)
    SAKURA_PREV_SEG_LENGTH: int | None = Field(default=None)
    NOVELLA_PROVIDER_DEBUG: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_translator(data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("NOVELLA_TRANSLATOR")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("-", "_")
                normalized = TRANSLATOR_SYNONYMS.get(normalized, normalized)
                data["NOVELLA_TRANSLATOR"] = normalized
        return data


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    """Load configuration layers once and cache the immutable instance."""

    base_dir = app_dir or Path.cwd()
    try:
        provenance = ProvenanceRecorder()
        combined = _load_discovered_yaml(app_dir=base_dir, provenance=provenance)
        _merge_env_sources(
            combined,
            provenance=provenance,
            app_dir=base_dir,
            schema=NovellaConfig,
        )

        model = NovellaConfig.validate(combined, provenance=provenance)
        validate_translator_settings(model)

        return ConfigInstance(
            model=model,
            provenance=provenance,
            env_prefix=None,
            schema_cls=NovellaConfig,
        )
    except IoError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration files could not be read: {exc}"
        ) from exc
    except SchemaError as exc:
        raise TranslationProviderConfigurationError(
            f"Configuration schema error: {exc}"
        ) from exc
    except ValidationError as exc:
        issues = _format_validation_errors(exc.to_dict())
        raise TranslationProviderConfigurationError(issues) from exc


def _load_discovered_yaml(
    *,
    app_dir: Path,
    provenance: ProvenanceRecorder,
) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for path, label in discover_file_paths(APP_NAME, "yaml", app_dir=app_dir, extra_paths=None):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        source = _path_to_source(label, "yaml", path)
        merge_layer(result, parsed, provenance=provenance, source=source, layer="file")
    return result


def _merge_env_sources(
    target: dict[str, Any],
    *,
    provenance: ProvenanceRecorder,
    app_dir: Path,
    schema: type[SchemaModel],
) -> None:
    """Layer ``.env`` values, then the process environment, over ``target``."""

    allowed = set(schema.__field_infos__.keys())

    def merge_values(values: Mapping[str, str], *, source_prefix: str) -> None:
        for key in sorted(allowed & values.keys()):
            merge_layer(
                target,
                {key: values[key]},
                provenance=provenance,
                source=f"env:{source_prefix}:{key}",
                layer="env",
            )

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(
            {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None},
            source_prefix=".env",
        )

    merge_values(dict(os.environ), source_prefix="process")


def validate_translator_settings(settings: Any) -> None:
    """Check cross-field rules the schema cannot express."""

    errors: list[str] = []

    if settings.NOVELLA_TRANSLATOR == "sakura" and not settings.SAKURA_ENDPOINT:
        errors.append(
            "SAKURA_ENDPOINT is required when NOVELLA_TRANSLATOR is 'sakura'."
        )
    if settings.SAKURA_SEG_LENGTH is not None and settings.SAKURA_SEG_LENGTH <= 0:
        errors.append("SAKURA_SEG_LENGTH must be a positive number of characters.")
    if settings.SAKURA_PREV_SEG_LENGTH is not None and settings.SAKURA_PREV_SEG_LENGTH < 0:
        errors.append("SAKURA_PREV_SEG_LENGTH must not be negative.")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(entries: Sequence[dict[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("path") or []
        if isinstance(path, (list, tuple)):
            location = ".".join(str(part) for part in path if part not in {None, ""})
        else:
            location = str(path)
        message = str(entry.get("message") or entry.get("msg") or "Invalid value")
        source = entry.get("source")
        origin = f" (source: {source})" if source else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def build_translator_config(
    settings: Any,
    *,
    translator: Optional[str] = None,
    endpoint: Optional[str] = None,
    seg_length: Optional[int] = None,
    prev_seg_length: Optional[int] = None,
) -> TranslatorConfig:
    """Combine loaded settings with command line overrides."""

    kind = translator or settings.NOVELLA_TRANSLATOR
    if kind == "baidu":
        return BaiduConfig()
    if kind == "echo":
        return EchoConfig()
    if kind == "sakura":
        resolved_endpoint = endpoint or settings.SAKURA_ENDPOINT
        if not resolved_endpoint:
            raise TranslationProviderConfigurationError(
                "The sakura translator needs an endpoint. Set SAKURA_ENDPOINT or "
                "pass --endpoint."
            )
        return SakuraConfig(
            endpoint=resolved_endpoint,
            seg_length=seg_length if seg_length is not None else settings.SAKURA_SEG_LENGTH,
            prev_seg_length=(
                prev_seg_length
                if prev_seg_length is not None
                else settings.SAKURA_PREV_SEG_LENGTH
            ),
        )
    raise TranslationProviderConfigurationError(f"Unknown translator '{kind}'.")


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    """Return the immutable configuration instance."""

    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> NovellaConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir=app_dir).model()
