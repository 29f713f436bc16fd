from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, YamlConfigSettingsSource

from domain.models import DEFAULT_FULL_WIDTH_TYPES, MAX_UNITS, ElementType, RenderConfig

DEFAULT_CONFIG_PATH = Path("config/render.yaml")


def _split_string_list_value(raw_value: str) -> list[str]:
    raw = raw_value.strip()
    if not raw:
        return []
    if (
        (raw.startswith('"') and raw.endswith('"')) or (raw.startswith("'") and raw.endswith("'"))
    ) and len(raw) >= 2:
        raw = raw[1:-1].strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1].strip()
    if not raw:
        return []
    return [
        token for token in (part.strip().strip("'").strip('"') for part in raw.split(",")) if token
    ]


def _normalize_style(value: object) -> str:
    style = " ".join(str(value or "").split())
    if style and not style.endswith(";"):
        style = f"{style};"
    return style


class RenderSettings(BaseModel):
    font_family: str = Field(
        default="Helvetica, Arial, sans-serif",
        validation_alias=AliasChoices("font_family", "fontFamily"),
    )
    font_size_pt: float = Field(
        default=9.0, gt=0, validation_alias=AliasChoices("font_size_pt", "fontSizePt")
    )
    max_row_units: int = Field(
        default=MAX_UNITS, ge=1, validation_alias=AliasChoices("max_row_units", "maxRowUnits")
    )
    units_to_chars_ratio: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("units_to_chars_ratio", "unitsToCharsRatio"),
    )
    document_width_px: float = Field(default=720.0, gt=0)
    average_glyph_em: float = Field(default=0.55, gt=0)
    section_header_style: str = Field(
        default="background-color: #1f3864; color: #ffffff; font-weight: bold;",
        validation_alias=AliasChoices("section_header_style", "sectionHeaderStyle"),
    )
    subsection_header_style: str = Field(
        default="background-color: #d9e2f3; font-weight: bold;",
        validation_alias=AliasChoices("subsection_header_style", "subsectionHeaderStyle"),
    )
    forced_full_width_types: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: sorted(item.value for item in DEFAULT_FULL_WIDTH_TYPES)
    )
    unknown_types_full_width: bool = False
    timezone_offset_hours: float = Field(default=0.0, ge=-14, le=14)
    decimal_scale: int = Field(default=2, ge=0, le=10)

    @field_validator("section_header_style", "subsection_header_style", mode="before")
    @classmethod
    def normalize_styles(cls, value: object) -> str:
        return _normalize_style(value)

    @field_validator("forced_full_width_types", mode="before")
    @classmethod
    def normalize_types(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, list):
            raw: list[str] = []
            for item in value:
                raw.extend(_split_string_list_value(str(item)))
        else:
            raw = _split_string_list_value(str(value))
        normalized: list[str] = []
        for token in raw:
            element_type = ElementType.parse(token)
            if element_type is None:
                msg = f"render.forced_full_width_types: unknown element type {token!r}"
                raise ValueError(msg)
            if element_type.value not in normalized:
                normalized.append(element_type.value)
        return normalized

    def to_render_config(self) -> RenderConfig:
        return RenderConfig(
            font_family=self.font_family,
            font_size_pt=self.font_size_pt,
            max_row_units=self.max_row_units,
            units_to_chars_ratio=self.units_to_chars_ratio,
            document_width_px=self.document_width_px,
            average_glyph_em=self.average_glyph_em,
            section_header_style=self.section_header_style,
            subsection_header_style=self.subsection_header_style,
            forced_full_width_types=frozenset(
                ElementType(item) for item in self.forced_full_width_types
            ),
            unknown_types_full_width=self.unknown_types_full_width,
            timezone_offset_hours=self.timezone_offset_hours,
            decimal_scale=self.decimal_scale,
        )


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PROTO_", env_nested_delimiter="__")

    render: RenderSettings = RenderSettings()
    log_level: str = "INFO"

    _yaml_path: ClassVar[Path | None] = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        return str(value).upper() if value else "INFO"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        ]
        if cls._yaml_path:
            sources.append(YamlConfigSettingsSource(settings_cls, yaml_file=cls._yaml_path))
        return tuple(sources)


def load_settings(config_path: Path | None = None) -> AppSettings:
    env_path = os.getenv("PROTO_CONFIG_PATH")
    resolved_path: Path | None = None

    if config_path is not None:
        resolved_path = config_path
    elif env_path:
        resolved_path = Path(env_path)
    elif DEFAULT_CONFIG_PATH.exists():
        resolved_path = DEFAULT_CONFIG_PATH

    previous = AppSettings._yaml_path
    try:
        if resolved_path is not None:
            if not resolved_path.exists():
                msg = f"Config file not found: {resolved_path}"
                raise FileNotFoundError(msg)
            AppSettings._yaml_path = resolved_path
        return AppSettings()
    finally:
        AppSettings._yaml_path = previous
