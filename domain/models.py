from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MAX_UNITS = 12
_NON_FINITE_TEXT = {"nan", "inf", "+inf", "-inf", "infinity", "-infinity", "null", "none"}
LINE_BREAK = "<br>"

SEMANTIC_PASS = "pass"
SEMANTIC_FAIL = "fail"
SEMANTIC_FULL_WIDTH = "full_width"
SEMANTIC_GENERIC = "generic"
SEMANTIC_TABLE_ROW = "table_row"
SEMANTIC_TABLE_CELL = "table_cell"
SEMANTIC_FINDING = "finding"
SEMANTIC_EXPECTED = "expected"
SEMANTIC_ACTUAL = "actual"
ORIENTATION_VERTICAL = "orientation:vertical"
ORIENTATION_HORIZONTAL = "orientation:horizontal"


class ElementType(str, Enum):
    TABLE = "TABLE"
    TEST_STEP = "TEST_STEP"
    TEXT_ONLY = "TEXT_ONLY"
    MULTI_PICKLIST = "MULTI_PICKLIST"
    SINGLE_PICKLIST = "SINGLE_PICKLIST"
    RADIO_VERTICAL = "RADIO_VERTICAL"
    RADIO_HORIZONTAL = "RADIO_HORIZONTAL"
    FREE_TEXT = "FREE_TEXT"
    NUMERIC_VALUE = "NUMERIC_VALUE"
    TRAINING_EFFECTIVENESS = "TRAINING_EFFECTIVENESS"
    FINDINGS_SECTION = "FINDINGS_SECTION"
    SIGNATURE = "SIGNATURE"

    @classmethod
    def parse(cls, tag: object) -> Optional[ElementType]:
        if isinstance(tag, ElementType):
            return tag
        normalized = str(tag or "").strip().upper().replace("-", "_").replace(" ", "_")
        if not normalized:
            return None
        try:
            return cls(normalized)
        except ValueError:
            return None


DEFAULT_FULL_WIDTH_TYPES: frozenset[ElementType] = frozenset(
    {
        ElementType.TABLE,
        ElementType.TEXT_ONLY,
        ElementType.TRAINING_EFFECTIVENESS,
        ElementType.FINDINGS_SECTION,
        ElementType.SIGNATURE,
    }
)


def clamp_width(value: object, max_units: int = MAX_UNITS) -> int:
    upper = max(1, int(max_units))
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return upper
    if math.isnan(number):
        return upper
    if math.isinf(number):
        return upper if number > 0 else 1
    return min(max(int(number), 1), upper)


def normalize_width(value: object) -> Optional[int]:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or number == math.inf:
        return None
    if number == -math.inf:
        return 1
    return max(int(number), 1)


def finite_or_none(value: object) -> object:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text or text.lower() in _NON_FINITE_TEXT:
            return None
        return text
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Decimal) and not value.is_finite():
        return None
    return value


class ProtocolElement(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    element_id: str = Field(..., min_length=1, alias="id")
    type_tag: str = Field(default="", alias="type")
    label: str = ""
    declared_width: Optional[int] = Field(default=None, alias="width")
    order: int = 0
    payload: Dict[str, Any] = Field(default_factory=dict)
    section: Optional[str] = None
    subsection: Optional[str] = None

    @field_validator("declared_width", mode="before")
    @classmethod
    def normalize_declared_width(cls, value: object) -> Optional[int]:
        return normalize_width(value)

    @field_validator("label", "type_tag", mode="before")
    @classmethod
    def normalize_text(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("payload", mode="before")
    @classmethod
    def normalize_payload(cls, value: object) -> Dict[str, Any]:
        if value is None:
            return {}
        if isinstance(value, dict):
            return value
        return {"value": value}

    @property
    def element_type(self) -> Optional[ElementType]:
        return ElementType.parse(self.type_tag)


class DocumentHeader(BaseModel):
    title: str = ""
    subtitle: str = ""
    fields: Dict[str, str] = Field(default_factory=dict)

    @field_validator("fields", mode="before")
    @classmethod
    def stringify_fields(cls, value: object) -> Dict[str, str]:
        if not value:
            return {}
        if not isinstance(value, dict):
            msg = "header.fields must be a JSON object"
            raise ValueError(msg)
        return {str(key): "" if item is None else str(item) for key, item in value.items()}


class ProtocolDocument(BaseModel):
    header: DocumentHeader = Field(default_factory=DocumentHeader)
    elements: List[ProtocolElement] = Field(default_factory=list)

    @field_validator("elements", mode="after")
    @classmethod
    def ensure_unique_element_ids(cls, elements: List[ProtocolElement]) -> List[ProtocolElement]:
        seen: Set[str] = set()
        for element in elements:
            if element.element_id in seen:
                msg = f"Duplicate element id found: {element.element_id}"
                raise ValueError(msg)
            seen.add(element.element_id)
        return elements


class NumericPayload(BaseModel):
    value: Optional[Decimal] = None
    scale: Optional[int] = Field(default=None, ge=0, le=10)

    @field_validator("value", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> object:
        return finite_or_none(value)


class PicklistPayload(BaseModel):
    selected: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("selected", "values", "value")
    )

    @field_validator("selected", mode="before")
    @classmethod
    def normalize_selected(cls, value: object) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(";") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value if item is not None and str(item) != ""]
        return [str(value)]


class ChoicePayload(BaseModel):
    selected: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("selected", "value")
    )

    @field_validator("selected", mode="before")
    @classmethod
    def normalize_selected(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item) for item in value if item is not None)
        return str(value)


class FreeTextPayload(BaseModel):
    text: Optional[str] = Field(default=None, validation_alias=AliasChoices("text", "value"))
    data_type: Literal["text", "date", "datetime"] = "text"
    convert_timezone: bool = False

    @field_validator("text", mode="before")
    @classmethod
    def stringify_text(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return str(value)


class TableCell(BaseModel):
    type_tag: str = Field(default="FREE_TEXT", alias="type")
    payload: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("payload", mode="before")
    @classmethod
    def normalize_payload(cls, value: object) -> Dict[str, Any]:
        if value is None:
            return {}
        if isinstance(value, dict):
            return value
        return {"value": value}


class TablePayload(BaseModel):
    columns: List[str] = Field(default_factory=list)
    rows: List[List[TableCell]] = Field(default_factory=list)

    @field_validator("columns", mode="before")
    @classmethod
    def stringify_columns(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, list):
            return ["" if item is None else str(item) for item in value]
        return value

    @field_validator("rows", mode="before")
    @classmethod
    def wrap_scalar_cells(cls, value: object) -> object:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        rows: list[object] = []
        for row in value:
            if not isinstance(row, list):
                rows.append(row)
                continue
            rows.append(
                [cell if isinstance(cell, dict) else {"payload": {"value": cell}} for cell in row]
            )
        return rows


class TestStepPayload(BaseModel):
    __test__ = False

    instructions: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None

    @field_validator("instructions", "expected", "actual", mode="before")
    @classmethod
    def stringify_values(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return str(value)


class TrainingEffectivenessPayload(BaseModel):
    score: Optional[Decimal] = None
    threshold: Optional[Decimal] = None

    @field_validator("score", "threshold", mode="before")
    @classmethod
    def blank_to_none(cls, value: object) -> object:
        return finite_or_none(value)


class FindingRecord(BaseModel):
    finding_id: str = Field(default="", alias="id")
    title: str = ""
    description: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    raised_on: Optional[date] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("finding_id", "title", mode="before")
    @classmethod
    def stringify_required(cls, value: object) -> str:
        return "" if value is None else str(value)

    @field_validator("description", "severity", "status", mode="before")
    @classmethod
    def stringify_optional(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return str(value)


class FindingsPayload(BaseModel):
    findings: List[FindingRecord] = Field(default_factory=list)

    @field_validator("findings", mode="before")
    @classmethod
    def none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class SignaturePayload(BaseModel):
    signer_name: Optional[str] = None
    signed_at: Optional[datetime] = None
    timezone_offset_hours: Optional[float] = Field(default=None, allow_inf_nan=False)
    convert_timezone: bool = True


@dataclass(frozen=True)
class Row:
    elements: tuple[ProtocolElement, ...]
    widths: tuple[int, ...]
    full_width: bool = False

    @property
    def total_width(self) -> int:
        return sum(self.widths)

    def element_ids(self) -> list[str]:
        return [element.element_id for element in self.elements]


@dataclass(frozen=True)
class ContentBlock:
    element_id: str
    element_type: Optional[ElementType]
    label: str = ""
    lines: tuple[str, ...] = ()
    semantics: frozenset[str] = frozenset()
    requires_full_width: bool = False
    children: tuple[ContentBlock, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines and not self.children

    @property
    def text(self) -> str:
        return LINE_BREAK.join(self.lines)


@dataclass(frozen=True)
class WrappedBlock:
    element_id: str
    element_type: Optional[ElementType]
    label_lines: tuple[str, ...] = ()
    lines: tuple[str, ...] = ()
    semantics: frozenset[str] = frozenset()
    full_width: bool = False
    children: tuple[WrappedBlock, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "element_id": self.element_id,
            "element_type": self.element_type.value if self.element_type else None,
            "label_lines": list(self.label_lines),
            "lines": list(self.lines),
            "semantics": sorted(self.semantics),
            "full_width": self.full_width,
            "children": [child.to_dict() for child in self.children],
        }


class SectionKind(str, Enum):
    HEADER = "header"
    BODY = "body"
    FINDINGS = "findings"
    SIGNATURE = "signature"


class RowKind(str, Enum):
    CELLS = "cells"
    SECTION_HEADER = "section_header"
    SUBSECTION_HEADER = "subsection_header"


@dataclass(frozen=True)
class OutputCell:
    element_id: str
    element_type: Optional[ElementType]
    width_units: int
    width_percent: float
    full_width: bool
    content: WrappedBlock

    def to_dict(self) -> dict[str, Any]:
        return {
            "element_id": self.element_id,
            "element_type": self.element_type.value if self.element_type else None,
            "width_units": self.width_units,
            "width_percent": self.width_percent,
            "full_width": self.full_width,
            "content": self.content.to_dict(),
        }


@dataclass(frozen=True)
class OutputRow:
    kind: RowKind = RowKind.CELLS
    cells: tuple[OutputCell, ...] = ()
    heading: str = ""
    style: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "heading": self.heading,
            "style": self.style,
            "cells": [cell.to_dict() for cell in self.cells],
        }


@dataclass(frozen=True)
class OutputSection:
    kind: SectionKind
    title: str = ""
    subtitle: str = ""
    style: str = ""
    rows: tuple[OutputRow, ...] = ()
    fields: tuple[tuple[str, str], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "subtitle": self.subtitle,
            "style": self.style,
            "fields": [{"name": name, "value": value} for name, value in self.fields],
            "rows": [row.to_dict() for row in self.rows],
        }


@dataclass(frozen=True)
class OutputDocument:
    sections: tuple[OutputSection, ...] = ()
    max_units: int = MAX_UNITS

    @property
    def is_empty(self) -> bool:
        return not self.sections

    def section(self, kind: SectionKind) -> Optional[OutputSection]:
        for section in self.sections:
            if section.kind == kind:
                return section
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_units": self.max_units,
            "sections": [section.to_dict() for section in self.sections],
        }


@dataclass(frozen=True)
class RenderConfig:
    font_family: str = "Helvetica, Arial, sans-serif"
    font_size_pt: float = 9.0
    max_row_units: int = MAX_UNITS
    units_to_chars_ratio: Optional[float] = None
    document_width_px: float = 720.0
    average_glyph_em: float = 0.55
    section_header_style: str = "background-color: #1f3864; color: #ffffff; font-weight: bold;"
    subsection_header_style: str = "background-color: #d9e2f3; font-weight: bold;"
    forced_full_width_types: frozenset[ElementType] = field(
        default_factory=lambda: DEFAULT_FULL_WIDTH_TYPES
    )
    unknown_types_full_width: bool = False
    timezone_offset_hours: float = 0.0
    decimal_scale: int = 2

    def chars_per_unit(self) -> float:
        if self.units_to_chars_ratio and self.units_to_chars_ratio > 0:
            return float(self.units_to_chars_ratio)
        units = max(1, int(self.max_row_units))
        unit_px = self.document_width_px / units
        glyph_px = self.font_size_pt * 96.0 / 72.0 * self.average_glyph_em
        if glyph_px <= 0:
            return 1.0
        return unit_px / glyph_px

    def char_budget(self, width_units: float) -> int:
        return max(1, math.floor(width_units * self.chars_per_unit()))
