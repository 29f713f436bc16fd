from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import List

from domain.models import (
    DEFAULT_FULL_WIDTH_TYPES,
    MAX_UNITS,
    ElementType,
    ProtocolElement,
    RenderConfig,
    Row,
    clamp_width,
)
from domain.ports.layout import RowPacker


@dataclass(frozen=True)
class LayoutConfig:
    max_units: int = MAX_UNITS
    forced_full_width_types: frozenset[ElementType] = field(
        default_factory=lambda: DEFAULT_FULL_WIDTH_TYPES
    )
    unknown_types_full_width: bool = False

    @classmethod
    def from_render_config(cls, config: RenderConfig) -> LayoutConfig:
        return cls(
            max_units=config.max_row_units,
            forced_full_width_types=frozenset(config.forced_full_width_types),
            unknown_types_full_width=config.unknown_types_full_width,
        )


class GridRowPacker(RowPacker):
    """Sequential first-fit packing of elements into rows of grid units.

    Elements are never reordered: each row holds a contiguous run of the input,
    and forced-full-width kinds always sit alone on their own row.
    """

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config or LayoutConfig()

    def pack(
        self, elements: Sequence[ProtocolElement] | None, max_units: int | None = None
    ) -> List[Row]:
        limit = max(1, int(max_units if max_units is not None else self.config.max_units))
        rows: List[Row] = []
        current: List[ProtocolElement] = []
        running_width = 0

        def flush() -> None:
            nonlocal current, running_width
            if current:
                rows.append(self._build_row(current, limit))
            current = []
            running_width = 0

        for element in elements or ():
            width = clamp_width(element.declared_width, limit)
            if self.forces_own_row(element):
                flush()
                rows.append(Row(elements=(element,), widths=(limit,), full_width=True))
                continue
            if running_width + width > limit:
                flush()
            current.append(element)
            running_width += width

        flush()
        return rows

    def forces_own_row(self, element: ProtocolElement) -> bool:
        element_type = element.element_type
        if element_type is None:
            return self.config.unknown_types_full_width
        return element_type in self.config.forced_full_width_types

    def _build_row(self, elements: Iterable[ProtocolElement], limit: int) -> Row:
        members = tuple(elements)
        widths = tuple(clamp_width(element.declared_width, limit) for element in members)
        return Row(
            elements=members,
            widths=widths,
            full_width=len(members) == 1 and widths[0] >= limit,
        )
