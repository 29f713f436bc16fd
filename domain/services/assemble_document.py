from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Optional

from domain.element_type_labels import section_title
from domain.models import (
    DocumentHeader,
    ElementType,
    OutputCell,
    OutputDocument,
    OutputRow,
    OutputSection,
    RenderConfig,
    Row,
    RowKind,
    SectionKind,
    WrappedBlock,
)
from domain.services.value_formatting import escape_text

_TRAILING_SECTIONS: dict[ElementType, SectionKind] = {
    ElementType.FINDINGS_SECTION: SectionKind.FINDINGS,
    ElementType.SIGNATURE: SectionKind.SIGNATURE,
}


def _is_blank(block: WrappedBlock) -> bool:
    return not block.lines and not block.children


class DocumentAssembler:
    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()

    def assemble(
        self,
        rows: Sequence[Row],
        rendered_cells: Mapping[str, WrappedBlock],
        header: DocumentHeader | None = None,
    ) -> OutputDocument:
        max_units = max(1, int(self.config.max_row_units))
        body_rows: list[OutputRow] = []
        trailing: dict[SectionKind, list[OutputRow]] = {
            SectionKind.FINDINGS: [],
            SectionKind.SIGNATURE: [],
        }
        current_section: Optional[str] = None
        current_subsection: Optional[str] = None

        for row in rows:
            trailing_kind = self._trailing_kind(row)
            if trailing_kind is not None:
                element = row.elements[0]
                block = rendered_cells.get(element.element_id)
                if block is None or _is_blank(block):
                    continue
                cell = self._cell(
                    element.element_type,
                    element.element_id,
                    max_units,
                    max_units,
                    True,
                    block,
                )
                trailing[trailing_kind].append(OutputRow(cells=(cell,)))
                continue

            cells = [
                self._cell(
                    element.element_type,
                    element.element_id,
                    width,
                    max_units,
                    row.full_width,
                    rendered_cells[element.element_id],
                )
                for element, width in zip(row.elements, row.widths)
                if element.element_id in rendered_cells
            ]
            if not cells:
                continue

            first = row.elements[0]
            if first.section != current_section:
                current_section = first.section
                current_subsection = None
                if first.section:
                    body_rows.append(
                        OutputRow(
                            kind=RowKind.SECTION_HEADER,
                            heading=escape_text(first.section),
                            style=self.config.section_header_style,
                        )
                    )
            if first.subsection != current_subsection:
                current_subsection = first.subsection
                if first.subsection:
                    body_rows.append(
                        OutputRow(
                            kind=RowKind.SUBSECTION_HEADER,
                            heading=escape_text(first.subsection),
                            style=self.config.subsection_header_style,
                        )
                    )
            body_rows.append(OutputRow(cells=tuple(cells)))

        sections = [self._header_section(header or DocumentHeader())]
        sections.append(OutputSection(kind=SectionKind.BODY, rows=tuple(body_rows)))
        for kind in (SectionKind.FINDINGS, SectionKind.SIGNATURE):
            if trailing[kind]:
                sections.append(
                    OutputSection(
                        kind=kind,
                        title=section_title(kind),
                        style=self.config.section_header_style,
                        rows=tuple(trailing[kind]),
                    )
                )
        return OutputDocument(sections=tuple(sections), max_units=max_units)

    def _trailing_kind(self, row: Row) -> SectionKind | None:
        if len(row.elements) != 1:
            return None
        element_type = row.elements[0].element_type
        if element_type is None:
            return None
        return _TRAILING_SECTIONS.get(element_type)

    def _cell(
        self,
        element_type: ElementType | None,
        element_id: str,
        width: int,
        max_units: int,
        full_width: bool,
        block: WrappedBlock,
    ) -> OutputCell:
        units = max_units if full_width else min(width, max_units)
        return OutputCell(
            element_id=element_id,
            element_type=element_type,
            width_units=units,
            width_percent=round(units * 100.0 / max_units, 4),
            full_width=full_width,
            content=block,
        )

    def _header_section(self, header: DocumentHeader) -> OutputSection:
        return OutputSection(
            kind=SectionKind.HEADER,
            title=escape_text(header.title),
            subtitle=escape_text(header.subtitle),
            style=self.config.section_header_style,
            fields=tuple(
                (escape_text(name), escape_text(value)) for name, value in header.fields.items()
            ),
        )
