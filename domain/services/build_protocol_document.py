from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from itertools import groupby

from domain.models import (
    DocumentHeader,
    OutputDocument,
    ProtocolDocument,
    ProtocolElement,
    RenderConfig,
    Row,
    WrappedBlock,
)
from domain.ports.layout import RowPacker
from domain.services.assemble_document import DocumentAssembler
from domain.services.render_content import ContentRenderer
from domain.services.wrap_text import TextWrapper

logger = logging.getLogger(__name__)


class BuildProtocolDocument:
    def __init__(
        self,
        packer: RowPacker,
        config: RenderConfig | None = None,
        renderer: ContentRenderer | None = None,
        wrapper: TextWrapper | None = None,
        assembler: DocumentAssembler | None = None,
    ) -> None:
        self.config = config or RenderConfig()
        self.packer = packer
        self.renderer = renderer or ContentRenderer(self.config)
        self.wrapper = wrapper or TextWrapper(self.config)
        self.assembler = assembler or DocumentAssembler(self.config)

    def build(self, document: ProtocolDocument | None) -> OutputDocument:
        if document is None:
            return OutputDocument(max_units=self.config.max_row_units)
        return self.build_from_elements(document.elements, document.header)

    def build_from_elements(
        self,
        elements: Sequence[ProtocolElement] | None,
        header: DocumentHeader | None = None,
    ) -> OutputDocument:
        if not elements:
            return OutputDocument(max_units=self.config.max_row_units)

        ordered = sorted(elements, key=lambda element: element.order)
        rows = self.pack_rows(ordered)
        rendered: dict[str, WrappedBlock] = {}
        for row in rows:
            for element, width in zip(row.elements, row.widths):
                cell_width = self.config.max_row_units if row.full_width else width
                rendered[element.element_id] = self.render_cell(element, cell_width)
        return self.assembler.assemble(rows, rendered, header)

    def pack_rows(self, ordered: Iterable[ProtocolElement]) -> list[Row]:
        rows: list[Row] = []
        # Headings sit between groups, so a row never straddles two groups.
        for _, group in groupby(ordered, key=lambda element: (element.section, element.subsection)):
            rows.extend(self.packer.pack(list(group), self.config.max_row_units))
        return rows

    def render_cell(self, element: ProtocolElement, cell_width: int) -> WrappedBlock:
        if element.element_type is None:
            logger.warning(
                "Unknown element type %r for element %s, rendering as generic text.",
                element.type_tag,
                element.element_id,
            )
        block = self.renderer.render(element)
        return self.wrapper.wrap_block(block, cell_width)
