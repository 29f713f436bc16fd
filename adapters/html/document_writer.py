from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from adapters.filesystem.json_utils import write_bytes_atomic
from domain.models import (
    SEMANTIC_TABLE_ROW,
    ElementType,
    OutputDocument,
    RenderConfig,
    SectionKind,
    WrappedBlock,
)
from domain.ports.repositories import DocumentWriter

TEMPLATES_DIR = Path(__file__).parent / "templates"
DOCUMENT_TEMPLATE = "protocol_document.html.j2"


def css_classes(block: WrappedBlock) -> str:
    return " ".join(sorted(tag.replace(":", "-") for tag in block.semantics))


def child_layout(block: WrappedBlock) -> str:
    if not block.children:
        return ""
    if block.element_type == ElementType.TABLE:
        return "table"
    if block.element_type == ElementType.TEST_STEP or SEMANTIC_TABLE_ROW in block.semantics:
        return "side_by_side"
    return "stacked"


def build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["css_classes"] = css_classes
    env.filters["child_layout"] = child_layout
    return env


class HtmlDocumentWriter(DocumentWriter):
    suffix = ".html"

    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()
        self._template = build_environment().get_template(DOCUMENT_TEMPLATE)

    def render(self, document: OutputDocument) -> str:
        header = document.section(SectionKind.HEADER)
        return self._template.render(
            document=document,
            title=header.title if header else "",
            font_family=self.config.font_family,
            font_size_pt=self.config.font_size_pt,
            document_width_px=self.config.document_width_px,
        )

    def save(self, document: OutputDocument, path: Path) -> None:
        write_bytes_atomic(path, self.render(document).encode("utf-8"))
