from __future__ import annotations

from pathlib import Path

import orjson

from adapters.filesystem.json_document_writer import JsonDocumentWriter
from adapters.filesystem.protocol_repository import FileSystemProtocolRepository
from adapters.html.document_writer import HtmlDocumentWriter
from domain.models import OutputDocument, RenderConfig
from domain.services.build_protocol_document import BuildProtocolDocument
from tests.helpers.protocol_fixtures import make_element, protocol_fixture_path


def _fixture_document(pipeline: BuildProtocolDocument) -> OutputDocument:
    source = FileSystemProtocolRepository().load_by_path(protocol_fixture_path("basic.json"))
    return pipeline.build(source)


def test_html_contains_sections_widths_and_escaped_text(
    pipeline: BuildProtocolDocument, render_config: RenderConfig
) -> None:
    html = HtmlDocumentWriter(render_config).render(_fixture_document(pipeline))

    assert "<h1>Cleaning Validation Protocol CV-104</h1>" in html
    assert "removes product residue &amp;" in html
    assert "&amp;amp;" not in html
    assert 'style="width: 50.0%"' in html
    assert 'style="width: 100.0%"' in html
    assert "section-findings" in html
    assert "section-signature" in html
    assert "Residue above limit" in html
    assert "Mar 06, 2024, 09:30 AM" in html
    assert 'class="pass"' in html
    assert 'class="full_width pass"' in html
    assert html.index("section-body") < html.index("section-findings")
    assert html.index("section-findings") < html.index("section-signature")


def test_html_pads_partial_rows_with_spacer(
    pipeline: BuildProtocolDocument, render_config: RenderConfig
) -> None:
    document = pipeline.build_from_elements([make_element("a", width=6, payload={"text": "x"})])

    html = HtmlDocumentWriter(render_config).render(document)

    assert 'class="spacer" style="width: 50.0%"' in html


def test_html_of_empty_document(render_config: RenderConfig) -> None:
    html = HtmlDocumentWriter(render_config).render(OutputDocument())

    assert "<body>" in html
    assert "section-" not in html


def test_json_writer_saves_document_tree(pipeline: BuildProtocolDocument, tmp_path: Path) -> None:
    document = _fixture_document(pipeline)
    target = tmp_path / "out" / "basic.json"

    JsonDocumentWriter().save(document, target)

    payload = orjson.loads(target.read_bytes())
    assert [section["kind"] for section in payload["sections"]] == [
        "header",
        "body",
        "findings",
        "signature",
    ]
    assert payload == orjson.loads(JsonDocumentWriter().render(document))
