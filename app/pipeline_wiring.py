from __future__ import annotations

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler

from adapters.filesystem.json_document_writer import JsonDocumentWriter
from adapters.html.document_writer import HtmlDocumentWriter
from adapters.layout.grid import GridRowPacker, LayoutConfig
from app.config import AppSettings
from domain.ports.repositories import DocumentWriter
from domain.services.build_protocol_document import BuildProtocolDocument

OutputFormat = Literal["html", "json"]


def build_pipeline(settings: AppSettings) -> BuildProtocolDocument:
    config = settings.render.to_render_config()
    packer = GridRowPacker(LayoutConfig.from_render_config(config))
    return BuildProtocolDocument(packer, config)


def build_document_writer(settings: AppSettings, output_format: OutputFormat) -> DocumentWriter:
    if output_format == "html":
        return HtmlDocumentWriter(settings.render.to_render_config())
    if output_format == "json":
        return JsonDocumentWriter()
    msg = f"Unsupported output format: {output_format}"
    raise ValueError(msg)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
