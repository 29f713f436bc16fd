from __future__ import annotations

from pathlib import Path

from adapters.filesystem.json_utils import dump_json_bytes, write_bytes_atomic
from domain.models import OutputDocument
from domain.ports.repositories import DocumentWriter


class JsonDocumentWriter(DocumentWriter):
    suffix = ".json"

    def render(self, document: OutputDocument) -> str:
        return dump_json_bytes(document.to_dict()).decode("utf-8")

    def save(self, document: OutputDocument, path: Path) -> None:
        write_bytes_atomic(path, dump_json_bytes(document.to_dict()))
