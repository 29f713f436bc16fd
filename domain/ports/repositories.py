from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from domain.models import OutputDocument, ProtocolDocument


class ProtocolDocumentSource(Protocol):
    def load_all_with_paths(self, directory: Path) -> Sequence[tuple[Path, ProtocolDocument]]: ...

    def load_by_path(self, path: Path) -> ProtocolDocument: ...


class DocumentWriter(Protocol):
    suffix: str

    def render(self, document: OutputDocument) -> str: ...

    def save(self, document: OutputDocument, path: Path) -> None: ...
