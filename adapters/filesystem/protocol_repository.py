from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import orjson
from pydantic import ValidationError

from adapters.filesystem.protocol_utils import (
    attach_findings,
    iter_protocol_paths,
    strip_json_comments,
)
from domain.errors import ProtocolSourceError
from domain.models import ProtocolDocument
from domain.ports.repositories import ProtocolDocumentSource

logger = logging.getLogger(__name__)


class FileSystemProtocolRepository(ProtocolDocumentSource):
    def load_all_with_paths(self, directory: Path) -> List[tuple[Path, ProtocolDocument]]:
        return [(path, self.load_by_path(path)) for path in sorted(iter_protocol_paths(directory))]

    def load_by_path(self, path: Path) -> ProtocolDocument:
        if not path.exists():
            raise ProtocolSourceError(path, "file not found")
        text = path.read_text(encoding="utf-8")
        try:
            content = orjson.loads(strip_json_comments(text))
        except orjson.JSONDecodeError as exc:
            raise ProtocolSourceError(path, f"invalid JSON: {exc}") from exc
        if not isinstance(content, dict):
            raise ProtocolSourceError(path, "expected a JSON object")
        resolved, unmatched = attach_findings(content)
        if unmatched:
            logger.warning(
                "%s: %d finding(s) reference no findings section and were skipped.",
                path,
                len(unmatched),
            )
        try:
            return ProtocolDocument.model_validate(resolved)
        except ValidationError as exc:
            raise ProtocolSourceError(path, str(exc)) from exc
