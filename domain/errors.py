from __future__ import annotations

from pathlib import Path


class ProtocolSourceError(Exception):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
