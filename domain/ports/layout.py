from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from domain.models import ProtocolElement, Row


class RowPacker(Protocol):
    def pack(
        self, elements: Sequence[ProtocolElement], max_units: int | None = None
    ) -> list[Row]:
        ...
