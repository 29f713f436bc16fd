from __future__ import annotations

import re

from domain.models import (
    LINE_BREAK,
    SEMANTIC_TABLE_ROW,
    ContentBlock,
    ElementType,
    RenderConfig,
    WrappedBlock,
)

# An escaped entity is one glyph on paper and must never be cut in half.
_GLYPH_RE = re.compile(r"&(?:#[0-9]+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);|.", re.DOTALL)


def split_glyphs(text: str) -> list[str]:
    return _GLYPH_RE.findall(text)


def glyph_length(text: str) -> int:
    return len(split_glyphs(text))


def split_long_word(token: str, budget: int) -> list[str]:
    width = max(1, int(budget))
    glyphs = split_glyphs(token)
    return ["".join(glyphs[idx : idx + width]) for idx in range(0, len(glyphs), width)]


def wrap_text(text: str, budget: int) -> list[str]:
    if not text:
        return []
    width = max(1, int(budget))
    lines: list[str] = []
    for segment in text.split(LINE_BREAK):
        lines.extend(_wrap_segment(segment, width) or [""])
    return lines


def _wrap_segment(segment: str, width: int) -> list[str]:
    lines: list[str] = []
    current = ""
    current_len = 0
    for token in segment.split():
        token_len = glyph_length(token)
        if token_len > width:
            if current:
                lines.append(current)
            fragments = split_long_word(token, width)
            lines.extend(fragments[:-1])
            current = fragments[-1]
            current_len = glyph_length(current)
            continue
        if not current:
            current = token
            current_len = token_len
        elif current_len + 1 + token_len <= width:
            current = f"{current} {token}"
            current_len += 1 + token_len
        else:
            lines.append(current)
            current = token
            current_len = token_len
    if current:
        lines.append(current)
    return lines


class TextWrapper:
    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()

    def char_budget(self, cell_width_units: float) -> int:
        return self.config.char_budget(cell_width_units)

    def wrap(self, block: ContentBlock, cell_width_units: float) -> list[str]:
        budget = self.char_budget(cell_width_units)
        lines: list[str] = []
        for paragraph in block.lines:
            lines.extend(wrap_text(paragraph, budget))
        return lines

    def wrap_block(self, block: ContentBlock, cell_width_units: float) -> WrappedBlock:
        budget = self.char_budget(cell_width_units)
        children: list[WrappedBlock] = []
        if block.children:
            if self._children_side_by_side(block):
                share = cell_width_units / len(block.children)
                children = [self.wrap_block(child, share) for child in block.children]
            else:
                children = [self.wrap_block(child, cell_width_units) for child in block.children]
        return WrappedBlock(
            element_id=block.element_id,
            element_type=block.element_type,
            label_lines=tuple(wrap_text(block.label, budget)),
            lines=tuple(self.wrap(block, cell_width_units)),
            semantics=block.semantics,
            full_width=block.requires_full_width,
            children=tuple(children),
        )

    def _children_side_by_side(self, block: ContentBlock) -> bool:
        if SEMANTIC_TABLE_ROW in block.semantics:
            return True
        return block.element_type == ElementType.TEST_STEP
