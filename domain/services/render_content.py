from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import assert_never

from pydantic import ValidationError

from domain.models import (
    ORIENTATION_HORIZONTAL,
    ORIENTATION_VERTICAL,
    SEMANTIC_ACTUAL,
    SEMANTIC_EXPECTED,
    SEMANTIC_FAIL,
    SEMANTIC_FINDING,
    SEMANTIC_FULL_WIDTH,
    SEMANTIC_GENERIC,
    SEMANTIC_PASS,
    SEMANTIC_TABLE_CELL,
    SEMANTIC_TABLE_ROW,
    ChoicePayload,
    ContentBlock,
    ElementType,
    FindingRecord,
    FindingsPayload,
    FreeTextPayload,
    NumericPayload,
    PicklistPayload,
    ProtocolElement,
    RenderConfig,
    SignaturePayload,
    TableCell,
    TablePayload,
    TestStepPayload,
    TrainingEffectivenessPayload,
)
from domain.services.value_formatting import (
    escape_multiline,
    escape_text,
    format_date,
    format_datetime,
    format_number,
    parse_date,
    parse_datetime,
)

logger = logging.getLogger(__name__)

PICKLIST_SEPARATOR = ", "
TABLE_HEADER = "table_header"
BANNER_PASSED = "PASSED"
BANNER_FAILED = "FAILED"


class ContentRenderer:
    def __init__(self, config: RenderConfig | None = None) -> None:
        self.config = config or RenderConfig()

    def render(self, element: ProtocolElement) -> ContentBlock:
        element_type = element.element_type
        if element_type is None:
            return self._render_generic(element)
        try:
            return self._dispatch(element_type, element)
        except ValidationError as exc:
            logger.debug(
                "Payload of element %s does not match %s: %s",
                element.element_id,
                element_type.value,
                exc.errors(include_url=False),
            )
            return self._render_generic(element)

    def requires_full_width(self, element_type: ElementType | None) -> bool:
        if element_type is None:
            return self.config.unknown_types_full_width
        return element_type in self.config.forced_full_width_types

    def _dispatch(self, element_type: ElementType, element: ProtocolElement) -> ContentBlock:
        match element_type:
            case ElementType.NUMERIC_VALUE:
                return self._render_numeric(element)
            case ElementType.MULTI_PICKLIST:
                return self._render_multi_picklist(element)
            case ElementType.SINGLE_PICKLIST:
                return self._render_choice(element, ())
            case ElementType.RADIO_VERTICAL:
                return self._render_choice(element, (ORIENTATION_VERTICAL,))
            case ElementType.RADIO_HORIZONTAL:
                return self._render_choice(element, (ORIENTATION_HORIZONTAL,))
            case ElementType.FREE_TEXT:
                return self._render_free_text(element)
            case ElementType.TEXT_ONLY:
                return self._render_text_only(element)
            case ElementType.TABLE:
                return self._render_table(element)
            case ElementType.TEST_STEP:
                return self._render_test_step(element)
            case ElementType.TRAINING_EFFECTIVENESS:
                return self._render_training_effectiveness(element)
            case ElementType.FINDINGS_SECTION:
                return self._render_findings(element)
            case ElementType.SIGNATURE:
                return self._render_signature(element)
            case _:
                assert_never(element_type)

    def _block(
        self,
        element: ProtocolElement,
        lines: Iterable[str] = (),
        semantics: Iterable[str] = (),
        children: Iterable[ContentBlock] = (),
        label: str | None = None,
        full_width: bool | None = None,
    ) -> ContentBlock:
        element_type = element.element_type
        requires_full_width = (
            self.requires_full_width(element_type) if full_width is None else full_width
        )
        tags = set(semantics)
        if requires_full_width:
            tags.add(SEMANTIC_FULL_WIDTH)
        return ContentBlock(
            element_id=element.element_id,
            element_type=element_type,
            label=escape_text(element.label) if label is None else label,
            lines=tuple(lines),
            semantics=frozenset(tags),
            requires_full_width=requires_full_width,
            children=tuple(children),
        )

    def _render_numeric(self, element: ProtocolElement) -> ContentBlock:
        payload = NumericPayload.model_validate(element.payload)
        scale = self.config.decimal_scale if payload.scale is None else payload.scale
        return self._block(element, [format_number(payload.value, scale)])

    def _render_multi_picklist(self, element: ProtocolElement) -> ContentBlock:
        payload = PicklistPayload.model_validate(element.payload)
        joined = PICKLIST_SEPARATOR.join(payload.selected)
        return self._block(element, [escape_text(joined)])

    def _render_choice(self, element: ProtocolElement, semantics: Iterable[str]) -> ContentBlock:
        payload = ChoicePayload.model_validate(element.payload)
        return self._block(element, [escape_text(payload.selected)], semantics)

    def _render_free_text(self, element: ProtocolElement) -> ContentBlock:
        payload = FreeTextPayload.model_validate(element.payload)
        return self._block(element, [self._format_text_value(payload)])

    def _render_text_only(self, element: ProtocolElement) -> ContentBlock:
        payload = FreeTextPayload.model_validate(element.payload)
        if payload.text is None or not payload.text.strip():
            return self._block(element, [escape_multiline(element.label)], label="")
        return self._block(element, [self._format_text_value(payload)])

    def _format_text_value(self, payload: FreeTextPayload) -> str:
        if payload.text is None:
            return ""
        if payload.data_type == "date":
            parsed_date = parse_date(payload.text)
            if parsed_date is not None:
                return format_date(parsed_date)
        elif payload.data_type == "datetime":
            parsed = parse_datetime(payload.text)
            if parsed is not None:
                return format_datetime(
                    parsed,
                    offset_hours=self.config.timezone_offset_hours,
                    convert=payload.convert_timezone,
                )
        return escape_multiline(payload.text)

    def _render_table(self, element: ProtocolElement) -> ContentBlock:
        payload = TablePayload.model_validate(element.payload)
        rows: list[ContentBlock] = []
        if payload.columns:
            header_cells = [
                ContentBlock(
                    element_id=f"{element.element_id}:h{col_idx}",
                    element_type=None,
                    lines=(escape_text(column),),
                    semantics=frozenset({SEMANTIC_TABLE_CELL, TABLE_HEADER}),
                )
                for col_idx, column in enumerate(payload.columns)
            ]
            rows.append(
                ContentBlock(
                    element_id=f"{element.element_id}:h",
                    element_type=None,
                    semantics=frozenset({SEMANTIC_TABLE_ROW, TABLE_HEADER}),
                    children=tuple(header_cells),
                )
            )
        for row_idx, cells in enumerate(payload.rows):
            if not cells:
                continue
            rendered = [
                self._render_table_cell(element, row_idx, col_idx, cell)
                for col_idx, cell in enumerate(cells)
            ]
            rows.append(
                ContentBlock(
                    element_id=f"{element.element_id}:r{row_idx}",
                    element_type=None,
                    semantics=frozenset({SEMANTIC_TABLE_ROW}),
                    children=tuple(rendered),
                )
            )
        return self._block(element, children=rows, full_width=True)

    def _render_table_cell(
        self,
        table: ProtocolElement,
        row_idx: int,
        col_idx: int,
        cell: TableCell,
    ) -> ContentBlock:
        child = ProtocolElement(
            element_id=f"{table.element_id}:r{row_idx}c{col_idx}",
            type_tag=cell.type_tag,
            payload=cell.payload,
        )
        block = self.render(child)
        return replace(
            block,
            requires_full_width=False,
            semantics=(block.semantics - {SEMANTIC_FULL_WIDTH}) | {SEMANTIC_TABLE_CELL},
        )

    def _render_test_step(self, element: ProtocolElement) -> ContentBlock:
        payload = TestStepPayload.model_validate(element.payload)
        outcome = SEMANTIC_PASS if payload.actual == payload.expected else SEMANTIC_FAIL
        lines = [escape_multiline(payload.instructions)] if payload.instructions else []
        children = [
            ContentBlock(
                element_id=f"{element.element_id}:expected",
                element_type=None,
                label="Expected",
                lines=(escape_multiline(payload.expected),),
                semantics=frozenset({SEMANTIC_EXPECTED}),
            ),
            ContentBlock(
                element_id=f"{element.element_id}:actual",
                element_type=None,
                label="Actual",
                lines=(escape_multiline(payload.actual),),
                semantics=frozenset({SEMANTIC_ACTUAL}),
            ),
        ]
        return self._block(element, lines, [outcome], children)

    def _render_training_effectiveness(self, element: ProtocolElement) -> ContentBlock:
        payload = TrainingEffectivenessPayload.model_validate(element.payload)
        passed = (
            payload.score is not None
            and payload.threshold is not None
            and payload.score >= payload.threshold
        )
        scale = self.config.decimal_scale
        lines = [
            f"Score: {format_number(payload.score, scale)}",
            f"Threshold: {format_number(payload.threshold, scale)}",
            BANNER_PASSED if passed else BANNER_FAILED,
        ]
        return self._block(element, lines, [SEMANTIC_PASS if passed else SEMANTIC_FAIL])

    def _render_findings(self, element: ProtocolElement) -> ContentBlock:
        payload = FindingsPayload.model_validate(element.payload)
        children = [
            self._render_finding(element, idx, finding)
            for idx, finding in enumerate(payload.findings)
        ]
        return self._block(element, children=children)

    def _render_finding(
        self, element: ProtocolElement, idx: int, finding: FindingRecord
    ) -> ContentBlock:
        details: list[str] = []
        semantics = {SEMANTIC_FINDING}
        if finding.severity:
            details.append(f"Severity: {escape_text(finding.severity)}")
            semantics.add(f"severity:{finding.severity.strip().lower()}")
        if finding.status:
            details.append(f"Status: {escape_text(finding.status)}")
        if finding.raised_on:
            details.append(f"Raised: {format_date(finding.raised_on)}")
        lines = [" | ".join(details)] if details else []
        if finding.description:
            lines.append(escape_multiline(finding.description))
        return ContentBlock(
            element_id=f"{element.element_id}:{finding.finding_id or idx}",
            element_type=None,
            label=escape_text(finding.title),
            lines=tuple(lines),
            semantics=frozenset(semantics),
        )

    def _render_signature(self, element: ProtocolElement) -> ContentBlock:
        payload = SignaturePayload.model_validate(element.payload)
        signer = (payload.signer_name or "").strip()
        if not signer:
            return self._block(element)
        offset = (
            self.config.timezone_offset_hours
            if payload.timezone_offset_hours is None
            else payload.timezone_offset_hours
        )
        lines = [escape_text(signer)]
        signed_at = format_datetime(payload.signed_at, offset, payload.convert_timezone)
        if signed_at:
            lines.append(signed_at)
        return self._block(element, lines)

    def _render_generic(self, element: ProtocolElement) -> ContentBlock:
        lines = [escape_text(element.label)] if element.label else []
        if element.payload:
            stringified = json.dumps(
                element.payload, ensure_ascii=False, sort_keys=True, default=str
            )
            lines.append(escape_text(stringified))
        return self._block(element, lines, [SEMANTIC_GENERIC], label="")
