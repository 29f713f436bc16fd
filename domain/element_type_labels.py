from __future__ import annotations

from domain.models import ElementType, SectionKind

_DISPLAY_ELEMENT_TYPE: dict[ElementType, str] = {
    ElementType.TABLE: "table",
    ElementType.TEST_STEP: "test step",
    ElementType.TEXT_ONLY: "text",
    ElementType.MULTI_PICKLIST: "multi-select picklist",
    ElementType.SINGLE_PICKLIST: "picklist",
    ElementType.RADIO_VERTICAL: "radio (vertical)",
    ElementType.RADIO_HORIZONTAL: "radio (horizontal)",
    ElementType.FREE_TEXT: "free text",
    ElementType.NUMERIC_VALUE: "numeric value",
    ElementType.TRAINING_EFFECTIVENESS: "training effectiveness",
    ElementType.FINDINGS_SECTION: "findings",
    ElementType.SIGNATURE: "signature",
}
_SECTION_TITLES: dict[SectionKind, str] = {
    SectionKind.HEADER: "",
    SectionKind.BODY: "",
    SectionKind.FINDINGS: "Findings",
    SectionKind.SIGNATURE: "Signatures",
}


def humanize_element_type(type_tag: str | None) -> str:
    normalized = str(type_tag or "").strip()
    if not normalized:
        return normalized
    element_type = ElementType.parse(normalized)
    if element_type is None:
        return normalized
    return _DISPLAY_ELEMENT_TYPE[element_type]


def section_title(kind: SectionKind) -> str:
    return _SECTION_TITLES.get(kind, "")
