from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from domain.models import ElementType

FINDINGS_KEY = "findings"
FINDING_SECTION_KEY = "section_element_id"


def iter_protocol_paths(directory: Path) -> Iterable[Path]:
    yield from directory.glob("*.json")


def strip_json_comments(content: str) -> str:
    result_lines: list[str] = []
    for line in content.splitlines():
        in_string = False
        escaped = False
        cleaned = []
        for idx, char in enumerate(line):
            if not escaped and char == '"':
                in_string = not in_string
            if not in_string and char == "/" and idx + 1 < len(line) and line[idx + 1] == "/":
                break
            cleaned.append(char)
            escaped = char == "\\" and not escaped
        result_lines.append("".join(cleaned))
    return "\n".join(result_lines)


def attach_findings(raw: dict[str, Any]) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Group document-level findings by section once, then attach them to their elements.

    Returns the resolved payload and the findings that matched no findings section.
    """
    findings = raw.get(FINDINGS_KEY) or []
    elements = raw.get("elements") or []
    if not isinstance(findings, list) or not isinstance(elements, list):
        return raw, []

    by_section: dict[str, list[dict[str, Any]]] = defaultdict(list)
    orphans: list[dict[str, Any]] = []
    for finding in findings:
        if not isinstance(finding, dict):
            continue
        section_id = str(finding.get(FINDING_SECTION_KEY) or "").strip()
        if section_id:
            by_section[section_id].append(finding)
        else:
            orphans.append(finding)

    resolved_elements: list[Any] = []
    attached: set[str] = set()
    for element in elements:
        if not isinstance(element, dict):
            resolved_elements.append(element)
            continue
        element_id = str(element.get("id") or element.get("element_id") or "")
        type_tag = element.get("type", element.get("type_tag"))
        if ElementType.parse(type_tag) != ElementType.FINDINGS_SECTION:
            resolved_elements.append(element)
            continue
        payload = element.get("payload")
        payload = dict(payload) if isinstance(payload, dict) else {}
        existing = payload.get(FINDINGS_KEY)
        merged = list(existing) if isinstance(existing, list) else []
        merged.extend(by_section.get(element_id, []))
        attached.add(element_id)
        payload[FINDINGS_KEY] = merged
        resolved_elements.append({**element, "payload": payload})

    unmatched = orphans + [
        finding
        for section_id, group in by_section.items()
        if section_id not in attached
        for finding in group
    ]
    resolved = {key: value for key, value in raw.items() if key != FINDINGS_KEY}
    resolved["elements"] = resolved_elements
    return resolved, unmatched
