from __future__ import annotations

from domain.models import (
    LINE_BREAK,
    ORIENTATION_HORIZONTAL,
    ORIENTATION_VERTICAL,
    SEMANTIC_FAIL,
    SEMANTIC_FULL_WIDTH,
    SEMANTIC_GENERIC,
    SEMANTIC_PASS,
    SEMANTIC_TABLE_CELL,
    ElementType,
    RenderConfig,
)
from domain.services.render_content import ContentRenderer
from tests.helpers.protocol_fixtures import make_element


def test_numeric_null_renders_empty_string() -> None:
    renderer = ContentRenderer()

    for payload in ({"value": None}, {}, {"value": ""}, {"value": "NaN"}, {"value": float("nan")}):
        block = renderer.render(make_element("n", ElementType.NUMERIC_VALUE, payload=payload))
        assert block.text == ""
        assert SEMANTIC_GENERIC not in block.semantics


def test_numeric_uses_fixed_decimal_convention() -> None:
    renderer = ContentRenderer(RenderConfig(decimal_scale=2))

    def render(payload: dict[str, object]) -> str:
        return renderer.render(make_element("n", ElementType.NUMERIC_VALUE, payload=payload)).text

    assert render({"value": 12.5}) == "12.50"
    assert render({"value": "1.005"}) == "1.01"
    assert render({"value": 1234567}) == "1234567.00"
    assert render({"value": 0}) == "0.00"
    assert render({"value": 3.14159, "scale": 3}) == "3.142"


def test_multi_picklist_joins_in_given_order() -> None:
    renderer = ContentRenderer()

    block = renderer.render(
        make_element("m", ElementType.MULTI_PICKLIST, payload={"selected": ["Zeta", "Alpha"]})
    )
    empty = renderer.render(make_element("m", ElementType.MULTI_PICKLIST, payload={"selected": []}))
    delimited = renderer.render(
        make_element("m", ElementType.MULTI_PICKLIST, payload={"selected": "B;A & C"})
    )

    assert block.text == "Zeta, Alpha"
    assert empty.text == ""
    assert delimited.text == "B, A &amp; C"


def test_single_choice_is_verbatim_with_orientation_hint() -> None:
    renderer = ContentRenderer()
    payload = {"selected": "Yes; <confirmed>"}

    single = renderer.render(make_element("s", ElementType.SINGLE_PICKLIST, payload=payload))
    vertical = renderer.render(make_element("v", ElementType.RADIO_VERTICAL, payload=payload))
    horizontal = renderer.render(make_element("h", ElementType.RADIO_HORIZONTAL, payload=payload))

    expected = "Yes; &lt;confirmed&gt;"
    assert single.text == vertical.text == horizontal.text == expected
    assert ORIENTATION_VERTICAL in vertical.semantics
    assert ORIENTATION_HORIZONTAL in horizontal.semantics
    assert not {ORIENTATION_VERTICAL, ORIENTATION_HORIZONTAL} & single.semantics


def test_free_text_escapes_and_marks_line_breaks() -> None:
    block = ContentRenderer().render(
        make_element("t", ElementType.FREE_TEXT, payload={"text": "a < b\nc & d\r\ne"})
    )

    assert block.text == f"a &lt; b{LINE_BREAK}c &amp; d{LINE_BREAK}e"


def test_free_text_date_and_datetime_values() -> None:
    renderer = ContentRenderer(RenderConfig(timezone_offset_hours=5.5))

    def render(payload: dict[str, object]) -> str:
        return renderer.render(make_element("d", ElementType.FREE_TEXT, payload=payload)).text

    assert render({"text": "2024-03-04", "data_type": "date"}) == "Mar 04, 2024"
    assert (
        render({"text": "2024-03-04T18:45:00Z", "data_type": "datetime"})
        == "Mar 04, 2024, 06:45 PM"
    )
    assert (
        render({"text": "2024-03-04T18:45:00Z", "data_type": "datetime", "convert_timezone": True})
        == "Mar 05, 2024, 12:15 AM"
    )
    assert render({"text": None, "data_type": "date"}) == ""


def test_text_only_falls_back_to_label() -> None:
    block = ContentRenderer().render(
        make_element("t", ElementType.TEXT_ONLY, label="Read carefully\nbefore use")
    )

    assert block.label == ""
    assert block.text == f"Read carefully{LINE_BREAK}before use"
    assert block.requires_full_width


def test_table_recurses_into_cells() -> None:
    payload = {
        "columns": ["Location", "Value"],
        "rows": [
            ["Valve <A>", {"type": "Numeric Value", "payload": {"value": 2}}],
            [],
            [{"type": "Multi Picklist", "payload": {"selected": ["x", "y"]}}, None],
        ],
    }

    element = make_element("tbl", ElementType.TABLE, width=4, payload=payload)
    block = ContentRenderer().render(element)

    assert block.requires_full_width
    assert SEMANTIC_FULL_WIDTH in block.semantics
    header, first, second = block.children
    assert [cell.text for cell in header.children] == ["Location", "Value"]
    assert [cell.text for cell in first.children] == ["Valve &lt;A&gt;", "2.00"]
    assert [cell.text for cell in second.children] == ["x, y", ""]
    assert all(SEMANTIC_TABLE_CELL in cell.semantics for cell in first.children)
    assert first.children[1].element_type == ElementType.NUMERIC_VALUE


def test_test_step_pass_fail_tag_lives_in_semantics() -> None:
    renderer = ContentRenderer()

    passed = renderer.render(
        make_element("s", ElementType.TEST_STEP, payload={"expected": "Pass", "actual": "Pass"})
    )
    failed = renderer.render(
        make_element("s", ElementType.TEST_STEP, payload={"expected": "Pass", "actual": "Fail"})
    )

    assert SEMANTIC_PASS in passed.semantics
    assert SEMANTIC_FAIL in failed.semantics
    assert [child.text for child in failed.children] == ["Pass", "Fail"]
    assert [child.label for child in failed.children] == ["Expected", "Actual"]
    assert all("pass" not in line.lower() for line in passed.lines)


def test_training_effectiveness_banner() -> None:
    renderer = ContentRenderer(RenderConfig(decimal_scale=0))

    passed = renderer.render(
        make_element(
            "t", ElementType.TRAINING_EFFECTIVENESS, payload={"score": 80, "threshold": 80}
        )
    )
    failed = renderer.render(
        make_element(
            "t", ElementType.TRAINING_EFFECTIVENESS, payload={"score": 79, "threshold": 80}
        )
    )
    missing = renderer.render(
        make_element("t", ElementType.TRAINING_EFFECTIVENESS, payload={"threshold": 80})
    )

    assert passed.lines == ("Score: 80", "Threshold: 80", "PASSED")
    assert SEMANTIC_PASS in passed.semantics
    assert failed.lines[-1] == "FAILED"
    assert SEMANTIC_FAIL in failed.semantics
    assert missing.lines == ("Score: ", "Threshold: 80", "FAILED")


def test_findings_render_one_sub_block_each() -> None:
    payload = {
        "findings": [
            {
                "id": "F-1",
                "title": "Residue <high>",
                "severity": "Major",
                "status": "Open",
                "raised_on": "2024-03-05",
                "description": "line one\nline two",
            },
            {"id": "F-2", "title": "Late"},
        ]
    }

    element = make_element("f", ElementType.FINDINGS_SECTION, payload=payload)
    block = ContentRenderer().render(element)

    first, second = block.children
    assert first.label == "Residue &lt;high&gt;"
    assert first.lines == (
        "Severity: Major | Status: Open | Raised: Mar 05, 2024",
        f"line one{LINE_BREAK}line two",
    )
    assert "severity:major" in first.semantics
    assert second.lines == ()


def test_empty_findings_yield_no_block() -> None:
    block = ContentRenderer().render(
        make_element("f", ElementType.FINDINGS_SECTION, payload={"findings": []})
    )

    assert block.is_empty


def test_signature_uses_datetime_rule() -> None:
    renderer = ContentRenderer()
    payload = {
        "signer_name": "Dana <QA>",
        "signed_at": "2024-03-06T14:30:00Z",
        "timezone_offset_hours": -5,
    }

    block = renderer.render(make_element("sig", ElementType.SIGNATURE, payload=payload))
    unconverted = renderer.render(
        make_element("sig", ElementType.SIGNATURE, payload={**payload, "convert_timezone": False})
    )
    unsigned = make_element("sig", ElementType.SIGNATURE, payload={"signed_at": None})
    missing = renderer.render(unsigned)

    assert block.lines == ("Dana &lt;QA&gt;", "Mar 06, 2024, 09:30 AM")
    assert unconverted.lines[1] == "Mar 06, 2024, 02:30 PM"
    assert missing.is_empty


def test_unknown_type_falls_back_to_label_and_payload() -> None:
    block = ContentRenderer().render(
        make_element("x", "Barcode Scanner", label="Lot <code>", payload={"code": "A&B"})
    )

    assert block.element_type is None
    assert SEMANTIC_GENERIC in block.semantics
    assert block.lines == ("Lot &lt;code&gt;", "{&quot;code&quot;: &quot;A&amp;B&quot;}")


def test_invalid_payload_degrades_to_generic_rendering() -> None:
    block = ContentRenderer().render(
        make_element("n", ElementType.NUMERIC_VALUE, label="Temp", payload={"value": "warm"})
    )

    assert SEMANTIC_GENERIC in block.semantics
    assert block.lines[0] == "Temp"


def test_numeric_keeps_values_wider_than_default_precision() -> None:
    renderer = ContentRenderer(RenderConfig(decimal_scale=2))

    element = make_element("n", ElementType.NUMERIC_VALUE, payload={"value": "1e27"})
    block = renderer.render(element)

    assert block.text == "1000000000000000000000000000.00"


def test_test_step_compares_numeric_values_as_text() -> None:
    renderer = ContentRenderer()

    passed = renderer.render(
        make_element("s", ElementType.TEST_STEP, payload={"expected": 5, "actual": 5})
    )
    failed = renderer.render(
        make_element("s", ElementType.TEST_STEP, payload={"expected": 5, "actual": 7})
    )

    assert SEMANTIC_GENERIC not in passed.semantics
    assert SEMANTIC_PASS in passed.semantics
    assert SEMANTIC_FAIL in failed.semantics
    assert [child.text for child in failed.children] == ["5", "7"]


def test_findings_accept_numeric_ids_and_null_titles() -> None:
    payload = {
        "findings": [
            {"id": 101, "title": "Residue"},
            {"id": "F-2", "title": None, "severity": None},
        ]
    }

    element = make_element("f", ElementType.FINDINGS_SECTION, payload=payload)
    block = ContentRenderer().render(element)

    assert SEMANTIC_GENERIC not in block.semantics
    first, second = block.children
    assert first.element_id == "f:101"
    assert first.label == "Residue"
    assert second.label == ""
    assert second.lines == ()


def test_signature_with_non_finite_offset_degrades_to_generic() -> None:
    payload = {
        "signer_name": "A",
        "signed_at": "2024-01-01T10:00:00",
        "timezone_offset_hours": float("nan"),
    }

    element = make_element("sig", ElementType.SIGNATURE, payload=payload)
    block = ContentRenderer().render(element)

    assert SEMANTIC_GENERIC in block.semantics


def test_signature_near_datetime_max_keeps_unshifted_time() -> None:
    payload = {
        "signer_name": "A",
        "signed_at": "9999-12-31T23:00:00",
        "timezone_offset_hours": 5,
    }

    element = make_element("sig", ElementType.SIGNATURE, payload=payload)
    block = ContentRenderer().render(element)

    assert block.lines == ("A", "Dec 31, 9999, 11:00 PM")
