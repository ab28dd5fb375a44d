import copy

from intake_ocr.services.text_extractor import (
    build_table_grid, extract_text, find_selection_marks, render_table
)

SPARSE_TABLE = {
    "rowCount": 2,
    "columnCount": 2,
    "cells": [
        {"rowIndex": 0, "columnIndex": 0, "content": "A"},
        {"rowIndex": 1, "columnIndex": 1, "content": "B"},
    ],
}

FORM_RESULT = {
    "content": "Name: Taro Yamada\nChief complaint: headache",
    "paragraphs": [{"content": "ignored because content exists"}],
    "tables": [SPARSE_TABLE],
    "pages": [
        {"pageNumber": 1, "selectionMarks": [{"state": "selected"}, {"state": "unselected"}]},
    ],
    "documents": [
        {
            "fields": {
                "Smoker": {"type": "selectionMark", "valueSelectionMark": "selected"},
                "Allergy": {"type": "string", "valueString": "pollen", "content": "pollen"},
            }
        }
    ],
}


def test_sparse_table_grid():
    assert build_table_grid(SPARSE_TABLE) == [["A", ""], ["", "B"]]
    assert render_table(SPARSE_TABLE) == "A | \n | B\n"


def test_table_ignores_cells_without_indexes():
    table = {"cells": [{"content": "orphan"}, {"rowIndex": 0, "columnIndex": 1, "content": "X"}]}

    assert build_table_grid(table) == [["", "X"]]
    assert render_table({"cells": []}) == ""


def test_full_form_extraction():
    expected = (
        "Name: Taro Yamada\nChief complaint: headache"
        "\n\nTables:\nTable 1:\nA | \n | B\n"
        "\n\nSelection marks:\n"
        "pages[0].selectionMarks[0]: selected\n"
        "pages[0].selectionMarks[1]: unselected\n"
        "Smoker: selected\n"
        "\n\nFields:\nAllergy: pollen\n"
    )

    assert extract_text(FORM_RESULT) == expected


def test_paragraphs_used_when_content_missing():
    result = {"paragraphs": [{"content": "First"}, {"content": "Second"}]}

    assert extract_text(result) == "First\n\nSecond"


def test_accepts_polling_envelope():
    envelope = {"status": "succeeded", "analyzeResult": {"content": "Hello"}}

    assert extract_text(envelope) == "Hello"


def test_missing_sections_produce_empty_text():
    assert extract_text({}) == ""
    assert extract_text(None) == ""
    assert extract_text({"tables": [], "documents": [{}], "paragraphs": []}) == ""


def test_deterministic_and_does_not_mutate():
    original = copy.deepcopy(FORM_RESULT)

    first = extract_text(FORM_RESULT)
    second = extract_text(FORM_RESULT)

    assert first == second
    assert FORM_RESULT == original


def test_selection_mark_scan_survives_cycles():
    tree = {"content": "x", "child": {"kind": "selectionMark", "state": "selected", "content": "Yes"}}
    tree["child"]["parent"] = tree
    tree["self"] = tree

    assert find_selection_marks(tree) == [("Yes", "selected")]
    assert extract_text(tree) == "x\n\nSelection marks:\nYes: selected\n"


def test_selection_mark_value_state_variants():
    tree = {
        "fields": {
            "Pregnant": {"valueType": "selectionMark", "value": {"state": "unselected"}},
            "Drinker": {"type": "selectionMark", "value": "selected"},
        }
    }

    assert find_selection_marks(tree) == [("Pregnant", "unselected"), ("Drinker", "selected")]


def test_document_selection_fields_keep_their_names():
    result = {
        "content": "x",
        "documents": [
            {
                "fields": {
                    "Smoker": {"type": "selectionMark", "valueSelectionMark": "selected", "content": ":selected:"},
                    "Drinker": {"type": "selectionMark", "valueSelectionMark": "unselected", "content": ":unselected:"},
                    "Name": {"type": "string", "valueString": "Taro", "content": "Taro"},
                }
            }
        ],
    }

    text = extract_text(result)

    assert text == (
        "x\n\nSelection marks:\nSmoker: selected\nDrinker: unselected\n"
        "\n\nFields:\nName: Taro\n"
    )
    assert ":selected:" not in text


def test_multi_page_selection_marks_are_distinguishable():
    result = {
        "pages": [
            {"pageNumber": 1, "selectionMarks": [{"state": "selected", "confidence": 0.9}]},
            {"pageNumber": 2, "selectionMarks": [{"state": "unselected", "confidence": 0.8}]},
        ]
    }

    assert find_selection_marks(result) == [
        ("pages[0].selectionMarks[0]", "selected"),
        ("pages[1].selectionMarks[0]", "unselected"),
    ]


def test_table_cells_show_selection_state():
    table = {
        "cells": [
            {"rowIndex": 0, "columnIndex": 0, "content": "Smoker"},
            {"rowIndex": 0, "columnIndex": 1, "content": "Yes", "selectionState": "selected"},
            {"rowIndex": 1, "columnIndex": 0, "content": "Drinker"},
            {"rowIndex": 1, "columnIndex": 1, "content": "", "selectionState": "unselected"},
        ]
    }

    assert render_table(table) == "Smoker | Yes [✓]\nDrinker |  [☐]\n"
    assert render_table(SPARSE_TABLE) == "A | \n | B\n"
