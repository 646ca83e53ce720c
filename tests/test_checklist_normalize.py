import pytest

from app.isoaudit.modules.checklist.service import (
    IncompleteInput,
    Submission,
    UnknownClause,
    normalize_clause_key,
    parse_company_id,
    parse_submissions,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("A.5.1", "A5.1"),
        ("A.8.34", "A8.34"),
        ("A5.1", "A5.1"),
        ("4.1", "4.1"),
        ("B.1.2", "B.1.2"),
        ("a.5.1", "a.5.1"),
        ("A.5.1.2", "A.5.1.2"),
        ("A.5", "A.5"),
        (" A.5.1", " A.5.1"),
        ("", ""),
    ],
)
def test_normalize_clause_key(raw, expected):
    assert normalize_clause_key(raw) == expected


def test_normalize_is_idempotent():
    for raw in ("A.5.1", "A5.1", "B.1.2", "9.2"):
        once = normalize_clause_key(raw)
        assert normalize_clause_key(once) == once


def test_unknown_clause_message_names_both_keys():
    e = UnknownClause("A.5.1", "A5.1")
    assert str(e) == "Clause not found: A.5.1 (normalized: A5.1)"
    assert e.http_status == 400

    e = UnknownClause("Z9", "Z9")
    assert str(e) == "Clause not found: Z9"


@pytest.mark.parametrize("raw, expected", [(42, 42), ("42", 42), (" 7 ", 7)])
def test_parse_company_id(raw, expected):
    assert parse_company_id(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", 0, -3, True, "1.5"])
def test_parse_company_id_rejects(raw):
    with pytest.raises(IncompleteInput):
        parse_company_id(raw)


def test_parse_submissions():
    subs = parse_submissions(
        [
            {"clause": "A.5.1", "status": "compliant", "notes": "policy approved"},
            {"clause": "4.1", "status": "partial"},
            {"clause": "4.2", "status": None, "notes": None},
        ]
    )
    assert subs == [
        Submission("A.5.1", "compliant", "policy approved"),
        Submission("4.1", "partial", ""),
        Submission("4.2", "", ""),
    ]


def test_parse_submissions_empty_list():
    assert parse_submissions([]) == []


@pytest.mark.parametrize(
    "raw",
    [
        None,
        {"clause": "4.1"},
        ["4.1"],
        [{"status": "compliant"}],
        [{"clause": "", "status": "compliant"}],
        [{"clause": 41, "status": "compliant"}],
    ],
)
def test_parse_submissions_rejects(raw):
    with pytest.raises(IncompleteInput):
        parse_submissions(raw)
