import pytest

from citation_checker.fixer import (
    apply_fixes,
    calculate_score,
    format_authors,
    format_citation,
    format_editors,
)
from citation_checker.models import AppliedFix, Author, Citation, Violation
from citation_checker.normalization import to_ordinal
from citation_checker.rules import check_author_format, run_rules


def _violation(severity, rule="r", field="f", fixable=False):
    return Violation(
        rule=rule,
        field=field,
        message="m",
        severity=severity,
        suggested="s" if fixable else None,
        auto_fixable=fixable,
    )


def _fix(rule="r", field="f"):
    return AppliedFix(rule=rule, field=field, original="o", fixed="s", description="d")


def test_score_without_violations_is_perfect():
    assert calculate_score([], []) == 100


def test_score_arithmetic():
    assert calculate_score([_violation("error")], []) == 85
    assert calculate_score([_violation("warning")], []) == 90
    assert calculate_score([_violation("warning", fixable=True)], [_fix()]) == 95
    assert calculate_score([_violation("error") for _ in range(10)], []) == 0


def test_score_rounds_half_up():
    assert calculate_score([_violation("error", fixable=True)], [_fix()]) == 93
    assert calculate_score([_violation("info", fixable=True)], [_fix()]) == 98


def test_fix_without_matching_violation_earns_nothing():
    assert calculate_score([_violation("error")], [_fix(rule="page-completion")]) == 85


@pytest.mark.parametrize(
    "severities",
    [["error"] * 7, ["info"] * 3, ["warning", "error", "info"] * 4, []],
)
def test_score_stays_in_bounds(severities):
    violations = [_violation(s, fixable=True) for s in severities]
    fixes = [_fix() for _ in severities]

    assert 0 <= calculate_score(violations, fixes) <= 100
    assert 0 <= calculate_score(violations, []) <= 100


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1", "1st"),
        ("2", "2nd"),
        ("3", "3rd"),
        ("4", "4th"),
        ("11", "11th"),
        ("12", "12th"),
        ("13", "13th"),
        ("21", "21st"),
        ("22", "22nd"),
        ("23", "23rd"),
        ("111", "111th"),
        ("revised", "revised"),
    ],
)
def test_to_ordinal(value, expected):
    assert to_ordinal(value) == expected


def test_format_journal():
    citation = Citation(
        raw_text="",
        authors=[Author("Kim", "B. Y."), Author("Lee", "S. H.")],
        year="2024",
        title="The impact of AI on education",
        type="journal",
        source="Journal of Educational Technology",
        volume="45",
        issue="2",
        pages="123–145",
        doi="https://doi.org/10.1234/jet",
    )

    assert format_citation(citation) == (
        "Kim, B. Y., & Lee, S. H. (2024). The impact of AI on education. "
        "*Journal of Educational Technology*, *45*(2), 123–145. https://doi.org/10.1234/jet"
    )


def test_format_chapter_with_editor_and_edition():
    citation = Citation(
        raw_text="",
        authors=[Author("Author", "A.")],
        year="2023",
        title="Chapter title",
        type="chapter",
        source="In Book title",
        pages="20–31",
        publisher="Publisher",
        editors=[Author("Editor", "E.")],
        edition="2",
    )

    assert format_citation(citation) == (
        "Author, A. (2023). Chapter title. In E. Editor (Ed.), *Book title* (2nd ed., pp. 20–31). Publisher."
    )


def test_format_chapter_without_editors_uses_placeholder():
    citation = Citation(
        raw_text="",
        authors=[Author("Author", "A.")],
        year="2023",
        title="Chapter title",
        type="chapter",
        source="In Book title",
        pages="20–31",
        publisher="Publisher",
    )

    assert "In [Editor, F. M.] (Ed.), *Book title* (pp. 20–31). Publisher." in format_citation(citation)


def test_format_editors():
    assert format_editors([Author("One", "A."), Author("Two", "B.")]) == "A. One & B. Two (Eds.), "
    assert (
        format_editors([Author("One", "A."), Author("Two", "B."), Author("Three", "C.")])
        == "A. One, B. Two, & C. Three (Eds.), "
    )


def test_format_book_folds_title_and_renders_group_author():
    citation = Citation(
        raw_text="",
        authors=[Author("World Health Organization", "", True)],
        year="2024",
        title="Global health report",
        type="book",
        source="Global health report",
        publisher="WHO Press",
    )

    assert format_citation(citation) == "World Health Organization. (2024). *Global health report*. WHO Press."


def test_format_book_with_edition():
    citation = Citation(
        raw_text="",
        authors=[Author("Author", "A.")],
        year="2023",
        title="Psychology of learning",
        type="book",
        source="Psychology of learning",
        edition="4",
        publisher="Academic Press",
    )

    assert format_citation(citation) == "Author, A. (2023). *Psychology of learning* (4th ed.). Academic Press."


def test_format_report():
    citation = Citation(
        raw_text="",
        authors=[Author("National Highway Traffic Safety Administration", "", True)],
        year="2024",
        title="Traffic safety facts",
        type="report",
        report_number="DOT-HS-812-345",
        publisher="U.S. Department of Transportation",
    )

    assert format_citation(citation) == (
        "National Highway Traffic Safety Administration. (2024). *Traffic safety facts* "
        "(Report No. DOT-HS-812-345). U.S. Department of Transportation."
    )


def test_format_conference():
    citation = Citation(
        raw_text="",
        authors=[Author("Smith", "J.")],
        year="2024",
        full_date="2024, March 15",
        title="New findings",
        type="conference",
        bracket_type="Paper presentation",
        conference_name="Annual Conference of APA, Washington, DC",
    )

    assert format_citation(citation) == (
        "Smith, J. (2024, March 15). New findings [Paper presentation]. "
        "Annual Conference of APA, Washington, DC."
    )


def test_format_dissertation():
    citation = Citation(
        raw_text="",
        authors=[Author("Lee", "K.")],
        year="2022",
        title="Learning at scale",
        type="dissertation",
        bracket_type="Doctoral dissertation, Massachusetts Institute of Technology",
        database_name="ProQuest Dissertations and Theses Global",
    )

    assert format_citation(citation) == (
        "Lee, K. (2022). *Learning at scale* [Doctoral dissertation, Massachusetts Institute of Technology]. "
        "ProQuest Dissertations and Theses Global."
    )


def test_format_web_page_ends_with_url():
    citation = Citation(
        raw_text="",
        authors=[Author("Doe", "J.")],
        year="2020",
        year_suffix="b",
        title="Page title",
        type="web",
        url="https://example.com/page",
    )

    assert format_citation(citation) == "Doe, J. (2020b). Page title. https://example.com/page"


def test_title_ending_in_question_mark_is_not_doubled():
    citation = Citation(raw_text="", authors=[Author("Doe", "J.")], year="2020", title="Why now?")

    assert format_citation(citation) == "Doe, J. (2020). Why now?"


def test_more_than_twenty_authors_use_ellipsis():
    authors = [Author(f"Author{i}", "A.") for i in range(1, 23)]

    block = format_authors(authors)

    assert block.startswith("Author1, A., Author2, A.,")
    assert "Author19, A., ... Author22, A." in block
    assert "Author20" not in block
    assert "&" not in block


def test_apply_fixes_targets_the_right_author():
    citation = Citation(raw_text="x", authors=[Author("Smith", "J."), Author("Jones", "B.C.")])

    outcome = apply_fixes(citation, check_author_format(citation))

    assert outcome.corrected.authors[0].initials == "J."
    assert outcome.corrected.authors[1].initials == "B. C."
    assert citation.authors[1].initials == "B.C."
    assert outcome.applied_fixes[0].original == "B.C."


def test_apply_fixes_records_hints_for_manual_fixes():
    citation = Citation(raw_text="Doe, J. (2020). A title. Journal, 1(2), 3–4.", type="journal")

    outcome = apply_fixes(citation, [v for v in run_rules(citation) if v.rule == "doi-presence"])

    assert outcome.applied_fixes == []
    assert outcome.hints[0].rule == "doi-presence"
    assert "Crossref" in outcome.hints[0].hint


def test_terminal_period_fix_updates_raw_text():
    citation = Citation(raw_text="Doe, J. (2020). A title. Sage Press")
    violations = [v for v in run_rules(citation) if v.rule == "terminal-period"]

    outcome = apply_fixes(citation, violations)

    assert outcome.corrected.raw_text == "Doe, J. (2020). A title. Sage Press."
    assert outcome.applied_fixes[0].description == "Added terminal period"


def test_page_fixes_apply_in_sequence():
    citation = Citation(raw_text="x.", type="journal", source="Journal", pages="pp. 45-67")

    outcome = apply_fixes(citation, run_rules(citation))

    assert outcome.corrected.pages == "45–67"
    descriptions = [fix.description for fix in outcome.applied_fixes if fix.rule == "page-format"]
    assert descriptions == ['Removed "pp." prefix', "Changed hyphen to en dash"]
