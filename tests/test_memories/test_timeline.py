"""Tests for the timeline helpers."""

from mail_memories.gmail.types import MemoryItem
from mail_memories.memories.timeline import (
    compare_years,
    extract_email,
    filter_memories,
    group_by_year,
    highlight_years,
    recipient_domain,
    recipient_label,
    relative_year,
    status_line,
    summarize_years,
    top_recipient_domains,
    top_recipients,
    year_range,
)


def make_item(id: str, year: str = "2021", to: str = "bob@example.com",
              subject: str = "Hello", snippet: str = "") -> MemoryItem:
    return MemoryItem(
        id=id, subject=subject, snippet=snippet, to=to,
        date=f"Oct 19, {year}", year=year, gmail_link=f"link/{id}",
    )


class TestRecipients:
    def test_angle_bracket_address_wins(self) -> None:
        assert extract_email('"Bob Smith" <Bob@Example.com>') == "Bob@Example.com"

    def test_bare_address(self) -> None:
        assert extract_email("carol@example.org, dave@example.org") == "carol@example.org"

    def test_no_address(self) -> None:
        assert extract_email("Undisclosed recipients") == ""

    def test_label_prefers_address(self) -> None:
        assert recipient_label("Bob <bob@example.com>") == "bob@example.com"

    def test_label_falls_back_to_first_display_name(self) -> None:
        assert recipient_label('"Team", "Others"') == "Team"

    def test_domain_is_lowercased(self) -> None:
        assert recipient_domain("Bob <bob@Example.COM>") == "example.com"

    def test_domain_empty_without_address(self) -> None:
        assert recipient_domain("Unknown recipient") == ""


class TestFilterMemories:
    def test_no_filters_keeps_everything(self) -> None:
        items = [make_item("a"), make_item("b")]
        assert filter_memories(items) == items

    def test_recipient_filter_is_case_insensitive(self) -> None:
        items = [make_item("a", to="Alice <alice@x.com>"), make_item("b", to="bob@y.com")]
        assert [m.id for m in filter_memories(items, to="ALICE")] == ["a"]

    def test_subject_filter_also_searches_snippet(self) -> None:
        items = [
            make_item("a", subject="Trip", snippet="see you in Lisbon"),
            make_item("b", subject="Lisbon plans"),
            make_item("c", subject="Taxes"),
        ]
        assert [m.id for m in filter_memories(items, subject="lisbon")] == ["a", "b"]

    def test_filters_combine(self) -> None:
        items = [
            make_item("a", to="alice@x.com", subject="Trip"),
            make_item("b", to="bob@x.com", subject="Trip"),
        ]
        assert [m.id for m in filter_memories(items, to="bob", subject="trip")] == ["b"]


class TestYears:
    def test_year_range_starts_last_year(self) -> None:
        assert year_range(2026) == [2025, 2024, 2023, 2022, 2021, 2020, 2019, 2018]

    def test_group_by_year_preserves_order(self) -> None:
        items = [make_item("a", "2021"), make_item("b", "2020"), make_item("c", "2021")]
        grouped = group_by_year(items)
        assert [m.id for m in grouped["2021"]] == ["a", "c"]

    def test_summaries_include_empty_years(self) -> None:
        summaries = summarize_years([make_item("a", "2024"), make_item("b", "2024")], 2026)
        assert [s.year for s in summaries] == year_range(2026)
        counts = {s.year: s.count for s in summaries}
        assert counts[2024] == 2
        assert counts[2025] == 0

    def test_items_outside_range_are_not_counted(self) -> None:
        summaries = summarize_years([make_item("a", "2010")], 2026)
        assert sum(s.count for s in summaries) == 0


class TestCompareYears:
    def test_even(self) -> None:
        summaries = summarize_years([], 2026)
        comparison = compare_years(summaries)
        assert comparison is not None
        assert (comparison.year_a, comparison.year_b) == (2025, 2024)
        assert comparison.description == "Even activity between the selected years."

    def test_first_year_ahead(self) -> None:
        summaries = summarize_years([make_item("a", "2022"), make_item("b", "2022")], 2026)
        comparison = compare_years(summaries, 2022, 2020)
        assert comparison is not None
        assert comparison.delta == 2
        assert comparison.description == "2022 has 2 more memories than 2020."

    def test_second_year_ahead(self) -> None:
        summaries = summarize_years([make_item("a", "2020")], 2026)
        comparison = compare_years(summaries, 2022, 2020)
        assert comparison is not None
        assert comparison.description == "2020 has 1 more memories than 2022."

    def test_unknown_years_fall_back_to_defaults(self) -> None:
        comparison = compare_years(summarize_years([], 2026), 1990, 3000)
        assert comparison is not None
        assert (comparison.year_a, comparison.year_b) == (2025, 2024)

    def test_nothing_to_compare(self) -> None:
        assert compare_years([]) is None


class TestTopRecipientDomains:
    def test_counts_most_common_domains(self) -> None:
        items = [
            make_item("a", to="a@work.com"),
            make_item("b", to="b@work.com"),
            make_item("c", to="c@home.net"),
            make_item("d", to="Unknown recipient"),
        ]
        assert top_recipient_domains(items) == [("work.com", 2), ("home.net", 1)]

    def test_limit(self) -> None:
        items = [make_item(str(i), to=f"x@d{i}.com") for i in range(5)]
        assert len(top_recipient_domains(items, limit=2)) == 2


class TestTopRecipients:
    def test_counts_labels_case_insensitively(self) -> None:
        items = [
            make_item("a", to="Ann <Ann@work.com>"),
            make_item("b", to="ann@work.com"),
            make_item("c", to="bo@home.net"),
        ]
        assert top_recipients(items) == [("Ann@work.com", 2), ("bo@home.net", 1)]

    def test_display_names_without_address(self) -> None:
        items = [make_item("a", to='"Team", "Others"'), make_item("b", to="team")]
        assert top_recipients(items) == [("Team", 2)]

    def test_limits_to_six(self) -> None:
        items = [make_item(str(i), to=f"p{i}@x.com") for i in range(8)]
        assert len(top_recipients(items)) == 6

    def test_domains_default_to_five(self) -> None:
        items = [make_item(str(i), to=f"x@d{i}.com") for i in range(7)]
        assert len(top_recipient_domains(items)) == 5


class TestHighlightsAndStatus:
    def test_highlight_years_skips_empty_and_orders_by_count(self) -> None:
        summaries = summarize_years(
            [make_item("a", "2020"), make_item("b", "2023"), make_item("c", "2023"),
             make_item("d", "2019"), make_item("e", "2024")],
            2026,
        )
        assert [(s.year, s.count) for s in highlight_years(summaries)] == [
            (2023, 2), (2024, 1), (2020, 1),
        ]

    def test_highlight_years_empty(self) -> None:
        assert highlight_years(summarize_years([], 2026)) == []

    def test_status_line_found(self) -> None:
        items = [make_item("a", "2024"), make_item("b", "2024"), make_item("c", "2021")]
        summaries = summarize_years(items, 2026)
        assert status_line(items, summaries, "Oct 19") == (
            "Found 3 sent emails from Oct 19 across 2 years."
        )

    def test_status_line_nothing_found(self) -> None:
        assert status_line([], summarize_years([], 2026), "Feb 29") == (
            "No sent emails from Feb 29 in the last 8 years."
        )

    def test_relative_year(self) -> None:
        assert relative_year("2025", 2026) == "1 year ago"
        assert relative_year("2018", 2026) == "8 years ago"
