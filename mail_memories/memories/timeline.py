"""Timeline view helpers — filtering, per-year grouping, year comparison and recipient stats."""

import re
from collections import Counter
from dataclasses import dataclass, field

from mail_memories.gmail.types import MemoryItem
from mail_memories.memories.fetcher import YEARS_BACK

_ANGLE_ADDRESS = re.compile(r"<([^>]+)>")
_BARE_ADDRESS = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)


def extract_email(value: str) -> str:
    """Address from a To header: ``<...>`` first, then any bare address."""
    angle = _ANGLE_ADDRESS.search(value)
    if angle and angle.group(1).strip():
        return angle.group(1).strip()
    bare = _BARE_ADDRESS.search(value)
    return bare.group(0) if bare else ""


def recipient_label(value: str) -> str:
    """Short label for a recipient: the address, else the first display name."""
    address = extract_email(value)
    if address:
        return address
    trimmed = value.replace('"', "").strip()
    return trimmed.split(",", 1)[0].strip()


def recipient_domain(value: str) -> str:
    """Lower-cased domain of the recipient address, or ``""``."""
    address = extract_email(value)
    if "@" not in address:
        return ""
    return address.rsplit("@", 1)[1].lower()


def filter_memories(
    items: list[MemoryItem], *, to: str = "", subject: str = ""
) -> list[MemoryItem]:
    """Case-insensitive substring filter on recipient and subject/snippet."""
    to_query = to.strip().lower()
    subject_query = subject.strip().lower()

    def _matches(item: MemoryItem) -> bool:
        if to_query and to_query not in item.to.lower():
            return False
        if subject_query and subject_query not in f"{item.subject} {item.snippet}".lower():
            return False
        return True

    return [item for item in items if _matches(item)]


def year_range(current_year: int, years_back: int = YEARS_BACK) -> list[int]:
    """Most recent lookback year first: ``[current_year - 1, ...]``."""
    return [current_year - offset for offset in range(1, years_back + 1)]


@dataclass(frozen=True)
class YearSummary:
    year: int
    count: int
    items: list[MemoryItem] = field(default_factory=list)


@dataclass(frozen=True)
class YearComparison:
    year_a: int
    year_b: int
    delta: int  # count(year_a) - count(year_b)
    description: str


def group_by_year(items: list[MemoryItem]) -> dict[str, list[MemoryItem]]:
    """Bucket items by their ``year`` field, preserving item order in each bucket."""
    grouped: dict[str, list[MemoryItem]] = {}
    for item in items:
        grouped.setdefault(item.year, []).append(item)
    return grouped


def summarize_years(
    items: list[MemoryItem], current_year: int, years_back: int = YEARS_BACK
) -> list[YearSummary]:
    """One summary per lookback year, including empty years."""
    grouped = group_by_year(items)
    summaries = []
    for year in year_range(current_year, years_back):
        bucket = grouped.get(str(year), [])
        summaries.append(YearSummary(year=year, count=len(bucket), items=bucket))
    return summaries


def compare_years(
    summaries: list[YearSummary], year_a: int | None = None, year_b: int | None = None
) -> YearComparison | None:
    """Compare memory counts of two years.

    Years not present in ``summaries`` fall back to the first and second
    summarised years.  Returns None when there is nothing to compare.
    """
    if not summaries:
        return None
    counts = {s.year: s.count for s in summaries}
    default_a = summaries[0].year
    default_b = summaries[1].year if len(summaries) > 1 else default_a
    a = year_a if year_a in counts else default_a
    b = year_b if year_b in counts else default_b

    delta = counts[a] - counts[b]
    if delta == 0:
        description = "Even activity between the selected years."
    elif delta > 0:
        description = f"{a} has {delta} more memories than {b}."
    else:
        description = f"{b} has {-delta} more memories than {a}."
    return YearComparison(year_a=a, year_b=b, delta=delta, description=description)


def top_recipient_domains(items: list[MemoryItem], limit: int = 5) -> list[tuple[str, int]]:
    """Most frequent recipient domains as ``(domain, count)``, highest first."""
    counts = Counter(d for d in (recipient_domain(item.to) for item in items) if d)
    return counts.most_common(limit)


def top_recipients(items: list[MemoryItem], limit: int = 6) -> list[tuple[str, int]]:
    """Most frequent recipients as ``(label, count)``, highest first.

    Labels are counted case-insensitively; the first spelling seen is shown.
    """
    labels: dict[str, str] = {}
    counts: Counter[str] = Counter()
    for item in items:
        label = recipient_label(item.to)
        if not label:
            continue
        key = label.lower()
        labels.setdefault(key, label)
        counts[key] += 1
    return [(labels[key], count) for key, count in counts.most_common(limit)]


def highlight_years(summaries: list[YearSummary], limit: int = 3) -> list[YearSummary]:
    """Busiest years with at least one memory, most memories first."""
    busy = [s for s in summaries if s.count > 0]
    return sorted(busy, key=lambda s: s.count, reverse=True)[:limit]


def status_line(
    items: list[MemoryItem],
    summaries: list[YearSummary],
    month_day: str,
    years_back: int = YEARS_BACK,
) -> str:
    if not items:
        return f"No sent emails from {month_day} in the last {years_back} years."
    active_years = sum(1 for s in summaries if s.count > 0)
    return f"Found {len(items)} sent emails from {month_day} across {active_years} years."


def relative_year(year: str, current_year: int) -> str:
    """``"1 year ago"`` / ``"3 years ago"`` for a memory's year."""
    diff = current_year - int(year)
    if diff == 1:
        return "1 year ago"
    return f"{diff} years ago"
