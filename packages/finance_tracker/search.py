"""Record search, category filtering, highlighting, and sorting.

A user pattern is compiled once into a :class:`Matcher`, an opaque capability
exposing only ``test`` and ``replace_matches`` (plus ``segments``). Pattern
engine details stay behind that interface.

Compilation outcomes are three-way and never raise:

- empty/whitespace pattern -> ``PatternCompilation(matcher=None)``: no filter
- valid pattern            -> ``PatternCompilation(matcher=Matcher(...))``
- invalid pattern          -> ``PatternCompilation(error="Invalid regex pattern")``

Filtering and sorting always start from the full collection handed in by the
caller; :class:`RecordBrowser` holds that collection plus the active search
state for the records page so independent filter changes never narrow
cumulatively.
"""

from __future__ import annotations

import html
import re
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Literal, NamedTuple

from .logging_setup import get_logger
from .models import TransactionRecord
from .validators import parse_calendar_date

_logger = get_logger("finance_tracker.search")

type SortKey = Literal["date", "description", "amount"]

SORT_KEYS: tuple[str, ...] = ("date", "description", "amount")

INVALID_PATTERN_MESSAGE = "Invalid regex pattern"


# ----------------------------------------------------------------------------
# Pattern compilation
# ----------------------------------------------------------------------------


class Matcher:
    """Compiled search pattern."""

    __slots__ = ("_regex", "_case_sensitive")

    def __init__(self, regex: re.Pattern[str], *, case_sensitive: bool) -> None:
        self._regex = regex
        self._case_sensitive = case_sensitive

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    def test(self, text: str) -> bool:
        return self._regex.search(text) is not None

    def segments(self, text: str) -> Iterator[tuple[str, bool]]:
        """Yield ``(chunk, matched)`` pairs covering ``text`` in order.

        Zero-width matches produce no matched chunk.
        """

        pos = 0
        for m in self._regex.finditer(text):
            start, end = m.span()
            if start == end:
                continue
            if start > pos:
                yield text[pos:start], False
            yield text[start:end], True
            pos = end
        if pos < len(text):
            yield text[pos:], False

    def replace_matches(self, text: str, wrap: Callable[[str], str]) -> str:
        """Return ``text`` with every matched substring replaced by ``wrap(match)``."""

        return "".join(wrap(chunk) if matched else chunk for chunk, matched in self.segments(text))

    def __repr__(self) -> str:  # pragma: no cover - trivial repr
        return f"Matcher(pattern={self.pattern!r}, case_sensitive={self._case_sensitive})"


@dataclass(frozen=True, slots=True)
class PatternCompilation:
    matcher: Matcher | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_filter(self) -> bool:
        return self.matcher is not None


def compile_pattern(pattern: str | None, *, case_sensitive: bool = False) -> PatternCompilation:
    """Compile a user search pattern; see the module docstring for outcomes."""

    if pattern is None or not pattern.strip():
        return PatternCompilation()
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        regex = re.compile(pattern, flags)
    except (re.error, OverflowError, RecursionError) as e:
        _logger.debug("search:compile_failed pattern=%r error=%s", pattern, e)
        return PatternCompilation(error=INVALID_PATTERN_MESSAGE)
    return PatternCompilation(matcher=Matcher(regex, case_sensitive=case_sensitive))


# ----------------------------------------------------------------------------
# Filtering
# ----------------------------------------------------------------------------


def render_amount(amount: float) -> str:
    """Render an amount the way the stored number prints (``12.0`` -> ``"12"``)."""

    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def record_matches(record: TransactionRecord, matcher: Matcher) -> bool:
    return (
        matcher.test(record.description)
        or matcher.test(record.category)
        or matcher.test(render_amount(record.amount))
        or matcher.test(record.date)
    )


def search_records(
    records: Iterable[TransactionRecord], matcher: Matcher | None
) -> list[TransactionRecord]:
    """Keep records whose description, category, amount, or date matches."""

    if matcher is None:
        return list(records)
    return [r for r in records if record_matches(r, matcher)]


def filter_by_category(
    records: Iterable[TransactionRecord], category: str | None
) -> list[TransactionRecord]:
    """Exact-match category filter; ``None``/empty keeps everything."""

    if not category:
        return list(records)
    return [r for r in records if r.category == category]


# ----------------------------------------------------------------------------
# Highlighting
# ----------------------------------------------------------------------------


def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def highlight_text(
    text: object,
    matcher: Matcher | None,
    *,
    open_tag: str = "<mark>",
    close_tag: str = "</mark>",
) -> str:
    """Escape ``text`` for HTML and wrap every match in ``open_tag``/``close_tag``.

    Matching runs on the raw text and each chunk is escaped exactly once, so
    entities are never double-escaped and a match never splits an entity.
    """

    raw = "" if text is None else str(text)
    if matcher is None or not raw:
        return escape_html(raw)
    return "".join(
        f"{open_tag}{escape_html(chunk)}{close_tag}" if matched else escape_html(chunk)
        for chunk, matched in matcher.segments(raw)
    )


# ----------------------------------------------------------------------------
# Sorting
# ----------------------------------------------------------------------------


def _date_key(record: TransactionRecord) -> date:
    # Unparseable dates sort as the earliest possible date.
    return parse_calendar_date(record.date) or date.min


_SORT_KEY_FUNCS: dict[str, Callable[[TransactionRecord], object]] = {
    "date": _date_key,
    "description": lambda r: r.description.lower(),
    "amount": lambda r: r.amount,
}


def sort_records(
    records: Iterable[TransactionRecord], key: SortKey, *, ascending: bool = True
) -> list[TransactionRecord]:
    """Return a stably sorted copy.

    Records with equal keys keep their incoming relative order in both
    directions (``sorted(..., reverse=True)`` preserves stability).
    """

    try:
        key_func = _SORT_KEY_FUNCS[key]
    except KeyError:
        raise ValueError(f"Unsupported sort key: {key!r}. Allowed: {list(SORT_KEYS)}") from None
    return sorted(records, key=key_func, reverse=not ascending)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class SortSpec:
    key: SortKey
    ascending: bool = True

    def toggled(self, key: SortKey) -> SortSpec:
        """Selecting the active key flips direction; a new key starts ascending."""

        if key == self.key:
            return SortSpec(key, not self.ascending)
        return SortSpec(key, True)


def apply_filters(
    records: Iterable[TransactionRecord],
    *,
    matcher: Matcher | None = None,
    category: str | None = None,
    sort: SortSpec | None = None,
) -> list[TransactionRecord]:
    """Pattern filter, then category filter, then optional sort."""

    result = filter_by_category(search_records(records, matcher), category)
    if sort is not None:
        result = sort_records(result, sort.key, ascending=sort.ascending)
    return result


class RecordBrowser:
    """Records-page state: full collection plus the active search settings.

    Every change recomputes ``results`` from the full collection. A pattern
    that fails to compile leaves the previous matcher and results in place
    and is reported through the returned :class:`PatternCompilation`.
    """

    def __init__(self, records: Iterable[TransactionRecord]) -> None:
        self._all: list[TransactionRecord] = list(records)
        self._matcher: Matcher | None = None
        self._category: str | None = None
        self._sort: SortSpec | None = None
        self._results: list[TransactionRecord] = list(self._all)

    @property
    def results(self) -> list[TransactionRecord]:
        return list(self._results)

    @property
    def matcher(self) -> Matcher | None:
        return self._matcher

    @property
    def category(self) -> str | None:
        return self._category

    @property
    def sort(self) -> SortSpec | None:
        return self._sort

    def set_records(self, records: Iterable[TransactionRecord]) -> None:
        self._all = list(records)
        self._refresh()

    def search(self, pattern: str | None, *, case_sensitive: bool = False) -> PatternCompilation:
        compiled = compile_pattern(pattern, case_sensitive=case_sensitive)
        if not compiled.ok:
            return compiled
        self._matcher = compiled.matcher
        self._refresh()
        return compiled

    def filter_category(self, category: str | None) -> None:
        self._category = category or None
        self._refresh()

    def sort_by(self, key: SortKey) -> SortSpec:
        self._sort = self._sort.toggled(key) if self._sort else SortSpec(key, True)
        self._refresh()
        return self._sort

    def highlight(self, text: object) -> str:
        return highlight_text(text, self._matcher)

    def _refresh(self) -> None:
        self._results = apply_filters(
            self._all, matcher=self._matcher, category=self._category, sort=self._sort
        )


# ----------------------------------------------------------------------------
# Suggested patterns
# ----------------------------------------------------------------------------


class SuggestedPattern(NamedTuple):
    name: str
    pattern: str
    description: str


SUGGESTED_PATTERNS: Sequence[SuggestedPattern] = (
    SuggestedPattern(
        "Find amounts with cents", r"\.\d{2}\b", "Matches amounts like 12.50, 8.75"
    ),
    SuggestedPattern(
        "Find beverage purchases", r"(coffee|tea|juice)", "Case-insensitive match for beverages"
    ),
    SuggestedPattern(
        "Find duplicate words", r"\b(\w+)\s+\1\b", "Detects repeated consecutive words"
    ),
    SuggestedPattern(
        "Find specific date range", "2025-09-", "All transactions from September 2025"
    ),
    SuggestedPattern("Find large amounts", r"^[1-9]\d{2,}", "Amounts 100 or greater"),
)


__all__ = [
    "SORT_KEYS",
    "SortKey",
    "SortSpec",
    "Matcher",
    "PatternCompilation",
    "INVALID_PATTERN_MESSAGE",
    "compile_pattern",
    "render_amount",
    "record_matches",
    "search_records",
    "filter_by_category",
    "escape_html",
    "highlight_text",
    "sort_records",
    "apply_filters",
    "RecordBrowser",
    "SuggestedPattern",
    "SUGGESTED_PATTERNS",
]
