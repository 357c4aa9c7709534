"""Search result domain models."""

from dataclasses import dataclass, field

from food_search.domain.nutrition import DataType, FoodCandidate


@dataclass(frozen=True)
class Suggestion:
    """Alternate query offered to the user."""

    display_text: str
    query: str
    reasoning: str | None = None


@dataclass(frozen=True)
class SearchResultGroup:
    """A capped, relevance-ordered slice of one data type."""

    title: str
    data_type: DataType
    items: list[FoodCandidate]
    cap_per_group: int
    total: int
    remaining: int
    next_cursor: str | None = None


@dataclass(frozen=True)
class SearchMeta:
    """Metadata about how a result was produced."""

    query: str
    total_results: int
    processing_time_ms: int
    page: int = 1
    has_more_upstream: bool = False
    from_cache: bool = False
    notes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AggregatedSearchResult:
    """Grouped results for one query or one scan."""

    groups: list[SearchResultGroup]
    total_remaining: int
    suggestions: list[Suggestion]
    meta: SearchMeta
    snapshot_id: str | None = None

    @property
    def items_shown(self) -> int:
        """Number of candidates visible in the initial view."""
        return sum(len(group.items) for group in self.groups)


@dataclass(frozen=True)
class GroupPage:
    """One "show more" page for a single group."""

    data_type: DataType
    title: str
    items: list[FoodCandidate]
    next_cursor: str | None
    remaining: int


@dataclass(frozen=True)
class ResultSnapshot:
    """Frozen classified candidates backing a result's cursors."""

    id: str
    query: str
    groups: dict[DataType, list[FoodCandidate]]
    limit: int | None = None
    page: int = 1
