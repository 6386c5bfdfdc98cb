"""
Composable listing pipelines.

A ``Pipeline`` is an ordered list of stages (match, search, add_fields, sort)
applied to plain dict rows. Listings build one per request, the store only
supplies the joined rows, and the filtering/ordering rules can be exercised
without a database.

    pipeline = (
        Pipeline()
        .where("status", status)
        .search(term, ["user.name", "order_id"])
        .add_fields(status_priority=priority("status", BOOKING_PRIORITY))
        .sort("status_priority", "slot.date", "created_at")
    )
    result = pipeline.paginate(rows, page=1, limit=20)
"""
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

from services.errors import ValidationError

UNKNOWN_PRIORITY = 99


def get_path(row: dict, path: str) -> Any:
    """Read a dotted path (``"slot.date"``) from nested dicts; missing parts give None."""
    value = row
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def priority(path: str, order: Iterable[str]) -> Callable[[dict], int]:
    ranks = {name: i + 1 for i, name in enumerate(order)}
    return lambda row: ranks.get(get_path(row, path), UNKNOWN_PRIORITY)


@dataclass
class PageResult:
    total: int
    page: int
    limit: int
    items: List[Any] = field(default_factory=list)

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def validate_page(page, limit, default_limit: int = 20, max_limit: int = 100):
    try:
        page = int(page) if page not in (None, "") else 1
        limit = int(limit) if limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    return page, limit


class Pipeline:
    def __init__(self, stages: Optional[list] = None):
        self.stages = list(stages or [])

    def _with(self, stage) -> "Pipeline":
        return Pipeline(self.stages + [stage])

    # ---------- stages ----------
    def match(self, predicate: Callable[[dict], bool]) -> "Pipeline":
        def stage(rows):
            return [r for r in rows if predicate(r)]
        return self._with(stage)

    def where(self, path: str, value) -> "Pipeline":
        """Equality filter; a falsy value means no filter."""
        if not value:
            return self
        return self.match(lambda r: get_path(r, path) == value)

    def search(self, term: Optional[str], paths: List[str]) -> "Pipeline":
        """Case-insensitive substring match of ``term`` against any of ``paths``."""
        term = (term or "").strip().lower()
        if not term:
            return self

        def hit(row):
            for path in paths:
                value = get_path(row, path)
                if value is not None and term in str(value).lower():
                    return True
            return False

        return self.match(hit)

    def add_fields(self, **computed: Callable[[dict], Any]) -> "Pipeline":
        def stage(rows):
            out = []
            for r in rows:
                r = dict(r)
                for name, fn in computed.items():
                    r[name] = fn(r)
                out.append(r)
            return out
        return self._with(stage)

    def sort(self, *paths: str) -> "Pipeline":
        """Stable ascending sort on the given paths; None sorts first."""
        def key(row):
            return tuple((get_path(row, p) is not None, get_path(row, p)) for p in paths)

        def stage(rows):
            return sorted(rows, key=key)
        return self._with(stage)

    # ---------- executors ----------
    def run(self, rows: Iterable[dict]) -> list:
        rows = list(rows)
        for stage in self.stages:
            rows = stage(rows)
        return rows

    def count(self, rows: Iterable[dict]) -> int:
        return len(self.run(rows))

    def paginate(self, rows: Iterable[dict], page: int = 1, limit: int = 20) -> PageResult:
        matched = self.run(rows)
        start = (page - 1) * limit
        return PageResult(total=len(matched), page=page, limit=limit, items=matched[start:start + limit])
