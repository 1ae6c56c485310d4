from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Literal, Optional, Sequence, Tuple

from labscreen.commons.logger import match_trace

from .models import Metric

MatchTier = Literal["exact", "code", "unit", "partial_code", "partial_unit", "name"]


@dataclass(frozen=True)
class MetricMatch:
    metric: Metric
    tier: MatchTier

    @property
    def by_name(self) -> bool:
        """Name matches are only good for labelling, never for flagging a value."""
        return self.tier == "name"


def _overlaps(needle: str, candidates: Sequence[str]) -> bool:
    # "" is a substring of everything; never let it match
    if not needle:
        return False
    return any(c in needle or needle in c for c in candidates)


class MetricIndex:
    """
    Read-only lookup over metric records.

    Built once and never mutated; share it freely between threads. To pick up
    new reference data build a new index and swap the reference.
    Within each tier the first record in load order wins.
    """

    def __init__(self, metrics: Iterable[Metric]):
        self._metrics: Tuple[Metric, ...] = tuple(metrics)
        exact: Dict[Tuple[str, str], int] = {}
        by_code: Dict[str, int] = {}
        by_unit: Dict[str, int] = {}
        for pos, m in enumerate(self._metrics):
            for code in m.codes:
                by_code.setdefault(code, pos)
                for unit in m.units:
                    exact.setdefault((code, unit), pos)
            for unit in m.units:
                by_unit.setdefault(unit, pos)
        self._exact = exact
        self._by_code = by_code
        self._by_unit = by_unit

    def __len__(self) -> int:
        return len(self._metrics)

    def __iter__(self) -> Iterator[Metric]:
        return iter(self._metrics)

    @property
    def metrics(self) -> Tuple[Metric, ...]:
        return self._metrics

    def _found(self, pos: int, tier: MatchTier) -> MetricMatch:
        metric = self._metrics[pos]
        match_trace.trace(f"Match {tier}: {metric.name} (id={metric.id})")
        return MetricMatch(metric=metric, tier=tier)

    def lookup(self, code: str, unit: str) -> Optional[MetricMatch]:
        """Find the metric for an observation code/unit, trying each tier in turn."""
        match_trace.trace(f"Buscando métrica code={code!r} unit={unit!r}")

        pos = self._exact.get((code, unit))
        if pos is not None:
            return self._found(pos, "exact")
        pos = self._by_code.get(code)
        if pos is not None:
            return self._found(pos, "code")
        pos = self._by_unit.get(unit)
        if pos is not None:
            return self._found(pos, "unit")

        for pos, m in enumerate(self._metrics):
            if _overlaps(code, m.codes):
                return self._found(pos, "partial_code")
        for pos, m in enumerate(self._metrics):
            if _overlaps(unit, m.units):
                return self._found(pos, "partial_unit")

        match_trace.trace(f"Sin métrica para code={code!r} unit={unit!r}")
        return None

    def match_by_name(self, name: str) -> Optional[MetricMatch]:
        """Case-insensitive containment, either direction, against metric names."""
        needle = (name or "").strip().lower()
        if not needle:
            return None
        for pos, m in enumerate(self._metrics):
            hay = m.name.lower()
            if hay in needle or needle in hay:
                return self._found(pos, "name")
        match_trace.trace(f"Sin métrica por nombre para {name!r}")
        return None
