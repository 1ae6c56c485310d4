import re
from typing import Optional

from labscreen.commons.logger import match_trace
from labscreen.metrics.models import Metric
from labscreen.parsers.base import parse_leading_number
from labscreen.parsers.models import Observation

from .models import Verdict

# [op]number[-[op]number], e.g. "4.0-5.0", "<5", "3.5 - >1.0"
_RANGE_RE = re.compile(r"([<>]?)(\d+\.?\d*)\s*-?\s*([<>]?)(\d+\.?\d*)?")

_GENDER_ALIASES = {"MALE": "M", "FEMALE": "F"}


def _norm_gender(g: Optional[str]) -> str:
    g = (g or "").strip().upper()
    return _GENDER_ALIASES.get(g, g)


def _upper_only(value: float, bound: float) -> Verdict:
    return Verdict(is_abnormal=value >= bound, lower=0.0, upper=bound, source="inline")


def _lower_only(value: float, bound: float) -> Verdict:
    return Verdict(is_abnormal=value <= bound, lower=bound, upper=bound * 2, source="inline")


def parse_inline_range(value: float, text: str) -> Optional[Verdict]:
    """
    Judge ``value`` against the reference range printed in OBX-7.

    Returns None when the text holds no usable range; the caller then falls
    back to the metric's bounds.
    """
    text = (text or "").strip()
    if not text:
        return None

    if text[0] in "<>":
        bound = parse_leading_number(text[1:].lstrip("="))
        if bound is None:
            return None
        return _upper_only(value, bound) if text[0] == "<" else _lower_only(value, bound)

    m = _RANGE_RE.search(text)
    if not m:
        return None
    lower_op, lower_raw, upper_op, upper_raw = m.groups()
    lower = float(lower_raw)
    upper = float(upper_raw) if upper_raw else None

    if lower_op == "<":
        return _upper_only(value, lower)
    if upper_op == ">" and upper is not None:
        return _lower_only(value, upper)
    if lower_op == ">" and upper is None:
        return _lower_only(value, lower)
    if upper is not None:
        return Verdict(is_abnormal=value < lower or value > upper, lower=lower, upper=upper, source="inline")
    # a single bare number is read as a lower limit
    return Verdict(is_abnormal=value < lower, lower=lower, upper=lower * 2, source="inline")


class RangeEvaluator:
    """Decides whether an observation is abnormal for a given patient."""

    def is_eligible(self, metric: Metric, age: Optional[int], gender: Optional[str]) -> bool:
        # unknown age counts as 0; a bound of 0 means no bound
        age = age or 0
        if metric.min_age and age < metric.min_age:
            return False
        if metric.max_age and age > metric.max_age:
            return False
        if metric.restricts_gender and _norm_gender(gender) != _norm_gender(metric.gender):
            return False
        return True

    def evaluate(
        self,
        observation: Observation,
        metric: Optional[Metric] = None,
        age: Optional[int] = None,
        gender: Optional[str] = None,
    ) -> Optional[Verdict]:
        """
        Return a Verdict, or None when no verdict applies: the patient falls
        outside the metric's age/gender criteria, or there is neither a metric
        nor a usable inline range.
        """
        if metric is not None and not self.is_eligible(metric, age, gender):
            match_trace.trace(
                f"{observation.code}: paciente fuera de criterio "
                f"(edad {age}, género {gender!r}; métrica {metric.min_age}-{metric.max_age}, {metric.gender!r})"
            )
            return None

        if observation.reference_range:
            verdict = parse_inline_range(observation.value, observation.reference_range)
            if verdict is not None:
                match_trace.trace(
                    f"{observation.code}: rango del OBX {observation.reference_range!r} "
                    f"-> {verdict.lower}-{verdict.upper}, anormal={verdict.is_abnormal}"
                )
                return verdict
            match_trace.trace(f"{observation.code}: rango no interpretable {observation.reference_range!r}")

        if metric is None:
            return None

        verdict = Verdict(
            is_abnormal=observation.value < metric.everlab_lower or observation.value > metric.everlab_higher,
            lower=metric.everlab_lower,
            upper=metric.everlab_higher,
            source="metric",
        )
        match_trace.trace(
            f"{observation.code}: rango everlab {metric.everlab_lower}-{metric.everlab_higher}, "
            f"anormal={verdict.is_abnormal}"
        )
        return verdict
