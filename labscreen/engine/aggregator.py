from typing import List, Optional, Sequence

from loguru import logger

from labscreen.commons.logger import match_trace
from labscreen.metrics.index import MetricIndex, MetricMatch
from labscreen.parsers.models import Observation, PatientDetails

from .evaluator import RangeEvaluator
from .models import AbnormalResult, HealthAssessment, Verdict
from .risk import score_risk

# (score below, status, message); anything else is Excellent
HEALTH_TIERS = (
    (
        60,
        "Poor",
        "Your test results suggest some areas that need attention. We recommend scheduling "
        "a follow-up with your healthcare provider to discuss these results.",
    ),
    (
        80,
        "Fair",
        "Your test results show some areas for improvement. Consider discussing these results "
        "with your healthcare provider to develop a plan for better health.",
    ),
    (
        90,
        "Good",
        "Your test results indicate good overall health. Continue your healthy habits and "
        "regular check-ups.",
    ),
)
EXCELLENT = (
    "Excellent",
    "Your test results indicate excellent overall health. Keep maintaining your healthy lifestyle!",
)


def format_number(x: float) -> str:
    """4.0 -> "4", 4.5 -> "4.5"."""
    x = float(x)
    return str(int(x)) if x.is_integer() else repr(x)


def format_range(lower: float, upper: float) -> str:
    return f"{format_number(lower)}-{format_number(upper)}"


def summarize_health(total_tests: int, abnormal_tests: int) -> HealthAssessment:
    """Share of normal tests with a qualitative label; an empty report counts as 100."""
    normal_tests = max(total_tests - abnormal_tests, 0)
    score = int(normal_tests * 100 / total_tests + 0.5) if total_tests else 100
    status, message = EXCELLENT
    for limit, tier_status, tier_message in HEALTH_TIERS:
        if score < limit:
            status, message = tier_status, tier_message
            break
    return HealthAssessment(
        score=score,
        status=status,
        message=message,
        total_tests=total_tests,
        normal_tests=normal_tests,
        abnormal_tests=abnormal_tests,
    )


class ResultAggregator:
    """Runs every observation through lookup, range evaluation and scoring."""

    def __init__(self, index: MetricIndex, evaluator: Optional[RangeEvaluator] = None):
        self.index = index
        self.evaluator = evaluator or RangeEvaluator()

    def _build(
        self, obs: Observation, match: Optional[MetricMatch], verdict: Optional[Verdict]
    ) -> AbnormalResult:
        metric = match.metric if match else None
        is_abnormal = bool(verdict and verdict.is_abnormal)
        risk = score_risk(obs.value, verdict.lower, verdict.upper) if is_abnormal else None
        return AbnormalResult(
            observation=obs,
            is_abnormal=is_abnormal,
            metric_name=metric.name if metric else None,
            standard_range=format_range(metric.standard_lower, metric.standard_higher) if metric else None,
            everlab_range=format_range(metric.everlab_lower, metric.everlab_higher) if metric else None,
            risk_percentage=risk.percentage if risk else 0,
            risk_value=risk.label if risk else "Normal",
            match_tier=match.tier if match else None,
        )

    def evaluate(self, obs: Observation, patient: PatientDetails) -> Optional[AbnormalResult]:
        """
        Result for a single observation, abnormal or not, or None when no
        verdict applies (patient outside the metric criteria, or nothing to
        compare against).
        """
        match_trace.trace(f"Observación {obs.name} ({obs.code}) = {obs.value} {obs.unit}")
        match = self.index.lookup(obs.code, obs.unit)
        if match is None:
            named = self.index.match_by_name(obs.name)
            if named is not None:
                # labelled only: a name match is not trusted to flag a value
                return self._build(obs, named, None)
            verdict = self.evaluator.evaluate(obs, None, patient.age, patient.gender)
            if verdict is None:
                match_trace.trace(f"{obs.code}: sin métrica ni rango, se omite")
                return None
            return self._build(obs, None, verdict)

        verdict = self.evaluator.evaluate(obs, match.metric, patient.age, patient.gender)
        if verdict is None:
            return None
        return self._build(obs, match, verdict)

    def process(self, observations: Sequence[Observation], patient: PatientDetails) -> List[AbnormalResult]:
        """Abnormal results only, in the order the observations arrived."""
        logger.debug(
            f"Procesando {len(observations)} observaciones (edad {patient.age}, género {patient.gender!r})"
        )
        results: List[AbnormalResult] = []
        for obs in observations:
            result = self.evaluate(obs, patient)
            if result is not None and result.is_abnormal:
                logger.debug(f"Anormal: {obs.name} ({obs.value} {obs.unit}) {result.risk_value} {result.risk_percentage}%")
                results.append(result)
        logger.info(f"{len(results)} resultado(s) anormal(es) de {len(observations)}")
        return results
