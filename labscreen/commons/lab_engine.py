from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from labscreen.commons.exceptions import LabScreenError
from labscreen.commons.types import Settings
from labscreen.engine.aggregator import ResultAggregator, summarize_health
from labscreen.engine.models import AbnormalResult, AnalysisResult
from labscreen.metrics.index import MetricIndex
from labscreen.metrics.provider import CsvMetricProvider, MetricProvider, build_index
from labscreen.parsers.models import Observation, ParsedMessage, PatientDetails
from labscreen.parsers.oru import parse_oru


class LabEngine:
    """Engine facade: loads config and metrics once, then analyzes ORU messages.

    ``LabEngine(settings_yaml)``, ``LabEngine(dict)`` and ``LabEngine(Settings)``
    are all accepted. The metric index is read-only; ``reload_metrics`` builds
    a new one and swaps it in.
    """

    def __init__(
        self,
        config_path_or_obj: Any = None,
        provider: Optional[MetricProvider] = None,
        index: Optional[MetricIndex] = None,
    ):
        # Soportar rutas, dict o Settings ya cargado
        if isinstance(config_path_or_obj, Settings):
            self.settings = config_path_or_obj
        elif isinstance(config_path_or_obj, (str, Path)):
            self.settings = Settings.from_yaml(config_path_or_obj)
        elif isinstance(config_path_or_obj, dict):
            self.settings = Settings.model_validate(config_path_or_obj)
        else:
            self.settings = Settings()

        self.provider = provider or CsvMetricProvider(self.settings.paths.metrics_csv)
        self._index = index if index is not None else build_index(self.provider)

    @property
    def index(self) -> MetricIndex:
        return self._index

    def reload_metrics(self) -> MetricIndex:
        new_index = build_index(self.provider)
        # analyses already running keep the index they started with
        self._index = new_index
        logger.info(f"Índice de métricas recargado ({len(new_index)} métricas)")
        return new_index

    def parse(self, hl7_text: str, strict: Optional[bool] = None) -> ParsedMessage:
        if strict is None:
            strict = self.settings.parser.strict
        return parse_oru(hl7_text, strict=strict)

    def analyze(
        self,
        hl7_text: str,
        health_summary: Optional[bool] = None,
        strict: Optional[bool] = None,
    ) -> AnalysisResult:
        parsed = self.parse(hl7_text, strict=strict)
        aggregator = ResultAggregator(self._index)
        abnormal = aggregator.process(parsed.observations, parsed.patient)

        if health_summary is None:
            health_summary = self.settings.results.health_summary
        assessment = summarize_health(len(parsed.observations), len(abnormal)) if health_summary else None

        return AnalysisResult(
            patient=parsed.patient,
            observations=list(parsed.observations),
            abnormal_results=abnormal,
            health_assessment=assessment,
        )

    def to_payload(self, result: AnalysisResult) -> Dict:
        """Map an AnalysisResult into the JSON response shape (camelCase keys)."""
        data: Dict[str, Any] = {
            "patient": _patient_dict(result.patient),
            "observations": [_observation_dict(o) for o in result.observations],
            "abnormalResults": [_abnormal_dict(r) for r in result.abnormal_results],
        }
        if result.health_assessment is not None:
            h = result.health_assessment
            data["healthAssessment"] = {
                "score": h.score,
                "status": h.status,
                "message": h.message,
                "totalTests": h.total_tests,
                "normalTests": h.normal_tests,
                "abnormalTests": h.abnormal_tests,
            }
        return {
            "success": True,
            "message": f"Processed results for patient {result.patient.name}",
            "data": data,
        }


def error_payload(exc: Exception) -> Dict:
    kind = exc.kind if isinstance(exc, LabScreenError) else type(exc).__name__
    return {
        "success": False,
        "error": "Failed to process diagnostic file",
        "kind": kind,
        "details": str(exc),
    }


def _patient_dict(p: PatientDetails) -> Dict:
    return {
        "id": p.id,
        "name": p.name,
        "dateOfBirth": p.date_of_birth,
        "gender": p.gender,
        "age": p.age,
    }


def _observation_dict(o: Observation) -> Dict:
    return {
        "code": o.code,
        "name": o.name,
        "value": o.value,
        "unit": o.unit,
        "referenceRange": o.reference_range,
        "dateTime": o.date_time,
    }


def _abnormal_dict(r: AbnormalResult) -> Dict:
    out = _observation_dict(r.observation)
    out.update(
        {
            "isAbnormal": r.is_abnormal,
            "metricName": r.metric_name,
            "standardRange": r.standard_range,
            "everlabRange": r.everlab_range,
            "riskPercentage": r.risk_percentage,
            "riskValue": r.risk_value,
        }
    )
    return out
