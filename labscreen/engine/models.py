from dataclasses import dataclass, field
from typing import List, Literal, Optional

from labscreen.parsers.models import Observation, PatientDetails

RiskLabel = Literal["Low", "High", "Normal"]
RangeSource = Literal["inline", "metric"]


@dataclass(frozen=True)
class Verdict:
    is_abnormal: bool
    lower: float  # band used for scoring
    upper: float
    source: RangeSource


@dataclass(frozen=True)
class RiskScore:
    percentage: int  # 0..100
    label: RiskLabel


@dataclass(frozen=True)
class AbnormalResult:
    observation: Observation
    is_abnormal: bool
    metric_name: Optional[str] = None
    standard_range: Optional[str] = None  # "lower-higher"
    everlab_range: Optional[str] = None
    risk_percentage: int = 0
    risk_value: RiskLabel = "Normal"
    match_tier: Optional[str] = None


@dataclass(frozen=True)
class HealthAssessment:
    score: int
    status: str
    message: str
    total_tests: int
    normal_tests: int
    abnormal_tests: int


@dataclass
class AnalysisResult:
    patient: PatientDetails
    observations: List[Observation] = field(default_factory=list)
    abnormal_results: List[AbnormalResult] = field(default_factory=list)
    health_assessment: Optional[HealthAssessment] = None
