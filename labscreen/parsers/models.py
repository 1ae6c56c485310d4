# ===============================
# File: labscreen/parsers/models.py
# ===============================
from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class PatientDetails:
    id: str = ""
    name: str = ""
    date_of_birth: str = ""  # DD/MM/YYYY
    gender: str = ""
    age: Optional[int] = None


@dataclass(frozen=True)
class Observation:
    code: str
    name: str
    value: float
    unit: str = ""
    reference_range: Optional[str] = None  # OBX-7, unparsed
    date_time: str = ""  # from the preceding OBR-7


@dataclass(frozen=True)
class ParsedMessage:
    patient: PatientDetails
    observations: Tuple[Observation, ...] = field(default_factory=tuple)
