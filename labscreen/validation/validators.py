# labscreen/validation/validators.py
from typing import List, Sequence

from loguru import logger

from labscreen.commons.exceptions import (
    IncompletePatientError,
    MalformedMessageError,
    MessageParseError,
    NoObservationsError,
)
from labscreen.parsers.base import Message
from labscreen.parsers.models import Observation, PatientDetails


def check_segments(message: Message) -> List[MessageParseError]:
    """Structural problems detectable before the parsing pass."""
    problems: List[MessageParseError] = []
    if not message.has_segment("MSH"):
        problems.append(MalformedMessageError("Invalid HL7 message: missing MSH segment"))
    has_results = message.has_segment("OBR") or message.has_segment("OBX")
    if not message.has_segment("PID") or not has_results:
        problems.append(
            MalformedMessageError("Invalid HL7 message: missing required segments (PID and OBR/OBX)")
        )
    return problems


def check_parsed(patient: PatientDetails, observations: Sequence[Observation]) -> List[MessageParseError]:
    """Problems with the extracted content once the pass is complete."""
    problems: List[MessageParseError] = []
    if not patient.id or not patient.name:
        problems.append(
            IncompletePatientError("Invalid HL7 message: missing required patient information")
        )
    if not observations:
        problems.append(NoObservationsError("Invalid HL7 message: no valid observations found"))
    return problems


def enforce(problems: Sequence[MessageParseError], strict: bool) -> None:
    """Strict: levanta el primer error. Lenient: solo deja constancia en el log."""
    if not problems:
        return
    if strict:
        raise problems[0]
    for p in problems:
        logger.warning(f"Parse lenient ({p.kind}): {p}")
