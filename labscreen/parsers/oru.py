from typing import List, Optional

from loguru import logger

from labscreen.validation.validators import check_parsed, check_segments, enforce

from .base import Message, Segment, parse_leading_number
from .dates import calculate_age, format_date
from .models import Observation, ParsedMessage, PatientDetails

# PID - patient identification
PID_PATIENT_ID = 3  # CX: id^check digit^...
PID_PATIENT_NAME = 5  # XPN: family^given^...
PID_DATE_OF_BIRTH = 7  # YYYYMMDD
PID_SEX = 8

# OBR - observation request
OBR_OBSERVATION_DT = 7  # YYYYMMDD[HHMMSS]

# OBX - observation result
OBX_VALUE_TYPE = 2
OBX_IDENTIFIER = 3  # code^name^coding system
OBX_VALUE = 5
OBX_UNITS = 6  # unit^text^system
OBX_REFERENCE_RANGE = 7

STRUCTURED_NUMERIC = "SN"


def _parse_patient(seg: Segment) -> PatientDetails:
    raw_name = seg.value(PID_PATIENT_NAME) or ""
    raw_dob = seg.value(PID_DATE_OF_BIRTH) or ""
    return PatientDetails(
        id=seg.value(PID_PATIENT_ID, 1) or "",
        # family^given -> "family given"; only the first separator is replaced
        name=raw_name.replace(seg.seps.component, " ", 1),
        date_of_birth=format_date(raw_dob),
        gender=seg.value(PID_SEX) or "",
        age=calculate_age(raw_dob),
    )


def _parse_observation(seg: Segment, date_time: str) -> Optional[Observation]:
    value_type = seg.value(OBX_VALUE_TYPE)
    code = seg.value(OBX_IDENTIFIER, 1)
    name = seg.value(OBX_IDENTIFIER, 2)
    if not code or not name or not value_type:
        logger.debug(f"OBX descartado (sin código/nombre/tipo): {seg.raw[:60]}")
        return None

    value_field = seg.field(OBX_VALUE)
    if value_field is None:
        logger.debug(f"OBX {code} descartado: sin valor")
        return None
    raw_value = value_field.raw
    # SN: comparator^number, e.g. "<^5"
    if value_type == STRUCTURED_NUMERIC and value_field.has_component_sep():
        raw_value = value_field.component(2) or ""

    numeric = parse_leading_number(raw_value.replace("<", "").replace(">", ""))
    if numeric is None:
        logger.debug(f"OBX {code} descartado: valor no numérico {raw_value!r}")
        return None

    ref_range = (seg.value(OBX_REFERENCE_RANGE) or "").strip()
    return Observation(
        code=code,
        name=name,
        value=numeric,
        unit=seg.value(OBX_UNITS, 1) or "",
        reference_range=ref_range or None,
        date_time=date_time,
    )


def parse_oru(hl7_text: str, strict: bool = True) -> ParsedMessage:
    """
    Parse an ORU^R01 message into patient details and numeric observations.

    Each OBX inherits the timestamp of the most recent OBR. OBX segments that
    cannot be decoded are skipped. With ``strict`` (the default) structural
    problems raise a ``MessageParseError`` subclass; otherwise they are logged
    and whatever could be extracted is returned.
    """
    message = Message(hl7_text)

    enforce(check_segments(message), strict)

    patient = PatientDetails()
    observations: List[Observation] = []
    current_timestamp = ""

    for seg in message:
        if seg.type == "OBR":
            current_timestamp = format_date(seg.value(OBR_OBSERVATION_DT), include_time=True)
        elif seg.type == "PID":
            patient = _parse_patient(seg)
        elif seg.type == "OBX":
            obs = _parse_observation(seg, current_timestamp)
            if obs is not None:
                observations.append(obs)

    enforce(check_parsed(patient, observations), strict)

    logger.debug(f"ORU parseado: paciente={patient.id!r} observaciones={len(observations)}")
    return ParsedMessage(patient=patient, observations=tuple(observations))
