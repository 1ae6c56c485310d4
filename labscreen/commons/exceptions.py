class LabScreenError(Exception):
    """Base exception for all labscreen errors."""

    kind = "LabScreenError"


class MessageParseError(LabScreenError):
    """Fatal structural problem with an ORU message."""

    kind = "MessageParseError"


class MalformedMessageError(MessageParseError):
    """Raised when the MSH segment, or the PID/OBR/OBX segments, are missing."""

    kind = "MalformedMessage"


class IncompletePatientError(MessageParseError):
    """Raised when the patient id or name is empty after parsing."""

    kind = "IncompletePatient"


class NoObservationsError(MessageParseError):
    """Raised when no numeric observation survived parsing."""

    kind = "NoObservations"


class MetricDataError(LabScreenError):
    """Raised when a metric record supplied by a provider fails validation."""

    kind = "MetricData"
