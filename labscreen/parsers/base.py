import math
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class Separators:
    field: str = "|"
    component: str = "^"
    repetition: str = "~"
    escape: str = "\\"
    subcomponent: str = "&"


def split_segments(hl7_text: str) -> List[str]:
    """Divide en segmentos HL7 (CR, LF o CRLF); recorta y omite vacíos."""
    # BOM de archivos guardados como "UTF-8 con BOM"
    text = (hl7_text or "").lstrip("\ufeff")
    return [s.strip() for s in re.split(r"\r\n|\n|\r", text) if s.strip()]


def detect_separators(lines: List[str]) -> Separators:
    """
    Detecta separadores desde MSH:
    - field sep = MSH-1 (cuarto carácter del segmento)
    - encoding chars (MSH-2): comp, rept, esc, subcomp
    Sin MSH utilizable se usan los valores por defecto de HL7.
    """
    msh = next((line for line in lines if line.startswith("MSH")), "")
    if len(msh) < 4 or msh[3].isalnum() or msh[3].isspace():
        return Separators()
    field_sep = msh[3]
    enc = msh[4:].split(field_sep, 1)[0]
    defaults = Separators()
    return Separators(
        field=field_sep,
        component=enc[0] if len(enc) > 0 else defaults.component,
        repetition=enc[1] if len(enc) > 1 else defaults.repetition,
        escape=enc[2] if len(enc) > 2 else defaults.escape,
        subcomponent=enc[3] if len(enc) > 3 else defaults.subcomponent,
    )


def _split_fields(line: str, seps: Separators) -> List[str]:
    # A field separator preceded by the escape character is part of the value.
    pattern = "(?<!" + re.escape(seps.escape) + ")" + re.escape(seps.field)
    return re.split(pattern, line)


class Field:
    """A single field; components are addressed 1-indexed."""

    def __init__(self, raw: str, component_sep: str = "^"):
        self.raw = raw
        self.component_sep = component_sep

    @property
    def components(self) -> List[str]:
        return self.raw.split(self.component_sep)

    def component(self, index: int) -> Optional[str]:
        """Return component ``index`` (1-based) or None when it is not present."""
        comps = self.components
        if index < 1 or index > len(comps):
            return None
        return comps[index - 1]

    def has_component_sep(self) -> bool:
        return self.component_sep in self.raw

    def __repr__(self) -> str:
        return f"Field({self.raw!r})"


class Segment:
    """
    One HL7 segment split into fields.

    ``field(n)`` follows HL7 numbering: PID-3 is ``field(3)``. For MSH the
    numbering is shifted because MSH-1 is the field separator itself.
    A field beyond the end of the segment is reported as None (missing),
    while a present but empty field is an empty ``Field``.
    """

    def __init__(self, line: str, seps: Optional[Separators] = None):
        self.seps = seps or Separators()
        self.raw = line
        self._fields = _split_fields(line, self.seps)
        self.type = self._fields[0]

    def field(self, index: int) -> Optional[Field]:
        if self.type == "MSH":
            if index == 1:
                return Field(self.seps.field, self.seps.component)
            idx = index - 1
        else:
            idx = index
        if idx < 1 or idx >= len(self._fields):
            return None
        return Field(self._fields[idx], self.seps.component)

    def value(self, index: int, component: Optional[int] = None) -> Optional[str]:
        """Shortcut for ``field(index)`` or one of its components; None when missing."""
        f = self.field(index)
        if f is None:
            return None
        if component is None:
            return f.raw
        return f.component(component)

    def __len__(self) -> int:
        return len(self._fields) - 1

    def __repr__(self) -> str:
        return f"Segment({self.type!r}, fields={len(self)})"


class Message:
    """Ordered segments of one HL7 message, sharing the separators declared in MSH."""

    def __init__(self, hl7_text: str):
        lines = split_segments(hl7_text)
        self.separators = detect_separators(lines)
        self.segments = [Segment(line, self.separators) for line in lines]

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def has_segment(self, seg_type: str) -> bool:
        return any(s.type == seg_type for s in self.segments)


_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_leading_number(text: Optional[str]) -> Optional[float]:
    """
    Parse the number at the start of ``text`` ("7.55 ng/mL" -> 7.55).
    Returns None when there is no leading number or it is not finite.
    """
    m = _NUMBER_PREFIX.match(text or "")
    if not m:
        return None
    value = float(m.group(0))
    return value if math.isfinite(value) else None
