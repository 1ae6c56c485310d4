from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

ANY_GENDER = "Any"


class Metric(BaseModel):
    """
    Reference-range record for one diagnostic metric.

    ``codes``/``units`` accept the provider's raw ``;``-delimited strings
    (``oru_sonic_codes``/``oru_sonic_units``) or sequences; blank entries are
    dropped. The "everlab" pair is the stricter band used to flag results.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    diagnostic_id: str = ""
    name: str
    standard_lower: float = 0.0
    standard_higher: float = 0.0
    everlab_lower: float = 0.0
    everlab_higher: float = 0.0
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    gender: Optional[str] = None
    codes: Tuple[str, ...] = Field(default=(), alias="oru_sonic_codes")
    units: Tuple[str, ...] = Field(default=(), alias="oru_sonic_units")

    @field_validator("id", "diagnostic_id", mode="before")
    @classmethod
    def _as_text(cls, v: Any):
        return "" if v is None else str(v).strip()

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("metric name is required")
        return v.strip()

    @field_validator("standard_lower", "standard_higher", "everlab_lower", "everlab_higher", mode="before")
    @classmethod
    def _blank_bound_is_zero(cls, v: Any):
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0.0
        return v

    @field_validator("min_age", "max_age", mode="before")
    @classmethod
    def _blank_age_is_none(cls, v: Any):
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            if not v:
                return None
            # "18.0" in spreadsheets exported as CSV
            try:
                return int(float(v))
            except ValueError:
                return v
        return v

    @field_validator("gender", mode="before")
    @classmethod
    def _blank_gender_is_none(cls, v: Any):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("codes", "units", mode="before")
    @classmethod
    def _split_list(cls, v: Any):
        if v is None:
            return ()
        items = v.split(";") if isinstance(v, str) else list(v)
        return tuple(s for s in (str(x).strip() for x in items) if s)

    @property
    def restricts_gender(self) -> bool:
        return self.gender is not None and self.gender.lower() != ANY_GENDER.lower()
