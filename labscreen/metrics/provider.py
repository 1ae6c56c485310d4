import csv
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Protocol, Union

from loguru import logger
from pydantic import ValidationError

from labscreen.commons.exceptions import MetricDataError

from .index import MetricIndex
from .models import Metric

METRIC_COLUMNS = (
    "id",
    "diagnostic_id",
    "name",
    "standard_lower",
    "standard_higher",
    "everlab_lower",
    "everlab_higher",
    "min_age",
    "max_age",
    "gender",
    "oru_sonic_codes",
    "oru_sonic_units",
)


class MetricProvider(Protocol):
    def load(self) -> List[Metric]: ...


def _to_metric(record: Union[Metric, Mapping[str, Any]], where: str) -> Metric:
    if isinstance(record, Metric):
        return record
    try:
        return Metric.model_validate(dict(record))
    except ValidationError as ve:
        raise MetricDataError(f"Métrica inválida en {where}: {ve}") from ve


class StaticMetricProvider:
    """Metrics already in memory (dicts with the CSV column names, or Metric objects)."""

    def __init__(self, records: Iterable[Union[Metric, Mapping[str, Any]]]):
        self.records = list(records)

    def load(self) -> List[Metric]:
        return [_to_metric(r, f"registro {i}") for i, r in enumerate(self.records)]


class CsvMetricProvider:
    """diagnostic_metrics.csv: one header row, columns as in METRIC_COLUMNS."""

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding

    def load(self) -> List[Metric]:
        with open(self.path, "r", encoding=self.encoding, newline="") as f:
            reader = csv.DictReader(f)
            if "name" not in (reader.fieldnames or []):
                raise MetricDataError(f"{self.path}: falta la columna 'name'")
            absent = [c for c in METRIC_COLUMNS if c not in reader.fieldnames]
            if absent:
                logger.warning(f"{self.path.name}: columnas ausentes {absent}, se usan valores por defecto")
            metrics = []
            # line 1 is the header
            for lineno, raw in enumerate(reader, start=2):
                row = {k: v for k, v in raw.items() if k is not None}
                if not any((v or "").strip() for v in row.values()):
                    continue
                metrics.append(_to_metric(row, f"{self.path.name}:{lineno}"))
        logger.info(f"Cargadas {len(metrics)} métricas desde {self.path}")
        return metrics


def build_index(provider: MetricProvider) -> MetricIndex:
    index = MetricIndex(provider.load())
    for m in index.metrics[:5]:
        logger.debug(f"- {m.name}: codes={','.join(m.codes)} units={','.join(m.units)}")
    return index
