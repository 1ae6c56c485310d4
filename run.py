import json
import os
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from labscreen.commons.exceptions import LabScreenError
from labscreen.commons.lab_engine import LabEngine, error_payload
from labscreen.commons.logger import setup_logging
from labscreen.commons.types import LoggingCfg, Settings
from labscreen.metrics.provider import CsvMetricProvider
from labscreen.parsers.oru import parse_oru

app = typer.Typer(add_completion=False, help="ORU abnormal-result screening")


def resource_path(relative_path: str) -> str:
    """Ruta absoluta a un recurso relativo a este archivo."""
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), relative_path)


def load_cfg(path: Optional[str] = None) -> Settings:
    cfg = Settings.from_yaml(path or resource_path("labscreen/configs/settings.yaml"))
    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        try:
            cfg.logging = LoggingCfg(level=env_level.upper(), trace_matches=cfg.logging.trace_matches)
        except ValidationError:
            typer.echo(f"LOG_LEVEL inválido {env_level!r}, se usa {cfg.logging.level}", err=True)
    return cfg


def _read_message(file: Path) -> str:
    # HL7 suele venir en UTF-8; algunos equipos envían latin-1
    raw = file.read_bytes()
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def _echo_error(exc: Exception) -> None:
    typer.echo(json.dumps(error_payload(exc), ensure_ascii=False, indent=2))


@app.command()
def analyze(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Mensaje HL7 ORU"),
    config: Optional[str] = typer.Option(None, help="settings.yaml alternativo"),
    metrics: Optional[Path] = typer.Option(None, help="CSV de métricas (reemplaza paths.metrics_csv)"),
    summary: Optional[bool] = typer.Option(None, "--summary/--no-summary", help="Incluye healthAssessment"),
    lenient: bool = typer.Option(False, help="No aborta ante segmentos o paciente faltantes"),
    trace: bool = typer.Option(False, help="Traza cada decisión de coincidencia de métricas"),
):
    """Parse an ORU message and print its abnormal results as JSON."""
    cfg = load_cfg(config)
    if metrics is not None:
        cfg.paths.metrics_csv = str(metrics)
    logger = setup_logging(
        cfg.paths.logs_root, cfg.logging.level, trace_matches=trace or cfg.logging.trace_matches
    )
    logger.info(f"Analizando {file}")

    try:
        engine = LabEngine(cfg, provider=CsvMetricProvider(cfg.paths.metrics_csv))
        result = engine.analyze(
            _read_message(file), health_summary=summary, strict=False if lenient else None
        )
    except (LabScreenError, OSError) as ex:
        logger.error(f"Error procesando {file}: {ex}")
        _echo_error(ex)
        raise typer.Exit(code=1)

    if result.abnormal_results:
        logger.info(f"{len(result.abnormal_results)} resultado(s) anormal(es) en {file.name}")
    else:
        logger.info(f"Sin resultados anormales en {file.name}")
    typer.echo(json.dumps(engine.to_payload(result), ensure_ascii=False, indent=2))


@app.command()
def check(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Mensaje HL7 ORU"),
    config: Optional[str] = typer.Option(None, help="settings.yaml alternativo"),
):
    """Validate the message structure and print the patient and observation count."""
    cfg = load_cfg(config)
    logger = setup_logging(cfg.paths.logs_root, cfg.logging.level)
    try:
        parsed = parse_oru(_read_message(file), strict=True)
    except LabScreenError as ex:
        logger.error(f"Mensaje inválido {file}: {ex}")
        _echo_error(ex)
        raise typer.Exit(code=1)

    typer.echo(
        json.dumps(
            {
                "success": True,
                "patient": {"id": parsed.patient.id, "name": parsed.patient.name},
                "observations": len(parsed.observations),
            },
            ensure_ascii=False,
        )
    )


if __name__ == "__main__":
    app()
