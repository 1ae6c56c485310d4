from pathlib import Path
from typing import Literal, Union

import yaml
from pydantic import BaseModel, Field

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class AppCfg(BaseModel):
    name: str = "labscreen"


class PathsCfg(BaseModel):
    logs_root: str = "logs"
    metrics_csv: str = "data/diagnostic_metrics.csv"


class ParserCfg(BaseModel):
    strict: bool = True


class ResultsCfg(BaseModel):
    health_summary: bool = False


class LoggingCfg(BaseModel):
    level: LogLevel = "INFO"
    trace_matches: bool = False


class Settings(BaseModel):
    app: AppCfg = Field(default_factory=AppCfg)
    paths: PathsCfg = Field(default_factory=PathsCfg)
    parser: ParserCfg = Field(default_factory=ParserCfg)
    results: ResultsCfg = Field(default_factory=ResultsCfg)
    logging: LoggingCfg = Field(default_factory=LoggingCfg)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Settings":
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(yaml.safe_load(f) or {})
