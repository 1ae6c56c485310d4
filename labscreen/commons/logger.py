import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

MATCH_CHANNEL = "match"

# Metric lookups and range decisions are logged here at TRACE level.
# setup_logging() drops this channel from every sink unless trace_matches is on.
match_trace = logger.bind(channel=MATCH_CHANNEL)


def _channel_filter(trace_matches: bool):
    def _filter(record) -> bool:
        if record["extra"].get("channel") == MATCH_CHANNEL:
            return trace_matches
        return True

    return _filter


def setup_logging(root: str, level: str = "INFO", trace_matches: bool = False):
    logdir = Path(root) / datetime.now().strftime("%Y/%m/%d")
    logdir.mkdir(parents=True, exist_ok=True)
    logfile = logdir / "app.log"
    sink_level = "TRACE" if trace_matches else level
    logger.remove()
    logger.add(
        str(logfile),
        rotation="00:00",
        retention="14 days",
        level=sink_level,
        filter=_channel_filter(trace_matches),
        enqueue=True,
        backtrace=True,
        diagnose=True,
    )
    logger.add(
        lambda m: print(m, end="", file=sys.stderr),
        level=sink_level,
        filter=_channel_filter(trace_matches),
    )
    return logger
