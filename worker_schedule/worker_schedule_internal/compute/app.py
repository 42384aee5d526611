"""
Command-line entry point: read one JSON compute request, write the JSON result.

PROMPT> schedule-engine request.json
PROMPT> cat request.json | SCHEDULE_ENGINE_LOG_LEVEL=DEBUG schedule-engine

The request must carry `"kind": "schedule"` or `"kind": "simulate"`.
Exit code 0 for an ok result, 2 for a structured error, 1 for unreadable input.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

# Load .env early, before importing modules that read SCHEDULE_ENGINE_* at import time.
from dotenv import load_dotenv
load_dotenv(Path.cwd() / ".env")

from worker_schedule_api.schedule_models import ComputeOk
from worker_schedule_internal.compute.boundary import handle_request
from worker_schedule_internal.monte_carlo.config import LOG_LEVEL

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_COMPUTE_ERROR = 2


def configure_logging(level_name: str = LOG_LEVEL) -> None:
    """Root logging to stderr; stdout is reserved for the JSON result."""
    log_level = getattr(logging, level_name.upper(), None)
    invalid_log_level = not isinstance(log_level, int)
    if invalid_log_level:
        log_level = logging.INFO

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.basicConfig(level=log_level, handlers=[stream_handler], force=True)
    logging.captureWarnings(True)

    if invalid_log_level:
        logger.warning("Invalid SCHEDULE_ENGINE_LOG_LEVEL %r; defaulting to INFO.", level_name)


def _read_payload(source: str):
    if source == "-":
        return json.load(sys.stdin)
    with open(source, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="schedule-engine", description=__doc__.splitlines()[1])
    parser.add_argument("request", nargs="?", default="-", help="Path to a JSON request, or - for stdin.")
    parser.add_argument("--log-level", default=LOG_LEVEL, help="Overrides SCHEDULE_ENGINE_LOG_LEVEL.")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print the JSON result.")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    try:
        payload = _read_payload(args.request)
    except (OSError, ValueError) as e:
        logger.error("Could not read request from %s: %s", args.request, e)
        return EXIT_BAD_INPUT

    result = handle_request(payload if isinstance(payload, dict) else {"kind": None})
    sys.stdout.write(json.dumps(result.model_dump(by_alias=True), indent=args.indent))
    sys.stdout.write("\n")
    return EXIT_OK if isinstance(result, ComputeOk) else EXIT_COMPUTE_ERROR


if __name__ == "__main__":
    sys.exit(main())
