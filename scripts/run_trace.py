"""Command line harness for the Pressograph synthetic pressure-trace generator."""

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_LOG_PATH = PROJECT_ROOT / "traces" / "latest_trace.json"

if PROJECT_ROOT.as_posix() not in sys.path:
    sys.path.insert(0, PROJECT_ROOT.as_posix())

from pressograph_sim import (
    RAMP_DURATION_MS,
    DriftConfig,
    ScheduleError,
    Stage,
    TestSchedule,
    build_report,
    compose_with_segments,
)
from pressograph_sim.config import load_run_file, parse_timestamp
from pressograph_sim.report import summarize_trace, write_summary_csv


def _parse_time(value: str) -> float:
    """Accept epoch milliseconds or an ISO-8601 timestamp."""

    try:
        return float(value) if "." in value else int(value)
    except ValueError:
        pass
    try:
        return parse_timestamp(value)
    except ScheduleError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_stage(value: str) -> Stage:
    """Parse a CLI `start:end:pressure` stage (times in milliseconds)."""

    parts = [part.strip() for part in value.split(":")]
    if len(parts) != 3 or not all(parts):
        raise argparse.ArgumentTypeError(
            f"Expected START:END:PRESSURE, received '{value}'."
        )

    try:
        start, end = (int(part) for part in parts[:2])
        pressure = float(parts[2])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            "Stage times must be integers and pressure a number."
        ) from exc

    return Stage(start_time=start, end_time=end, pressure=pressure)


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError("Expected a positive number. Received: %s" % value)
    return number


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError("Expected a non-negative number. Received: %s" % value)
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a synthetic pressure-test trace")
    parser.add_argument(
        "--schedule",
        type=Path,
        help=(
            "YAML/JSON run file with the test schedule and optional drift section. "
            "Cannot be combined with --start, --end, --working-pressure or --stage; "
            "drift flags override the file."
        ),
    )
    parser.add_argument("--start", type=_parse_time, help="Test start (ms or ISO-8601, default 0)")
    parser.add_argument(
        "--end", type=_parse_time, help="Test end (ms or ISO-8601, default 3600000)"
    )
    parser.add_argument(
        "--working-pressure",
        dest="working_pressure",
        type=_non_negative_float,
        help="Nominal hold pressure (default 10)",
    )
    parser.add_argument(
        "--stage",
        dest="stages",
        metavar="START:END:PRESSURE",
        type=_parse_stage,
        action="append",
        help="Intermediate stage window in ms; repeat for several stages",
    )
    parser.add_argument(
        "--seed",
        type=lambda value: int(value, 0),
        default=None,
        help="Trace seed (accepts decimal or 0x-prefixed hex); defaults to the wall clock",
    )
    parser.add_argument(
        "--drift",
        dest="drift_magnitude",
        type=_non_negative_float,
        help="Drift bound as a fraction of pressure (default 0.002)",
    )
    parser.add_argument(
        "--noise",
        dest="noise_magnitude",
        type=_non_negative_float,
        help="Noise standard deviation as a fraction of pressure (default 0.001)",
    )
    parser.add_argument(
        "--sampling-rate",
        dest="sampling_rate_seconds",
        type=_positive_float,
        help="Seconds between samples (default 1)",
    )
    parser.add_argument(
        "--ramp-duration",
        dest="ramp_duration_ms",
        type=_positive_float,
        default=RAMP_DURATION_MS,
        help="Length of every pressure transition in ms",
    )
    parser.add_argument(
        "--minutes",
        action="store_true",
        help="Report the time axis in minutes from the test start",
    )
    parser.add_argument(
        "--log",
        nargs="?",
        type=Path,
        const=DEFAULT_LOG_PATH,
        help=(
            "Persist the JSON report to disk. Provide a path or pass the flag alone to use "
            "traces/latest_trace.json under the repository root."
        ),
    )
    parser.add_argument(
        "--summary",
        type=Path,
        help="Write a per-segment CSV summary to this path",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging on stderr")
    return parser


def _resolve(path: Path) -> Path:
    if not path.is_absolute():
        path = (PROJECT_ROOT / path).resolve()
    return path


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    drift_options = {}
    if args.schedule is not None:
        inline = [
            flag
            for flag, value in (
                ("--start", args.start),
                ("--end", args.end),
                ("--working-pressure", args.working_pressure),
                ("--stage", args.stages),
            )
            if value is not None
        ]
        if inline:
            parser.error(f"--schedule cannot be combined with {', '.join(inline)}")
        try:
            schedule, drift_options = load_run_file(args.schedule)
        except (FileNotFoundError, ScheduleError) as exc:
            parser.error(str(exc))
    else:
        schedule = TestSchedule(
            start_time=0 if args.start is None else args.start,
            end_time=3_600_000 if args.end is None else args.end,
            working_pressure=10.0 if args.working_pressure is None else args.working_pressure,
            intermediate_stages=tuple(args.stages or ()),
        )

    for name in ("drift_magnitude", "noise_magnitude", "sampling_rate_seconds", "seed"):
        value = getattr(args, name)
        if value is not None:
            drift_options[name] = value

    try:
        cfg = DriftConfig(**drift_options)
        segments, samples = compose_with_segments(schedule, cfg, args.ramp_duration_ms)
    except ValueError as exc:
        parser.error(str(exc))

    result = build_report(
        schedule, cfg, segments, samples, args.ramp_duration_ms, minutes=args.minutes
    )

    log_path: Path | None = args.log
    if log_path is not None:
        log_path = _resolve(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_path.write_text(json.dumps(result, indent=2))

    if args.summary is not None:
        write_summary_csv(summarize_trace(samples, segments), _resolve(args.summary))

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
