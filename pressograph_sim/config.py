"""Run-file loading: test schedules and drift parameters from YAML or JSON."""

import copy
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from .models import DriftConfig, ScheduleError, Stage, TestSchedule

logger = logging.getLogger(__name__)

_CONFIG_CACHE: Dict[str, Any] = {}

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000

# camelCase keys come straight from the web layer's test settings
_SCHEDULE_KEYS = {
    "start_time": ("start_time", "startTime"),
    "end_time": ("end_time", "endTime"),
    "working_pressure": ("working_pressure", "workingPressure"),
    "intermediate_stages": ("intermediate_stages", "intermediateStages", "stages"),
}

_STAGE_KEYS = {
    "start_time": ("start_time", "startTime"),
    "end_time": ("end_time", "endTime"),
    "offset_hours": ("offset_hours", "offsetHours", "time"),
    "duration_minutes": ("duration_minutes", "durationMinutes", "duration"),
    "pressure": ("pressure",),
}

_DRIFT_KEYS = {
    "drift_magnitude": ("drift_magnitude", "driftMagnitude"),
    "noise_magnitude": ("noise_magnitude", "noiseMagnitude"),
    "sampling_rate_seconds": ("sampling_rate_seconds", "samplingRateSeconds", "samplingRate"),
    "seed": ("seed",),
}


def load_config(path: Union[str, Path]) -> Any:
    """
    Load YAML config with per-file cache.
    """

    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    # entries are keyed on the absolute path and dropped when the file changes
    mtime = config_path.stat().st_mtime_ns
    cached = _CONFIG_CACHE.get(str(config_path))
    if cached is None or cached[0] != mtime:
        with open(config_path, "r", encoding="utf-8") as f:
            cached = (mtime, yaml.safe_load(f))
        _CONFIG_CACHE[str(config_path)] = cached
        logger.debug(f"loaded run file {config_path}")

    return copy.deepcopy(cached[1])


def clear_cache() -> None:
    _CONFIG_CACHE.clear()


def _pick(data: Mapping[str, Any], aliases: Tuple[str, ...]) -> Optional[Any]:
    for alias in aliases:
        if alias in data:
            return data[alias]
    return None


def _unknown_keys(data: Mapping[str, Any], table: Dict[str, Tuple[str, ...]]) -> set:
    known = {alias for aliases in table.values() for alias in aliases}
    return set(data) - known


def parse_timestamp(value: Any, field_name: str = "time") -> float:
    """Milliseconds from a number or an ISO-8601 string (naive means UTC)."""

    if isinstance(value, bool):
        raise ScheduleError(f"{field_name} must be a number or ISO-8601 string")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ScheduleError(f"{field_name} must be finite (got {value!r})")
        return value
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ScheduleError(f"{field_name}: cannot parse timestamp {value!r}") from exc
    else:
        raise ScheduleError(f"{field_name} must be a number or ISO-8601 string")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def _number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ScheduleError(f"{field_name} must be a number (got {value!r})")
    if not math.isfinite(value):
        raise ScheduleError(f"{field_name} must be finite (got {value!r})")
    return value


def _stage_from_dict(
    data: Mapping[str, Any], index: int, test_start: float, working_pressure: float
) -> Stage:
    label = f"stage {index}"
    if not isinstance(data, Mapping):
        raise ScheduleError(f"{label} must be a mapping")
    extra = _unknown_keys(data, _STAGE_KEYS)
    if extra:
        raise ScheduleError(f"{label} has unknown keys: {sorted(extra)}")

    pressure = _pick(data, _STAGE_KEYS["pressure"])
    pressure = working_pressure if pressure is None else _number(pressure, f"{label} pressure")

    start = _pick(data, _STAGE_KEYS["start_time"])
    end = _pick(data, _STAGE_KEYS["end_time"])
    if start is not None and end is not None:
        return Stage(
            start_time=parse_timestamp(start, f"{label} start_time"),
            end_time=parse_timestamp(end, f"{label} end_time"),
            pressure=pressure,
        )

    offset = _pick(data, _STAGE_KEYS["offset_hours"])
    duration = _pick(data, _STAGE_KEYS["duration_minutes"])
    if offset is not None and duration is not None:
        stage_start = test_start + _number(offset, f"{label} offset_hours") * MS_PER_HOUR
        stage_end = stage_start + _number(duration, f"{label} duration_minutes") * MS_PER_MINUTE
        return Stage(start_time=stage_start, end_time=stage_end, pressure=pressure)

    raise ScheduleError(
        f"{label} needs start_time/end_time or offset_hours/duration_minutes"
    )


def schedule_from_dict(data: Mapping[str, Any]) -> TestSchedule:
    if not isinstance(data, Mapping):
        raise ScheduleError("schedule must be a mapping")
    extra = _unknown_keys(data, _SCHEDULE_KEYS)
    if extra:
        raise ScheduleError(f"schedule has unknown keys: {sorted(extra)}")

    values = {name: _pick(data, aliases) for name, aliases in _SCHEDULE_KEYS.items()}
    for name in ("start_time", "end_time", "working_pressure"):
        if values[name] is None:
            raise ScheduleError(f"schedule is missing {name}")

    start = parse_timestamp(values["start_time"], "start_time")
    end = parse_timestamp(values["end_time"], "end_time")
    working = _number(values["working_pressure"], "working_pressure")

    raw_stages = values["intermediate_stages"] or []
    if not isinstance(raw_stages, list):
        raise ScheduleError("intermediate_stages must be a list")
    stages = tuple(
        _stage_from_dict(item, index, start, working) for index, item in enumerate(raw_stages)
    )

    return TestSchedule(
        start_time=start,
        end_time=end,
        working_pressure=working,
        intermediate_stages=stages,
    )


def drift_options_from_dict(data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Normalised DriftConfig keyword arguments; absent keys are left out."""

    if not data:
        return {}
    if not isinstance(data, Mapping):
        raise ScheduleError("drift section must be a mapping")
    extra = _unknown_keys(data, _DRIFT_KEYS)
    if extra:
        raise ScheduleError(f"drift section has unknown keys: {sorted(extra)}")

    options: Dict[str, Any] = {}
    for name, aliases in _DRIFT_KEYS.items():
        value = _pick(data, aliases)
        if value is not None:
            if name == "seed":
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ScheduleError(f"seed must be an integer (got {value!r})")
                options[name] = value
            else:
                options[name] = _number(value, name)
    return options


def drift_config_from_dict(data: Optional[Mapping[str, Any]]) -> DriftConfig:
    options = drift_options_from_dict(data)
    try:
        return DriftConfig(**options)
    except ValueError as exc:
        raise ScheduleError(str(exc)) from exc


def load_run_file(path: Union[str, Path]) -> Tuple[TestSchedule, Dict[str, Any]]:
    """
    Read a run file and return the schedule plus drift keyword arguments.

    Either a bare schedule mapping or one with ``schedule`` and ``drift``
    sections is accepted.
    """

    data = load_config(path)
    if not isinstance(data, Mapping):
        raise ScheduleError(f"{path}: expected a mapping at the top level")

    if "schedule" in data:
        extra = set(data) - {"schedule", "drift"}
        if extra:
            raise ScheduleError(f"{path}: unknown sections {sorted(extra)}")
        return schedule_from_dict(data["schedule"]), drift_options_from_dict(data.get("drift"))

    return schedule_from_dict(data), {}
