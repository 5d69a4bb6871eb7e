# pyright: basic

"""
tools/schedule_config.py

Generator limits and target constants for gensched.

Defaults match the WPC platform (1 interrupt = 976 microseconds = 1952 CPU
cycles). Any subset of the fields may be overridden from a YAML file, e.g.

    max_ticks: 8
    prefix: tick
    cycles_per_tick: 1952
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone

import yaml

from schedule_diagnostics import ScheduleError

DEFAULT_CONFIG_PATH = "config/gensched.yaml"


@dataclass
class GeneratorConfig:
    # Unrolling and static table sizes
    max_ticks: int = 8
    tick_limit: int = 32
    max_slots_per_tick: int = 32
    max_tasks: int = 64
    max_divider: int = 255

    # Target timing
    cycles_per_tick: int = 1952
    cycles_per_call: int = 7
    cycles_per_return: int = 5

    # Inline advice thresholds, in cycles
    inline_max_cycles: int = 200
    inline_min_cycles: int = 40

    # Reports flag ticks above this load
    warn_utilization_high: float = 0.80

    # Generated code
    prefix: str = "tick"
    attr_interrupt: str = "__interrupt__"
    attr_fastvar: str = '__attribute__((section ("direct")))'

    def validate(self) -> "GeneratorConfig":
        if self.tick_limit < 1 or not is_power_of_two(self.tick_limit):
            raise ScheduleError(f"tick_limit {self.tick_limit} must be a power of 2")
        if not is_power_of_two(self.max_ticks):
            raise ScheduleError(
                f"invalid maximum ticks '{self.max_ticks}' (must be power of 2)"
            )
        if self.max_ticks > self.tick_limit:
            raise ScheduleError(
                f"maximum ticks {self.max_ticks} exceeds the tick table size "
                f"({self.tick_limit})"
            )
        for name in ("max_slots_per_tick", "max_tasks", "max_divider", "cycles_per_tick"):
            if getattr(self, name) < 1:
                raise ScheduleError(f"{name} must be at least 1")
        if self.max_divider > 255:
            raise ScheduleError("max_divider cannot exceed 255 (one byte counter)")
        if not self.prefix.isidentifier():
            raise ScheduleError(f"invalid prefix '{self.prefix}'")
        return self


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def config_from_dict(data: dict | None) -> GeneratorConfig:
    data = data or {}
    if not isinstance(data, dict):
        raise ScheduleError("generator configuration must be a mapping")

    known = {f.name: f for f in fields(GeneratorConfig)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ScheduleError(f"unknown configuration keys: {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        default = getattr(GeneratorConfig, key)
        try:
            if isinstance(value, bool) and not isinstance(default, bool):
                raise TypeError(key)
            if isinstance(default, int) and isinstance(value, float) and not value.is_integer():
                raise ValueError(key)
            values[key] = type(default)(value)
        except (TypeError, ValueError):
            raise ScheduleError(f"invalid value '{value}' for configuration key '{key}'")

    return GeneratorConfig(**values).validate()


def load_config(path: str | None) -> GeneratorConfig:
    """Load a YAML configuration; with no path, use the defaults."""
    if path is None:
        return GeneratorConfig().validate()
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ScheduleError(f"cannot open configuration '{path}': {e.strerror}")
    except yaml.YAMLError as e:
        raise ScheduleError(f"invalid configuration '{path}': {e}")
    return config_from_dict(data)


def write_config(config: GeneratorConfig, output: str):
    header = [
        f"# Generated: {datetime.now(timezone.utc).isoformat()}Z",
        f"# generator: gensched.py",
        "",
    ]

    os.makedirs(os.path.dirname(output) or ".", exist_ok=True)
    with open(output, "w") as f:
        for line in header:
            f.write(line + "\n")
        yaml.safe_dump(asdict(config), f, sort_keys=False)

    print(f"Generator config written to: {output}")
