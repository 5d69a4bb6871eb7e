# pyright: basic

"""
tools/schedule_parser.py

Reads task declarations into a schedule.  Each task is handed to the
allocator as soon as it is read, since where a task goes depends on the
tasks before it.

Text input, one task per line:

  <name>[/<n>][?<conditional>] <period> <length>

'period' is how often the task runs and 'length' how long one run takes
on average, both in interrupts.  Either may be given in CPU cycles instead
by appending 'c'.  A leading '!' on the name marks an inline macro, a
'/<n>' suffix says the function already comes in <n> unrolled variants,
and '?<conditional>' drops the entry unless that conditional was defined.
'#' starts a comment.

YAML input (.yaml/.yml) carries the same information as a task list:

  tasks:
    - name: switch_rtt
      period: 2
      length: 300c
      inline: true
"""

import math
import os
import re
import sys

import yaml

from schedule_config import is_power_of_two
from schedule_diagnostics import ScheduleError
from schedule_model import ScheduleContext, Task
from tick_allocator import TickAllocator

YAML_SUFFIXES = (".yaml", ".yml")

RE_TASK_NAME = re.compile(
    r"^(?P<name>!?[A-Za-z_]\w*)"
    r"(?:/(?P<pre>[1-9]))?"
    r"(?:\?(?P<cond>\w+))?"
    r"(?:/(?P<post>[1-9]))?$",
    re.ASCII,
)

RE_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*$", re.ASCII)


def parse_time(text: str, cycles_per_tick: int) -> float:
    """Parse a time given in interrupts, or in cycles with a 'c' suffix."""
    text = str(text).strip()
    if text[-1:] in ("c", "C"):
        return float(text[:-1]) / cycles_per_tick
    return float(text)


def parse_task_name(token: str, where: str):
    """Split a declared name into (name, inline, conditional, unrolled)."""
    m = RE_TASK_NAME.match(token)
    if not m:
        raise ScheduleError(f"{where}: invalid task name '{token}'")
    if m["pre"] and m["post"]:
        raise ScheduleError(f"{where}: '{token}' gives the unrolled count twice")

    name = m["name"]
    inline = name.startswith("!")
    unrolled = int(m["pre"] or m["post"] or 0)
    return name.lstrip("!"), inline, m["cond"], unrolled


def declare_task(
    ctx: ScheduleContext,
    allocator: TickAllocator,
    label: str,
    name: str,
    period_text,
    length_text,
    where: str,
    inline: bool = False,
    conditional: str | None = None,
    unrolled: int = 0,
):
    """
    Validate one declaration and schedule it.  Returns the new Task, or None
    if the declaration depends on an undefined conditional.
    """
    cycles_per_tick = ctx.config.cycles_per_tick

    try:
        period = int(parse_time(period_text, cycles_per_tick))
    except (ValueError, OverflowError):
        raise ScheduleError(f"{where}: invalid period '{period_text}' for '{label}'")
    if not is_power_of_two(period):
        raise ScheduleError(
            f"{where}: invalid period '{period}' for '{label}' (must be power of 2)"
        )

    try:
        length = parse_time(length_text, cycles_per_tick)
    except ValueError:
        raise ScheduleError(f"{where}: invalid length '{length_text}' for '{label}'")
    if not math.isfinite(length):
        raise ScheduleError(f"{where}: invalid length '{length_text}' for '{label}'")
    if length >= period:
        raise ScheduleError(f"{where}: '{label}' has length greater than its period")
    if length < 0:
        raise ScheduleError(f"{where}: '{label}' has a negative length")

    if conditional is not None and conditional not in ctx.conditionals:
        ctx.skipped.append(label)
        ctx.warn(f"skipping entry for '{label}'")
        return None

    task = Task(
        name,
        period,
        length,
        inline=inline,
        conditional=conditional,
        already_unrolled_count=unrolled,
    )
    return allocator.add_task(task)


def parse_schedule(lines, ctx: ScheduleContext, allocator: TickAllocator, source="<stdin>"):
    """Parse text declarations from LINES.  Returns the tasks scheduled."""
    tasks = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0]
        fields = line.split()
        if not fields:
            continue

        where = f"{source}:{lineno}"
        if len(fields) < 3:
            raise ScheduleError(f"{where}: expected '<name> <period> <length>'")
        if len(fields) > 3:
            raise ScheduleError(f"{where}: unexpected text after '{fields[2]}'")

        label, period_text, length_text = fields
        name, inline, conditional, unrolled = parse_task_name(label, where)
        task = declare_task(
            ctx,
            allocator,
            label,
            name,
            period_text,
            length_text,
            where,
            inline=inline,
            conditional=conditional,
            unrolled=unrolled,
        )
        if task is not None:
            tasks.append(task)

    return tasks


def parse_yaml_schedule(data, ctx: ScheduleContext, allocator: TickAllocator, source):
    if not isinstance(data, dict) or not isinstance(data.get("tasks", []), list):
        raise ScheduleError(f"{source}: expected a mapping with a 'tasks' list")

    tasks = []
    for idx, entry in enumerate(data.get("tasks") or []):
        where = f"{source}: tasks[{idx}]"
        if not isinstance(entry, dict):
            raise ScheduleError(f"{where} must be a mapping")
        missing = [key for key in ("name", "period", "length") if key not in entry]
        if missing:
            raise ScheduleError(f"{where} is missing {', '.join(missing)}")

        name = str(entry["name"])
        if not RE_IDENTIFIER.match(name):
            raise ScheduleError(f"{where}: invalid task name '{name}'")
        conditional = entry.get("conditional")
        inline = entry.get("inline", False)
        if not isinstance(inline, bool):
            raise ScheduleError(f"{where}: inline must be true or false")
        try:
            unrolled = int(entry.get("unrolled", 0))
        except (TypeError, ValueError):
            raise ScheduleError(f"{where}: invalid unrolled count '{entry['unrolled']}'")
        if not 0 <= unrolled <= 9:
            raise ScheduleError(f"{where}: unrolled count {unrolled} out of range")

        label = name if conditional is None else f"{name}?{conditional}"
        task = declare_task(
            ctx,
            allocator,
            label,
            name,
            entry["period"],
            entry["length"],
            where,
            inline=inline,
            conditional=None if conditional is None else str(conditional),
            unrolled=unrolled,
        )
        if task is not None:
            tasks.append(task)

    return tasks


def load_schedule_file(path: str, ctx: ScheduleContext, allocator: TickAllocator):
    """Parse one input file; '-' reads standard input."""
    if path == "-":
        return parse_schedule(sys.stdin, ctx, allocator)

    try:
        with open(path, "r") as f:
            if os.path.splitext(path)[1].lower() in YAML_SUFFIXES:
                try:
                    data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ScheduleError(f"{path}: invalid YAML: {e}")
                return parse_yaml_schedule(data, ctx, allocator, path)
            return parse_schedule(f, ctx, allocator, source=path)
    except OSError as e:
        raise ScheduleError(f"cannot open '{path}': {e.strerror}")
