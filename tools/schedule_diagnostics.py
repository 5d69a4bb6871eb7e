# pyright: basic
import sys


class ScheduleError(Exception):
    """Fatal problem with the schedule input, configuration or output."""


class CapacityError(ScheduleError):
    """A fixed-size table of the generator is full."""


def report_warning(message: str):
    print(f"warning: {message}", file=sys.stderr)


def report_error(message: str):
    print(f"error: {message}", file=sys.stderr)


def check_task_efficiency(ctx):
    """Warn about tasks whose inline/out-of-line choice wastes space or time."""
    config = ctx.config
    for task in ctx.tasks:
        cycles = task.cycles(config.cycles_per_tick)

        # A large inline body expanded in many ticks eats code space.
        if task.inline and task.slot_count > 2 and cycles > config.inline_max_cycles:
            ctx.warn(f"{task.name} should not be inline")

        # Call/return overhead dominates a tiny function.
        if not task.inline and cycles < config.inline_min_cycles:
            overhead = config.cycles_per_call + config.cycles_per_return
            ctx.warn(
                f"{task.name} should be inline, only takes {cycles} cycles "
                f"(plus {overhead} for call and return)"
            )


def check_tick_loads(ctx):
    for tick in ctx.ticks:
        if tick.load >= 1.0:
            ctx.warn(f"tick {tick.index} takes too long")
