# pyright: basic
from __future__ import annotations

from dataclasses import dataclass

from schedule_config import GeneratorConfig
from schedule_diagnostics import CapacityError, report_warning


class Task:
    def __init__(
        self,
        name: str,
        period: int,
        length: float,
        inline: bool = False,
        conditional: str | None = None,
        already_unrolled_count: int = 0,
    ):
        # The function (or macro, if inline) to run.  It takes no
        # parameters and returns nothing.
        self.name: str = name
        # How often, in ticks, the task must run
        self.period: int = period
        # Estimated run time per call, in ticks
        self.length: float = length
        self.inline: bool = inline
        self.conditional: str | None = conditional
        # Number of <name>_<k> variants the function already provides
        self.already_unrolled_count: int = already_unrolled_count
        self.slots: list[Slot] = []

    @property
    def slot_count(self) -> int:
        return len(self.slots)

    def cycles(self, cycles_per_tick: int) -> int:
        return int(self.length * cycles_per_tick)

    def variant_name(self, tickno: int) -> str:
        """Name of the function to call from tick TICKNO."""
        if not self.already_unrolled_count:
            return self.name
        n = tickno % (self.already_unrolled_count * self.period)
        return f"{self.name}_{n // self.period}"

    def __repr__(self):
        return f"Task({self.name!r}, period={self.period}, length={self.length:g})"


@dataclass
class Slot:
    task: Task
    divider: int = 1


class Tick:
    def __init__(self, index: int):
        self.index: int = index
        self.slots: list[Slot] = []
        # Average time spent in this tick, in ticks
        self.load: float = 0.0

    def dividers(self) -> list[int]:
        return sorted({slot.divider for slot in self.slots})

    def slots_with_divider(self, divider: int) -> list[Slot]:
        return [slot for slot in self.slots if slot.divider == divider]


class ScheduleContext:
    """Everything known about one schedule while it is being built."""

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        conditionals=(),
        includes=(),
        prefix: str | None = None,
    ):
        self.config: GeneratorConfig = config or GeneratorConfig()
        self.conditionals: set[str] = set(conditionals)
        self.includes: list[str] = list(includes)
        self.prefix: str = prefix or self.config.prefix

        self.tasks: list[Task] = []
        self.ticks: list[Tick] = []
        self.widened: bool = False

        # Largest divider in use.  Above 1, the generated code must keep
        # a runtime count of sweeps through the tick table.
        self.max_divider: int = 1

        self.skipped: list[str] = []
        self.warnings: list[str] = []

    @property
    def width(self) -> int:
        return len(self.ticks)

    def warn(self, message: str):
        self.warnings.append(message)
        report_warning(message)

    def register_task(self, task: Task) -> Task:
        if len(self.tasks) >= self.config.max_tasks:
            raise CapacityError(
                f"too many tasks (limit {self.config.max_tasks}); "
                "please increase max_tasks and regenerate"
            )
        self.tasks.append(task)
        return task

    def expand_ticks(self, requested: int):
        """
        Size the tick table.  The table is always unrolled to max_ticks, and
        only once, whatever width REQUESTED asks for.
        """
        if self.widened:
            return
        self.ticks = [Tick(tickno) for tickno in range(self.config.max_ticks)]
        self.widened = True

    def alloc_slot(self, tickno: int, task: Task, divider: int = 1) -> Slot:
        tick = self.ticks[tickno]
        if len(tick.slots) >= self.config.max_slots_per_tick:
            raise CapacityError(
                f"too many tasks scheduled in tick {tickno} "
                f"(limit {self.config.max_slots_per_tick}); "
                "please increase max_slots_per_tick and regenerate"
            )
        slot = Slot(task, divider)
        tick.slots.append(slot)
        task.slots.append(slot)
        return slot

    def load_summary(self) -> list[float]:
        return [tick.load for tick in self.ticks]
