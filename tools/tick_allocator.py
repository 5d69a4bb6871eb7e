# pyright: basic
from schedule_diagnostics import ScheduleError
from schedule_model import ScheduleContext, Task

# Cost given to a starting tick that would overflow one of its ticks
OVERLOAD_COST = 99999.0

# Cost given to the last starting tick for a divided task, so that all
# divider checks end up sharing the same tick
DIVIDER_BONUS = -1.0


class TickAllocator:
    """
    Places tasks into the unrolled ticks of the interrupt handler.

    This is a greedy, one task at a time load balancer: each new task goes
    where the ticks it would land in are currently least loaded.  Nothing
    already placed is ever moved.
    """

    def __init__(self, ctx: ScheduleContext):
        self.ctx = ctx

    def slot_plan(self, task: Task) -> tuple[int, int]:
        """
        Return (count, divider) for TASK, widening the tick table first if
        it is not yet wide enough.
        """
        ctx = self.ctx
        period = task.period

        # The table is unrolled at most once, to max_ticks.  Periods longer
        # than that cannot be unrolled and use a divider instead.
        if period > ctx.width:
            ctx.expand_ticks(period)

        if period <= ctx.width:
            return ctx.width // period, 1

        # If there are 8 handlers but the period is 16 ticks, then the task
        # goes into one tick and runs there every other sweep.
        divider = period // ctx.width
        if divider > ctx.config.max_divider:
            raise ScheduleError(
                f"period {period} too large for '{task.name}' "
                f"(divider {divider} exceeds {ctx.config.max_divider})"
            )
        return 1, divider

    def find_best_tick(self, period: int, count: int, length: float) -> int:
        """
        Find the best starting tick for a task with PERIOD and LENGTH that
        needs COUNT slots, evenly spaced.  Every possible start is tried and
        the least loaded set of ticks wins; on a tie the lowest start wins.
        """
        ticks = self.ctx.ticks
        width = self.ctx.width
        stride = width // count
        best = 0
        best_cost = OVERLOAD_COST

        for start in range(stride):
            total = 0.0
            for index in range(count):
                load = ticks[start + stride * index].load

                if load + length >= 1.0:
                    cost = OVERLOAD_COST
                elif period > width and start == stride - 1:
                    cost = DIVIDER_BONUS
                else:
                    cost = load

                total += cost

            if total < best_cost:
                best_cost = total
                best = start

        return best

    def add_task(self, task: Task) -> Task:
        ctx = self.ctx
        count, divider = self.slot_plan(task)
        ctx.register_task(task)
        if divider > ctx.max_divider:
            ctx.max_divider = divider

        tickno = self.find_best_tick(task.period, count, task.length)
        for _ in range(count):
            ctx.alloc_slot(tickno, task, divider)
            ctx.ticks[tickno].load += task.length / divider
            tickno = (tickno + task.period) % ctx.width

        return task
