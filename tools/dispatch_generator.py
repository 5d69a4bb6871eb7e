# pyright: basic
import sys

from schedule_diagnostics import ScheduleError, check_task_efficiency, check_tick_loads
from schedule_model import ScheduleContext, Task, Tick


class DispatchGenerator:
    """
    Renders a finished schedule as C.

    Each tick becomes its own interrupt function.  At the end of every tick
    function, <prefix>_function is pointed at the next one, so the driver
    only ever makes one indirect jump whatever the width of the table.
    """

    def __init__(self, ctx: ScheduleContext):
        self.ctx = ctx
        self.prefix = ctx.prefix
        self.lines: list[str] = []
        self.indent = 0

    def emit(self, text: str = ""):
        self.lines.append("\t" * self.indent + text if text else "")

    def block_begin(self):
        self.emit("{")
        self.indent += 1

    def block_end(self):
        self.indent -= 1
        self.emit("}")

    def time_comment(self, time: float) -> str:
        cycles = time * self.ctx.config.cycles_per_tick
        return f"/* {time:g} interrupts / {cycles:g} cycles */"

    def write_header(self):
        fastvar = self.ctx.config.attr_fastvar
        self.emit("/* Automatically generated by gensched */")
        self.emit(f"{fastvar} void (*{self.prefix}_function) (void);")
        self.emit(f"{fastvar} unsigned char {self.prefix}_divider;")
        self.emit()
        for name in self.ctx.includes:
            self.emit(f'#include "{name}"')
        if self.ctx.includes:
            self.emit()

    def tick_function(self, tickno: int) -> str:
        return f"{self.prefix}_{tickno}"

    def write_prototypes(self):
        attr = self.ctx.config.attr_interrupt
        for tick in self.ctx.ticks:
            self.emit(f"static {attr} void {self.tick_function(tick.index)} (void);")
        self.emit()

    def write_call(self, task: Task, tickno: int):
        name = task.variant_name(tickno)
        if not task.inline:
            self.emit(f"extern void {name} (void);")
        self.emit(f"{name} (); {self.time_comment(task.length)}")

    def write_tick(self, tick: Tick):
        ctx = self.ctx
        attr = ctx.config.attr_interrupt
        last = ctx.width - 1

        self.emit(f"static {attr} void {self.tick_function(tick.index)} (void)")
        self.block_begin()

        for divider in tick.dividers():
            if divider > 1:
                self.emit()
                self.emit(f"if (!({self.prefix}_divider & {divider - 1}))")
                self.block_begin()
            for slot in tick.slots_with_divider(divider):
                self.write_call(slot.task, tick.index)
            if divider > 1:
                self.block_end()

        if tick.index == last and ctx.max_divider > 1:
            self.emit(f"{self.prefix}_divider++;")

        if ctx.width > 1:
            following = self.tick_function((tick.index + 1) % ctx.width)
            self.emit(f"{self.prefix}_function = {following};")

        self.emit(self.time_comment(tick.load))
        self.block_end()
        self.emit()

    def write_driver(self):
        # The driver should be a single jump.  The C compiler cannot be
        # trusted to do that, so it is hand-coded on the 6809.
        p = self.prefix
        self.emit(f"void {p}_driver (void)")
        self.emit("{")
        self.emit("#ifdef __m6809__")
        self.emit(f'   asm ("jmp\\t[_{p}_function]");')
        self.emit("#else")
        self.emit(f"   (*{p}_function) ();")
        self.emit("#endif")
        self.emit("}")
        self.emit()

    def write_init(self):
        p = self.prefix
        self.emit(f"void {p}_init (void)")
        self.emit("{")
        self.emit(f"   {p}_function = {self.tick_function(0)};")
        self.emit(f"   {p}_divider = 0;")
        self.emit("}")

    def render(self) -> str:
        ctx = self.ctx

        # An empty schedule still needs a tick 0 for the init code.
        if not ctx.widened:
            ctx.expand_ticks(1)

        check_task_efficiency(ctx)

        self.lines = []
        self.indent = 0
        self.write_header()
        self.write_prototypes()
        for tick in ctx.ticks:
            self.write_tick(tick)
        self.write_driver()
        self.write_init()

        check_tick_loads(ctx)
        return "\n".join(self.lines) + "\n"


def generate_dispatch(ctx: ScheduleContext) -> str:
    return DispatchGenerator(ctx).render()


def write_output(text: str, output: str | None):
    """Write generated code to OUTPUT, or stdout when OUTPUT is None or '-'."""
    if output is None or output == "-":
        sys.stdout.write(text)
        return
    try:
        with open(output, "w") as f:
            f.write(text)
    except OSError as e:
        raise ScheduleError(f"cannot open '{output}': {e.strerror}")
