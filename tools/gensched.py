# pyright: basic

"""
tools/gensched.py

Static scheduler for a periodic interrupt.  Reads lists of tasks that need
realtime scheduling and writes the C code for an interrupt handler that
calls each one at its period, balancing the load across unrolled copies of
the handler.

Usage example:
  python tools/gensched.py -o build/tick_driver.c -i wpc.h -D MACHINE_HAS_LAMPS \
      kernel/system.sched machine/tz/tz.sched
"""

import argparse
import sys

from dispatch_generator import generate_dispatch, write_output
from schedule_config import load_config, write_config
from schedule_diagnostics import ScheduleError, report_error
from schedule_model import ScheduleContext
from schedule_parser import load_schedule_file
from schedule_report import generate_reports
from tick_allocator import TickAllocator


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Generate a statically scheduled periodic interrupt handler"
    )
    p.add_argument(
        "inputs",
        nargs="*",
        help="Schedule files (text or YAML), processed in order. Default: stdin",
    )
    p.add_argument(
        "-o", dest="output", default=None, help="Write the generated C code here"
    )
    p.add_argument(
        "-i",
        dest="includes",
        action="append",
        default=[],
        help="Add an #include to the generated code (repeatable)",
    )
    p.add_argument(
        "-M",
        dest="max_ticks",
        type=int,
        default=None,
        help="Maximum amount of unrolling, in ticks (default 8)",
    )
    p.add_argument(
        "-p",
        dest="prefix",
        default=None,
        help="Prefix for all generated declarations (default 'tick')",
    )
    p.add_argument(
        "-D",
        dest="conditionals",
        action="append",
        default=[],
        help="Define a conditional for '<name>?<conditional>' entries (repeatable)",
    )
    p.add_argument("--config", default=None, help="Path to a gensched.yaml")
    p.add_argument(
        "--report-dir",
        default=None,
        help="Also write a schedule report and load charts into this directory",
    )
    p.add_argument(
        "--write-config",
        default=None,
        help="Write the effective configuration to this file and exit",
    )
    return p


def build_context(ns) -> ScheduleContext:
    config = load_config(ns.config)
    if ns.max_ticks is not None:
        config.max_ticks = ns.max_ticks
    if ns.prefix is not None:
        config.prefix = ns.prefix
    config.validate()

    return ScheduleContext(
        config, conditionals=ns.conditionals, includes=ns.includes
    )


def run(ns) -> ScheduleContext:
    ctx = build_context(ns)

    if ns.write_config:
        try:
            write_config(ctx.config, ns.write_config)
        except OSError as e:
            raise ScheduleError(f"cannot open '{ns.write_config}': {e.strerror}")
        return ctx

    allocator = TickAllocator(ctx)
    for path in ns.inputs or ["-"]:
        load_schedule_file(path, ctx, allocator)

    # Nothing is written until the schedule and its reports are done.
    text = generate_dispatch(ctx)

    if ns.report_dir:
        try:
            generate_reports(ctx, ns.report_dir)
        except OSError as e:
            raise ScheduleError(f"cannot write reports to '{ns.report_dir}': {e.strerror}")

    write_output(text, ns.output)

    return ctx


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    ns = build_arg_parser().parse_args(argv)

    try:
        run(ns)
    except ScheduleError as e:
        report_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
