# pyright: basic

"""
tools/taskset_generator.py

Generate random periodic task lists in gensched input format, for load
testing the tick allocator.

Usage example:
  python tools/taskset_generator.py --num-tasks 20 --total-util 0.6 \
      --period-choices '[1, 2, 4, 8, 16, 32]' --inline-ratio 0.3 --seed 42 \
      --output build/random.sched
"""

from __future__ import annotations

import argparse
import json
import os
import random
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List

from schedule_config import is_power_of_two

DEFAULT_OUTPUT = "build/random.sched"
DEFAULT_PERIODS = [1, 2, 4, 8, 16, 32, 64]
UUNIFAST_DISCARD_MAX_TRIES = 1000


@dataclass
class GenArgs:
    num_tasks: int
    total_util: float
    period_choices: List[int]
    inline_ratio: float
    seed: int | None
    output: str
    summary: bool


def uunifast(n: int, U_total: float) -> List[float]:
    """Plain UUniFast (uncapped)."""
    if n <= 0:
        return []
    sum_u = U_total
    utilizations: List[float] = []
    for i in range(1, n):
        next_sum = sum_u * (random.random() ** (1.0 / (n - i)))
        utilizations.append(sum_u - next_sum)
        sum_u = next_sum
    utilizations.append(sum_u)
    return utilizations


def uunifast_discard(
    n: int, U_total: float, max_tries: int = UUNIFAST_DISCARD_MAX_TRIES
) -> List[float]:
    """UUniFast-Discard: regenerate until all U_i < 1.0 (or fail after max_tries)."""
    if U_total < 0:
        raise ValueError("U_total must be >= 0")
    if n <= 0:
        return []
    for _ in range(max_tries):
        utils = uunifast(n, U_total)
        if all(u < 1.0 for u in utils):
            return utils
    raise RuntimeError(
        f"uunifast_discard: failed to generate valid utils after {max_tries} tries"
    )


def generate_taskset(args: GenArgs) -> List[dict]:
    """
    Each task gets a utilization (length / period) from UUniFast, so the
    average load per tick is total_util.
    """
    utils = uunifast_discard(args.num_tasks, args.total_util)

    tasks = []
    for i, u in enumerate(utils, start=1):
        period = random.choice(args.period_choices)
        tasks.append(
            {
                "name": f"task_{i}",
                "period": period,
                "length": min(round(u * period, 4), period * 0.9999),
                "inline": random.random() < args.inline_ratio,
            }
        )
    return tasks


def format_taskset(tasks: List[dict], metadata: dict) -> str:
    lines = [
        f"# Generated: {datetime.now(timezone.utc).isoformat()}Z",
        f"# generator: taskset_generator.py",
        f"# metadata: {json.dumps(metadata, sort_keys=True)}",
        "",
    ]
    for t in tasks:
        name = f"!{t['name']}" if t["inline"] else t["name"]
        lines.append(f"{name:<16} {t['period']:<4} {t['length']:g}")
    return "\n".join(lines) + "\n"


def print_summary(tasks: List[dict]):
    total = sum(t["length"] / t["period"] for t in tasks)
    inline = sum(1 for t in tasks if t["inline"])
    print(f"Generated {len(tasks)} tasks ({inline} inline).")
    print(f"Total utilization: {total:.3f}")

    print("Period distribution:")
    for period in sorted({t["period"] for t in tasks}):
        count = sum(1 for t in tasks if t["period"] == period)
        print(f"  {period}: {count}")


def parse_period_choices(arg: str | None) -> List[int]:
    if not arg:
        return list(DEFAULT_PERIODS)
    try:
        data = json.loads(arg)
    except json.JSONDecodeError:
        raise argparse.ArgumentTypeError(f"period choices must be a JSON list: {arg}")
    if not isinstance(data, list) or not data:
        raise argparse.ArgumentTypeError("period choices must be a non-empty JSON list")
    choices = [int(p) for p in data]
    for p in choices:
        if not is_power_of_two(p):
            raise argparse.ArgumentTypeError(f"period {p} is not a power of 2")
    return choices


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Generate random gensched task lists")
    p.add_argument(
        "--num-tasks", type=int, default=20, help="Number of tasks to generate"
    )
    p.add_argument(
        "--total-util",
        type=float,
        default=0.5,
        help="Total utilization across tasks (average load per tick)",
    )
    p.add_argument(
        "--period-choices",
        type=parse_period_choices,
        default=None,
        help="JSON list of periods to pick from. Default: [1,2,4,8,16,32,64]",
    )
    p.add_argument(
        "--inline-ratio",
        type=float,
        default=0.25,
        help="Fraction of tasks declared as inline macros",
    )
    p.add_argument("--seed", type=int, default=None, help="Random seed")
    p.add_argument("--output", default=DEFAULT_OUTPUT, help="Output file ('-' for stdout)")
    p.add_argument(
        "--summary", action="store_true", help="Print summary after generation"
    )
    return p


def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    ns = build_arg_parser().parse_args(argv)

    args = GenArgs(
        num_tasks=ns.num_tasks,
        total_util=ns.total_util,
        period_choices=ns.period_choices or list(DEFAULT_PERIODS),
        inline_ratio=ns.inline_ratio,
        seed=ns.seed,
        output=ns.output,
        summary=ns.summary,
    )

    if args.seed is None:
        args.seed = int(time.time())
    random.seed(args.seed)

    try:
        tasks = generate_taskset(args)
    except (ValueError, RuntimeError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)

    metadata = {
        "seed": args.seed,
        "num_tasks": args.num_tasks,
        "total_util": args.total_util,
    }
    text = format_taskset(tasks, metadata)

    if args.output == "-":
        sys.stdout.write(text)
        return

    os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
    with open(args.output, "w") as f:
        f.write(text)

    if args.summary:
        print(f"\nOutput written to: {args.output}")
        print_summary(tasks)

    print("Generation complete.")


if __name__ == "__main__":
    main()
