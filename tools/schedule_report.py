# pyright: basic
import os
import sys

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from schedule_model import ScheduleContext


def load_matrix(ctx: ScheduleContext) -> np.ndarray:
    """Estimated load per (task, tick); each slot counts length / divider."""
    matrix = np.zeros((len(ctx.tasks), ctx.width))
    index = {id(task): row for row, task in enumerate(ctx.tasks)}
    for tick in ctx.ticks:
        for slot in tick.slots:
            matrix[index[id(slot.task)], tick.index] += slot.task.length / slot.divider
    return matrix


def task_label(task) -> str:
    return f"!{task.name}" if task.inline else task.name


# --- Report and Visualization Generation Functions ---
def write_schedule_report(ctx: ScheduleContext, filename: str):
    report_lines = ["=" * 50, "--- Final Schedule Report ---", "=" * 50]

    loads = ctx.load_summary()
    high = ctx.config.warn_utilization_high

    report_lines.append(f"\n[Summary]")
    report_lines.append(f"  - Tasks Scheduled: {len(ctx.tasks)}")
    report_lines.append(f"  - Entries Skipped: {len(ctx.skipped)}")
    report_lines.append(f"  - Ticks: {ctx.width} / {ctx.config.max_ticks}")
    report_lines.append(f"  - Max Divider: {ctx.max_divider}")
    if loads:
        report_lines.append(f"  - Mean Tick Load: {np.mean(loads):.2f}")
        report_lines.append(f"  - Peak Tick Load: {np.max(loads):.2f}")
    report_lines.append("-" * 50)

    for tick in ctx.ticks:
        flag = ""
        if tick.load >= 1.0:
            flag = "  <OVERLOADED>"
        elif tick.load >= high:
            flag = "  <HIGH>"
        report_lines.append(f"\nTick {tick.index}: load {tick.load:.2f}{flag}")

        if not tick.slots:
            report_lines.append("  <Empty>")
            continue

        for divider in tick.dividers():
            names = [task_label(s.task) for s in tick.slots_with_divider(divider)]
            gate = "every sweep" if divider == 1 else f"1 of {divider} sweeps"
            report_lines.append(f"  {gate:<16} | {', '.join(names)}")

    if ctx.skipped:
        report_lines.append("\n[Skipped]")
        for label in ctx.skipped:
            report_lines.append(f"  - {label}")

    with open(filename, "w") as f:
        f.write("\n".join(report_lines) + "\n")
    print(f"Successfully generated text report at '{filename}'", file=sys.stderr)


def generate_load_heatmap(ctx: ScheduleContext, filename: str):
    """Generates a heatmap of each task's load in each tick."""
    matrix = load_matrix(ctx)
    if matrix.size == 0:
        print("No tasks scheduled; skipping heatmap.", file=sys.stderr)
        return

    plt.figure(figsize=(max(6, ctx.width), max(4, 0.4 * len(ctx.tasks) + 2)))
    heatmap = sns.heatmap(
        matrix,
        annot=True,
        fmt=".2f",
        linewidths=0.5,
        cmap="viridis",
        vmin=0.0,
        vmax=max(1.0, float(matrix.max())),
        xticklabels=[str(t.index) for t in ctx.ticks],
        yticklabels=[task_label(t) for t in ctx.tasks],
    )
    heatmap.set_title("Task Load per Tick", fontdict={"fontsize": 16}, pad=12)
    heatmap.set_xlabel("Tick")
    heatmap.set_ylabel("Task")

    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
    print(f"Successfully generated heatmap at '{filename}'", file=sys.stderr)


def generate_load_stacked_chart(ctx: ScheduleContext, filename: str):
    matrix = load_matrix(ctx)
    tick_labels = [f"T{t.index}" for t in ctx.ticks]

    fig, ax = plt.subplots(figsize=(max(8, ctx.width), 6))
    bottom = np.zeros(ctx.width)

    for task, row in zip(ctx.tasks, matrix):
        ax.bar(tick_labels, row, 0.6, label=task_label(task), bottom=bottom)
        bottom += row

    ax.axhline(1.0, color="tab:red", linestyle="--", linewidth=1)
    ax.axhline(ctx.config.warn_utilization_high, color="tab:orange", linestyle=":")

    ax.set_title("Estimated Load per Tick", fontsize=16)
    ax.set_ylabel("Load (interrupt periods)")
    ax.set_xlabel("Tick")
    ax.set_ylim(0, max(1.1, bottom.max() * 1.1 if bottom.size else 1.1))
    if ctx.tasks:
        ax.legend(title="Task", loc="upper left", bbox_to_anchor=(1.0, 1.0))

    plt.tight_layout()
    plt.savefig(filename)
    plt.close()
    print(f"Successfully generated stacked chart at '{filename}'", file=sys.stderr)


def generate_reports(ctx: ScheduleContext, report_dir: str):
    """Orchestrates the creation of all reports and visualizations."""
    print("\n--- Generating Reports and Visualizations ---", file=sys.stderr)
    os.makedirs(report_dir, exist_ok=True)

    write_schedule_report(ctx, os.path.join(report_dir, "schedule_report.txt"))
    generate_load_heatmap(ctx, os.path.join(report_dir, "load_heatmap.png"))
    generate_load_stacked_chart(ctx, os.path.join(report_dir, "load_stacked_chart.png"))
