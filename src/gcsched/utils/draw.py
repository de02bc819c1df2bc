import logging
import pathlib
from typing import Optional, Tuple

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
import pandas as pd

from gcsched.schedule import TimeSchedule

# create logger with GCSCHED:gcsched.utils.draw prefix
logger = logging.getLogger("GCSCHED:gcsched.utils.draw")


def schedule_to_frame(schedule: TimeSchedule) -> pd.DataFrame:
    """Flatten a schedule into one row per placed task.

    Args:
        schedule: Schedule

    Returns:
        DataFrame with Task, Processor, Start, Finish and delta columns, sorted by processor then start.
    """
    data_frame = pd.DataFrame(
        [
            {
                "Task": placed.task,
                "Processor": proc,
                "Start": placed.start,
                "Finish": placed.finish,
            }
            for proc, tasks in schedule.items()
            for placed in tasks
        ],
        columns=["Task", "Processor", "Start", "Finish"],
    )
    data_frame["delta"] = data_frame["Finish"] - data_frame["Start"]
    return data_frame.sort_values(["Processor", "Start"], ignore_index=True)


def draw_gantt(
    schedule: TimeSchedule,
    font_size: int = 14,
    tick_font_size: int = 12,
    xmax: Optional[float] = None,
    axis: Optional[Axes] = None,
    figsize: Tuple[int, int] = (10, 4),
    draw_task_labels: bool = True,
) -> Axes:
    """Draws a gantt chart

    Args:
        schedule: Schedule
        font_size: Font size. Defaults to 14.
        tick_font_size: Tick font size. Defaults to 12.
        xmax: Maximum x value. Defaults to None (the makespan).
        axis: Axis to draw on. Defaults to None.
        figsize: Figure size. Defaults to (10, 4).
        draw_task_labels: Whether to draw task labels. Defaults to True.

    Returns:
        Gantt chart
    """
    data_frame = schedule_to_frame(schedule)
    makespan = schedule.makespan
    xmax = makespan if xmax is None else max(xmax, makespan)

    if axis is None:
        _, axis = plt.subplots(figsize=figsize)
        if axis is None:
            raise ValueError("Axis could not be created.")

    # zero length tasks are invisible as bars
    for _, row in data_frame[data_frame["delta"] > 1e-6].iterrows():
        axis.barh(
            row["Processor"],
            row["delta"],
            left=row["Start"],
            color="white",
            edgecolor="black",
        )
        if draw_task_labels:
            axis.text(
                row["Start"] + row["delta"] / 2,
                row["Processor"],
                str(row["Task"]),
                ha="center",
                va="center",
                color="black",
                fontsize=font_size,
            )

    # idle processors still get a row
    procs = list(range(schedule.proc_num))
    axis.set_yticks(procs)
    axis.set_yticklabels([str(proc) for proc in procs])
    axis.tick_params(axis="both", which="major", labelsize=tick_font_size)

    axis.set_xlabel("Time", fontsize=font_size)
    axis.set_ylabel("Processors", fontsize=font_size)
    axis.grid(True, which="both", linestyle="--", linewidth=0.5)
    axis.set_axisbelow(True)
    axis.set_xlim(0, xmax if xmax > 0 else 1)
    plt.tight_layout()
    return axis


def save_gantt(schedule: TimeSchedule, path: str | pathlib.Path, **kwargs) -> pathlib.Path:
    """Draw a gantt chart and write it to an image file.

    Args:
        schedule: Schedule
        path: Destination file, the format follows the suffix.
        **kwargs: Passed to draw_gantt.

    Returns:
        The path written.
    """
    path = pathlib.Path(path)
    axis = draw_gantt(schedule, **kwargs)
    fig = axis.get_figure()
    if fig is None:
        raise ValueError("Gantt chart has no figure.")
    fig.savefig(str(path))
    plt.close(fig)
    logger.info("Saved gantt chart to %s", path)
    return path
