import argparse
import logging
import pathlib
from typing import List, Optional

from gcsched import MalformedInputError
from gcsched.parser import load_task_graph
from gcsched.schedulers import (
    Criteria,
    CriticalPathSelector,
    GreedyCriteriaScheduler,
    get_processor_selector,
)

logger = logging.getLogger("GCSCHED:gcsched.__main__")


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcsched",
        description="Schedule a task graph on heterogeneous processors and report the makespan.",
    )
    parser.add_argument(
        "-i", "--input", type=pathlib.Path, default=pathlib.Path("input.json"),
        help="Input file (default: %(default)s).",
    )
    parser.add_argument(
        "-c", "--criteria", default=Criteria.NO.value,
        help="Extra criteria for the time schedule: NO, BF or CR (default: %(default)s).",
    )
    parser.add_argument("--c1", type=float, default=None, help="Weight of the start time.")
    parser.add_argument("--c2", type=float, default=None, help="Weight of the CR or BF term.")
    parser.add_argument("--c3", type=float, default=None, help="Weight of the indirect CR term (CR only, not applied).")
    parser.add_argument(
        "--gantt", type=pathlib.Path, default=None,
        help="Save a gantt chart of the schedule to this file.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug output.")
    return parser


def format_time(value: float) -> str:
    """Format a time at full precision, whole values without a fraction."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def main(argv: Optional[List[str]] = None) -> int:
    args = get_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(asctime)s] [%(levelname)s] %(message)s",
    )
    logger.info("Starting")

    try:
        criteria = Criteria(args.criteria)
    except ValueError:
        logger.error("Unknown criteria: %s", args.criteria)
        return 1
    try:
        processor_selector = get_processor_selector(criteria, c1=args.c1, c2=args.c2, c3=args.c3)
    except ValueError as exc:
        logger.error("Invalid coefficients for criteria %s: %s", criteria.value, exc)
        return 1

    try:
        task_graph = load_task_graph(args.input)
    except (MalformedInputError, OSError) as exc:
        logger.error("Could not read %s: %s", args.input, exc)
        return 1

    scheduler = GreedyCriteriaScheduler(
        task_selector=CriticalPathSelector(),
        processor_selector=processor_selector,
    )
    schedule = scheduler.schedule(task_graph)
    logger.info(
        "Communication ratio %.4f, indirect ratio %.4f, balance factor %d",
        schedule.communication_ratio(task_graph),
        schedule.indirect_ratio(task_graph),
        schedule.balance_factor(),
    )

    if args.gantt is not None:
        from gcsched.utils.draw import save_gantt

        save_gantt(schedule, args.gantt)

    print(f"time:\t{format_time(schedule.makespan)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
