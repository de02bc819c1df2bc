from abc import ABC, abstractmethod
from enum import Enum
import logging
import math
from typing import Any, List, Literal, Sequence

from pydantic import BaseModel, Field

from gcsched import TaskGraph
from gcsched.schedule import TimeSchedule

logger = logging.getLogger("GCSCHED:gcsched.schedulers.criteria")


class TaskSelector(BaseModel, ABC):
    @abstractmethod
    def select(self, task_graph: TaskGraph, frontier: Sequence[int]) -> int:
        """Pick the next task to schedule.

        Args:
            task_graph (TaskGraph): The task graph.
            frontier (Sequence[int]): The ready tasks. Must not be empty.

        Returns:
            int: The chosen task.
        """
        pass


class CriticalPathSelector(TaskSelector):
    """GC1: the ready task furthest from the fictive root goes first.

    Ties go to the smallest task identifier. Tasks without a critical path
    distance rank last.
    """

    name: Literal["CriticalPath"] = "CriticalPath"

    def priority(self, task_graph: TaskGraph, task: int):
        distance = task_graph.shortest_path_length(task)
        return (-math.inf if distance is None else distance, -task)

    def select(self, task_graph: TaskGraph, frontier: Sequence[int]) -> int:
        if not frontier:
            raise ValueError("Cannot select a task from an empty frontier.")
        return max(frontier, key=lambda task: self.priority(task_graph, task))


class ProcessorSelector(BaseModel, ABC):
    model_config = {"extra": "forbid"}

    @abstractmethod
    def costs(self, task_graph: TaskGraph, schedule: TimeSchedule, task: int) -> List[float]:
        """Evaluate every processor for a task without changing the schedule.

        Args:
            task_graph (TaskGraph): The task graph.
            schedule (TimeSchedule): The current schedule.
            task (int): The task to place.

        Returns:
            List[float]: The objective value of each processor, lower is better.
        """
        pass

    def select(self, task_graph: TaskGraph, schedule: TimeSchedule, task: int) -> int:
        """Pick the processor with the lowest objective, the lowest index on ties.

        Returns:
            int: The chosen processor.
        """
        costs = self.costs(task_graph, schedule, task)
        logger.debug("Task %d costs per processor: %s", task, costs)
        return min(range(len(costs)), key=lambda proc: costs[proc])


class EarliestFinishTime(ProcessorSelector):
    """GC2: minimise the finish time of the task."""

    name: Literal["EarliestFinishTime"] = "EarliestFinishTime"

    def costs(self, task_graph: TaskGraph, schedule: TimeSchedule, task: int) -> List[float]:
        return [
            schedule.get_earliest_finish_time(task_graph, task, proc)
            for proc in range(task_graph.proc_num)
        ]


class CommunicationRatioCriterion(ProcessorSelector):
    """GC2 with a communication ratio penalty.

    crit_CR = c1 * start + c2 * CR, where CR is measured after the placement.
    """

    name: Literal["CommunicationRatio"] = "CommunicationRatio"
    c1: float = Field(1.0, description="Weight of the start time.")
    c2: float = Field(1.0, description="Weight of the communication ratio.")
    c3: float = Field(0.5, description="Weight of the indirect communication ratio. Not applied.")

    def costs(self, task_graph: TaskGraph, schedule: TimeSchedule, task: int) -> List[float]:
        return [
            self.c1 * schedule.get_earliest_start_time(task_graph, task, proc)
            + self.c2 * schedule.communication_ratio_with_task(task_graph, task, proc)
            for proc in range(task_graph.proc_num)
        ]


class BalanceFactorCriterion(ProcessorSelector):
    """GC2 with a balance factor penalty.

    crit_BF = c1 * start + c2 * BF, where BF is measured after the placement.
    """

    name: Literal["BalanceFactor"] = "BalanceFactor"
    c1: float = Field(1.0, description="Weight of the start time.")
    c2: float = Field(0.7, description="Weight of the balance factor.")

    def costs(self, task_graph: TaskGraph, schedule: TimeSchedule, task: int) -> List[float]:
        return [
            self.c1 * schedule.get_earliest_start_time(task_graph, task, proc)
            + self.c2 * schedule.balance_factor_with_task(proc)
            for proc in range(task_graph.proc_num)
        ]


class Criteria(str, Enum):
    """Extra criteria for choosing a processor."""

    NO = "NO"
    BF = "BF"
    CR = "CR"


def get_processor_selector(criteria: Criteria | str, **coefficients: Any) -> ProcessorSelector:
    """Build the processor selector for a criteria name.

    Args:
        criteria (Criteria | str): One of "NO", "BF" or "CR".
        **coefficients: Overrides for the selector weights (c1, c2, c3). None values are ignored.

    Returns:
        ProcessorSelector: The selector.

    Raises:
        ValueError: If the criteria is unknown or a coefficient does not apply to it.
    """
    criteria = Criteria(criteria)
    coefficients = {key: value for key, value in coefficients.items() if value is not None}
    if criteria == Criteria.NO:
        if coefficients:
            raise ValueError(f"Criteria NO takes no coefficients, got {sorted(coefficients)}.")
        return EarliestFinishTime()
    if criteria == Criteria.CR:
        return CommunicationRatioCriterion(**coefficients)
    return BalanceFactorCriterion(**coefficients)
