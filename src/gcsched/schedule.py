from copy import deepcopy
import logging
from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, Field, PrivateAttr, computed_field

from gcsched import EPS, InvalidIndexError, TaskGraph

logger = logging.getLogger("GCSCHED:gcsched.schedule")


class PlacedTask(BaseModel):
    """A task committed to a processor."""

    task: int = Field(..., description="The task.")
    proc: int = Field(..., description="The processor the task runs on.")
    start: float = Field(..., description="The start time of the task.")
    finish: float = Field(..., description="The finish time of the task.")

    def __str__(self) -> str:
        return f"Task(proc={self.proc}, task={self.task}, start={self.start:0.2f}, finish={self.finish:0.2f})"


class TimeSchedule(BaseModel):
    """Per processor timelines plus the communication statistics of the placement."""

    proc_array: List[List[PlacedTask]] = Field(
        ..., description="The tasks committed to each processor, in start order."
    )
    mapping: Dict[int, int] = Field(
        default_factory=dict, description="The processor of every committed task."
    )
    transitions: int = Field(
        0, description="Number of dependencies crossing processor boundaries."
    )
    indirect_transitions: int = Field(
        0, description="Crossing dependencies between processors without a direct link."
    )

    _task_map: Dict[int, PlacedTask] = PrivateAttr(default_factory=dict)

    @classmethod
    def create(cls, proc_num: int) -> "TimeSchedule":
        """Create an empty schedule.

        Args:
            proc_num (int): The number of processors.

        Returns:
            TimeSchedule: A schedule with an empty timeline per processor.
        """
        return cls(proc_array=[[] for _ in range(proc_num)])

    def model_post_init(self, __context) -> None:
        self._task_map = {
            placed.task: placed for tasks in self.proc_array for placed in tasks
        }

    @computed_field
    @property
    def makespan(self) -> float:
        """Get the makespan of the schedule.

        Returns:
            float: The largest finish time. Idle processors count as 0.
        """
        return max((tasks[-1].finish for tasks in self.proc_array if tasks), default=0.0)

    @property
    def proc_num(self) -> int:
        return len(self.proc_array)

    def __getitem__(self, proc: int) -> List[PlacedTask]:
        """Get the tasks committed to a processor.

        Args:
            proc (int): The processor.

        Returns:
            List[PlacedTask]: The timeline of the processor.
        """
        if not 0 <= proc < self.proc_num:
            raise InvalidIndexError(f"Processor {proc} not in schedule. There are {self.proc_num} processors.")
        return self.proc_array[proc]

    def items(self) -> Iterable[Tuple[int, List[PlacedTask]]]:
        return enumerate(self.proc_array)

    def __len__(self) -> int:
        return len(self._task_map)

    def is_scheduled(self, task: int) -> bool:
        return task in self._task_map

    def get_scheduled_task(self, task: int) -> PlacedTask:
        """Get the placement of a committed task.

        Raises:
            ValueError: If the task is not scheduled.
        """
        if task not in self._task_map:
            raise ValueError(f"Task {task} not in schedule.")
        return self._task_map[task]

    def proc_free_time(self, proc: int) -> float:
        """Get the moment a processor finishes its last committed task."""
        tasks = self[proc]
        return tasks[-1].finish if tasks else 0.0

    def get_earliest_start_time(self, task_graph: TaskGraph, task: int, proc: int) -> float:
        """Get the earliest start time of a task appended to a processor.

        Does not modify the schedule.

        Args:
            task_graph (TaskGraph): The task graph with all dependencies.
            task (int): The task to place.
            proc (int): The candidate processor.

        Returns:
            float: The latest of the data arrival time and the processor free time.

        Raises:
            ValueError: If a parent of the task is not scheduled yet.
        """
        data_ready = 0.0
        for dependency in task_graph.in_edges(task):
            if dependency.source not in self._task_map:
                raise ValueError(f"Parent task {dependency.source} is not scheduled yet.")
            parent = self._task_map[dependency.source]
            arrival_time = parent.finish + task_graph.get_tran_time(parent.proc, proc)
            data_ready = max(data_ready, arrival_time)
        return max(data_ready, self.proc_free_time(proc))

    def get_earliest_finish_time(self, task_graph: TaskGraph, task: int, proc: int) -> float:
        return self.get_earliest_start_time(task_graph, task, proc) + task_graph.get_task_time(proc, task)

    def transitions_with_task(self, task_graph: TaskGraph, task: int, proc: int) -> Tuple[int, int]:
        """Count the transitions placing a task on a processor would add.

        Args:
            task_graph (TaskGraph): The task graph with all dependencies.
            task (int): The task to place.
            proc (int): The candidate processor.

        Returns:
            Tuple[int, int]: The new transitions and, among them, the indirect ones.
        """
        transitions, indirect = 0, 0
        for dependency in task_graph.in_edges(task):
            parent_proc = self.mapping.get(dependency.source)
            if parent_proc is None or parent_proc == proc:
                continue
            transitions += 1
            if not task_graph.is_direct_connection(parent_proc, proc):
                indirect += 1
        return transitions, indirect

    def add_task(self, task_graph: TaskGraph, task: int, proc: int) -> PlacedTask:
        """Append a task to a processor.

        Args:
            task_graph (TaskGraph): The task graph with all dependencies.
            task (int): The task to place.
            proc (int): The processor to run it on.

        Returns:
            PlacedTask: The committed placement.

        Raises:
            ValueError: If the task is already scheduled or a parent is not.
        """
        if task in self._task_map:
            raise ValueError(f"Task {task} is already scheduled on processor {self.mapping[task]}.")
        start = self.get_earliest_start_time(task_graph, task, proc)
        placed = PlacedTask(
            task=task,
            proc=proc,
            start=start,
            finish=start + task_graph.get_task_time(proc, task),
        )
        timeline = self[proc]
        if timeline and timeline[-1].finish > placed.start + EPS:
            raise ValueError(f"Task {placed} overlaps with previous task {timeline[-1]}.")

        transitions, indirect = self.transitions_with_task(task_graph, task, proc)
        timeline.append(placed)
        self.mapping[task] = proc
        self._task_map[task] = placed
        self.transitions += transitions
        self.indirect_transitions += indirect
        logger.debug("Committed %s", placed)
        return placed

    def with_task(self, task_graph: TaskGraph, task: int, proc: int) -> "TimeSchedule":
        """Get a copy of the schedule with one more task committed."""
        schedule = deepcopy(self)
        schedule.add_task(task_graph, task, proc)
        return schedule

    def communication_ratio(self, task_graph: TaskGraph) -> float:
        """Get the fraction of dependencies that cross processor boundaries.

        Returns:
            float: CR, 0 for a graph without dependencies.
        """
        return _ratio(self.transitions, task_graph.num_edges)

    def indirect_ratio(self, task_graph: TaskGraph) -> float:
        """Get the fraction of dependencies routed between unlinked processors.

        Returns:
            float: CR2, 0 for a graph without dependencies.
        """
        return _ratio(self.indirect_transitions, task_graph.num_edges)

    def communication_ratio_with_task(self, task_graph: TaskGraph, task: int, proc: int) -> float:
        transitions, _ = self.transitions_with_task(task_graph, task, proc)
        return _ratio(self.transitions + transitions, task_graph.num_edges)

    def balance_factor(self) -> int:
        """Get the load imbalance of the schedule.

        BF = ceil(100 * (max_tasks * proc_num / total_tasks - 1)), so a
        perfectly even distribution gives 0.

        Returns:
            int: BF, 0 for an empty schedule.
        """
        return _balance_factor([len(tasks) for tasks in self.proc_array])

    def balance_factor_with_task(self, proc: int) -> int:
        counts = [len(tasks) for tasks in self.proc_array]
        counts[proc] = len(self[proc]) + 1
        return _balance_factor(counts)


def _ratio(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return 0.0
    return float(numerator) / float(denominator)


def _balance_factor(counts: List[int]) -> int:
    total = sum(counts)
    if total == 0:
        return 0
    # exact ceiling of 100 * (max * n - total) / total
    return -(-100 * (max(counts) * len(counts) - total) // total)
