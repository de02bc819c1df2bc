from enum import Enum
import logging

from pydantic import BaseModel, Field, PrivateAttr

from gcsched import TaskGraph
from gcsched.schedule import TimeSchedule
from gcsched.schedulers.criteria import (
    CriticalPathSelector,
    EarliestFinishTime,
    ProcessorSelector,
    TaskSelector,
)

logger = logging.getLogger("GCSCHED:gcsched.schedulers.gc")


class SchedulerState(str, Enum):
    INITIALIZING = "Initializing"
    CRITICAL_PATH_ANALYSIS = "CriticalPathAnalysis"
    SCHEDULING = "Scheduling"
    DONE = "Done"


class GreedyCriteriaScheduler(BaseModel):
    """List scheduler driven by a task selector (GC1) and a processor selector (GC2).

    Critical path distances are computed once from a fictive root over the
    initial ready tasks. Then the ready frontier is repeatedly narrowed to one
    task, the task is appended to the best processor and removed from the
    graph until no task is left.
    """

    task_selector: TaskSelector = Field(
        default_factory=CriticalPathSelector, description="Chooses the next task (GC1)."
    )
    processor_selector: ProcessorSelector = Field(
        default_factory=EarliestFinishTime, description="Chooses the processor of a task (GC2)."
    )

    _state: SchedulerState = PrivateAttr(default=SchedulerState.INITIALIZING)

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def name(self) -> str:
        return f"{self.task_selector.__class__.__name__}_{self.processor_selector.__class__.__name__}"

    def _transition(self, state: SchedulerState) -> None:
        logger.info("%s -> %s", self._state.value, state.value)
        self._state = state

    def schedule(self, task_graph: TaskGraph) -> TimeSchedule:
        """Schedule every task of the graph.

        Args:
            task_graph (TaskGraph): The task graph. It is not modified.

        Returns:
            TimeSchedule: The resulting schedule.

        Raises:
            RuntimeError: If tasks remain that never become ready.
        """
        self._state = SchedulerState.INITIALIZING
        task_graph = task_graph.copy()
        time_schedule = TimeSchedule.create(task_graph.proc_num)
        frontier = task_graph.get_top_vertices()
        logger.info("Initial ready tasks: %s", frontier)

        self._transition(SchedulerState.CRITICAL_PATH_ANALYSIS)
        if frontier:
            task_graph.create_fictive_node(frontier)
            task_graph.set_up_critical_paths()
            task_graph.hard_remove_fictive_vertices()

        self._transition(SchedulerState.SCHEDULING)
        while frontier:
            task = self.task_selector.select(task_graph, frontier)
            logger.info("GC1 chose task %d", task)
            proc = self.processor_selector.select(task_graph, time_schedule, task)
            logger.info("GC2 chose processor %d", proc)
            time_schedule.add_task(task_graph, task, proc)
            task_graph.remove_vertex(task)
            frontier = task_graph.get_top_vertices()

        if len(time_schedule) != task_graph.task_num:
            unscheduled = sorted(set(range(task_graph.task_num)) - set(time_schedule.mapping))
            raise RuntimeError(f"Tasks {unscheduled} never became ready.")

        self._transition(SchedulerState.DONE)
        logger.info("time:\t%s", time_schedule.makespan)
        return time_schedule
