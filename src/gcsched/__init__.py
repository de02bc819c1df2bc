from copy import deepcopy
import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np
from pydantic import BaseModel, Field, PrivateAttr

logger = logging.getLogger("GCSCHED:gcsched")

# Tolerance for floating point comparisons
EPS = 1e-9


class MalformedInputError(ValueError):
    """The problem instance is inconsistent (bad dimensions, endpoints or a cycle)."""


class InvalidIndexError(IndexError):
    """A processor or task identifier is outside of its valid range."""


class Dependency(BaseModel):
    """A precedence edge in the task graph."""

    model_config = {"frozen": True}

    source: int = Field(..., description="The task that produces the data.")
    target: int = Field(..., description="The task that consumes the data.")
    min_time: float = Field(
        0.0,
        description="Fastest possible execution of the source task. Only used for critical path relaxation.",
    )


class TaskGraph(BaseModel):
    """A task graph together with its execution, transmission and connectivity matrices.

    Tasks are addressed by stable integer identifiers in ``[0, task_num)``.
    Removing a task only marks it as absent so that identifiers keep indexing
    the cost matrices. Fictive tasks get identifiers starting at ``task_num``
    and only live between :meth:`create_fictive_node` and
    :meth:`hard_remove_fictive_vertices`.
    """

    proc_num: int = Field(..., description="The number of processors.")
    task_num: int = Field(..., description="The number of real tasks.")
    edges: List[Tuple[int, int]] = Field(
        ..., description="The precedence edges as (source, target) pairs."
    )
    task_times: List[List[float]] = Field(
        ..., description="Execution time of each task on each processor (proc_num x task_num)."
    )
    tran_times: List[List[float]] = Field(
        ..., description="Transmission time between processors (proc_num x proc_num)."
    )
    connections: List[List[bool]] = Field(
        ..., description="Whether two processors share a direct link (proc_num x proc_num)."
    )

    _graph: nx.DiGraph = PrivateAttr(default_factory=nx.DiGraph)
    _task_times: np.ndarray = PrivateAttr()
    _tran_times: np.ndarray = PrivateAttr()
    _connections: np.ndarray = PrivateAttr()
    _live_in_degree: Dict[int, int] = PrivateAttr(default_factory=dict)
    _fictive_root: Optional[int] = PrivateAttr(default=None)
    _num_edges: int = PrivateAttr(default=0)

    @classmethod
    def create(
        cls,
        proc_num: int,
        task_num: int,
        edges: Iterable[Tuple[int, int]],
        task_times: Sequence[Sequence[float]],
        tran_times: Sequence[Sequence[float]],
        connections: Optional[Sequence[Sequence[bool]]] = None,
    ) -> "TaskGraph":
        """Create a new task graph and check that it is a valid instance.

        This is the supported constructor: it normalises the edges (duplicates
        are dropped) and fills in default connections. Building the model
        directly runs the same checks.

        Args:
            proc_num: The number of processors.
            task_num: The number of tasks.
            edges: The precedence edges as (source, target) pairs.
            task_times: Execution time matrix indexed by [processor][task].
            tran_times: Transmission time matrix indexed by [processor][processor].
            connections: Direct link matrix indexed by [processor][processor].
                Defaults to None (every pair of processors is directly connected).

        Returns:
            TaskGraph: A new task graph instance.

        Raises:
            MalformedInputError: If the matrices or the edges are inconsistent,
                or if the edges contain a cycle.
        """
        edge_list: List[Tuple[int, int]] = []
        seen = set()
        for edge in edges:
            if len(edge) != 2:
                raise MalformedInputError(f"Invalid edge: {edge}")
            src, dst = int(edge[0]), int(edge[1])
            if (src, dst) in seen:
                logger.warning("Duplicate edge (%d, %d) ignored.", src, dst)
                continue
            seen.add((src, dst))
            edge_list.append((src, dst))
        if connections is None:
            connections = [[True] * proc_num for _ in range(proc_num)]

        task_times = [list(row) for row in task_times]
        tran_times = [list(row) for row in tran_times]
        connections = [list(row) for row in connections]
        _check_instance(proc_num, task_num, edge_list, task_times, tran_times, connections)
        return cls(
            proc_num=proc_num,
            task_num=task_num,
            edges=edge_list,
            task_times=task_times,
            tran_times=tran_times,
            connections=connections,
        )

    def model_post_init(self, __context) -> None:
        _check_instance(
            self.proc_num, self.task_num, self.edges,
            self.task_times, self.tran_times, self.connections,
        )
        self._task_times = np.asarray(self.task_times, dtype=float).reshape(
            self.proc_num, self.task_num
        )
        self._tran_times = np.asarray(self.tran_times, dtype=float)
        self._connections = np.asarray(self.connections, dtype=bool)

        graph = nx.DiGraph()
        for task in range(self.task_num):
            graph.add_node(
                task, shortest_path_length=None, is_fictive=False, is_existent=True
            )
        for src, dst in self.edges:
            graph.add_edge(src, dst, min_time=self._min_time(src))
        self._graph = graph
        self._live_in_degree = {task: graph.in_degree(task) for task in graph.nodes}
        self._num_edges = graph.number_of_edges()

    def _min_time(self, task: int) -> float:
        if self.proc_num == 0 or self.task_num == 0:
            return 0.0
        return float(self._task_times[:, task].min())

    def _check_task(self, task: int, allow_fictive: bool = False) -> None:
        if 0 <= task < self.task_num:
            return
        if allow_fictive and task in self._graph and self._graph.nodes[task]["is_fictive"]:
            return
        raise InvalidIndexError(f"Task {task} is not in [0, {self.task_num}).")

    def _check_proc(self, proc: int) -> None:
        if not 0 <= proc < self.proc_num:
            raise InvalidIndexError(f"Processor {proc} is not in [0, {self.proc_num}).")

    @property
    def graph(self) -> nx.DiGraph:
        """The underlying NetworkX graph, fictive nodes included.

        Returns:
            nx.DiGraph: The graph. Must not be modified.
        """
        return self._graph

    @property
    def num_edges(self) -> int:
        """Get the number of dependencies between real tasks.

        Returns:
            int: The number of edges. Soft deleting tasks does not change it.
        """
        return self._num_edges

    def get_task_time(self, proc: int, task: int) -> float:
        """Get the execution time of a task on a processor.

        Args:
            proc (int): The processor.
            task (int): The task. Fictive tasks take no time.

        Returns:
            float: The execution time.

        Raises:
            InvalidIndexError: If the processor or the task does not exist.
        """
        self._check_proc(proc)
        self._check_task(task, allow_fictive=True)
        if task >= self.task_num:
            return 0.0
        return float(self._task_times[proc, task])

    def get_tran_time(self, proc_from: int, proc_to: int) -> float:
        """Get the time it takes to move data between two processors.

        Args:
            proc_from (int): The sending processor.
            proc_to (int): The receiving processor.

        Returns:
            float: The transmission time.

        Raises:
            InvalidIndexError: If either processor does not exist.
        """
        self._check_proc(proc_from)
        self._check_proc(proc_to)
        return float(self._tran_times[proc_from, proc_to])

    def is_direct_connection(self, proc1: int, proc2: int) -> bool:
        """Check if two processors share a direct link.

        Args:
            proc1 (int): The first processor.
            proc2 (int): The second processor.

        Returns:
            bool: True if the processors are the same or directly linked.
        """
        self._check_proc(proc1)
        self._check_proc(proc2)
        return proc1 == proc2 or bool(self._connections[proc1, proc2])

    def in_degree(self, task: int) -> int:
        """Get the number of dependencies of a task, removed parents included."""
        return len(self.in_edges(task))

    def in_edges(self, task: int) -> List[Dependency]:
        """Get the incoming dependencies of a task.

        Parents that were already removed are still reported since their
        output is what the task waits for. Edges from fictive nodes are not.

        Args:
            task (int): The task.

        Returns:
            List[Dependency]: The incoming dependencies.
        """
        self._check_task(task)
        return [
            Dependency(source=src, target=dst, min_time=data["min_time"])
            for src, dst, data in self._graph.in_edges(task, data=True)
            if not self._graph.nodes[src]["is_fictive"]
        ]

    def out_degree(self, task: int) -> int:
        """Get the number of tasks that depend on a task."""
        return len(self.out_edges(task))

    def out_edges(self, task: int) -> List[Dependency]:
        """Get the outgoing dependencies of a task.

        Args:
            task (int): The task.

        Returns:
            List[Dependency]: The outgoing dependencies.
        """
        self._check_task(task, allow_fictive=True)
        return [
            Dependency(source=src, target=dst, min_time=data["min_time"])
            for src, dst, data in self._graph.out_edges(task, data=True)
        ]

    def is_existent(self, task: int) -> bool:
        """Check whether a task has not been removed yet."""
        self._check_task(task, allow_fictive=True)
        return self._graph.nodes[task]["is_existent"]

    def get_top_vertices(self) -> List[int]:
        """Get the ready frontier.

        Returns:
            List[int]: The existent real tasks with no existent parent, in increasing order.
        """
        return [
            task
            for task in range(self.task_num)
            if self._graph.nodes[task]["is_existent"] and self._live_in_degree[task] == 0
        ]

    def remove_vertex(self, task: int) -> None:
        """Mark a task as removed.

        The task keeps its identifier and its edges, but no longer blocks its
        children from reaching the ready frontier.

        Args:
            task (int): The task to remove.

        Raises:
            ValueError: If the task was already removed.
        """
        self._check_task(task)
        node = self._graph.nodes[task]
        if not node["is_existent"]:
            raise ValueError(f"Task {task} was already removed.")
        node["is_existent"] = False
        for child in self._graph.successors(task):
            self._live_in_degree[child] -= 1

    def create_fictive_node(self, tasks: Iterable[int]) -> int:
        """Add a fictive root with zero weight edges to the given tasks.

        Args:
            tasks (Iterable[int]): The tasks the root should point to, usually the ready frontier.

        Returns:
            int: The identifier of the fictive root.

        Raises:
            ValueError: If a fictive root already exists or no task is given.
        """
        if self._fictive_root is not None:
            raise ValueError(f"Fictive root {self._fictive_root} already exists.")
        tasks = list(tasks)
        if not tasks:
            raise ValueError("Cannot create a fictive root over no tasks.")
        for task in tasks:
            self._check_task(task)

        root = self.task_num
        while root in self._graph:
            root += 1
        self._graph.add_node(
            root, shortest_path_length=0.0, is_fictive=True, is_existent=True
        )
        for task in tasks:
            self._graph.add_edge(root, task, min_time=0.0)
        self._fictive_root = root
        logger.debug("Fictive root %d points to %s", root, tasks)
        return root

    def set_up_critical_paths(self) -> Dict[int, float]:
        """Compute the shortest path from the fictive root to every task.

        Edges are relaxed in topological order using their ``min_time`` weight.

        Returns:
            Dict[int, float]: The distance of every reachable real task.

        Raises:
            ValueError: If there is no fictive root.
            MalformedInputError: If the graph contains a cycle.
        """
        if self._fictive_root is None:
            raise ValueError("Critical paths need a fictive root.")
        try:
            order = list(nx.topological_sort(self._graph))
        except nx.NetworkXUnfeasible as exc:
            raise MalformedInputError("Task graph contains a cycle.") from exc

        distances: Dict[int, float] = {self._fictive_root: 0.0}
        for node in order:
            if node not in distances:
                continue
            for _, child, data in self._graph.out_edges(node, data=True):
                candidate = distances[node] + data["min_time"]
                if child not in distances or candidate < distances[child]:
                    distances[child] = candidate

        for node in self._graph.nodes:
            self._graph.nodes[node]["shortest_path_length"] = distances.get(node)
        return {
            task: distance
            for task, distance in distances.items()
            if not self._graph.nodes[task]["is_fictive"]
        }

    def shortest_path_length(self, task: int) -> Optional[float]:
        """Get the critical path distance of a task.

        Args:
            task (int): The task.

        Returns:
            Optional[float]: The distance, or None if it was never computed or the task is unreachable.
        """
        self._check_task(task, allow_fictive=True)
        return self._graph.nodes[task]["shortest_path_length"]

    def hard_remove_fictive_vertices(self) -> None:
        """Delete every fictive node together with its edges."""
        fictive = [
            node for node, data in self._graph.nodes(data=True) if data["is_fictive"]
        ]
        self._graph.remove_nodes_from(fictive)
        self._fictive_root = None

    def copy(self) -> "TaskGraph":
        """Get an independent copy of the task graph, removal state included."""
        return deepcopy(self)


def _check_instance(
    proc_num: int,
    task_num: int,
    edges: Sequence[Tuple[int, int]],
    task_times: Sequence[Sequence[float]],
    tran_times: Sequence[Sequence[float]],
    connections: Sequence[Sequence[bool]],
) -> None:
    if proc_num <= 0:
        raise MalformedInputError(f"Need at least one processor, got {proc_num}.")
    if task_num < 0:
        raise MalformedInputError(f"Negative number of tasks: {task_num}.")

    for src, dst in edges:
        if not (0 <= src < task_num and 0 <= dst < task_num):
            raise MalformedInputError(
                f"Edge ({src}, {dst}) has an endpoint outside of [0, {task_num})."
            )
        if src == dst:
            raise MalformedInputError(f"Edge ({src}, {dst}) is a self loop.")

    _check_shape("task_times", task_times, proc_num, task_num)
    _check_shape("tran_times", tran_times, proc_num, proc_num)
    _check_shape("connections", connections, proc_num, proc_num)

    # NaN and infinity are rejected too
    if not all(math.isfinite(value) and value >= 0 for row in task_times for value in row):
        raise MalformedInputError("Execution times must be finite and non-negative.")
    if not all(math.isfinite(value) and value >= 0 for row in tran_times for value in row):
        raise MalformedInputError("Transmission times must be finite and non-negative.")
    for proc in range(proc_num):
        if tran_times[proc][proc] != 0:
            raise MalformedInputError(
                f"Transmission time from processor {proc} to itself must be zero."
            )

    graph = nx.DiGraph(list(edges))
    if not nx.is_directed_acyclic_graph(graph):
        cycle = nx.find_cycle(graph)
        raise MalformedInputError(f"Task graph contains a cycle: {cycle}")


def _check_shape(
    name: str, matrix: Sequence[Sequence], rows: int, columns: int
) -> None:
    if len(matrix) != rows or any(len(row) != columns for row in matrix):
        raise MalformedInputError(f"{name} must be {rows}x{columns}.")
