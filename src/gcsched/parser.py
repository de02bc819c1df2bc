import logging
import pathlib
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from gcsched import MalformedInputError, TaskGraph

logger = logging.getLogger("GCSCHED:gcsched.parser")


class ProblemInstance(BaseModel):
    """The on-disk description of a scheduling problem."""

    model_config = {"extra": "forbid"}

    proc_num: int = Field(..., ge=1, description="The number of processors.")
    task_num: int = Field(..., ge=0, description="The number of tasks.")
    edges: List[Tuple[int, int]] = Field(default_factory=list, description="The precedence edges.")
    task_times: List[List[float]] = Field(..., description="Execution times, [processor][task].")
    tran_times: List[List[float]] = Field(..., description="Transmission times, [processor][processor].")
    connections: Optional[List[List[bool]]] = Field(
        None, description="Direct links, [processor][processor]. Defaults to fully connected."
    )

    def to_task_graph(self) -> TaskGraph:
        return TaskGraph.create(
            proc_num=self.proc_num,
            task_num=self.task_num,
            edges=self.edges,
            task_times=self.task_times,
            tran_times=self.tran_times,
            connections=self.connections,
        )


def parse_task_graph(text: str) -> TaskGraph:
    """Parse a task graph from its JSON description.

    Args:
        text (str): The JSON document.

    Returns:
        TaskGraph: The task graph.

    Raises:
        MalformedInputError: If the document does not describe a valid instance.
    """
    try:
        instance = ProblemInstance.model_validate_json(text)
    except ValidationError as exc:
        raise MalformedInputError(f"Invalid problem instance:\n{exc}") from exc
    return instance.to_task_graph()


def load_task_graph(path: str | pathlib.Path) -> TaskGraph:
    """Read a task graph from a JSON file.

    Args:
        path (str | pathlib.Path): The file to read.

    Returns:
        TaskGraph: The task graph.

    Raises:
        MalformedInputError: If the file does not describe a valid instance.
        OSError: If the file cannot be read.
    """
    path = pathlib.Path(path)
    logger.info("Reading task graph from %s", path)
    task_graph = parse_task_graph(path.read_text())
    logger.info(
        "Read %d tasks, %d edges and %d processors",
        task_graph.task_num, task_graph.num_edges, task_graph.proc_num,
    )
    return task_graph


def dump_task_graph(task_graph: TaskGraph, path: Optional[str | pathlib.Path] = None) -> str:
    """Serialize a task graph to the JSON input format.

    Args:
        task_graph (TaskGraph): The task graph.
        path (Optional[str | pathlib.Path], optional): Where to write the document. Defaults to None (not written).

    Returns:
        str: The JSON document.
    """
    instance = ProblemInstance(
        proc_num=task_graph.proc_num,
        task_num=task_graph.task_num,
        edges=task_graph.edges,
        task_times=task_graph.task_times,
        tran_times=task_graph.tran_times,
        connections=task_graph.connections,
    )
    text = instance.model_dump_json(indent=2)
    if path is not None:
        pathlib.Path(path).write_text(text)
    return text
