from itertools import product
from typing import List, Optional, Tuple

import networkx as nx
import numpy as np

from gcsched import TaskGraph

DEFAULT_TIME_RANGE: Tuple[float, float] = (1.0, 10.0)


def get_chain_dag(num_nodes: int = 4) -> nx.DiGraph:
    """Returns a chain DAG 0 -> 1 -> ... -> num_nodes - 1."""
    dag = nx.DiGraph()
    dag.add_nodes_from(range(num_nodes))
    dag.add_edges_from([(i, i + 1) for i in range(num_nodes - 1)])
    return dag


def get_diamond_dag() -> nx.DiGraph:
    """Returns a diamond DAG."""
    dag = nx.DiGraph()
    dag.add_nodes_from(range(4))
    dag.add_edges_from([(0, 1), (0, 2), (1, 3), (2, 3)])
    return dag


def get_fork_dag() -> nx.DiGraph:
    """Returns a fork DAG."""
    dag = nx.DiGraph()
    dag.add_nodes_from(range(6))
    dag.add_edges_from([(0, 1), (0, 2), (1, 3), (2, 4), (3, 5), (4, 5)])
    return dag


def get_independent_dag(num_nodes: int = 4) -> nx.DiGraph:
    """Returns num_nodes tasks without any dependency."""
    dag = nx.DiGraph()
    dag.add_nodes_from(range(num_nodes))
    return dag


def get_branching_dag(levels: int = 3, branching_factor: int = 2) -> nx.DiGraph:
    """Returns a branching DAG.

    Args:
        levels (int, optional): The number of levels. Defaults to 3.
        branching_factor (int, optional): The branching factor. Defaults to 2.

    Returns:
        nx.DiGraph: A tree of the given depth joined into a single sink.
    """
    graph = nx.DiGraph()

    node_id = 0
    level_nodes = [node_id]
    graph.add_node(node_id)
    node_id += 1

    for _ in range(1, levels):
        new_level_nodes = []
        for parent in level_nodes:
            children = [node_id + i for i in range(branching_factor)]
            graph.add_edges_from([(parent, child) for child in children])
            new_level_nodes.extend(children)
            node_id += branching_factor
        level_nodes = new_level_nodes

    graph.add_node(node_id)
    graph.add_edges_from([(node, node_id) for node in level_nodes])
    return graph


def get_random_dag(
    num_nodes: int, edge_probability: float = 0.3, rng: Optional[np.random.Generator] = None
) -> nx.DiGraph:
    """Returns a random DAG.

    Every pair i < j gets the edge i -> j with the given probability, so the
    identifiers are a topological order.
    """
    rng = np.random.default_rng() if rng is None else rng
    dag = nx.DiGraph()
    dag.add_nodes_from(range(num_nodes))
    for src, dst in product(range(num_nodes), repeat=2):
        if src < dst and rng.random() < edge_probability:
            dag.add_edge(src, dst)
    return dag


def get_ring_connections(num_procs: int) -> List[List[bool]]:
    """Returns a connectivity matrix where each processor only links to its two neighbours."""
    return [
        [
            src == dst or (src - dst) % num_procs in (1, num_procs - 1)
            for dst in range(num_procs)
        ]
        for src in range(num_procs)
    ]


def get_task_graph(
    dag: nx.DiGraph,
    num_procs: int = 2,
    task_time: Optional[float] = None,
    tran_time: Optional[float] = None,
    connections: Optional[List[List[bool]]] = None,
    time_range: Tuple[float, float] = DEFAULT_TIME_RANGE,
    rng: Optional[np.random.Generator] = None,
) -> TaskGraph:
    """Builds a scheduling instance around a DAG.

    Args:
        dag: DAG whose nodes are 0..n-1.
        num_procs: Number of processors.
        task_time: Execution time of every task on every processor. Defaults to None (random).
        tran_time: Transmission time between distinct processors. Defaults to None (random, symmetric).
        connections: Direct link matrix. Defaults to None (fully connected).
        time_range: Range random times are drawn from.
        rng: Random generator. Defaults to None (fresh generator).

    Returns:
        The task graph.
    """
    rng = np.random.default_rng() if rng is None else rng
    num_tasks = dag.number_of_nodes()

    if task_time is None:
        task_times = rng.uniform(*time_range, size=(num_procs, num_tasks))
    else:
        task_times = np.full((num_procs, num_tasks), float(task_time))

    if tran_time is None:
        tran_times = rng.uniform(*time_range, size=(num_procs, num_procs))
        tran_times = np.triu(tran_times, 1) + np.triu(tran_times, 1).T
    else:
        tran_times = np.full((num_procs, num_procs), float(tran_time))
        np.fill_diagonal(tran_times, 0.0)

    return TaskGraph.create(
        proc_num=num_procs,
        task_num=num_tasks,
        edges=list(dag.edges),
        task_times=task_times.tolist(),
        tran_times=tran_times.tolist(),
        connections=connections,
    )
