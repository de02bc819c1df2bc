import numpy as np
import pytest

from gcsched import TaskGraph
from gcsched.schedule import PlacedTask, TimeSchedule
from gcsched.utils.random_graphs import (
    get_chain_dag,
    get_diamond_dag,
    get_random_dag,
    get_ring_connections,
    get_task_graph,
)


def test_empty_schedule():
    schedule = TimeSchedule.create(3)
    assert schedule.makespan == 0.0
    assert schedule.balance_factor() == 0
    assert len(schedule) == 0
    assert schedule.proc_free_time(2) == 0.0


def test_idle_processor_makespan():
    task_graph = get_task_graph(get_chain_dag(2), num_procs=3, task_time=2, tran_time=1)
    schedule = TimeSchedule.create(3)
    schedule.add_task(task_graph, 0, 1)
    assert schedule.makespan == 2.0
    assert schedule[0] == []
    assert schedule[2] == []


def test_earliest_start_time():
    task_graph = get_task_graph(get_chain_dag(2), num_procs=2, task_time=2, tran_time=1.5)
    schedule = TimeSchedule.create(2)
    assert schedule.get_earliest_start_time(task_graph, 0, 1) == 0.0
    placed = schedule.add_task(task_graph, 0, 0)
    assert placed == PlacedTask(task=0, proc=0, start=0.0, finish=2.0)
    assert schedule.get_earliest_start_time(task_graph, 1, 0) == 2.0
    assert schedule.get_earliest_start_time(task_graph, 1, 1) == 3.5
    assert schedule.get_earliest_finish_time(task_graph, 1, 1) == 5.5
    # speculation leaves the schedule untouched
    assert len(schedule) == 1
    assert schedule[1] == []


def test_processor_free_time_wins():
    task_graph = get_task_graph(get_random_dag(3, edge_probability=0.0), num_procs=1, task_time=4)
    schedule = TimeSchedule.create(1)
    schedule.add_task(task_graph, 0, 0)
    schedule.add_task(task_graph, 2, 0)
    placed = schedule.add_task(task_graph, 1, 0)
    assert (placed.start, placed.finish) == (8.0, 12.0)
    assert [p.task for p in schedule[0]] == [0, 2, 1]


def test_unscheduled_parent():
    task_graph = get_task_graph(get_chain_dag(2), num_procs=2, task_time=1, tran_time=1)
    schedule = TimeSchedule.create(2)
    with pytest.raises(ValueError):
        schedule.get_earliest_start_time(task_graph, 1, 0)


def test_add_twice():
    task_graph = get_task_graph(get_chain_dag(2), num_procs=2, task_time=1, tran_time=1)
    schedule = TimeSchedule.create(2)
    schedule.add_task(task_graph, 0, 0)
    with pytest.raises(ValueError):
        schedule.add_task(task_graph, 0, 1)


def test_transitions():
    # processors 0 and 2 are not neighbours on a ring of four
    task_graph = TaskGraph.create(
        proc_num=4,
        task_num=4,
        edges=[(0, 1), (0, 2), (0, 3)],
        task_times=[[1] * 4] * 4,
        tran_times=[[0 if i == j else 1 for j in range(4)] for i in range(4)],
        connections=get_ring_connections(4),
    )
    schedule = TimeSchedule.create(4)
    schedule.add_task(task_graph, 0, 0)
    schedule.add_task(task_graph, 1, 2)
    assert (schedule.transitions, schedule.indirect_transitions) == (1, 1)
    schedule.add_task(task_graph, 2, 1)
    assert (schedule.transitions, schedule.indirect_transitions) == (2, 1)
    schedule.add_task(task_graph, 3, 0)
    assert (schedule.transitions, schedule.indirect_transitions) == (2, 1)
    assert schedule.communication_ratio(task_graph) == pytest.approx(2 / 3)
    assert schedule.indirect_ratio(task_graph) == pytest.approx(1 / 3)
    assert schedule.mapping == {0: 0, 1: 2, 2: 1, 3: 0}


def test_communication_ratio_is_fractional():
    task_graph = get_task_graph(get_diamond_dag(), num_procs=2, task_time=1, tran_time=1)
    schedule = TimeSchedule.create(2)
    schedule.add_task(task_graph, 0, 0)
    schedule.add_task(task_graph, 1, 1)
    # one crossing out of four edges
    assert schedule.transitions == 1
    assert schedule.communication_ratio(task_graph) == pytest.approx(0.25)
    assert schedule.indirect_ratio(task_graph) == 0.0


def test_ratios_without_edges():
    task_graph = get_task_graph(get_random_dag(2, edge_probability=0.0), num_procs=2, task_time=1, tran_time=1)
    schedule = TimeSchedule.create(2)
    schedule.add_task(task_graph, 0, 0)
    assert schedule.communication_ratio(task_graph) == 0.0
    assert schedule.communication_ratio_with_task(task_graph, 1, 1) == 0.0
    assert schedule.indirect_ratio(task_graph) == 0.0


@pytest.mark.parametrize(
    "counts, expected",
    [
        ([1, 1], 0),
        ([2, 1], 34),
        ([3, 1], 50),
        ([2, 0], 100),
        ([3, 2], 20),
        ([2, 1, 0], 100),
        ([1, 1, 1], 0),
    ],
)
def test_balance_factor(counts, expected):
    num_tasks = sum(counts)
    task_graph = get_task_graph(
        get_random_dag(num_tasks, edge_probability=0.0), num_procs=len(counts), task_time=1, tran_time=1
    )
    schedule = TimeSchedule.create(len(counts))
    task = 0
    for proc, count in enumerate(counts):
        for _ in range(count):
            schedule.add_task(task_graph, task, proc)
            task += 1
    assert schedule.balance_factor() == expected


def test_hypothetical_metrics_match_copies():
    rng = np.random.default_rng(7)
    task_graph = get_task_graph(
        get_random_dag(12, edge_probability=0.4, rng=rng),
        num_procs=3,
        connections=[[True, True, False], [True, True, True], [False, True, True]],
        rng=rng,
    )
    schedule = TimeSchedule.create(3)
    for task in range(task_graph.task_num):
        for proc in range(task_graph.proc_num):
            copy = schedule.with_task(task_graph, task, proc)
            assert copy.communication_ratio(task_graph) == schedule.communication_ratio_with_task(task_graph, task, proc)
            assert copy.balance_factor() == schedule.balance_factor_with_task(proc)
            transitions, indirect = schedule.transitions_with_task(task_graph, task, proc)
            assert copy.transitions == schedule.transitions + transitions
            assert copy.indirect_transitions == schedule.indirect_transitions + indirect
            assert copy.get_scheduled_task(task).start == schedule.get_earliest_start_time(task_graph, task, proc)
        assert len(schedule) == task
        schedule.add_task(task_graph, task, int(rng.integers(task_graph.proc_num)))


def test_with_task_leaves_original():
    task_graph = get_task_graph(get_chain_dag(3), num_procs=2, task_time=1, tran_time=1)
    schedule = TimeSchedule.create(2)
    schedule.add_task(task_graph, 0, 0)
    copy = schedule.with_task(task_graph, 1, 1)
    assert not schedule.is_scheduled(1)
    assert schedule.transitions == 0
    assert copy.is_scheduled(1)
    assert copy.transitions == 1
    assert copy.get_scheduled_task(0) == schedule.get_scheduled_task(0)


def test_round_trip_through_json():
    task_graph = get_task_graph(get_diamond_dag(), num_procs=2, task_time=1, tran_time=1)
    schedule = TimeSchedule.create(2)
    for task, proc in [(0, 0), (1, 1), (2, 0), (3, 0)]:
        schedule.add_task(task_graph, task, proc)
    restored = TimeSchedule.model_validate_json(schedule.model_dump_json())
    assert restored.proc_array == schedule.proc_array
    assert restored.mapping == schedule.mapping
    assert restored.makespan == schedule.makespan
    assert restored.get_scheduled_task(3) == schedule.get_scheduled_task(3)
