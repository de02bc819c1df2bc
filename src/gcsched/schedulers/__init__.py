from .criteria import (
    BalanceFactorCriterion,
    CommunicationRatioCriterion,
    Criteria,
    CriticalPathSelector,
    EarliestFinishTime,
    ProcessorSelector,
    TaskSelector,
    get_processor_selector,
)
from .gc import GreedyCriteriaScheduler, SchedulerState

__all__ = [
    "BalanceFactorCriterion",
    "CommunicationRatioCriterion",
    "Criteria",
    "CriticalPathSelector",
    "EarliestFinishTime",
    "GreedyCriteriaScheduler",
    "ProcessorSelector",
    "SchedulerState",
    "TaskSelector",
    "get_processor_selector",
]
