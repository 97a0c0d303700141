# Flows module - Prefect workflow orchestration
from .tick import scheduler_tick_flow, activate_rounds_task, process_results_task, sync_deadlines_task

__all__ = [
    "scheduler_tick_flow",
    "activate_rounds_task",
    "process_results_task",
    "sync_deadlines_task",
]
