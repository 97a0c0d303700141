"""
Scheduler tick flow - activation followed by one cascade pass.
"""
from prefect import flow, task
from prefect.logging import get_run_logger
from typing import Dict, Any, Optional


@task(name="sync-deadlines")
def sync_deadlines_task(db_path: Optional[str] = None) -> int:
    """Recompute pick deadlines from game tip-off times."""
    from survivor.engine.scheduler import RoundScheduler
    from survivor.store.db import get_pool_store

    logger = get_run_logger()
    updated = RoundScheduler(get_pool_store(db_path)).sync_deadlines()
    logger.info(f"Synced deadlines for {updated} rounds")
    return updated


@task(name="activate-rounds")
def activate_rounds_task(db_path: Optional[str] = None) -> Dict[str, Any]:
    """Make the round whose deadline is near the live round."""
    from survivor.engine.scheduler import RoundScheduler
    from survivor.store.db import get_pool_store

    logger = get_run_logger()
    result = RoundScheduler(get_pool_store(db_path)).activate_rounds()
    logger.info(result.message)
    return result.to_dict()


@task(retries=1, retry_delay_seconds=30, name="process-results")
def process_results_task(db_path: Optional[str] = None) -> Dict[str, Any]:
    """Run one cascade tick. Retried only when the tick could not start."""
    from survivor.engine.cascade import CascadeEngine
    from survivor.store.db import get_pool_store

    logger = get_run_logger()
    result = CascadeEngine(get_pool_store(db_path)).run_tick()
    logger.info(
        f"{result.message}: {result.games_completed} games final, "
        f"{result.entries_eliminated} entries eliminated"
    )
    for error in result.errors:
        logger.warning(error)
    return result.to_dict()


@flow(name="scheduler-tick", log_prints=True)
def scheduler_tick_flow(
    db_path: Optional[str] = None,
    sync_deadlines: bool = False,
    skip_activation: bool = False,
) -> Dict[str, Any]:
    """
    One scheduler invocation.

    Args:
        db_path: Store location (defaults to STORE_DB_PATH)
        sync_deadlines: Recompute deadlines before activation
        skip_activation: Only run the cascade

    Returns:
        Summary dict with activation and cascade results
    """
    logger = get_run_logger()
    summary: Dict[str, Any] = {"deadlines_synced": 0, "activation": None, "cascade": None}

    if sync_deadlines:
        summary["deadlines_synced"] = sync_deadlines_task(db_path)

    if not skip_activation:
        summary["activation"] = activate_rounds_task(db_path)

    summary["cascade"] = process_results_task(db_path)

    logger.info(f"Tick finished: {summary['cascade']['message']}")
    return summary
