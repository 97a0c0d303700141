#!/usr/bin/env python
"""
Survivor Pool - Unified CLI for bracket generation and the result cascade
"""
import sys
import argparse
import json
import time
import uuid

from survivor.utils.observability import get_metrics, Logger, CORRELATION_ID
from survivor.utils.clock import parse_iso

logger = Logger(__name__)


def _store(args):
    from survivor.store.db import get_pool_store
    return get_pool_store(args.db)


def _print_json(payload):
    print(json.dumps(payload, indent=2, default=str))


def cmd_init_db(args):
    """Create the schema (idempotent)."""
    store = _store(args)
    print(f"Store ready at {store.db_path}")


def cmd_generate_bracket(args):
    """Build or rebuild the bracket graph."""
    from survivor.bracket.builder import BracketBuilder

    pairings = None
    if args.f4:
        pairings = [tuple(part.strip() for part in pair.split(",")) for pair in args.f4]

    logger.log_event('generate_bracket_started', f4_pairings=pairings)
    result = BracketBuilder(_store(args)).generate(pairings)
    _print_json(result.to_dict())
    if result.errors:
        sys.exit(1)


def cmd_activate(args):
    """Activate the round whose deadline is near."""
    from survivor.engine.scheduler import RoundScheduler

    scheduler = RoundScheduler(_store(args))
    if args.sync_deadlines:
        print(f"Synced deadlines for {scheduler.sync_deadlines()} rounds")
    result = scheduler.activate_rounds(now=parse_iso(args.now))
    _print_json(result.to_dict())


def cmd_tick(args):
    """Run one cascade tick."""
    from survivor.engine.cascade import CascadeEngine

    result = CascadeEngine(_store(args)).run_tick(now=parse_iso(args.now))
    _print_json(result.to_dict())


def cmd_complete_game(args):
    """Manually complete a game and cascade the result."""
    from survivor.engine.cascade import CascadeEngine

    result = CascadeEngine(_store(args)).apply_manual_result(
        args.game_id, args.winner_id, args.score1, args.score2
    )
    _print_json(result.to_dict())


def cmd_clear_advancement(args):
    """Blank every game after a bracket round."""
    from survivor.engine.cascade import CascadeEngine

    cleared = CascadeEngine(_store(args)).clear_bracket_advancement(args.round_code)
    print(f"Cleared {cleared} games after {args.round_code}")


def cmd_standings(args):
    """Print a pool leaderboard (or the most-picked teams of one round)."""
    from survivor.standings import pool_standings, most_picked

    store = _store(args)
    if store.get_pool(args.pool_id) is None:
        print(f"ERROR: Pool {args.pool_id} not found")
        return

    if args.round is not None:
        frame = most_picked(store, args.pool_id, args.round, alive_only=args.alive)
    else:
        frame = pool_standings(store, args.pool_id)
        if args.alive:
            frame = frame.filter(~frame["is_eliminated"])

    if args.json:
        _print_json(frame.to_dicts())
    else:
        print(frame)


def cmd_serve(args):
    """Serve the trigger API."""
    import uvicorn

    uvicorn.run("survivor.api.main:app", host=args.host, port=args.port, reload=args.reload)


def cmd_run_flow(args):
    """Execute a Prefect flow."""
    from survivor.flows import scheduler_tick_flow

    flows = {
        "scheduler-tick": lambda: scheduler_tick_flow(
            db_path=args.db,
            sync_deadlines=args.sync_deadlines,
            skip_activation=args.skip_activation,
        ),
    }

    if args.list:
        print("\nAvailable flows:")
        for name in flows.keys():
            print(f"  - {name}")
        return

    flow_func = flows.get(args.flow_name)
    if not flow_func:
        print(f"ERROR: Unknown flow '{args.flow_name}'")
        print(f"Available: {', '.join(flows.keys())}")
        return

    print(f"\nExecuting flow: {args.flow_name}")
    print("=" * 50)

    result = flow_func()

    print("=" * 50)
    print(f"Flow completed. Result: {result}")


def main():
    parser = argparse.ArgumentParser(description="Survivor Pool")
    parser.add_argument("--db", help="SQLite store path (defaults to STORE_DB_PATH)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create the database schema")
    init_db.set_defaults(func=cmd_init_db)

    generate = subparsers.add_parser("generate-bracket", help="Build the 63-game bracket graph")
    generate.add_argument("--f4", nargs=2, metavar="REGION,REGION",
                          help='Final Four pairings, e.g. --f4 East,West South,Midwest')
    generate.set_defaults(func=cmd_generate_bracket)

    activate = subparsers.add_parser("activate", help="Activate the round whose deadline is near")
    activate.add_argument("--now", help="Evaluate as of this ISO timestamp")
    activate.add_argument("--sync-deadlines", action="store_true", help="Recompute deadlines from tip-off times")
    activate.set_defaults(func=cmd_activate)

    tick = subparsers.add_parser("tick", help="Run one cascade tick")
    tick.add_argument("--now", help="Evaluate as of this ISO timestamp")
    tick.set_defaults(func=cmd_tick)

    complete = subparsers.add_parser("complete-game", help="Manually complete a game")
    complete.add_argument("game_id", type=int)
    complete.add_argument("winner_id", type=int)
    complete.add_argument("--score1", type=int, help="Team 1 score")
    complete.add_argument("--score2", type=int, help="Team 2 score")
    complete.set_defaults(func=cmd_complete_game)

    clear = subparsers.add_parser("clear-advancement", help="Reset games after a bracket round")
    clear.add_argument("round_code", choices=["R64", "R32", "S16", "E8", "F4"])
    clear.set_defaults(func=cmd_clear_advancement)

    standings = subparsers.add_parser("standings", help="Pool leaderboard")
    standings.add_argument("pool_id", type=int)
    standings.add_argument("--round", type=int, help="Show most-picked teams for this round id")
    standings.add_argument("--alive", action="store_true", help="Only alive entries")
    standings.add_argument("--json", action="store_true", help="JSON output")
    standings.set_defaults(func=cmd_standings)

    serve = subparsers.add_parser("serve", help="Run the HTTP trigger API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    # Prefect Flow Commands
    run_flow = subparsers.add_parser('run-flow', help='Execute a Prefect flow')
    run_flow.add_argument('flow_name', nargs='?', help='Flow name (e.g., scheduler-tick)')
    run_flow.add_argument('--list', '-l', action='store_true', help='List available flows')
    run_flow.add_argument('--sync-deadlines', action='store_true', help='Recompute deadlines first')
    run_flow.add_argument('--skip-activation', action='store_true', help='Only run the cascade')
    run_flow.set_defaults(func=cmd_run_flow)

    args = parser.parse_args()

    # Initialize observability and a correlation ID for this run
    get_metrics()
    CORRELATION_ID.set(uuid.uuid4().hex[:12])

    start_time = time.time()

    try:
        args.func(args)
    except Exception as e:
        logger.log_error("command_failed", command=args.command, error=str(e), exc_info=True)
        sys.exit(1)
    finally:
        duration = time.time() - start_time
        logger.log_event('command_completed', command=args.command, duration_seconds=duration)


if __name__ == "__main__":
    main()
