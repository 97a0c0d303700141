"""
Pool standings and pick distribution as polars frames.
"""
from typing import Optional

import polars as pl

from survivor.store.db import PoolStore

PICK_SCHEMA = {
    "entry_id": pl.Int64,
    "user_id": pl.Utf8,
    "entry_name": pl.Utf8,
    "is_eliminated": pl.Boolean,
    "elimination_reason": pl.Utf8,
    "elimination_round": pl.Utf8,
    "round_id": pl.Int64,
    "round_name": pl.Utf8,
    "round_date": pl.Utf8,
    "team_name": pl.Utf8,
    "team_seed": pl.Int64,
    "is_correct": pl.Boolean,
}


def pick_frame(store: PoolStore, pool_id: int) -> pl.DataFrame:
    """One row per (entry, pick); entries with no picks have null pick columns."""
    records = []
    for row in store.standings_rows(pool_id):
        record = dict(row)
        record["is_eliminated"] = bool(record["is_eliminated"])
        if record["is_correct"] is not None:
            record["is_correct"] = bool(record["is_correct"])
        records.append(record)
    return pl.DataFrame(records, schema=PICK_SCHEMA)


def pool_standings(store: PoolStore, pool_id: int) -> pl.DataFrame:
    """
    Leaderboard: alive entries first, then by correct picks.

    Columns: entry_id, user_id, entry_name, is_eliminated, elimination_reason,
    elimination_round, picks_made, correct_picks, pending_picks, last_pick.
    """
    return (
        pick_frame(store, pool_id)
        .sort(["entry_id", "round_date"])
        .group_by("entry_id", maintain_order=True)
        .agg([
            pl.col("user_id").first(),
            pl.col("entry_name").first(),
            pl.col("is_eliminated").first(),
            pl.col("elimination_reason").first(),
            pl.col("elimination_round").first(),
            pl.col("round_id").count().alias("picks_made"),
            pl.col("is_correct").fill_null(False).sum().alias("correct_picks"),
            (pl.col("round_id").is_not_null() & pl.col("is_correct").is_null()).sum().alias("pending_picks"),
            pl.col("team_name").drop_nulls().last().alias("last_pick"),
        ])
        .sort(["is_eliminated", "correct_picks", "entry_id"], descending=[False, True, False])
    )


def most_picked(store: PoolStore, pool_id: int, round_id: int, alive_only: bool = False) -> pl.DataFrame:
    """Teams picked in a round with count and share of the round's picks."""
    picks = pick_frame(store, pool_id).filter(pl.col("round_id") == round_id)
    if alive_only:
        picks = picks.filter(~pl.col("is_eliminated"))

    total = picks.height
    if total == 0:
        return pl.DataFrame(
            schema={"team_name": pl.Utf8, "team_seed": pl.Int64, "count": pl.UInt32, "pct": pl.Float64}
        )

    return (
        picks.group_by(["team_name", "team_seed"])
        .agg(pl.len().alias("count"))
        .with_columns((pl.col("count") / total * 100).round(1).alias("pct"))
        .sort(["count", "team_seed"], descending=[True, False])
    )


def summarize(store: PoolStore, pool_id: int) -> Optional[dict]:
    """Headline numbers for a pool, or None if it does not exist."""
    pool = store.get_pool(pool_id)
    if pool is None:
        return None
    standings = pool_standings(store, pool_id)
    alive = standings.filter(~pl.col("is_eliminated")).height
    return {
        "pool_id": pool.id,
        "name": pool.name,
        "status": pool.status.value,
        "winner_id": pool.winner_id,
        "entries": standings.height,
        "alive": alive,
        "standings": standings.to_dicts(),
    }
