"""
SQLite-backed store for teams, rounds, games, picks, entries and pools.

Every state-changing statement is a conditional update guarded by the current
state (e.g. "only where is_correct IS NULL"), so a scheduler that fires twice
for the same tick converges to the same result. Methods return
cursor.rowcount so callers count only real transitions.

Schema:
- teams, rounds, games, pools, pool_players, picks
- scheduler_state: single row (id = 1) holding the live round and a version
"""
import sqlite3
import logging
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from survivor.store.models import (
    EliminationReason,
    Entry,
    Game,
    GameStatus,
    Pick,
    Pool,
    PoolStatus,
    Round,
    SchedulerState,
    Team,
)
from survivor.utils.clock import to_iso, utc_now, parse_iso

logger = logging.getLogger(__name__)

SHELL_ROUND_CODES = ("R32", "S16", "E8", "F4", "CHIP")

SCHEMA = """
    CREATE TABLE IF NOT EXISTS teams (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        abbreviation TEXT,
        seed INTEGER NOT NULL CHECK (seed BETWEEN 1 AND 16),
        region TEXT NOT NULL,
        is_eliminated INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS rounds (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        date TEXT NOT NULL,
        deadline_datetime TEXT,
        is_active INTEGER NOT NULL DEFAULT 0,
        completed_at TEXT
    );

    CREATE TABLE IF NOT EXISTS games (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        round_id INTEGER NOT NULL REFERENCES rounds(id),
        espn_game_id TEXT,
        game_datetime TEXT,
        team1_id INTEGER REFERENCES teams(id),
        team2_id INTEGER REFERENCES teams(id),
        team1_score INTEGER,
        team2_score INTEGER,
        status TEXT NOT NULL DEFAULT 'scheduled',
        winner_id INTEGER REFERENCES teams(id),

        -- Bracket graph
        matchup_code TEXT,
        bracket_position INTEGER,
        tournament_round TEXT,
        parent_game_a_id INTEGER REFERENCES games(id),
        parent_game_b_id INTEGER REFERENCES games(id),
        advances_to_game_id INTEGER REFERENCES games(id),
        advances_to_slot INTEGER CHECK (advances_to_slot IN (1, 2))
    );

    CREATE TABLE IF NOT EXISTS pools (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'open',
        winner_id TEXT,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS pool_players (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        pool_id INTEGER NOT NULL REFERENCES pools(id),
        user_id TEXT NOT NULL,
        entry_name TEXT,
        is_eliminated INTEGER NOT NULL DEFAULT 0,
        elimination_round_id INTEGER REFERENCES rounds(id),
        elimination_reason TEXT,
        entry_deleted INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS picks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        pool_player_id INTEGER NOT NULL REFERENCES pool_players(id),
        round_id INTEGER NOT NULL REFERENCES rounds(id),
        team_id INTEGER NOT NULL REFERENCES teams(id),
        is_correct INTEGER,
        created_at TEXT NOT NULL,

        UNIQUE(pool_player_id, round_id)
    );

    CREATE TABLE IF NOT EXISTS scheduler_state (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        active_round_id INTEGER REFERENCES rounds(id),
        version INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT
    );

    INSERT OR IGNORE INTO scheduler_state (id, active_round_id, version) VALUES (1, NULL, 0);

    CREATE UNIQUE INDEX IF NOT EXISTS idx_games_matchup ON games(matchup_code);
    CREATE INDEX IF NOT EXISTS idx_games_round_status ON games(round_id, status);
    CREATE INDEX IF NOT EXISTS idx_picks_round_team ON picks(round_id, team_id);
    CREATE INDEX IF NOT EXISTS idx_picks_pending ON picks(round_id) WHERE is_correct IS NULL;
    CREATE INDEX IF NOT EXISTS idx_pool_players_alive ON pool_players(pool_id, is_eliminated);
"""

_GAME_SELECT = """
    SELECT g.*, t1.name AS team1_name, t2.name AS team2_name
    FROM games g
    LEFT JOIN teams t1 ON t1.id = g.team1_id
    LEFT JOIN teams t2 ON t2.id = g.team2_id
"""


def _placeholders(values: Sequence) -> str:
    return ", ".join("?" for _ in values)


class PoolStore:
    """
    SQLite store for the survivor pool.

    Example:
        store = PoolStore("data/survivor.db")
        round_id = store.add_round("Round of 64 - Day 1", date(2026, 3, 19))
        store.grade_picks(round_id, team_id=7, correct=True)
    """

    def __init__(self, db_path: str = "data/survivor.db", busy_timeout_ms: int = 30000):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout_ms = busy_timeout_ms
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection with appropriate settings."""
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout_ms / 1000)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(f"PRAGMA busy_timeout={int(self.busy_timeout_ms)}")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error, always close."""
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.executescript(SCHEMA)
        logger.info(f"Initialized pool store at {self.db_path}")

    def _fetch_all(self, sql: str, params: Sequence = ()) -> List[sqlite3.Row]:
        with self._transaction() as conn:
            return conn.execute(sql, tuple(params)).fetchall()

    def _fetch_one(self, sql: str, params: Sequence = ()) -> Optional[sqlite3.Row]:
        with self._transaction() as conn:
            return conn.execute(sql, tuple(params)).fetchone()

    def _execute(self, sql: str, params: Sequence = ()) -> int:
        with self._transaction() as conn:
            return conn.execute(sql, tuple(params)).rowcount

    def _insert(self, sql: str, params: Sequence = ()) -> int:
        with self._transaction() as conn:
            return conn.execute(sql, tuple(params)).lastrowid

    # ------------------------------------------------------------------
    # Setup (used by seeding scripts, the pick surface and tests)
    # ------------------------------------------------------------------

    def add_team(self, name: str, seed: int, region: str, abbreviation: str = None) -> int:
        return self._insert(
            "INSERT INTO teams (name, abbreviation, seed, region) VALUES (?, ?, ?, ?)",
            (name, abbreviation, seed, region),
        )

    def add_round(self, name: str, round_date: date, deadline: datetime = None) -> int:
        return self._insert(
            "INSERT INTO rounds (name, date, deadline_datetime) VALUES (?, ?, ?)",
            (name, round_date.isoformat(), to_iso(deadline)),
        )

    def add_game(
        self,
        round_id: int,
        team1_id: int = None,
        team2_id: int = None,
        game_datetime: datetime = None,
        external_id: str = None,
    ) -> int:
        return self._insert(
            "INSERT INTO games (round_id, team1_id, team2_id, game_datetime, espn_game_id, status) "
            "VALUES (?, ?, ?, ?, ?, 'scheduled')",
            (round_id, team1_id, team2_id, to_iso(game_datetime), external_id),
        )

    def add_pool(self, name: str, status: PoolStatus = PoolStatus.OPEN) -> int:
        return self._insert(
            "INSERT INTO pools (name, status, created_at) VALUES (?, ?, ?)",
            (name, PoolStatus(status).value, to_iso(utc_now())),
        )

    def add_entry(self, pool_id: int, user_id: str, entry_name: str = None) -> int:
        return self._insert(
            "INSERT INTO pool_players (pool_id, user_id, entry_name) VALUES (?, ?, ?)",
            (pool_id, user_id, entry_name),
        )

    def add_pick(self, entry_id: int, round_id: int, team_id: int) -> int:
        return self._insert(
            "INSERT INTO picks (pool_player_id, round_id, team_id, created_at) VALUES (?, ?, ?, ?)",
            (entry_id, round_id, team_id, to_iso(utc_now())),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count_teams(self) -> int:
        return self._fetch_one("SELECT COUNT(*) FROM teams")[0]

    def list_teams(self) -> List[Team]:
        return [Team.from_row(r) for r in self._fetch_all("SELECT * FROM teams ORDER BY id")]

    def get_team(self, team_id: int) -> Optional[Team]:
        row = self._fetch_one("SELECT * FROM teams WHERE id = ?", (team_id,))
        return Team.from_row(row) if row else None

    def list_rounds(self) -> List[Round]:
        rows = self._fetch_all("SELECT * FROM rounds ORDER BY date ASC, id ASC")
        return [Round.from_row(r) for r in rows]

    def get_round(self, round_id: int) -> Optional[Round]:
        row = self._fetch_one("SELECT * FROM rounds WHERE id = ?", (round_id,))
        return Round.from_row(row) if row else None

    def later_rounds(self, round_: Round) -> List[Round]:
        """Rounds scheduled after the given one (by date, then id)."""
        day = round_.date.isoformat()
        rows = self._fetch_all(
            "SELECT * FROM rounds WHERE date > ? OR (date = ? AND id > ?) ORDER BY date ASC, id ASC",
            (day, day, round_.id),
        )
        return [Round.from_row(r) for r in rows]

    def get_game(self, game_id: int) -> Optional[Game]:
        row = self._fetch_one(_GAME_SELECT + " WHERE g.id = ?", (game_id,))
        return Game.from_row(row) if row else None

    def list_games(self, round_id: int = None) -> List[Game]:
        if round_id is None:
            rows = self._fetch_all(_GAME_SELECT + " ORDER BY g.id")
        else:
            rows = self._fetch_all(_GAME_SELECT + " WHERE g.round_id = ? ORDER BY g.id", (round_id,))
        return [Game.from_row(r) for r in rows]

    def pending_games(self, round_id: int) -> List[Game]:
        """Non-final games in a round that have both teams set."""
        rows = self._fetch_all(
            _GAME_SELECT
            + " WHERE g.round_id = ? AND g.status != 'final'"
            " AND g.team1_id IS NOT NULL AND g.team2_id IS NOT NULL ORDER BY g.id",
            (round_id,),
        )
        return [Game.from_row(r) for r in rows]

    def final_games(self, round_id: int) -> List[Game]:
        rows = self._fetch_all(
            _GAME_SELECT + " WHERE g.round_id = ? AND g.status = 'final' AND g.winner_id IS NOT NULL"
            " ORDER BY g.id",
            (round_id,),
        )
        return [Game.from_row(r) for r in rows]

    def count_games(self, round_id: int, non_final_only: bool = False) -> int:
        sql = "SELECT COUNT(*) FROM games WHERE round_id = ?"
        if non_final_only:
            sql += " AND status != 'final'"
        return self._fetch_one(sql, (round_id,))[0]

    def seeded_games(self, round_ids: Iterable[int]) -> List[sqlite3.Row]:
        """Games in the given rounds with both teams, joined with seeds and regions."""
        ids = list(round_ids)
        if not ids:
            return []
        return self._fetch_all(
            "SELECT g.id, g.round_id, g.game_datetime,"
            " t1.seed AS team1_seed, t1.region AS team1_region,"
            " t2.seed AS team2_seed, t2.region AS team2_region"
            " FROM games g"
            " JOIN teams t1 ON t1.id = g.team1_id"
            " JOIN teams t2 ON t2.id = g.team2_id"
            f" WHERE g.round_id IN ({_placeholders(ids)}) ORDER BY g.id",
            ids,
        )

    def matchup_code_ids(self) -> Dict[str, int]:
        rows = self._fetch_all("SELECT id, matchup_code FROM games WHERE matchup_code IS NOT NULL")
        return {r["matchup_code"]: r["id"] for r in rows}

    def round_team_ids(self, round_id: int) -> set:
        """Every team that plays in the round."""
        rows = self._fetch_all(
            "SELECT team1_id AS team_id FROM games WHERE round_id = ? AND team1_id IS NOT NULL"
            " UNION SELECT team2_id FROM games WHERE round_id = ? AND team2_id IS NOT NULL",
            (round_id, round_id),
        )
        return {r["team_id"] for r in rows}

    def list_pools(self, status: PoolStatus = None) -> List[Pool]:
        if status is None:
            rows = self._fetch_all("SELECT * FROM pools ORDER BY id")
        else:
            rows = self._fetch_all("SELECT * FROM pools WHERE status = ? ORDER BY id", (PoolStatus(status).value,))
        return [Pool.from_row(r) for r in rows]

    def get_pool(self, pool_id: int) -> Optional[Pool]:
        row = self._fetch_one("SELECT * FROM pools WHERE id = ?", (pool_id,))
        return Pool.from_row(row) if row else None

    def get_entry(self, entry_id: int) -> Optional[Entry]:
        row = self._fetch_one("SELECT * FROM pool_players WHERE id = ?", (entry_id,))
        return Entry.from_row(row) if row else None

    def list_entries(self, pool_id: int, include_deleted: bool = False) -> List[Entry]:
        sql = "SELECT * FROM pool_players WHERE pool_id = ?"
        if not include_deleted:
            sql += " AND entry_deleted = 0"
        return [Entry.from_row(r) for r in self._fetch_all(sql + " ORDER BY id", (pool_id,))]

    def alive_entries(self, pool_status: PoolStatus = PoolStatus.ACTIVE) -> List[Entry]:
        rows = self._fetch_all(
            "SELECT pp.* FROM pool_players pp JOIN pools p ON p.id = pp.pool_id"
            " WHERE pp.is_eliminated = 0 AND pp.entry_deleted = 0 AND p.status = ?"
            " ORDER BY pp.id",
            (PoolStatus(pool_status).value,),
        )
        return [Entry.from_row(r) for r in rows]

    def entry_ids_with_pick(self, round_id: int) -> set:
        rows = self._fetch_all("SELECT pool_player_id FROM picks WHERE round_id = ?", (round_id,))
        return {r["pool_player_id"] for r in rows}

    def used_team_ids(self, entry_id: int, before_round: Round = None) -> set:
        """Teams the entry has picked, optionally only in rounds before `before_round`."""
        sql = "SELECT team_id FROM picks WHERE pool_player_id = ?"
        params: list = [entry_id]
        if before_round is not None:
            day = before_round.date.isoformat()
            sql += (
                " AND round_id IN (SELECT id FROM rounds WHERE date < ? OR (date = ? AND id < ?))"
            )
            params += [day, day, before_round.id]
        return {r["team_id"] for r in self._fetch_all(sql, params)}

    def list_picks(self, entry_id: int = None, round_id: int = None) -> List[Pick]:
        sql = "SELECT * FROM picks WHERE 1 = 1"
        params: list = []
        if entry_id is not None:
            sql += " AND pool_player_id = ?"
            params.append(entry_id)
        if round_id is not None:
            sql += " AND round_id = ?"
            params.append(round_id)
        return [Pick.from_row(r) for r in self._fetch_all(sql + " ORDER BY id", params)]

    def alive_entries_with_incorrect_pick(self, round_id: int, team_id: int) -> List[int]:
        rows = self._fetch_all(
            "SELECT DISTINCT pp.id FROM picks pk JOIN pool_players pp ON pp.id = pk.pool_player_id"
            " WHERE pk.round_id = ? AND pk.team_id = ? AND pk.is_correct = 0"
            " AND pp.is_eliminated = 0 AND pp.entry_deleted = 0",
            (round_id, team_id),
        )
        return [r["id"] for r in rows]

    def standings_rows(self, pool_id: int) -> List[sqlite3.Row]:
        """One row per (entry, pick); entries without picks appear once with NULL pick columns."""
        return self._fetch_all(
            "SELECT pp.id AS entry_id, pp.user_id, pp.entry_name, pp.is_eliminated,"
            " pp.elimination_reason, er.name AS elimination_round,"
            " pk.round_id, r.name AS round_name, r.date AS round_date,"
            " t.name AS team_name, t.seed AS team_seed, pk.is_correct"
            " FROM pool_players pp"
            " LEFT JOIN picks pk ON pk.pool_player_id = pp.id"
            " LEFT JOIN rounds r ON r.id = pk.round_id"
            " LEFT JOIN teams t ON t.id = pk.team_id"
            " LEFT JOIN rounds er ON er.id = pp.elimination_round_id"
            " WHERE pp.pool_id = ? AND pp.entry_deleted = 0"
            " ORDER BY pp.id, r.date",
            (pool_id,),
        )

    def get_scheduler_state(self) -> SchedulerState:
        return SchedulerState.from_row(
            self._fetch_one("SELECT * FROM scheduler_state WHERE id = 1")
        )

    def earliest_game_time(self, round_id: int) -> Optional[datetime]:
        row = self._fetch_one(
            "SELECT MIN(game_datetime) FROM games WHERE round_id = ? AND game_datetime IS NOT NULL",
            (round_id,),
        )
        return parse_iso(row[0]) if row else None

    # ------------------------------------------------------------------
    # Guarded mutations: cascade
    # ------------------------------------------------------------------

    def record_game_update(
        self,
        game_id: int,
        status: GameStatus,
        team1_score: Optional[int],
        team2_score: Optional[int],
        winner_id: Optional[int] = None,
        external_id: Optional[str] = None,
    ) -> int:
        """
        Write a score update unless the game is already final.

        Rows whose stored values already match are left alone, so the count
        only reflects real changes.
        """
        status = GameStatus(status).value
        return self._execute(
            "UPDATE games SET status = ?,"
            " team1_score = COALESCE(?, team1_score),"
            " team2_score = COALESCE(?, team2_score),"
            " winner_id = COALESCE(?, winner_id),"
            " espn_game_id = COALESCE(espn_game_id, ?)"
            " WHERE id = ? AND status != 'final' AND ("
            "   status != ?"
            "   OR (? IS NOT NULL AND team1_score IS NOT ?)"
            "   OR (? IS NOT NULL AND team2_score IS NOT ?)"
            "   OR (? IS NOT NULL AND winner_id IS NOT ?)"
            "   OR (? IS NOT NULL AND espn_game_id IS NULL))",
            (
                status, team1_score, team2_score, winner_id, external_id,
                game_id,
                status,
                team1_score, team1_score,
                team2_score, team2_score,
                winner_id, winner_id,
                external_id,
            ),
        )

    def grade_picks(self, round_id: int, team_id: int, correct: bool) -> int:
        """Grade pending picks on a team. Already graded picks are untouched."""
        return self._execute(
            "UPDATE picks SET is_correct = ? WHERE round_id = ? AND team_id = ? AND is_correct IS NULL",
            (1 if correct else 0, round_id, team_id),
        )

    def eliminate_team(self, team_id: int) -> int:
        return self._execute(
            "UPDATE teams SET is_eliminated = 1 WHERE id = ? AND is_eliminated = 0", (team_id,)
        )

    def eliminate_entries(
        self, entry_ids: Sequence[int], round_id: int, reason: EliminationReason
    ) -> int:
        if not entry_ids:
            return 0
        ids = list(entry_ids)
        return self._execute(
            "UPDATE pool_players SET is_eliminated = 1, elimination_round_id = ?, elimination_reason = ?"
            f" WHERE id IN ({_placeholders(ids)}) AND is_eliminated = 0",
            [round_id, EliminationReason(reason).value] + ids,
        )

    def delete_picks_after(self, entry_ids: Sequence[int], round_: Round) -> int:
        """Drop picks the entries made for rounds after the given one."""
        if not entry_ids:
            return 0
        ids = list(entry_ids)
        day = round_.date.isoformat()
        return self._execute(
            f"DELETE FROM picks WHERE pool_player_id IN ({_placeholders(ids)})"
            " AND round_id IN (SELECT id FROM rounds WHERE date > ? OR (date = ? AND id > ?))",
            ids + [day, day, round_.id],
        )

    def fill_slot(self, game_id: int, slot: int, team_id: int) -> int:
        """Write a team into an empty slot of a downstream game."""
        column = "team1_id" if slot == 1 else "team2_id"
        return self._execute(
            f"UPDATE games SET {column} = ? WHERE id = ? AND {column} IS NULL",
            (team_id, game_id),
        )

    def activate_open_pools(self) -> int:
        return self._execute(
            "UPDATE pools SET status = 'active' WHERE status = 'open'"
        )

    def complete_pool(self, pool_id: int, winner_id: Optional[str]) -> int:
        return self._execute(
            "UPDATE pools SET status = 'complete', winner_id = ? WHERE id = ? AND status = 'active'",
            (winner_id, pool_id),
        )

    def transition_scheduler(
        self,
        expected_version: int,
        active_round_id: Optional[int],
        completed_round_id: Optional[int] = None,
        now: datetime = None,
    ) -> bool:
        """
        Compare-and-swap the scheduler row and mirror it onto rounds.is_active.

        Returns False (and changes nothing) when another writer moved the
        version first.
        """
        stamp = to_iso(now or utc_now())
        with self._transaction() as conn:
            swapped = conn.execute(
                "UPDATE scheduler_state SET active_round_id = ?, version = version + 1, updated_at = ?"
                " WHERE id = 1 AND version = ?",
                (active_round_id, stamp, expected_version),
            ).rowcount
            if swapped == 0:
                return False
            conn.execute(
                "UPDATE rounds SET is_active = CASE WHEN id = ? THEN 1 ELSE 0 END",
                (active_round_id,),
            )
            if completed_round_id is not None:
                conn.execute(
                    "UPDATE rounds SET completed_at = ? WHERE id = ? AND completed_at IS NULL",
                    (stamp, completed_round_id),
                )
        return True

    def set_round_deadline(self, round_id: int, deadline: datetime) -> int:
        return self._execute(
            "UPDATE rounds SET deadline_datetime = ? WHERE id = ?", (to_iso(deadline), round_id)
        )

    def clear_rounds(self, round_codes: Sequence[str]) -> int:
        """Blank team/score/winner data of games in the given bracket rounds."""
        if not round_codes:
            return 0
        codes = list(round_codes)
        return self._execute(
            "UPDATE games SET team1_id = NULL, team2_id = NULL, winner_id = NULL,"
            " team1_score = NULL, team2_score = NULL, status = 'scheduled'"
            f" WHERE tournament_round IN ({_placeholders(codes)})",
            codes,
        )

    # ------------------------------------------------------------------
    # Bracket construction
    # ------------------------------------------------------------------

    def backfill_game_identity(
        self, game_id: int, matchup_code: str, bracket_position: int, tournament_round: str
    ) -> int:
        return self._execute(
            "UPDATE games SET matchup_code = ?, bracket_position = ?, tournament_round = ? WHERE id = ?",
            (matchup_code, bracket_position, tournament_round, game_id),
        )

    def reset_shell_games(self) -> int:
        """
        Remove every non-R64 game so the bracket can be regenerated.

        Advancement and parent references are cleared first so no row points
        at a deleted game.
        """
        codes = list(SHELL_ROUND_CODES)
        marks = _placeholders(codes)
        with self._transaction() as conn:
            conn.execute(
                "UPDATE games SET advances_to_game_id = NULL, advances_to_slot = NULL"
                " WHERE advances_to_game_id IS NOT NULL"
            )
            conn.execute(
                f"UPDATE games SET parent_game_a_id = NULL, parent_game_b_id = NULL"
                f" WHERE tournament_round IN ({marks})",
                codes,
            )
            deleted = conn.execute(
                f"DELETE FROM games WHERE tournament_round IN ({marks})", codes
            ).rowcount
        if deleted:
            logger.info(f"Removed {deleted} existing shell games")
        return deleted

    def insert_shell_game(
        self,
        round_id: int,
        matchup_code: str,
        bracket_position: int,
        tournament_round: str,
        parent_game_a_id: Optional[int],
        parent_game_b_id: Optional[int],
        game_datetime: datetime = None,
    ) -> int:
        return self._insert(
            "INSERT INTO games (round_id, game_datetime, status, matchup_code, bracket_position,"
            " tournament_round, parent_game_a_id, parent_game_b_id)"
            " VALUES (?, ?, 'scheduled', ?, ?, ?, ?, ?)",
            (
                round_id,
                to_iso(game_datetime),
                matchup_code,
                bracket_position,
                tournament_round,
                parent_game_a_id,
                parent_game_b_id,
            ),
        )

    def wire_advancement(self, game_id: int, target_game_id: int, slot: int) -> int:
        return self._execute(
            "UPDATE games SET advances_to_game_id = ?, advances_to_slot = ? WHERE id = ?",
            (target_game_id, slot, game_id),
        )


def get_pool_store(db_path: Optional[str] = None) -> PoolStore:
    """Build a store from settings unless a path is given."""
    from survivor.config import settings

    path = db_path or settings.store.db_path
    return PoolStore(str(path), busy_timeout_ms=settings.store.busy_timeout_ms)
