"""
ESPN scoreboard client for live tournament scores.
Used by the cascade tick to learn which games have gone final.
"""
import time
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Dict, List

import httpx

from survivor.exceptions import ScoreFeedError

logger = logging.getLogger(__name__)


@dataclass
class Competitor:
    name: str
    score: Optional[int] = None
    winner: Optional[bool] = None


@dataclass
class ScoreEvent:
    """One scoreboard event, reduced to what reconciliation needs."""
    external_id: str
    competitors: List[Competitor] = field(default_factory=list)
    completed: bool = False
    in_progress: bool = False


def _parse_score(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_scoreboard(data: Dict) -> List[ScoreEvent]:
    """Turn a scoreboard payload into ScoreEvents, skipping malformed events."""
    if not isinstance(data, dict):
        raise ScoreFeedError(f"Scoreboard unavailable: unexpected payload {type(data).__name__}", status=200)

    events = []
    for raw in data.get("events") or []:
        if not isinstance(raw, dict):
            continue
        competitions = raw.get("competitions") or []
        if not raw.get("id") or not competitions or not isinstance(competitions[0], dict):
            continue

        competitors = []
        for c in competitions[0].get("competitors") or []:
            if not isinstance(c, dict):
                continue
            team = c.get("team") or {}
            competitors.append(Competitor(
                name=team.get("displayName") or team.get("name") or "",
                score=_parse_score(c.get("score")),
                winner=c.get("winner"),
            ))

        status = (raw.get("status") or {}).get("type") or {}
        events.append(ScoreEvent(
            external_id=str(raw["id"]),
            competitors=competitors,
            completed=status.get("completed") is True,
            in_progress=status.get("state") == "in",
        ))
    return events


class EspnScoreboardClient:
    """
    Scoreboard client with bounded retries.

    Raises ScoreFeedError once retries are exhausted; callers treat that as
    "no new facts this tick".
    """

    def __init__(
        self,
        base_url: str = None,
        timeout_s: float = None,
        max_retries: int = None,
        retry_delay_s: float = None,
        user_agent: str = None,
        client: httpx.Client = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Scoreboard API root (defaults to FEED_BASE_URL)
            timeout_s: Per-request timeout
            max_retries: Retry attempts after the first request
            retry_delay_s: Base delay, doubled on each retry
            user_agent: User-Agent header
            client: Preconfigured httpx.Client (tests inject a MockTransport)
        """
        from survivor.config import settings

        feed = settings.feed
        self.base_url = (base_url or feed.base_url).rstrip("/")
        self.max_retries = feed.max_retries if max_retries is None else max_retries
        self.retry_delay_s = feed.retry_delay_s if retry_delay_s is None else retry_delay_s
        self.request_count = 0

        self.session = client or httpx.Client(
            timeout=timeout_s or feed.timeout_s,
            headers={
                "User-Agent": user_agent or feed.user_agent,
                "Accept": "application/json",
            },
        )

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _fetch(self, url: str, params: Dict) -> Dict:
        """
        Fetch JSON with retries.

        Raises:
            ScoreFeedError: after the last attempt fails
        """
        last_error = None
        status = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.get(url, params=params)
                self.request_count += 1

                if response.status_code == 200:
                    return response.json()

                status = response.status_code
                last_error = f"HTTP {status}"
                if 400 <= status < 500 and status != 429:
                    break
                logger.warning(f"Scoreboard returned {status} (attempt {attempt + 1})")

            except (httpx.HTTPError, ValueError) as e:
                last_error = str(e) or type(e).__name__
                logger.error(f"Scoreboard request failed: {last_error}")

            if attempt < self.max_retries:
                time.sleep(self.retry_delay_s * (2 ** attempt))

        raise ScoreFeedError(f"Scoreboard unavailable: {last_error}", status=status)

    def get_scoreboard(self, day: date) -> List[ScoreEvent]:
        """
        Fetch tournament events for one day.

        Args:
            day: Calendar day of the round

        Returns:
            List of ScoreEvents (possibly empty)
        """
        params = {"dates": day.strftime("%Y%m%d"), "seasontype": 3, "division": 50}
        data = self._fetch(f"{self.base_url}/scoreboard", params)
        events = parse_scoreboard(data)
        logger.info(f"Fetched {len(events)} scoreboard events for {day.isoformat()}")
        return events
