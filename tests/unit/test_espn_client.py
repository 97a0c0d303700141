import httpx
import pytest
from datetime import date

from survivor.exceptions import ScoreFeedError
from survivor.feed.espn_client import EspnScoreboardClient, parse_scoreboard

PAYLOAD = {
    "events": [
        {
            "id": "401638",
            "status": {"type": {"state": "post", "completed": True}},
            "competitions": [{
                "competitors": [
                    {"team": {"displayName": "Duke Blue Devils"}, "score": "80", "winner": True},
                    {"team": {"displayName": "Vermont Catamounts"}, "score": "61", "winner": False},
                ]
            }],
        },
        {
            "id": "401639",
            "status": {"type": {"state": "in", "completed": False}},
            "competitions": [{
                "competitors": [
                    {"team": {"name": "Kansas"}, "score": "33"},
                    {"team": {"displayName": "Howard Bison"}, "score": ""},
                ]
            }],
        },
        {"id": "401640", "competitions": []},
        {"competitions": [{"competitors": []}]},
    ]
}


def make_client(handler, **kwargs):
    transport = httpx.MockTransport(handler)
    kwargs.setdefault("retry_delay_s", 0)
    return EspnScoreboardClient(
        base_url="https://feed.test/mbb/", client=httpx.Client(transport=transport), **kwargs
    )


class TestParseScoreboard:

    def test_parse_events(self):
        events = parse_scoreboard(PAYLOAD)

        assert [e.external_id for e in events] == ["401638", "401639"]
        final, live = events
        assert final.completed and not final.in_progress
        assert [(c.name, c.score) for c in final.competitors] == [
            ("Duke Blue Devils", 80), ("Vermont Catamounts", 61)
        ]
        assert live.in_progress and not live.completed
        assert live.competitors[0].name == "Kansas"
        assert live.competitors[1].score is None

    def test_empty_payload(self):
        assert parse_scoreboard({}) == []

    def test_skips_entries_that_are_not_objects(self):
        payload = {"events": ["401641", None, {"id": "401642", "competitions": ["x"]}, PAYLOAD["events"][0]]}
        assert [e.external_id for e in parse_scoreboard(payload)] == ["401638"]

    def test_non_object_payload(self):
        with pytest.raises(ScoreFeedError, match="unexpected payload list") as exc:
            parse_scoreboard([PAYLOAD])
        assert exc.value.status == 200


class TestEspnScoreboardClient:

    def test_request_shape(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=PAYLOAD)

        with make_client(handler) as client:
            events = client.get_scoreboard(date(2026, 3, 19))

        assert len(events) == 2
        request = seen[0]
        assert request.url.path == "/mbb/scoreboard"
        assert request.url.params["dates"] == "20260319"
        assert request.url.params["seasontype"] == "3"
        assert request.url.params["division"] == "50"

    def test_retries_server_errors(self, mocker):
        sleep = mocker.patch("survivor.feed.espn_client.time.sleep")
        responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json=PAYLOAD)])

        client = make_client(lambda request: next(responses), max_retries=2, retry_delay_s=1.0)
        events = client.get_scoreboard(date(2026, 3, 19))

        assert len(events) == 2
        assert client.request_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    def test_gives_up_after_retries(self):
        client = make_client(lambda request: httpx.Response(500), max_retries=1)

        with pytest.raises(ScoreFeedError) as exc:
            client.get_scoreboard(date(2026, 3, 19))

        assert exc.value.status == 500
        assert client.request_count == 2

    def test_client_error_not_retried(self):
        client = make_client(lambda request: httpx.Response(404), max_retries=3)

        with pytest.raises(ScoreFeedError, match="HTTP 404"):
            client.get_scoreboard(date(2026, 3, 19))
        assert client.request_count == 1

    def test_rate_limit_retried(self):
        responses = iter([httpx.Response(429), httpx.Response(200, json={"events": []})])
        client = make_client(lambda request: next(responses), max_retries=1)

        assert client.get_scoreboard(date(2026, 3, 19)) == []
        assert client.request_count == 2

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler, max_retries=1)
        with pytest.raises(ScoreFeedError, match="connection refused") as exc:
            client.get_scoreboard(date(2026, 3, 19))
        assert exc.value.status is None

    def test_invalid_json(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"), max_retries=0)
        with pytest.raises(ScoreFeedError):
            client.get_scoreboard(date(2026, 3, 19))

    def test_list_body_is_a_feed_error(self):
        client = make_client(lambda request: httpx.Response(200, json=[]), max_retries=0)
        with pytest.raises(ScoreFeedError, match="unexpected payload"):
            client.get_scoreboard(date(2026, 3, 19))
