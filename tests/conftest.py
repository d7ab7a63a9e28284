"""
Shared fixtures: a fake ESPN backend served through httpx.MockTransport.

Payloads mirror the shape of ESPN's real responses, trimmed to the fields
the data operations read.
"""

from typing import Any

import httpx
import pytest
import pytest_asyncio

from hoopsbot.config.settings import ESPNSettings
from hoopsbot.tools.espn import ESPNClient

TEAMS = [
    {"id": "2", "abbreviation": "BOS", "displayName": "Boston Celtics", "location": "Boston",
     "name": "Celtics", "shortDisplayName": "Celtics"},
    {"id": "9", "abbreviation": "GS", "displayName": "Golden State Warriors", "location": "Golden State",
     "name": "Warriors", "shortDisplayName": "Warriors"},
    {"id": "13", "abbreviation": "LAL", "displayName": "Los Angeles Lakers", "location": "Los Angeles",
     "name": "Lakers", "shortDisplayName": "Lakers"},
]


def team_payload() -> dict[str, Any]:
    return {"sports": [{"leagues": [{"teams": [{"team": team} for team in TEAMS]}]}]}


def competitor(team_id: str, home_away: str, score: Any) -> dict[str, Any]:
    team = next(t for t in TEAMS if t["id"] == team_id)
    return {
        "id": team_id,
        "homeAway": home_away,
        "score": score,
        "team": {"id": team_id, "displayName": team["displayName"], "abbreviation": team["abbreviation"]},
    }


def event(
    event_id: str,
    when: str,
    home: str,
    away: str,
    home_score: Any = None,
    away_score: Any = None,
    completed: bool = True,
) -> dict[str, Any]:
    return {
        "id": event_id,
        "date": when,
        "shortName": "game",
        "status": {"type": {"completed": completed, "description": "Final" if completed else "Scheduled"}},
        "competitions": [{
            "competitors": [
                competitor(home, "home", home_score),
                competitor(away, "away", away_score),
            ],
            "venue": {"fullName": "Crypto.com Arena"},
        }],
    }


LAKERS_SCHEDULE = {
    "events": [
        event("401", "2025-01-10T03:00Z", "13", "9", {"value": 118.0, "displayValue": "118"},
              {"value": 120.0, "displayValue": "120"}),
        event("403", "2025-01-20T03:00Z", "2", "13", completed=False),
        event("402", "2025-01-14T03:30Z", "13", "2", {"value": 112.0, "displayValue": "112"},
              {"value": 108.0, "displayValue": "108"}),
    ]
}

SCOREBOARD_2025_01_14 = {"events": [event("402", "2025-01-14T03:30Z", "13", "2", "112", "108")]}

ATHLETES_LEBRON = {
    "items": [{
        "id": "1966",
        "fullName": "LeBron James",
        "position": {"abbreviation": "F"},
        "team": {"id": "13", "displayName": "Los Angeles Lakers"},
    }]
}

SUMMARY_402 = {
    "boxscore": {
        "players": [{
            "team": {"id": "13"},
            "statistics": [{
                "labels": ["MIN", "PTS", "REB", "AST"],
                "athletes": [
                    {"athlete": {"id": "1966"}, "stats": ["36", "31", "8", "9"]},
                    {"athlete": {"id": "4066457"}, "didNotPlay": True, "stats": []},
                ],
            }],
        }],
    }
}

STANDINGS = {
    "children": [
        {"name": "Eastern Conference", "standings": {"entries": [
            {"team": {"displayName": "Boston Celtics", "abbreviation": "BOS"},
             "stats": [{"name": "wins", "displayValue": "29"}, {"name": "losses", "displayValue": "12"},
                       {"name": "winPercent", "value": 0.707, "displayValue": ".707"},
                       {"name": "avgPointsFor", "displayValue": "117.4"}]},
        ]}},
        {"name": "Western Conference", "standings": {"entries": [
            {"team": {"displayName": "Golden State Warriors", "abbreviation": "GS"},
             "stats": [{"name": "wins", "displayValue": "20"}, {"name": "losses", "displayValue": "20"},
                       {"name": "winPercent", "value": 0.5, "displayValue": ".500"}]},
            {"team": {"displayName": "Los Angeles Lakers", "abbreviation": "LAL"},
             "stats": [{"name": "wins", "displayValue": "23"}, {"name": "losses", "displayValue": "16"},
                       {"name": "winPercent", "value": 0.59, "displayValue": ".590"}]},
        ]}},
    ]
}

SEASON_STATS_1966 = {
    "categories": [
        {
            "name": "averages",
            "names": ["gamesPlayed", "avgPoints", "avgRebounds", "avgAssists"],
            "statistics": [
                {"season": {"year": 2024}, "stats": ["71", "25.7", "7.3", "8.3"]},
                {"season": {"year": 2025}, "stats": ["38", "23.8", "7.7", "8.9"]},
            ],
        },
        {"name": "empty", "names": [], "statistics": []},
    ]
}

GAMELOG_1966 = {
    "labels": ["MIN", "PTS", "REB", "AST"],
    "events": {
        "402": {"gameDate": "2025-01-14T03:30Z", "opponent": {"displayName": "Boston Celtics"},
                "gameResult": "W", "score": "112-108"},
        "401": {"gameDate": "2025-01-10T03:00Z", "opponent": {"displayName": "Golden State Warriors"},
                "gameResult": "L", "score": "118-120"},
    },
    "seasonTypes": [{"categories": [{"events": [
        {"eventId": "401", "stats": ["35", "27", "6", "7"]},
        {"eventId": "402", "stats": ["36", "31", "8", "9"]},
    ]}]}],
}


class FakeESPN:
    """
    Route table for httpx.MockTransport.

    Routes are matched on the end of the URL path; unmatched requests get a
    404 like ESPN returns for unknown ids. Every request is recorded.
    """

    def __init__(self):
        self.routes: dict[str, Any] = {
            "/teams": team_payload(),
            "/teams/13/schedule": LAKERS_SCHEDULE,
            "/scoreboard": lambda request: (
                SCOREBOARD_2025_01_14 if request.url.params.get("dates") == "20250114" else {"events": []}
            ),
            "/athletes": lambda request: (
                ATHLETES_LEBRON if "lebron" in request.url.params.get("search", "").lower() else {"items": []}
            ),
            "/summary": SUMMARY_402,
            "/standings": STANDINGS,
            "/athletes/1966/stats": SEASON_STATS_1966,
            "/athletes/1966/gamelog": GAMELOG_1966,
        }
        self.requests: list[httpx.Request] = []

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, payload in self.routes.items():
            if request.url.path.endswith(suffix):
                body = payload(request) if callable(payload) else payload
                if isinstance(body, httpx.Response):
                    return body
                return httpx.Response(200, json=body)
        return httpx.Response(404, json={"code": 404, "message": "Not Found"})


@pytest.fixture
def fake_espn():
    return FakeESPN()


@pytest_asyncio.fixture
async def espn_client(fake_espn):
    client = ESPNClient(ESPNSettings(), transport=httpx.MockTransport(fake_espn))
    async with client:
        yield client
