"""
NBA data operations backed by ESPN.

Each public coroutine on NBAOperations is one operation the LLM can call.
They all follow the same contract: return a JSON-serializable payload on
success and {"error": "..."} on any upstream or input problem. Upstream
payloads are trimmed to the fields an answer needs, since every byte we
return is sent back to the model.

build_nba_registry() wires the operations into an OperationRegistry with
their argument models.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from datetime import date, timedelta
from typing import Any, Literal

from pydantic import BaseModel, Field

from hoopsbot.llm.models import OperationResult, error_result
from hoopsbot.tools.base import DataOperation, NoParams, OperationRegistry
from hoopsbot.tools.dates import DateParseError, current_season, espn_date, parse_game_date
from hoopsbot.tools.espn import ESPNClient, ESPNError

logger = logging.getLogger(__name__)

SOURCE = "espn"

# Standings stats worth showing; ESPN sends ~20 per team
STANDINGS_STATS = ("wins", "losses", "winPercent", "gamesBehind", "streak", "playoffSeed")

RECENT_RESULTS_LIMIT = 5
UPCOMING_LIMIT = 5
GAME_LOG_LIMIT = 10


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------

class StandingsParams(BaseModel):
    group: Literal["league", "conference"] = Field(
        default="league",
        description="Type of standings: 'league' (all teams) or 'conference' (East/West)",
    )
    season: int | None = Field(
        default=None,
        ge=1950,
        le=2100,
        description="Season year as ESPN labels it (2025 for 2024-25). Defaults to current season.",
    )


class TeamScheduleParams(BaseModel):
    team_name: str = Field(
        min_length=1,
        description="Team name, nickname, city or abbreviation (e.g. 'Lakers', 'Boston Celtics', 'GSW')",
    )
    season: int | None = Field(
        default=None, ge=1950, le=2100, description="Season year. Defaults to current season."
    )


class RecentGamesParams(BaseModel):
    date: str | None = Field(
        default=None,
        description="Date of the games, e.g. '2025-05-07' or 'May 7'. Defaults to yesterday.",
    )


class SearchPlayersParams(BaseModel):
    name: str = Field(min_length=1, description="Player name to search for")
    limit: int | None = Field(default=None, ge=1, le=50, description="Maximum players to return")


class SeasonAveragesParams(BaseModel):
    player_id: int = Field(ge=1, description="ESPN player id (from search_players)")
    season: int | None = Field(
        default=None, ge=1950, le=2100, description="Season year. Defaults to current season."
    )


class TeamGamesParams(BaseModel):
    team_id: int = Field(ge=1, description="ESPN team id (from get_all_teams)")
    per_page: int = Field(default=10, ge=1, le=100, description="Number of games per page")
    page: int = Field(default=1, ge=1, description="Page number, starting at 1")


class PlayerGameStatsParams(BaseModel):
    player_name: str = Field(
        min_length=1, description="Player's name (e.g. 'LeBron James', 'Jayson Tatum')"
    )
    date: str = Field(
        min_length=1, description="Game date, e.g. '2025-05-07', 'May 7' or 'May 7th 2025'"
    )


class PlayerGameLogParams(BaseModel):
    player_name: str = Field(min_length=1, description="Player's name")
    season: int | None = Field(
        default=None, ge=1950, le=2100, description="Season year. Defaults to current season."
    )


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------

def _score(raw: Any) -> int | None:
    """ESPN sends scores as "112", 112, or {"value": 112.0, "displayValue": "112"}."""
    if isinstance(raw, dict):
        raw = raw.get("displayValue", raw.get("value"))
    if raw is None or raw == "":
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def _team_ref(competitor: dict[str, Any]) -> dict[str, Any]:
    team = competitor.get("team", {})
    return {
        "id": str(team.get("id", competitor.get("id", ""))),
        "name": team.get("displayName") or team.get("name"),
        "abbreviation": team.get("abbreviation"),
        "score": _score(competitor.get("score")),
    }


def summarize_game(event: dict[str, Any]) -> dict[str, Any]:
    """Reduce an ESPN event (scoreboard or schedule) to teams, scores and status."""
    competition = (event.get("competitions") or [{}])[0]
    competitors = competition.get("competitors", [])
    home = next((c for c in competitors if c.get("homeAway") == "home"), None)
    away = next((c for c in competitors if c.get("homeAway") == "away"), None)

    status = (event.get("status") or competition.get("status") or {}).get("type", {})
    return {
        "id": str(event.get("id", "")),
        "date": event.get("date"),
        "name": event.get("shortName") or event.get("name"),
        "status": status.get("description") or status.get("name"),
        "completed": bool(status.get("completed", False)),
        "home_team": _team_ref(home) if home else None,
        "away_team": _team_ref(away) if away else None,
        "venue": (competition.get("venue") or {}).get("fullName"),
    }


def _player_ref(item: dict[str, Any]) -> dict[str, Any]:
    team = item.get("team") or {}
    position = item.get("position") or {}
    return {
        "id": str(item.get("id", "")),
        "name": item.get("fullName") or item.get("displayName"),
        "position": position.get("abbreviation") if isinstance(position, dict) else position,
        "team": team.get("displayName") if isinstance(team, dict) else None,
        "team_id": str(team["id"]) if isinstance(team, dict) and team.get("id") else None,
    }


def _category_stats(category: dict[str, Any], season: int) -> dict[str, Any]:
    """Flatten one ESPN stats category into {stat name: display value}."""
    if isinstance(category.get("stats"), list):
        return {
            stat["name"]: stat.get("displayValue", stat.get("value"))
            for stat in category["stats"]
            if isinstance(stat, dict) and "name" in stat
        }

    # Newer layout: names/labels plus one statistics row per season
    names = category.get("names") or category.get("labels") or []
    rows = category.get("statistics") or []
    if not names or not rows:
        return {}
    row = next(
        (r for r in rows if (r.get("season") or {}).get("year") == season),
        rows[-1],
    )
    return dict(zip(names, row.get("stats", [])))


def upstream_guard(
    operation: Callable[..., Awaitable[OperationResult]],
) -> Callable[..., Awaitable[OperationResult]]:
    """
    Turn expected operation failures into error results.

    ESPN failures, bad dates and payloads that don't have the shape we
    expect all become {"error": ...}. Anything else propagates to the
    dispatcher.
    """

    @functools.wraps(operation)
    async def wrapper(self, params: BaseModel) -> OperationResult:
        try:
            return await operation(self, params)
        except DateParseError as e:
            return error_result(str(e))
        except ESPNError as e:
            logger.warning(f"{operation.__name__} failed upstream: {e}")
            return error_result(str(e))
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.warning(f"{operation.__name__} got an unexpected ESPN payload: {e!r}")
            return error_result("Unexpected response format from ESPN")

    return wrapper


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

class NBAOperations:
    """
    The NBA data operations, sharing one ESPN client.

    Args:
        client: An initialized ESPNClient
        today: Returns the current date (injectable for tests)
    """

    def __init__(self, client: ESPNClient, today: Callable[[], date] = date.today):
        self._client = client
        self._today = today
        self._teams: list[dict[str, Any]] | None = None

    # -- shared lookups -------------------------------------------------

    async def _load_teams(self) -> list[dict[str, Any]]:
        if self._teams is None:
            data = await self._client.get_json(f"{self._client.site_api_base}/teams")
            entries = data["sports"][0]["leagues"][0]["teams"]
            self._teams = [
                {
                    "id": str(entry["team"]["id"]),
                    "name": entry["team"].get("displayName"),
                    "abbreviation": entry["team"].get("abbreviation"),
                    "location": entry["team"].get("location"),
                    "nickname": entry["team"].get("name"),
                    "short_name": entry["team"].get("shortDisplayName"),
                }
                for entry in entries
            ]
        return self._teams

    async def resolve_team(self, team_name: str) -> dict[str, Any] | None:
        """Match a user-supplied team reference against ESPN's team list."""
        wanted = team_name.strip().lower()
        if not wanted:
            return None
        teams = await self._load_teams()
        for key in ("abbreviation", "name", "nickname", "location", "short_name"):
            for team in teams:
                value = team.get(key)
                if value and value.lower() == wanted:
                    return team
        for team in teams:
            if wanted in (team.get("name") or "").lower():
                return team
        return None

    async def _search(self, name: str, limit: int) -> list[dict[str, Any]]:
        data = await self._client.get_json(
            f"{self._client.site_api_base}/athletes",
            params={"limit": limit, "search": name},
        )
        return (data or {}).get("items") or []

    async def _find_player(self, name: str) -> dict[str, Any] | None:
        items = await self._search(name, self._client.settings.search_limit)
        return items[0] if items else None

    async def _team_events(self, team_id: str, season: int) -> list[dict[str, Any]]:
        data = await self._client.get_json(
            f"{self._client.site_api_base}/teams/{team_id}/schedule",
            params={"season": season},
        )
        events = (data or {}).get("events") or []
        return sorted(events, key=lambda e: e.get("date") or "")

    # -- operations -----------------------------------------------------

    @upstream_guard
    async def get_standings(self, params: StandingsParams) -> OperationResult:
        season = params.season or current_season(self._today())
        data = await self._client.get_json(
            f"{self._client.site_web_api_base}/standings",
            params={"season": season, "sort": "winpercent:desc"},
        )
        if not data:
            return error_result("No data returned from ESPN")

        def row(entry: dict[str, Any], group: str | None = None) -> dict[str, Any]:
            stats = {
                stat["name"]: stat.get("displayValue", stat.get("value"))
                for stat in entry.get("stats", [])
                if stat.get("name") in STANDINGS_STATS
            }
            result = {
                "team": entry["team"].get("displayName"),
                "abbreviation": entry["team"].get("abbreviation"),
                "record": f"{stats.get('wins', '?')}-{stats.get('losses', '?')}",
                "stats": stats,
            }
            if group:
                result["conference"] = group
            return result

        standings: list[dict[str, Any]] = []
        if params.group == "conference" and data.get("children"):
            for conference in data["children"]:
                for entry in conference["standings"]["entries"]:
                    standings.append(row(entry, conference.get("name")))
        else:
            entries = (data.get("standings") or {}).get("entries")
            if not entries:
                entries = [
                    entry
                    for conference in data.get("children", [])
                    for entry in conference["standings"]["entries"]
                ]
            rows = [row(entry) for entry in entries]
            standings = sorted(
                rows,
                key=lambda r: float(r["stats"].get("winPercent") or 0),
                reverse=True,
            )

        if not standings:
            return error_result(f"No standings available for the {season} season")
        return {"source": SOURCE, "season": season, "group": params.group, "standings": standings}

    @upstream_guard
    async def get_team_schedule(self, params: TeamScheduleParams) -> OperationResult:
        team = await self.resolve_team(params.team_name)
        if team is None:
            return error_result(f"Team not found: {params.team_name}")

        season = params.season or current_season(self._today())
        games = [summarize_game(event) for event in await self._team_events(team["id"], season)]
        completed = [g for g in games if g["completed"]]
        upcoming = [g for g in games if not g["completed"]]
        return {
            "source": SOURCE,
            "team": team["name"],
            "season": season,
            "recent_results": list(reversed(completed[-RECENT_RESULTS_LIMIT:])),
            "upcoming": upcoming[:UPCOMING_LIMIT],
            "games_played": len(completed),
        }

    @upstream_guard
    async def get_recent_games(self, params: RecentGamesParams) -> OperationResult:
        today = self._today()
        game_date = parse_game_date(params.date, today) if params.date else today - timedelta(days=1)
        data = await self._client.get_json(
            f"{self._client.site_api_base}/scoreboard",
            params={"dates": espn_date(game_date)},
        )
        games = [summarize_game(event) for event in (data or {}).get("events") or []]
        result: OperationResult = {"source": SOURCE, "date": game_date.isoformat(), "games": games}
        if not games:
            result["message"] = f"No NBA games were played on {game_date.isoformat()}"
        return result

    @upstream_guard
    async def search_players(self, params: SearchPlayersParams) -> OperationResult:
        limit = params.limit or self._client.settings.search_limit
        items = await self._search(params.name, limit)
        if not items:
            return error_result(f"Player not found: {params.name}")
        return {"source": SOURCE, "players": [_player_ref(item) for item in items[:limit]]}

    @upstream_guard
    async def get_player_season_averages(self, params: SeasonAveragesParams) -> OperationResult:
        season = params.season or current_season(self._today())
        data = await self._client.get_json(
            f"{self._client.site_web_api_base}/athletes/{params.player_id}/stats",
            params={"season": season},
        )
        stats = {
            category["name"]: values
            for category in (data or {}).get("categories") or []
            if (values := _category_stats(category, season))
        }
        if not stats:
            return error_result(
                f"No statistics available for player {params.player_id} in the {season} season"
            )
        return {"source": SOURCE, "player_id": params.player_id, "season": season, "stats": stats}

    @upstream_guard
    async def get_team_games(self, params: TeamGamesParams) -> OperationResult:
        season = current_season(self._today())
        events = await self._team_events(str(params.team_id), season)
        start = (params.page - 1) * params.per_page
        page = events[start:start + params.per_page]
        return {
            "source": SOURCE,
            "team_id": params.team_id,
            "season": season,
            "page": params.page,
            "per_page": params.per_page,
            "total_games": len(events),
            "games": [summarize_game(event) for event in page],
        }

    @upstream_guard
    async def get_all_teams(self, params: NoParams) -> OperationResult:
        teams = await self._load_teams()
        return {
            "source": SOURCE,
            "teams": [
                {"id": t["id"], "name": t["name"], "abbreviation": t["abbreviation"]}
                for t in teams
            ],
        }

    @upstream_guard
    async def get_player_game_stats(self, params: PlayerGameStatsParams) -> OperationResult:
        game_date = parse_game_date(params.date, self._today())
        label = game_date.isoformat()

        player = await self._find_player(params.player_name)
        if player is None:
            return error_result(f"Player not found: {params.player_name}")
        ref = _player_ref(player)
        if not ref["team_id"]:
            return {**error_result(f"Could not determine current team for {params.player_name}"), "player": ref}

        scoreboard = await self._client.get_json(
            f"{self._client.site_api_base}/scoreboard",
            params={"dates": espn_date(game_date)},
        )
        events = (scoreboard or {}).get("events") or []
        if not events:
            return {**error_result(f"No games found on {label}"), "player": ref}

        event = next(
            (
                e for e in events
                if any(
                    str(c.get("team", {}).get("id")) == ref["team_id"]
                    for c in e["competitions"][0]["competitors"]
                )
            ),
            None,
        )
        if event is None:
            return {**error_result(f"{params.player_name}'s team did not play on {label}"), "player": ref}

        game = summarize_game(event)
        summary = await self._client.get_json(
            f"{self._client.site_api_base}/summary",
            params={"event": game["id"]},
        )
        boxscore = (summary or {}).get("boxscore")
        if not boxscore:
            return {**error_result(f"No box score available for the game on {label}"), "game": game}

        for team in boxscore.get("players", []):
            for group in team.get("statistics", []):
                labels = group.get("labels") or group.get("names") or []
                for athlete in group.get("athletes", []):
                    if str(athlete.get("athlete", {}).get("id")) != ref["id"]:
                        continue
                    if athlete.get("didNotPlay") or not athlete.get("stats"):
                        return {
                            **error_result(f"{params.player_name} did not play on {label}"),
                            "game": game,
                        }
                    return {
                        "source": SOURCE,
                        "player": ref,
                        "game": game,
                        "stats": dict(zip(labels, athlete["stats"])),
                    }

        return {
            **error_result(f"Could not find stats for {params.player_name} in the game on {label}"),
            "game": game,
        }

    @upstream_guard
    async def get_player_game_log(self, params: PlayerGameLogParams) -> OperationResult:
        player = await self._find_player(params.player_name)
        if player is None:
            return error_result(f"Player not found: {params.player_name}")
        ref = _player_ref(player)
        season = params.season or current_season(self._today())

        data = await self._client.get_json(
            f"{self._client.site_web_api_base}/athletes/{ref['id']}/gamelog",
            params={"season": season},
        )
        data = data or {}
        labels = data.get("labels") or data.get("names") or []
        event_info = data.get("events") or {}

        games = []
        for season_type in data.get("seasonTypes", []):
            for category in season_type.get("categories", []):
                for row in category.get("events", []):
                    info = event_info.get(str(row.get("eventId")), {})
                    games.append({
                        "date": info.get("gameDate"),
                        "opponent": (info.get("opponent") or {}).get("displayName"),
                        "result": info.get("gameResult"),
                        "score": info.get("score"),
                        "stats": dict(zip(labels, row.get("stats", []))),
                    })

        if not games:
            return {**error_result(f"No game log available for {params.player_name} in {season}"), "player": ref}

        games.sort(key=lambda g: g["date"] or "", reverse=True)
        return {
            "source": SOURCE,
            "player": ref,
            "season": season,
            "games": games[:GAME_LOG_LIMIT],
            "games_played": len(games),
        }


def build_nba_registry(client: ESPNClient, today: Callable[[], date] = date.today) -> OperationRegistry:
    """Register every NBA operation against ``client``."""
    ops = NBAOperations(client, today=today)
    return OperationRegistry([
        DataOperation(
            "get_standings",
            "Get current NBA standings (league-wide or by conference)",
            StandingsParams,
            ops.get_standings,
        ),
        DataOperation(
            "get_team_schedule",
            "Get a team's latest results and upcoming games",
            TeamScheduleParams,
            ops.get_team_schedule,
        ),
        DataOperation(
            "get_recent_games",
            "Get all NBA game scores for a date (defaults to yesterday)",
            RecentGamesParams,
            ops.get_recent_games,
        ),
        DataOperation(
            "search_players",
            "Search for NBA players by name; returns ids for other player operations",
            SearchPlayersParams,
            ops.search_players,
        ),
        DataOperation(
            "get_player_season_averages",
            "Get a player's season statistics by ESPN player id",
            SeasonAveragesParams,
            ops.get_player_season_averages,
        ),
        DataOperation(
            "get_team_games",
            "Get a page of games for a team by ESPN team id",
            TeamGamesParams,
            ops.get_team_games,
        ),
        DataOperation(
            "get_all_teams",
            "Get all NBA teams with their ESPN ids and abbreviations",
            NoParams,
            ops.get_all_teams,
        ),
        DataOperation(
            "get_player_game_stats",
            "Get a player's box score line for the game on a specific date",
            PlayerGameStatsParams,
            ops.get_player_game_stats,
        ),
        DataOperation(
            "get_player_game_log",
            "Get a player's most recent games in a season with per-game stats",
            PlayerGameLogParams,
            ops.get_player_game_log,
        ),
    ])
