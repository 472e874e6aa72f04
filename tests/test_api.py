"""
Tests for the HTTP API using httpx's ASGI transport.
"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.app import create_app
from database.db_session import get_session
from services import person_service
from services.render_cache import RenderCache

PREFIX = "/api/v1"


@pytest_asyncio.fixture
async def client(test_db, scenario):
    """API client whose requests run against the seeded test database"""
    app = create_app(render_cache=RenderCache(ttl=60))

    async def override_session():
        async with test_db() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_session] = override_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as api_client:
        yield api_client


# ============================================================================
# ROUNDS
# ============================================================================

@pytest.mark.asyncio
async def test_list_rounds_paginated(client, scenario):
    response = await client.get(f"{PREFIX}/rounds", params={"per_page": 1, "page": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert body["page"] == 2
    assert [r["id"] for r in body["items"]] == [scenario['round1']]
    assert body["items"][0]["solution_words"] == ['APPLE', 'BANANA']
    assert response.headers["X-Total"] == "2"
    assert response.headers["X-Total-Pages"] == "2"


@pytest.mark.asyncio
async def test_pagination_bounds(client):
    assert (await client.get(f"{PREFIX}/rounds", params={"page": 0})).status_code == 422
    assert (await client.get(f"{PREFIX}/rounds", params={"per_page": 501})).status_code == 422
    assert (await client.get(f"{PREFIX}/rounds", params={"per_page": 500})).status_code == 200


@pytest.mark.asyncio
async def test_round_detail(client, scenario):
    response = await client.get(f"{PREFIX}/rounds/{scenario['round1']}")

    assert response.status_code == 200
    body = response.json()
    assert len(body["clues"]) == 4
    assert body["clue_giver"]["full_name"] == 'Carol Clue'
    assert [g["full_name"] for g in body["guessers"]] == ['Alice Anders', 'Bob Baker']
    assert [(r["full_name"], r["correct_guesses"], r["best_streak"]) for r in body["results"]] == [
        ('Alice Anders', 3, 2),
        ('Bob Baker', 2, 2),
    ]
    assert body["previous_round_id"] is None
    assert body["next_round_id"] == scenario['round2']


@pytest.mark.asyncio
async def test_round_not_found(client):
    response = await client.get(f"{PREFIX}/rounds/9999")
    assert response.status_code == 404
    assert response.json() == {"detail": "Round not found."}


@pytest.mark.asyncio
async def test_rounds_stats(client):
    response = await client.get(f"{PREFIX}/rounds/stats")

    assert response.status_code == 200
    body = response.json()
    assert body["overview"]["total_rounds"] == 2
    assert body["by_year"][0]["year"] == 2024
    assert [t["solution_count"] for t in body["answer_positions"]] == [2, 3]


# ============================================================================
# PERSONS
# ============================================================================

@pytest.mark.asyncio
async def test_person_detail_and_list(client, scenario):
    detail = await client.get(f"{PREFIX}/persons/{scenario['alice']}")
    listing = await client.get(f"{PREFIX}/persons", params={"search": "ford"})

    assert detail.json()["roles"] == ['player']
    assert [p["full_name"] for p in listing.json()["items"]] == ['Frank Ford']


@pytest.mark.asyncio
async def test_person_stats(client, scenario):
    response = await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats")

    assert response.status_code == 200
    body = response.json()
    assert body["overall_percentage"] == 87.5
    assert body["best_streak"] == 4


@pytest.mark.asyncio
async def test_person_not_found_before_stats(client):
    response = await client.get(f"{PREFIX}/persons/9999/stats")
    assert response.status_code == 404
    assert response.json() == {"detail": "Person not found."}


@pytest.mark.asyncio
async def test_person_breakdown(client, scenario):
    response = await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/by-day-of-week")

    assert response.status_code == 200
    body = response.json()
    assert body["dimension"] == 'day_of_week'
    assert [b["day_name"] for b in body["items"]] == ['Monday', 'Sunday']


@pytest.mark.asyncio
async def test_person_breakdown_short_slugs(client, scenario):
    by_day = await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/by-day")
    by_length = await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/by-length")
    full_length = await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/by-answer-length")

    assert by_day.json()["dimension"] == 'day_of_week'
    assert by_length.json() == full_length.json()
    assert by_length.json()["dimension"] == 'answer_length'


@pytest.mark.asyncio
async def test_person_breakdown_unknown_dimension(client, scenario):
    assert (await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/by-weather")).status_code == 404
    assert (await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/year")).status_code == 404


@pytest.mark.asyncio
async def test_person_streaks_and_rounds(client, scenario):
    streaks = await client.get(f"{PREFIX}/persons/{scenario['alice']}/stats/streaks")
    rounds = await client.get(f"{PREFIX}/persons/{scenario['alice']}/rounds")

    assert streaks.json()["by_year"] == [{"year": 2024, "best_streak": 4}]
    assert streaks.json()["correct_clue_rounds"]["3"] == [scenario['round2']]

    items = rounds.json()["items"]
    assert [(r["round_id"], r["best_streak"]) for r in items] == [
        (scenario['round2'], 4),
        (scenario['round1'], 2),
    ]


# ============================================================================
# PUZZLES, CLUES, CONSTRUCTORS, EDITORS
# ============================================================================

@pytest.mark.asyncio
async def test_puzzles(client, scenario):
    listing = await client.get(f"{PREFIX}/puzzles", params={"constructor": "frank"})
    detail = await client.get(f"{PREFIX}/puzzles/{scenario['puzzle1']}")
    missing = await client.get(f"{PREFIX}/puzzles/9999")

    assert listing.json()["total"] == 1
    assert listing.json()["items"][0]["constructor_names"] == 'Dan Dexter and Frank Ford'
    assert detail.json()["editor"]["full_name"] == 'Erin Editor'
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_clue_detail(client, scenario):
    response = await client.get(f"{PREFIX}/clues/{scenario['round1_clues'][0]}")

    body = response.json()
    assert body["correct_answer"] == 'APPLE'
    assert [(g["guesser_name"], g["is_correct"]) for g in body["guesses"]] == [
        ('Alice Anders', True),
        ('Bob Baker', False),
    ]


@pytest.mark.asyncio
async def test_constructors_and_editors(client, scenario):
    constructors = await client.get(f"{PREFIX}/constructors")
    dan = await client.get(f"{PREFIX}/constructors/{scenario['dan']}")
    not_a_constructor = await client.get(f"{PREFIX}/constructors/{scenario['alice']}")
    erin = await client.get(f"{PREFIX}/editors/{scenario['erin']}")

    assert constructors.json()["total"] == 2
    assert dan.json()["stats"]["clue_count"] == 7
    assert [e["editor_name"] for e in dan.json()["editors"]] == ['Erin Editor', 'Unknown']
    assert [p["puzzle_id"] for p in dan.json()["puzzles"]] == [scenario['puzzle1'], scenario['puzzle2']]
    assert not_a_constructor.status_code == 404
    assert [p["full_name"] for p in erin.json()["players"]] == ['Alice Anders', 'Bob Baker']
    assert [c["full_name"] for c in erin.json()["constructors"]] == ['Dan Dexter']
    assert [p["puzzle_id"] for p in erin.json()["puzzles"]] == [scenario['puzzle1']]


@pytest.mark.asyncio
async def test_person_puzzles(client, scenario):
    frank = await client.get(f"{PREFIX}/persons/{scenario['frank']}/puzzles")
    alice = await client.get(f"{PREFIX}/persons/{scenario['alice']}/puzzles")
    missing = await client.get(f"{PREFIX}/persons/9999/puzzles")

    items = frank.json()["items"]
    assert [p["puzzle_id"] for p in items] == [scenario['puzzle2']]
    assert items[0]["day_of_week"] == 'Monday'
    assert [c["id"] for c in items[0]["constructors"]] == [scenario['dan'], scenario['frank']]
    assert alice.json()["total"] == 0
    assert missing.status_code == 404


# ============================================================================
# SEARCH, LEADERBOARD, CACHE
# ============================================================================

@pytest.mark.asyncio
async def test_search(client, scenario):
    response = await client.get(f"{PREFIX}/search", params={"q": "banana"})
    missing_query = await client.get(f"{PREFIX}/search")

    assert [(r["type"], r["id"]) for r in response.json()["items"]] == [('round', scenario['round1'])]
    assert missing_query.status_code == 422


@pytest.mark.asyncio
async def test_search_total_counts_every_match(client, test_db):
    async with test_db() as session:
        for n in range(30):
            await person_service.create_person(session, {"full_name": f"Zed Player {n:02d}"})
        await session.commit()

    response = await client.get(f"{PREFIX}/search", params={"q": "zed", "per_page": 10, "page": 3})

    body = response.json()
    assert body["total"] == 30
    assert body["total_pages"] == 3
    assert [r["label"] for r in body["items"]][0] == 'Zed Player 20'
    assert response.headers["X-Total"] == "30"


@pytest.mark.asyncio
async def test_leaderboards(client, scenario):
    scores = await client.get(f"{PREFIX}/leaderboard/scores")
    streaks = await client.get(f"{PREFIX}/leaderboard/streaks", params={"limit": 1})

    assert [(e["full_name"], e["value"]) for e in scores.json()["items"]] == [
        ('Alice Anders', 4),
        ('Bob Baker', 2),
    ]
    assert scores.json()["items"][0]["round_ids"] == [scenario['round2']]
    assert len(streaks.json()["items"]) == 1


@pytest.mark.asyncio
async def test_leaderboard_cached_until_flush(client, test_db, scenario):
    first = await client.get(f"{PREFIX}/leaderboard/scores")

    async with test_db() as session:
        await person_service.delete_person(session, scenario['bob'])
        await session.commit()

    cached = await client.get(f"{PREFIX}/leaderboard/scores")
    flush = await client.post(f"{PREFIX}/cache/flush")
    fresh = await client.get(f"{PREFIX}/leaderboard/scores")

    assert cached.json() == first.json()
    assert flush.json() == {"version": 2}
    assert [e["full_name"] for e in fresh.json()["items"]] == ['Alice Anders']
