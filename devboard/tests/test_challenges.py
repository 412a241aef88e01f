import json
import random
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from devboard.core.config import Settings
from devboard.features.challenges.generator import (
    FALLBACK_CATALOG,
    ChallengeGenerator,
    build_prompt,
    get_challenge_generator,
    parse_generated_text,
)
from devboard.features.challenges import service as challenge_service
from devboard.tests.mocks import ManualClock, RecordingTransport, off_loop_recorder

GENERATED = (
    "Title: Rotate an Array\n"
    "Given an array, rotate it to the right by k steps.\n"
    "Constraints: 1 <= n <= 10^5\n"
    "Examples:\nInput: [1,2,3], k=1\nOutput: [3,1,2]"
)


def _unavailable(request):
    return httpx.Response(503, json={"error": "Model is loading"})


def _generator(handler=_unavailable, seed=7, clock=None):
    return ChallengeGenerator(
        settings_obj=Settings(JWT_SECRET="x", HUGGINGFACE_API_TOKEN="hf_token"),
        clock=clock or ManualClock(datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)),
        rng=random.Random(seed),
        transport=httpx.MockTransport(handler),
    )


def test_prompt_mentions_topic():
    prompt = build_prompt("hard", "python", "graphs")
    assert prompt.startswith("Create a hard level coding challenge for python about graphs.")
    assert prompt.endswith("Title:\n")


def test_parse_generated_text():
    parsed = parse_generated_text(GENERATED, "medium", "python")
    assert parsed.title == "Rotate an Array"
    assert parsed.description.startswith("Given an array")
    assert "Output: [3,1,2]" in parsed.description
    assert parsed.source == "ai"
    assert parsed.tags == ["python", "medium"]


@pytest.mark.asyncio
async def test_generate_calls_inference_api():
    transport = RecordingTransport(lambda request: httpx.Response(200, json=[{"generated_text": GENERATED}]))
    generator = ChallengeGenerator(
        settings_obj=Settings(JWT_SECRET="x", HUGGINGFACE_API_TOKEN="hf_token"),
        transport=transport,
    )

    challenge = await generator.generate(difficulty="easy", language="go")

    assert challenge.title == "Rotate an Array"
    request = transport.requests[0]
    assert request.headers["Authorization"] == "Bearer hf_token"
    body = json.loads(request.content)
    assert body["parameters"]["max_length"] == 500
    assert "easy level coding challenge for go" in body["inputs"]


@pytest.mark.asyncio
async def test_provider_failure_uses_fallback_catalog():
    challenge = await _generator().generate(difficulty="hard", language="python")
    titles = [entry[0] for entry in FALLBACK_CATALOG["hard"]]
    assert challenge.title in titles
    assert challenge.difficulty == "hard"
    assert challenge.language == "python"


@pytest.mark.asyncio
async def test_empty_generation_uses_fallback_catalog():
    challenge = await _generator(lambda request: httpx.Response(200, json=[{}])).generate(difficulty="easy")
    assert challenge.title in [entry[0] for entry in FALLBACK_CATALOG["easy"]]


@pytest.mark.asyncio
async def test_daily_and_weekly_expiry():
    clock = ManualClock(datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc))
    generator = _generator(clock=clock)

    daily = await generator.generate_daily()
    weekly = await generator.generate_weekly()

    assert "daily" in daily.tags
    assert daily.expires_at.date() == date(2024, 3, 15)
    assert (daily.expires_at.hour, daily.expires_at.minute) == (23, 59)
    assert weekly.expires_at.date() == date(2024, 3, 22)
    assert weekly.difficulty in ("medium", "hard")


@pytest.mark.asyncio
async def test_daily_difficulty_weights():
    generator = _generator(seed=1)
    counts = {"easy": 0, "medium": 0, "hard": 0}
    for _ in range(300):
        counts[(await generator.generate_daily()).difficulty] += 1
    assert counts["hard"] < counts["easy"]
    assert counts["hard"] < counts["medium"]


# API ---------------------------------------------------------------------


@pytest.fixture
def offline_generator(app):
    app.dependency_overrides[get_challenge_generator] = lambda: _generator(
        clock=ManualClock(datetime.now(timezone.utc))
    )


def _create(client, auth, **fields):
    body = {"title": "FizzBuzz", "description": "Print numbers", "difficulty": "easy", **fields}
    resp = client.post("/api/v1/challenges", headers=auth["headers"], json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["challenge"]


def test_list_shows_public_and_own(client, auth, other_auth):
    _create(client, auth, title="Public one")
    _create(client, auth, title="Alice private", isPublic=False)
    _create(client, other_auth, title="Bob private", isPublic=False)

    titles = {c["title"] for c in client.get("/api/v1/challenges", headers=auth["headers"]).json()["data"]["challenges"]}
    assert titles == {"Public one", "Alice private"}


def test_list_filters(client, auth):
    _create(client, auth, title="a", difficulty="hard", language="go", tags=["graphs"])
    _create(client, auth, title="b", difficulty="easy", language="python")

    resp = client.get("/api/v1/challenges", headers=auth["headers"], params={"difficulty": "hard", "tag": "graphs"})
    assert [c["title"] for c in resp.json()["data"]["challenges"]] == ["a"]

    resp = client.get("/api/v1/challenges", headers=auth["headers"], params={"difficulty": "impossible"})
    assert resp.status_code == 400


def test_only_creator_can_modify(client, auth, other_auth):
    challenge = _create(client, auth)

    resp = client.patch(f"/api/v1/challenges/{challenge['id']}", headers=other_auth["headers"], json={"title": "x"})
    assert resp.status_code == 403
    assert client.delete(f"/api/v1/challenges/{challenge['id']}", headers=other_auth["headers"]).status_code == 403

    resp = client.patch(
        f"/api/v1/challenges/{challenge['id']}", headers=auth["headers"], json={"title": "Renamed", "isPublic": False}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["challenge"]["title"] == "Renamed"
    assert resp.json()["data"]["challenge"]["isPublic"] is False

    assert client.delete(f"/api/v1/challenges/{challenge['id']}", headers=auth["headers"]).status_code == 204
    assert client.get(f"/api/v1/challenges/{challenge['id']}", headers=auth["headers"]).status_code == 404


def test_progress_sets_completed_at_once(client, auth, other_auth):
    challenge = _create(client, auth)
    url = f"/api/v1/challenges/{challenge['id']}/progress"

    started = client.post(url, headers=other_auth["headers"], json={"status": "in_progress"})
    assert started.status_code == 200
    assert started.json()["data"]["progress"]["completedAt"] is None

    done = client.post(url, headers=other_auth["headers"], json={"status": "completed", "solution": "print(1)"})
    completed_at = done.json()["data"]["progress"]["completedAt"]
    assert completed_at is not None

    again = client.post(url, headers=other_auth["headers"], json={"status": "completed"})
    assert again.json()["data"]["progress"]["completedAt"] == completed_at
    assert again.json()["data"]["progress"]["solution"] == "print(1)"

    detail = client.get(f"/api/v1/challenges/{challenge['id']}", headers=other_auth["headers"]).json()
    assert detail["data"]["challenge"]["userProgress"]["status"] == "completed"
    # Progress is per user
    own = client.get(f"/api/v1/challenges/{challenge['id']}", headers=auth["headers"]).json()
    assert own["data"]["challenge"]["userProgress"] is None


def test_progress_rejects_unknown_status(client, auth):
    challenge = _create(client, auth)
    resp = client.post(
        f"/api/v1/challenges/{challenge['id']}/progress", headers=auth["headers"], json={"status": "abandoned"}
    )
    assert resp.status_code == 400


def test_generate_persists_ai_challenge(client, auth, offline_generator):
    resp = client.post("/api/v1/challenges/generate", headers=auth["headers"], json={"difficulty": "medium"})
    assert resp.status_code == 201
    challenge = resp.json()["data"]["challenge"]
    assert challenge["source"] == "ai"
    assert challenge["title"] in [entry[0] for entry in FALLBACK_CATALOG["medium"]]


def test_daily_challenge_is_reused_until_expiry(client, auth, other_auth, offline_generator):
    first = client.get("/api/v1/challenges/daily", headers=auth["headers"]).json()["data"]["challenge"]
    second = client.get("/api/v1/challenges/daily", headers=other_auth["headers"]).json()["data"]["challenge"]

    assert first["id"] == second["id"]
    assert "daily" in first["tags"]
    assert datetime.fromisoformat(first["expiresAt"]) > datetime.now(timezone.utc)


def test_weekly_is_separate_from_daily(client, auth, offline_generator):
    daily = client.get("/api/v1/challenges/daily", headers=auth["headers"]).json()["data"]["challenge"]
    weekly = client.get("/api/v1/challenges/weekly", headers=auth["headers"]).json()["data"]["challenge"]

    assert daily["id"] != weekly["id"]
    assert "weekly" in weekly["tags"]
    assert datetime.fromisoformat(weekly["expiresAt"]) > datetime.now(timezone.utc) + timedelta(days=6)


def test_rotation_and_generate_keep_session_work_off_the_event_loop(client, auth, offline_generator, monkeypatch):
    seen = []
    for name in ("_active_rotation", "_store_rotation", "_with_progress", "_persist_generated"):
        monkeypatch.setattr(challenge_service, name, off_loop_recorder(getattr(challenge_service, name), seen))

    assert client.get("/api/v1/challenges/daily", headers=auth["headers"]).status_code == 200
    assert client.post("/api/v1/challenges/generate", headers=auth["headers"], json={}).status_code == 201

    assert seen
    assert set(seen) == {"thread"}
