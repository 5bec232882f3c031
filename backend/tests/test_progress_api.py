"""Tests for /progress endpoints (auth disabled, in-memory store)."""

import pytest

USER = "test-user"
HEADERS = {"X-User-Id": USER}


@pytest.fixture
def pool(fake_store):
    for n in range(4):
        fake_store.add_item(f"item-{n}", pool_id="pool-1")
    fake_store.add_item("other-0", pool_id="pool-2")
    return fake_store


def answer(client, item_id: str, is_correct: bool = True):
    response = client.post("/learn/answer", json={"itemId": item_id, "isCorrect": is_correct}, headers=HEADERS)
    assert response.status_code == 200
    return response.json()


def test_list_progress_with_summary(client, pool):
    answer(client, "item-0")
    answer(client, "item-1", is_correct=False)
    answer(client, "other-0")

    response = client.get("/progress", params={"poolId": "pool-1"}, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert sorted(r["itemId"] for r in data["records"]) == ["item-0", "item-1"]
    assert data["summary"]["totalItems"] == 2
    assert data["summary"]["averageAccuracy"] == 50
    assert data["hasMore"] is False


def test_list_all_pools(client, pool):
    answer(client, "item-0")
    answer(client, "other-0")

    data = client.get("/progress", headers=HEADERS).json()

    assert data["total"] == 2


def test_list_difficult_items(client, pool):
    answer(client, "item-0")
    answer(client, "item-1", is_correct=False)

    data = client.get("/progress", params={"type": "difficult"}, headers=HEADERS).json()

    assert [r["itemId"] for r in data["records"]] == ["item-1"]
    assert data["records"][0]["isDifficult"] is True


def test_list_pagination(client, pool):
    for n in range(4):
        answer(client, f"item-{n}")

    data = client.get("/progress", params={"limit": 3, "offset": 0}, headers=HEADERS).json()

    assert len(data["records"]) == 3
    assert data["total"] == 4
    assert data["hasMore"] is True


def test_get_progress(client, pool):
    answer(client, "item-0")

    data = client.get("/progress/item-0", headers=HEADERS).json()

    assert data["timesSeen"] == 1
    assert data["accuracy"] == 100
    assert data["manuallyLearned"] is False


def test_get_progress_not_found(client, pool):
    assert client.get("/progress/item-3", headers=HEADERS).status_code == 404


def test_manual_learned_does_not_change_schedule(client, pool):
    before = answer(client, "item-0")

    response = client.put("/progress/item-0/learned", json={"manuallyLearned": True}, headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["manuallyLearned"] is True
    assert data["isLearned"] is True
    assert data["interval"] == before["interval"]
    assert data["repetition"] == before["repetition"]
    assert data["nextReviewDate"] == before["nextReviewDate"]


def test_manual_learned_survives_answers(client, pool):
    answer(client, "item-0")
    client.put("/progress/item-0/learned", json={"manuallyLearned": True}, headers=HEADERS)

    result = answer(client, "item-0", is_correct=False)

    assert result["repetition"] == 0
    data = client.get("/progress/item-0", headers=HEADERS).json()
    assert data["manuallyLearned"] is True
    assert data["isLearned"] is True


def test_manual_learned_can_be_cleared(client, pool):
    answer(client, "item-0")
    client.put("/progress/item-0/learned", json={"manuallyLearned": True}, headers=HEADERS)

    data = client.put("/progress/item-0/learned", json={"manuallyLearned": False}, headers=HEADERS).json()

    assert data["manuallyLearned"] is False
    assert data["isLearned"] is False


def test_manual_learned_unknown_record(client, pool):
    response = client.put("/progress/item-3/learned", json={"manuallyLearned": True}, headers=HEADERS)
    assert response.status_code == 404


def test_learned_filter_includes_manual_flag(client, pool):
    answer(client, "item-0")
    answer(client, "item-1")
    client.put("/progress/item-1/learned", json={"manuallyLearned": True}, headers=HEADERS)

    data = client.get("/progress", params={"type": "learned"}, headers=HEADERS).json()

    assert [r["itemId"] for r in data["records"]] == ["item-1"]
