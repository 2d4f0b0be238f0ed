from __future__ import annotations

from fastapi.testclient import TestClient


def _demo_story(client: TestClient) -> str:
    sid = client.post("/stories").json()["storyId"]
    assert client.post(f"/stories/{sid}/demo").status_code == 200
    return sid


def test_play_view_reports_availability(client: TestClient) -> None:
    sid = _demo_story(client)

    view = client.get(f"/stories/{sid}/play").json()
    assert view["status"] == "playing"
    assert view["node"]["id"] == "start"
    assert [c["available"] for c in view["choices"]] == [True, True]
    assert view["variables"]["physiological"]["energy"] == 100
    assert view["historyLength"] == 0


def test_choose_moves_and_autosaves(client: TestClient) -> None:
    sid = _demo_story(client)

    view = client.post(f"/stories/{sid}/play/choices/0").json()
    assert view["currentNodeId"] == "find_water"
    assert view["variables"]["physiological"]["energy"] == 85

    # A fresh read picks up the autosaved position.
    again = client.get(f"/stories/{sid}/play").json()
    assert again["currentNodeId"] == "find_water"
    history = client.get(f"/stories/{sid}/play/history").json()["history"]
    assert [(h["nodeId"], h["choice"]) for h in history] == [("start", "Look for water (costs energy)")]


def test_unavailable_choice_is_422(client: TestClient) -> None:
    sid = _demo_story(client)
    client.patch(
        f"/stories/{sid}/nodes/start/choices/0/condition",
        json={"enabled": True, "variable": "energy", "operator": "greater", "value": 1000},
    )
    res = client.post(f"/stories/{sid}/play/choices/0")
    assert res.status_code == 422
    assert "not available" in res.json()["detail"]


def test_bad_choice_index_is_422(client: TestClient) -> None:
    sid = _demo_story(client)
    assert client.post(f"/stories/{sid}/play/choices/5").status_code == 422


def test_restart_and_jump(client: TestClient) -> None:
    sid = _demo_story(client)
    client.post(f"/stories/{sid}/play/choices/1")  # start -> rest
    client.post(f"/stories/{sid}/play/choices/0")  # rest -> find_water
    client.post(f"/stories/{sid}/play/choices/0")  # find_water -> eat_fruit

    view = client.post(f"/stories/{sid}/play/history/1/jump").json()
    assert view["currentNodeId"] == "rest"
    assert view["historyLength"] == 1

    assert client.post(f"/stories/{sid}/play/history/9/jump").status_code == 422

    view = client.post(f"/stories/{sid}/play/restart").json()
    assert view["currentNodeId"] == "start"
    assert view["historyLength"] == 0
    assert view["variables"]["physiological"]["hunger"] == 0


def test_save_and_load_slots(client: TestClient) -> None:
    sid = _demo_story(client)
    client.post(f"/stories/{sid}/play/choices/0")

    res = client.post(f"/stories/{sid}/play/saves/slot1")
    assert res.status_code == 201
    assert res.json()["currentNodeId"] == "find_water"

    client.post(f"/stories/{sid}/play/restart")
    view = client.post(f"/stories/{sid}/play/saves/slot1/load").json()
    assert view["currentNodeId"] == "find_water"
    assert view["variables"]["physiological"]["energy"] == 85

    slots = client.get(f"/stories/{sid}/play/saves").json()["slots"]
    assert {"autosave", "slot1"} <= set(slots)

    missing = client.post(f"/stories/{sid}/play/saves/nope/load")
    assert missing.status_code == 404


def test_reaching_an_ending(client: TestClient) -> None:
    sid = _demo_story(client)
    client.patch(f"/stories/{sid}/nodes/explore", json={"choices": []})
    client.post(f"/stories/{sid}/play/choices/0")  # start -> find_water

    view = client.post(f"/stories/{sid}/play/choices/1").json()  # find_water -> explore
    assert view["currentNodeId"] == "explore"
    assert view["status"] == "ended"
    assert view["choices"] == []


def test_dangling_link_strands_reader(client: TestClient) -> None:
    sid = _demo_story(client)
    client.delete(f"/stories/{sid}/nodes/find_water")

    view = client.post(f"/stories/{sid}/play/choices/0").json()
    assert view["status"] == "stranded"
    assert view["node"] is None

    res = client.post(f"/stories/{sid}/play/choices/0")
    assert res.status_code == 422


def test_generic_action_endpoint(client: TestClient) -> None:
    sid = _demo_story(client)

    view = client.post(f"/stories/{sid}/play/actions/choose", json={"index": 1}).json()
    assert view["currentNodeId"] == "rest"

    view = client.post(f"/stories/{sid}/play/actions/jump", json={"index": 0}).json()
    assert view["currentNodeId"] == "start"

    assert client.post(f"/stories/{sid}/play/actions/choose", json={}).status_code == 422
    assert client.post(f"/stories/{sid}/play/actions/choose", json={"index": "x"}).status_code == 422
    assert client.post(f"/stories/{sid}/play/actions/fly", json={}).status_code == 422


def test_play_actions_match_action_names() -> None:
    from typing import get_args

    from branchtale.actions import PLAY_ACTIONS, PlayActionName

    assert PLAY_ACTIONS == frozenset(get_args(PlayActionName))
    assert PLAY_ACTIONS == {"choose", "restart", "jump", "save", "load"}
