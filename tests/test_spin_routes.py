import io
import json

import roster
from conftest import SMALL_ROSTER, image_bytes


def read_storage(app):
    with open(app.config["STORAGE_JSON"], encoding="utf-8") as f:
        return json.load(f)


def spin(client, pid):
    return client.post(f"/spin/{pid}/start").get_json()


def complete(client, pid, spin_id):
    return client.post(f"/spin/{pid}/complete", json={"spin_id": spin_id}).get_json()


def test_initial_state(client):
    data = client.get("/spin/state").get_json()
    assert data["pool"] == ["Alpha", "Bravo", "Charlie"]
    assert data["pool_size"] == 3
    for pid in ("N", "S"):
        player = data["players"][pid]
        assert player["selection"] is None
        assert not player["spinning"]
        assert player["window"] == [None, None, None]
        assert player["history"] == []
    assert data["players"]["N"]["name"] == "Niko"


def test_spin_then_complete_commits_and_persists(app, client):
    result = spin(client, "N")
    assert result["allowed"]
    assert result["target"] in SMALL_ROSTER
    assert result["final"][1] == result["target"]
    assert result["frames"][-1]["window"] == result["final"]
    assert result["duration_ms"] >= app.config["SPIN_DURATION_MS"]

    state = client.get("/spin/state").get_json()
    assert state["players"]["N"]["spinning"]
    assert state["pool_size"] == 3

    done = complete(client, "N", result["spin_id"])
    assert done["committed"]
    assert done["players"]["N"]["selection"] == result["target"]
    assert done["players"]["N"]["window"][1] == result["target"]
    assert result["target"] not in done["pool"]
    assert done["pool_size"] == 2

    stored = read_storage(app)
    assert [e["characterName"] for e in stored["mr_history_N"]] == [result["target"]]


def test_second_spin_refused_while_spinning(client):
    spin(client, "N")
    again = spin(client, "N")
    assert again == {"allowed": False, "reason": "already_spinning"}


def test_other_player_draws_from_remaining(client):
    first = spin(client, "N")
    complete(client, "N", first["spin_id"])
    second = spin(client, "S")
    assert second["target"] != first["target"]
    assert second["target"] in SMALL_ROSTER


def test_stale_completion_after_skip_is_ignored(client):
    result = spin(client, "N")
    client.post("/spin/N/skip")
    done = complete(client, "N", result["spin_id"])
    assert not done["committed"]
    assert done["pool_size"] == 3
    assert done["players"]["N"]["history"] == []


def test_page_load_tears_down_running_spin(client):
    result = spin(client, "S")
    assert client.get("/").status_code == 200

    state = client.get("/spin/state").get_json()
    assert not state["players"]["S"]["spinning"]
    assert not complete(client, "S", result["spin_id"])["committed"]


def test_skip_keeps_history(client):
    result = spin(client, "N")
    complete(client, "N", result["spin_id"])
    state = client.post("/spin/N/skip").get_json()
    assert state["players"]["N"]["selection"] is None
    assert len(state["players"]["N"]["history"]) == 1
    assert state["pool_size"] == 2


def test_cancel_route(client):
    result = spin(client, "N")
    state = client.post("/spin/N/cancel").get_json()
    assert not state["players"]["N"]["spinning"]
    assert not complete(client, "N", result["spin_id"])["committed"]


def test_spin_both(client):
    result = client.post("/spin/both").get_json()
    assert result["allowed"]
    n, s = result["spins"]["N"], result["spins"]["S"]
    assert n["target"] != s["target"]

    assert complete(client, "N", n["spin_id"])["committed"]
    done = complete(client, "S", s["spin_id"])
    assert done["committed"]
    assert done["pool_size"] == 1

    refused = client.post("/spin/both").get_json()
    assert refused == {"allowed": False, "reason": "pool_exhausted"}


def test_exhausted_pool(make_app):
    client = make_app(ROSTER_NAMES=["Solo"]).test_client()
    result = spin(client, "N")
    complete(client, "N", result["spin_id"])

    assert spin(client, "N") == {"allowed": False, "reason": "pool_exhausted"}
    state = client.get("/spin/state").get_json()
    assert state["players"]["N"]["exhausted"]
    assert state["players"]["S"]["exhausted"]


def test_unknown_player_is_404(client):
    assert client.post("/spin/X/start").status_code == 404


def test_purge_resets_history(app, client):
    result = spin(client, "N")
    complete(client, "N", result["spin_id"])

    state = client.post("/history/purge", json={}).get_json()
    assert state["pool_size"] == 3
    assert state["players"]["N"]["selection"] is None
    assert read_storage(app)["mr_history_N"] == []


def test_purge_form_redirects(client):
    resp = client.post("/history/purge")
    assert resp.status_code == 302
    assert client.get("/history/").status_code == 200


def test_history_survives_restart(make_app):
    client = make_app().test_client()
    result = spin(client, "S")
    complete(client, "S", result["spin_id"])

    restarted = make_app().test_client()
    state = restarted.get("/spin/state").get_json()
    assert state["players"]["S"]["history"][0]["characterName"] == result["target"]
    assert state["players"]["S"]["selection"] is None
    assert state["pool_size"] == 2


def test_corrupt_storage_starts_empty(make_app, tmp_path):
    path = tmp_path / "data" / "storage.json"
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    client = make_app().test_client()
    assert client.get("/spin/state").get_json()["pool_size"] == 3


def test_history_page_lists_entries(client):
    result = spin(client, "N")
    complete(client, "N", result["spin_id"])
    page = client.get("/history/").get_data(as_text=True)
    assert result["target"] in page
    assert "2 characters available" in page


def test_purge_from_another_process_is_not_undone(make_app):
    server = make_app()
    client = server.test_client()
    result = spin(client, "S")
    assert complete(client, "S", result["spin_id"])["committed"]

    cli_app = make_app()
    assert cli_app.test_cli_runner().invoke(args=["purge-history"]).exit_code == 0

    state = client.get("/spin/state").get_json()
    assert state["players"]["S"]["history"] == []
    assert state["pool_size"] == 3

    # a later commit must not write the purged history back
    again = spin(client, "N")
    complete(client, "N", again["spin_id"])
    assert read_storage(server)["mr_history_S"] == []


def test_spin_both_availability(make_app):
    client = make_app().test_client()
    assert client.get("/spin/state").get_json()["can_spin_both"]
    assert 'id="spin-both" disabled' not in client.get("/").get_data(as_text=True)

    result = spin(client, "N")
    assert not client.get("/spin/state").get_json()["can_spin_both"]

    done = complete(client, "N", result["spin_id"])
    assert done["pool_size"] == 2
    assert done["can_spin_both"]

    solo = make_app(ROSTER_NAMES=["Solo"]).test_client()
    assert not solo.get("/spin/state").get_json()["can_spin_both"]
    assert 'id="spin-both" disabled' in solo.get("/").get_data(as_text=True)


def test_transition_session_returns_both_states(app):
    from blueprints.spin import transition_session

    with app.app_context():
        before, after = transition_session(roster.start_spin, "N", "n1")
        assert not before.player("N").spinning
        assert after.player("N").spin_id == "n1"

        before, after = transition_session(roster.complete_spin, "N", "stale", 1)
        assert before is after

        before, after = transition_session(roster.complete_spin, "N", "n1", 1)
        assert before.player("N").history == ()
        assert len(after.player("N").history) == 1


def test_histories_and_icons_live_in_separate_files(app, client):
    result = spin(client, "N")
    complete(client, "N", result["spin_id"])
    client.post(
        "/assets/Alpha/icon",
        data={"icon": (io.BytesIO(image_bytes("PNG")), "a.png")},
        content_type="multipart/form-data",
    )

    stored = read_storage(app)
    assert "mr_history_N" in stored
    assert app.config["ICONS_KEY"] not in stored
    with open(app.config["ICONS_JSON"], encoding="utf-8") as f:
        icon_file = json.load(f)
    assert list(icon_file) == [app.config["ICONS_KEY"]]
    assert "Alpha" in icon_file[app.config["ICONS_KEY"]]
