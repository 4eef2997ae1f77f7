from flask import (
    Blueprint,
    current_app,
    abort,
    request,
)
import logging
import time
import uuid

import roster
from reel import idle_window, record_spin
from roster import PLAYER_IDS, DuplicateTargetConflict, EmptyPool
from storage import history_key, load_history, save_history

logger = logging.getLogger(__name__)

spin_bp = Blueprint("spin", __name__, url_prefix="/spin")


# ---------- session helpers ----------


def _ext():
    return current_app.extensions["randomizer"]


def get_store():
    return _ext()["store"]


def get_icon_store():
    return _ext()["icon_store"]


def _history_key(player_id):
    return history_key(current_app.config["HISTORY_KEY_PREFIX"], player_id)


def load_session():
    ext = _ext()
    generation = get_store().sync()
    if ext["session"] is not None and ext["generation"] == generation:
        return ext["session"]
    if ext["session"] is not None:
        logger.info("Histories changed on disk, rebuilding session")

    histories = {pid: load_history(get_store(), _history_key(pid)) for pid in PLAYER_IDS}
    ext["session"] = roster.new_session(ext["roster"], histories)
    ext["generation"] = generation
    return ext["session"]


def save_session(state):
    ext = _ext()
    previous = ext["session"]
    ext["session"] = state
    for pid in PLAYER_IDS:
        history = state.player(pid).history
        if previous is None or previous.player(pid).history != history:
            save_history(get_store(), _history_key(pid), history)


def transition_session(transition, *args, **kwargs):
    """Apply ``transition`` under the session lock; returns (before, after)."""
    with _ext()["lock"]:
        state = load_session()
        new_state = transition(state, *args, **kwargs)
        if new_state is not state:
            save_session(new_state)
        return state, new_state


def update_session(transition, *args, **kwargs):
    return transition_session(transition, *args, **kwargs)[1]


def now_ms():
    return int(time.time() * 1000)


def check_player(player_id):
    if player_id not in PLAYER_IDS:
        abort(404)


def _name(character):
    return character.name if character is not None else None


def serialize_session(state):
    players = {}
    for pid in PLAYER_IDS:
        player = state.player(pid)
        shown = player.target if player.spinning else player.selection
        window = idle_window(None if player.spinning else shown, state.roster)
        players[pid] = {
            "name": current_app.config["PLAYERS"][pid]["name"],
            "color": current_app.config["PLAYERS"][pid]["color"],
            "selection": _name(player.selection),
            "target": _name(player.target),
            "spinning": player.spinning,
            "window": [_name(c) for c in window],
            "exhausted": roster.pool_exhausted(state, pid),
            "history": [entry.to_dict() for entry in player.history],
        }
    pool = roster.available_pool(state)
    any_spinning = any(p["spinning"] for p in players.values())
    return {
        "players": players,
        "pool": [c.name for c in pool],
        "pool_size": len(pool),
        "can_spin_both": len(pool) >= 2 and not any_spinning,
    }


def _timeline(state, player_id):
    player = state.player(player_id)
    timeline = record_spin(
        player.target,
        roster.eligible_pool(state, player_id),
        state.roster,
        duration_ms=current_app.config["SPIN_DURATION_MS"],
        frame_ms=current_app.config["FRAME_MS"],
    )
    data = timeline.to_dict()
    data["spin_id"] = player.spin_id
    return data


# ---------- routes ----------


@spin_bp.route("/state", methods=["GET"])
def session_state():
    return serialize_session(load_session())


@spin_bp.route("/<player_id>/start", methods=["POST"])
def start_spin(player_id):
    check_player(player_id)
    spin_id = uuid.uuid4().hex

    try:
        state = update_session(roster.start_spin, player_id, spin_id)
    except EmptyPool:
        logger.info("Spin for %s refused: pool exhausted", player_id)
        return {"allowed": False, "reason": "pool_exhausted"}

    if state.player(player_id).spin_id != spin_id:
        return {"allowed": False, "reason": "already_spinning"}

    logger.info("Player %s spinning for %s", player_id, state.player(player_id).target.name)
    return {"allowed": True, "player": player_id, **_timeline(state, player_id)}


@spin_bp.route("/both", methods=["POST"])
def spin_both():
    spin_ids = {pid: uuid.uuid4().hex for pid in PLAYER_IDS}

    try:
        state = update_session(roster.spin_both, spin_ids)
    except DuplicateTargetConflict:
        logger.info("Spin both refused: fewer than two characters left")
        return {"allowed": False, "reason": "pool_exhausted"}

    if any(state.player(pid).spin_id != spin_ids[pid] for pid in PLAYER_IDS):
        return {"allowed": False, "reason": "already_spinning"}

    return {
        "allowed": True,
        "spins": {pid: _timeline(state, pid) for pid in PLAYER_IDS},
    }


# DO NOT commit at start: the selection lands only when the animation ends
@spin_bp.route("/<player_id>/complete", methods=["POST"])
def complete_spin(player_id):
    check_player(player_id)
    payload = request.get_json(silent=True) or request.form
    spin_id = payload.get("spin_id")

    before, state = transition_session(roster.complete_spin, player_id, spin_id, now_ms())
    committed = len(state.player(player_id).history) > len(before.player(player_id).history)
    if committed:
        logger.info("Player %s committed %s", player_id, state.player(player_id).selection.name)
    else:
        logger.info("Ignoring stale completion for player %s", player_id)

    return {"committed": committed, **serialize_session(state)}


@spin_bp.route("/<player_id>/cancel", methods=["POST"])
def cancel_spin(player_id):
    check_player(player_id)
    state = update_session(roster.cancel_spin, player_id)
    return serialize_session(state)


@spin_bp.route("/<player_id>/skip", methods=["POST"])
def skip(player_id):
    check_player(player_id)
    state = update_session(roster.skip, player_id)
    return serialize_session(state)
