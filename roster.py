from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

PLAYER_IDS: Tuple[str, str] = ("N", "S")


class EmptyPool(Exception):
    """No eligible character is left to spin for."""


class DuplicateTargetConflict(EmptyPool):
    """Spin-both needs two distinct characters but the pool holds fewer."""


@dataclass(frozen=True)
class Character:
    name: str


@dataclass(frozen=True)
class HistoryEntry:
    character_name: str
    timestamp: int

    def to_dict(self) -> Dict[str, object]:
        return {"characterName": self.character_name, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "HistoryEntry":
        return cls(str(data["characterName"]), int(data["timestamp"]))


@dataclass(frozen=True)
class PlayerState:
    selection: Optional[Character] = None
    target: Optional[Character] = None
    spinning: bool = False
    history: Tuple[HistoryEntry, ...] = ()
    spin_id: Optional[str] = None


@dataclass(frozen=True)
class SessionState:
    roster: Tuple[Character, ...]
    players: Mapping[str, PlayerState] = field(
        default_factory=lambda: {pid: PlayerState() for pid in PLAYER_IDS}
    )

    def player(self, player_id: str) -> PlayerState:
        return self.players[player_id]


def load_roster(names: Iterable[str]) -> Tuple[Character, ...]:
    """Build the roster once, deduplicated and sorted by name."""
    unique = {name.strip() for name in names if name and name.strip()}
    return tuple(Character(name) for name in sorted(unique, key=str.casefold))


def new_session(
    roster: Sequence[Character],
    histories: Optional[Mapping[str, Sequence[HistoryEntry]]] = None,
) -> SessionState:
    histories = histories or {}
    players = {
        pid: PlayerState(history=tuple(histories.get(pid, ())))
        for pid in PLAYER_IDS
    }
    return SessionState(roster=tuple(roster), players=players)


def other_player(player_id: str) -> str:
    if player_id not in PLAYER_IDS:
        raise KeyError(player_id)
    return PLAYER_IDS[1] if player_id == PLAYER_IDS[0] else PLAYER_IDS[0]


def _with_player(state: SessionState, player_id: str, **changes) -> SessionState:
    players = dict(state.players)
    players[player_id] = replace(players[player_id], **changes)
    return replace(state, players=players)


# ---------- derived pool ----------


def used_names(state: SessionState) -> set:
    return {
        entry.character_name
        for player in state.players.values()
        for entry in player.history
    }


def available_pool(state: SessionState) -> List[Character]:
    used = used_names(state)
    return [c for c in state.roster if c.name not in used]


def _pending_targets(state: SessionState, player_id: str) -> List[Character]:
    other = state.player(other_player(player_id))
    return [other.target] if other.spinning and other.target is not None else []


def eligible_pool(state: SessionState, player_id: str) -> List[Character]:
    """Characters a spin for ``player_id`` could land on right now."""
    other = state.player(other_player(player_id))
    blocked = {c.name for c in _pending_targets(state, player_id)}
    if other.selection is not None:
        blocked.add(other.selection.name)
    return [c for c in available_pool(state) if c.name not in blocked]


def pool_exhausted(state: SessionState, player_id: str) -> bool:
    return not eligible_pool(state, player_id)


# ---------- picking ----------


def pick_random_target(
    player_id: str,
    other_selection: Optional[Character],
    pool: Sequence[Character],
    rng=random,
    exclude: Iterable[Character] = (),
) -> Character:
    """
    Pick uniformly from ``pool``, never returning the other player's live
    selection. Raises EmptyPool when nothing is left to pick from.
    """
    blocked = {c.name for c in exclude if c is not None}
    if other_selection is not None:
        blocked.add(other_selection.name)
    candidates = [c for c in pool if c.name not in blocked]
    if not candidates:
        raise EmptyPool(f"no eligible character for player {player_id}")
    return candidates[rng.randrange(len(candidates))]


# ---------- transitions ----------


def start_spin(
    state: SessionState, player_id: str, spin_id: str, rng=random
) -> SessionState:
    player = state.player(player_id)
    if player.spinning:
        return state

    other = state.player(other_player(player_id))
    target = pick_random_target(
        player_id,
        other.selection,
        available_pool(state),
        rng,
        exclude=_pending_targets(state, player_id),
    )
    return _with_player(
        state, player_id, target=target, spinning=True, spin_id=spin_id
    )


def spin_both(
    state: SessionState, spin_ids: Mapping[str, str], rng=random
) -> SessionState:
    if any(p.spinning for p in state.players.values()):
        return state

    pool = available_pool(state)
    if len(pool) < 2:
        raise DuplicateTargetConflict(
            f"spin both needs 2 characters, {len(pool)} available"
        )
    first, second = rng.sample(pool, 2)
    for player_id, target in zip(PLAYER_IDS, (first, second)):
        state = _with_player(
            state,
            player_id,
            target=target,
            spinning=True,
            spin_id=spin_ids[player_id],
        )
    return state


def commit_selection(
    state: SessionState, player_id: str, target: Character, now_ms: int
) -> SessionState:
    if target.name in used_names(state):
        # already consumed by a previous commit; keep histories exclusive
        return _with_player(state, player_id, spinning=False, spin_id=None)

    player = state.player(player_id)
    entry = HistoryEntry(target.name, int(now_ms))
    return _with_player(
        state,
        player_id,
        selection=target,
        target=target,
        spinning=False,
        spin_id=None,
        history=(entry,) + player.history,
    )


def complete_spin(
    state: SessionState, player_id: str, spin_id: Optional[str], now_ms: int
) -> SessionState:
    player = state.player(player_id)
    if not player.spinning or player.target is None:
        return state
    if spin_id is None or player.spin_id != spin_id:
        return state
    return commit_selection(state, player_id, player.target, now_ms)


def cancel_spin(state: SessionState, player_id: str) -> SessionState:
    player = state.player(player_id)
    if not player.spinning:
        return state
    return _with_player(
        state, player_id, spinning=False, spin_id=None, target=player.selection
    )


def skip(state: SessionState, player_id: str) -> SessionState:
    return _with_player(
        state, player_id, selection=None, target=None, spinning=False, spin_id=None
    )


def purge_all(state: SessionState) -> SessionState:
    return replace(
        state, players={pid: PlayerState() for pid in PLAYER_IDS}
    )
