import logging
import random
import secrets
import string
from enum import Enum
from typing import Iterable, Optional, Set, Tuple

from .cards import new_shuffled_deck
from .models import Room, XiDachGame, XiDachPlayerState
from .scoring import best_score, compare, is_bust, is_ngu_linh

logger = logging.getLogger(__name__)

MAX_PLAYERS = 9
TOTAL_NUMBERS = 90
ROOM_CODE_LEN = 6

class Rejection(str, Enum):
    INVALID_ACTOR = "invalid_actor"
    INVALID_PHASE = "invalid_phase"
    ROSTER_FULL = "roster_full"
    ALREADY_JOINED = "already_joined"
    EMPTY_DECK = "empty_deck"
    UNKNOWN_TARGET = "unknown_target"
    NO_PLAYERS = "no_players"
    UNKNOWN_ACTION = "unknown_action"
    BAD_PAYLOAD = "bad_payload"

class ActionRejected(Exception):
    def __init__(self, reason: Rejection):
        super().__init__(reason.value)
        self.reason = reason

def _reject(reason: Rejection):
    raise ActionRejected(reason)

def new_room_code() -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(ROOM_CODE_LEN))

def new_room(room_id: str, host_id: str, game_type: str = "loto") -> Room:
    return Room(id=room_id, host_id=host_id, game_type=game_type)

def new_game(room_id: str, dealer_id: str) -> XiDachGame:
    return XiDachGame(id=room_id, dealer_id=dealer_id)

# ---------------------------------------------------------------- Lô Tô room

def apply_room_action(room: Room, actor_id: str, action_type: str,
                      rng: random.Random | None = None) -> Tuple[Room, Optional[Rejection]]:
    """Number calling. Only the host may draw or reset."""
    try:
        if room.host_id != actor_id:
            _reject(Rejection.INVALID_ACTOR)
        s = room.model_copy(deep=True)
        if action_type == "draw_number":
            left = sorted(set(range(1, TOTAL_NUMBERS + 1)) - set(s.current_numbers))
            if not left:
                _reject(Rejection.INVALID_PHASE)
            s.current_numbers.append((rng or random).choice(left))
            s.status = "finished" if len(s.current_numbers) >= TOTAL_NUMBERS else "playing"
            return s, None
        if action_type == "reset":
            s.current_numbers = []
            s.status = "waiting"
            return s, None
        _reject(Rejection.UNKNOWN_ACTION)
    except ActionRejected as e:
        logger.debug("room %s: %s by %s ignored (%s)", room.id, action_type, actor_id, e.reason.value)
        return room, e.reason

# ---------------------------------------------------------------- Xì Dách round

def _require_phase(s: XiDachGame, *phases: str):
    if s.phase not in phases:
        _reject(Rejection.INVALID_PHASE)

def _require_dealer(s: XiDachGame, actor_id: str):
    if actor_id != s.dealer_id:
        _reject(Rejection.INVALID_ACTOR)

def _draw(s: XiDachGame) -> str:
    if not s.deck:
        _reject(Rejection.EMPTY_DECK)
    return s.deck.pop(0)

def advance_turn(s: XiDachGame, from_id: str) -> None:
    """Hand the turn to the next player still playing, else to the dealer."""
    ids = list(s.players)
    start = ids.index(from_id) + 1 if from_id in ids else 0
    for pid in ids[start:]:
        if s.players[pid].status == "playing":
            s.current_turn = pid
            s.phase = "player_turns"
            return
    s.current_turn = s.dealer_id
    s.phase = "dealer_turn"

def resolve(s: XiDachGame) -> None:
    dealer_score = best_score(s.dealer_cards)
    dealer_bust = is_bust(dealer_score)
    s.results = {}
    for pid, pl in s.players.items():
        score = best_score(pl.cards)
        s.results[pid] = compare(pl.cards, s.dealer_cards, score, dealer_score,
                                 is_bust(score), dealer_bust)

def _reveal(pl: XiDachPlayerState) -> None:
    pl.revealed_cards = sorted(set(pl.revealed_cards) | set(range(len(pl.cards))))

def _apply(s: XiDachGame, actor_id: str, action_type: str, p: dict, rng) -> XiDachGame:
    if action_type == "join":
        _require_phase(s, "waiting")
        if actor_id == s.dealer_id:
            _reject(Rejection.INVALID_ACTOR)
        if actor_id in s.players:
            _reject(Rejection.ALREADY_JOINED)
        if len(s.players) >= MAX_PLAYERS:
            _reject(Rejection.ROSTER_FULL)
        name = p.get("name")
        if name is not None and not isinstance(name, str):
            _reject(Rejection.BAD_PAYLOAD)
        name = name or actor_id[:5].upper()
        s.players[actor_id] = XiDachPlayerState(name=name)
        return s

    if action_type == "start":
        _require_dealer(s, actor_id)
        _require_phase(s, "waiting")
        if not s.players:
            _reject(Rejection.NO_PLAYERS)
        s.deck = new_shuffled_deck(rng)
        for pid, pl in s.players.items():
            cards = [_draw(s), _draw(s)]
            s.players[pid] = XiDachPlayerState(cards=cards, score=best_score(cards), name=pl.name)
        s.dealer_cards = [_draw(s), _draw(s)]
        s.dealer_status = "waiting"
        s.current_turn = next(iter(s.players))
        s.phase = "player_turns"
        s.results = {}
        return s

    if action_type == "hit":
        _require_phase(s, "player_turns")
        if s.current_turn != actor_id or actor_id not in s.players:
            _reject(Rejection.INVALID_ACTOR)
        pl = s.players[actor_id]
        if pl.status != "playing":
            _reject(Rejection.INVALID_PHASE)
        pl.cards.append(_draw(s))
        pl.score = best_score(pl.cards)
        if is_bust(pl.score):
            # a bust player still has to stand to pass the turn
            pl.status = "bust"
        elif is_ngu_linh(pl.cards):
            pl.status = "stand"
            advance_turn(s, actor_id)
        return s

    if action_type == "stand":
        _require_phase(s, "player_turns")
        if s.current_turn != actor_id or actor_id not in s.players:
            _reject(Rejection.INVALID_ACTOR)
        pl = s.players[actor_id]
        if pl.status == "playing":
            pl.status = "stand"
        advance_turn(s, actor_id)
        return s

    if action_type == "dealer_hit":
        _require_dealer(s, actor_id)
        _require_phase(s, "dealer_turn")
        s.dealer_cards.append(_draw(s))
        if is_bust(best_score(s.dealer_cards)):
            s.dealer_status = "bust"
            s.phase = "dealer_done"
        elif is_ngu_linh(s.dealer_cards):
            s.dealer_status = "stand"
            s.phase = "dealer_done"
        else:
            s.dealer_status = "playing"
        return s

    if action_type == "dealer_stand":
        _require_dealer(s, actor_id)
        _require_phase(s, "dealer_turn")
        s.dealer_status = "stand"
        s.phase = "dealer_done"
        return s

    if action_type == "reveal_player":
        _require_dealer(s, actor_id)
        target_id = p.get("target_id")
        if not isinstance(target_id, str):
            _reject(Rejection.BAD_PAYLOAD)
        target = s.players.get(target_id)
        if target is None:
            _reject(Rejection.UNKNOWN_TARGET)
        _reveal(target)
        return s

    if action_type == "reveal_all":
        _require_dealer(s, actor_id)
        _require_phase(s, "dealer_done")
        for pl in s.players.values():
            _reveal(pl)
        resolve(s)
        s.current_turn = None
        s.phase = "result"
        return s

    if action_type == "new_round":
        _require_dealer(s, actor_id)
        s.players = {pid: XiDachPlayerState(name=pl.name) for pid, pl in s.players.items()}
        s.deck = []
        s.dealer_cards = []
        s.dealer_status = "waiting"
        s.current_turn = None
        s.phase = "waiting"
        s.results = {}
        return s

    _reject(Rejection.UNKNOWN_ACTION)

def apply_action_checked(s: XiDachGame, actor_id: str, action_type: str, p: dict | None = None,
                         rng: random.Random | None = None) -> Tuple[XiDachGame, Optional[Rejection]]:
    """Run one transition against a copy of ``s``.

    Returns the new state, or ``s`` itself together with the reason when the
    action is not allowed. The input state is never mutated.
    """
    try:
        return _apply(s.model_copy(deep=True), actor_id, action_type, p or {}, rng), None
    except ActionRejected as e:
        logger.debug("game %s: %s by %s ignored (%s)", s.id, action_type, actor_id, e.reason.value)
        return s, e.reason

def apply_action(s: XiDachGame, actor_id: str, action_type: str, p: dict | None = None,
                 rng: random.Random | None = None) -> XiDachGame:
    return apply_action_checked(s, actor_id, action_type, p, rng)[0]

# ---------------------------------------------------------------- presence

def handle_leave(game: XiDachGame | None, room: Room, left_ids: Iterable[str],
                 remaining_ids: Set[str]) -> Tuple[XiDachGame | None, Room | None]:
    """React to participants leaving a room.

    Returns ``(None, None)`` when nobody is left and the room should be
    deleted. If the dealer left, the first remaining joined player (else any
    remaining participant) takes over as dealer and host, and the round goes
    back to waiting.
    """
    left = set(left_ids)
    remaining = set(remaining_ids) - left
    if not remaining:
        logger.info("room %s: empty, deleting", room.id)
        return None, None
    if game is None or game.dealer_id not in left:
        if room.host_id in left:
            room = room.model_copy(update={"host_id": sorted(remaining)[0]})
            logger.info("room %s: host passed to %s", room.id, room.host_id)
        return game, room

    new_dealer = next((pid for pid in game.players if pid in remaining), None) or sorted(remaining)[0]
    g = game.model_copy(deep=True)
    g.players.pop(new_dealer, None)
    g.dealer_id = new_dealer
    g.phase = "waiting"
    g.dealer_cards = []
    g.dealer_status = "waiting"
    g.current_turn = None
    g.deck = []
    g.results = {}
    logger.info("room %s: dealer %s left, %s takes over", room.id, game.dealer_id, new_dealer)
    return g, room.model_copy(update={"host_id": new_dealer})
