"""Who may see which cards.

A card is visible to an observer once the round is in ``result``, once the
dealer has revealed it to everyone, or when the observer owns the hand and
has peeked at it locally. Peeks live on the client only. A hand's score and
status are shown only when every card of it is visible.
"""
from typing import Iterable, List, Optional, Set

from .models import PlayerView, XiDachGame, XiDachView
from .scoring import best_score

def visible_indices(game: XiDachGame, owner_id: str, observer_id: str,
                    peeked: Iterable[int] = ()) -> Set[int]:
    if owner_id == game.dealer_id:
        cards, revealed = game.dealer_cards, ()
    else:
        pl = game.players.get(owner_id)
        if pl is None:
            return set()
        cards, revealed = pl.cards, pl.revealed_cards
    n = len(cards)
    if game.phase == "result":
        return set(range(n))
    shown = {i for i in revealed if i < n}
    if observer_id == owner_id:
        shown |= {i for i in peeked if 0 <= i < n}
    return shown

def hand_fully_visible(game: XiDachGame, owner_id: str, observer_id: str,
                       peeked: Iterable[int] = ()) -> bool:
    if owner_id == game.dealer_id:
        n = len(game.dealer_cards)
    else:
        n = len(game.players[owner_id].cards)
    return len(visible_indices(game, owner_id, observer_id, peeked)) == n

def _mask(cards: List[str], shown: Set[int]) -> List[Optional[str]]:
    return [c if i in shown else None for i, c in enumerate(cards)]

def view_for(game: XiDachGame, observer_id: str) -> XiDachView:
    """What the server sends to one observer.

    The observer's own cards are always included so the client can peek;
    everything else follows ``visible_indices`` with no peeks.
    """
    players = {}
    for pid, pl in game.players.items():
        everything = set(range(len(pl.cards)))
        shown = visible_indices(game, pid, observer_id)
        sent = everything if pid == observer_id else shown
        complete = hand_fully_visible(game, pid, observer_id)
        players[pid] = PlayerView(
            cards=_mask(pl.cards, sent),
            status=pl.status if complete else None,
            score=pl.score if complete else None,
            name=pl.name,
            revealed_cards=pl.revealed_cards,
        )

    dealer_all = set(range(len(game.dealer_cards)))
    dealer_shown = visible_indices(game, game.dealer_id, observer_id)
    is_dealer = observer_id == game.dealer_id
    dealer_complete = hand_fully_visible(game, game.dealer_id, observer_id)
    return XiDachView(
        id=game.id,
        deck_size=len(game.deck),
        dealer_id=game.dealer_id,
        players=players,
        dealer_cards=_mask(game.dealer_cards, dealer_all if is_dealer else dealer_shown),
        dealer_status=game.dealer_status,
        dealer_score=best_score(game.dealer_cards) if dealer_complete else None,
        current_turn=game.current_turn,
        phase=game.phase,
        results=game.results,
    )
