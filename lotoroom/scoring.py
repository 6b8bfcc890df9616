"""Xì Dách hand scoring and comparison.

An Ace may count as 1, 10 or 11. Special hands, strongest first:

    Xì Bàn    two Aces                        rank 4, pays x3
    Xì Dách   Ace + 10/J/Q/K                  rank 3, pays x2
    Ngũ Linh  five cards totalling <= 21      rank 2, pays x1
    normal    anything else                   rank 1, pays x1
"""
from typing import List, Sequence

from .cards import deserialize
from .models import CompareResult

BLACKJACK = 21

XI_BAN, XI_DACH, NGU_LINH, NORMAL = 4, 3, 2, 1
MULTIPLIERS = {XI_BAN: 3, XI_DACH: 2, NGU_LINH: 1, NORMAL: 1}

TEN_RANKS = ("10","J","Q","K")

def rank_values(rank: str) -> List[int]:
    if rank == "A":
        return [1, 10, 11]
    if rank in ("J","Q","K"):
        return [10]
    return [int(rank)]

def possible_totals(cards: Sequence[str]) -> List[int]:
    totals = {0}
    for c in cards:
        values = rank_values(deserialize(c).rank)
        totals = {t + v for t in totals for v in values}
    return sorted(totals)

def best_score(cards: Sequence[str]) -> int:
    """Highest total <= 21, or the lowest total when every total busts."""
    totals = possible_totals(cards)
    valid = [t for t in totals if t <= BLACKJACK]
    if valid:
        return max(valid)
    return min(totals)

def is_bust(score: int) -> bool:
    return score > BLACKJACK

def _ranks(cards: Sequence[str]) -> List[str]:
    return [deserialize(c).rank for c in cards]

def is_xi_ban(cards: Sequence[str]) -> bool:
    return len(cards) == 2 and all(r == "A" for r in _ranks(cards))

def is_xi_dach(cards: Sequence[str]) -> bool:
    if len(cards) != 2:
        return False
    ranks = _ranks(cards)
    return "A" in ranks and any(r in TEN_RANKS for r in ranks)

def is_ngu_linh(cards: Sequence[str]) -> bool:
    return len(cards) == 5 and best_score(cards) <= BLACKJACK

def hand_rank(cards: Sequence[str]) -> int:
    if is_xi_ban(cards):
        return XI_BAN
    if is_xi_dach(cards):
        return XI_DACH
    if is_ngu_linh(cards):
        return NGU_LINH
    return NORMAL

def multiplier(cards: Sequence[str]) -> int:
    return MULTIPLIERS[hand_rank(cards)]

def compare(player_cards: Sequence[str], dealer_cards: Sequence[str],
            player_score: int, dealer_score: int,
            player_bust: bool, dealer_bust: bool) -> CompareResult:
    """Outcome from the player's side.

    Special hands are settled before score or bust is looked at.
    """
    p_rank = hand_rank(player_cards)
    d_rank = hand_rank(dealer_cards)

    if p_rank > NORMAL or d_rank > NORMAL:
        if p_rank > d_rank:
            return CompareResult(outcome="win", multiplier=MULTIPLIERS[p_rank])
        if d_rank > p_rank:
            return CompareResult(outcome="lose", multiplier=MULTIPLIERS[d_rank])
        if p_rank == NGU_LINH:
            # both Ngũ Linh: lower total wins
            if player_score < dealer_score:
                return CompareResult(outcome="win")
            if player_score > dealer_score:
                return CompareResult(outcome="lose")
        return CompareResult(outcome="draw")

    # both bust counts as a player loss
    if player_bust:
        return CompareResult(outcome="lose")
    if dealer_bust:
        return CompareResult(outcome="win")
    if player_score > dealer_score:
        return CompareResult(outcome="win")
    if player_score < dealer_score:
        return CompareResult(outcome="lose")
    return CompareResult(outcome="draw")
