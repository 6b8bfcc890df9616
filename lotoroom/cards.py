import random
from typing import List, Optional
from .models import Card

SUITS = ["♠","♥","♦","♣"]
RANKS = ["2","3","4","5","6","7","8","9","10","J","Q","K","A"]

def serialize(card: Card) -> str:
    return str(card)

def deserialize(s: str) -> Card:
    # suit glyph is always the last character
    return Card(rank=s[:-1], suit=s[-1])

def is_red_suit(suit: str) -> bool:
    return suit in ("♥","♦")

def full_deck() -> List[str]:
    return [serialize(Card(rank=r, suit=s)) for s in SUITS for r in RANKS]

def new_shuffled_deck(rng: Optional[random.Random] = None) -> List[str]:
    """Fresh 52-card deck, Fisher-Yates shuffled (``Random.shuffle``)."""
    deck = full_deck()
    (rng or random).shuffle(deck)
    return deck
