"""Deterministic Lô Tô tickets.

Every colour gets a pair of tickets that split 1-90 between them, 45 numbers
each. A ticket is three strips of 3 rows x 9 columns, every row holding five
numbers and four blanks. Column ``c`` only holds numbers from ``COL_RANGES[c]``.
The same seed always yields the same tickets, so they are built once and
served as reference data.
"""
import math
from functools import lru_cache
from typing import Callable, Dict, List, Sequence, Tuple, TypeVar

from .models import LotoTicket, StripGrid, TicketGroup

T = TypeVar("T")

COL_RANGES: List[Tuple[int, int]] = [
    (1, 9), (10, 19), (20, 29), (30, 39), (40, 49),
    (50, 59), (60, 69), (70, 79), (80, 90),
]
ROWS, COLS, STRIPS = 3, 9, 3
PER_ROW = 5
PER_STRIP = ROWS * PER_ROW
PER_TICKET = STRIPS * PER_STRIP

COLORS = ["blue","navy","green","red","orange","yellow","purple","pink"]
COLOR_LABELS: Dict[str, str] = {
    "blue": "Xanh dương",
    "navy": "Xanh đậm",
    "green": "Xanh lá",
    "red": "Đỏ",
    "orange": "Cam",
    "yellow": "Vàng",
    "purple": "Tím",
    "pink": "Hồng",
}
BASE_SEED = 2024
SEED_STEP = 997

LCG_MULTIPLIER = 16807
LCG_MODULUS = 2147483647

def make_rng(seed: int) -> Callable[[], float]:
    """Park-Miller generator returning floats in [0, 1)."""
    s = seed

    def rng() -> float:
        nonlocal s
        s = (s * LCG_MULTIPLIER) % LCG_MODULUS
        return (s - 1) / (LCG_MODULUS - 1)

    return rng

def shuffled(items: Sequence[T], rng: Callable[[], float]) -> List[T]:
    a = list(items)
    for i in range(len(a) - 1, 0, -1):
        j = math.floor(rng() * (i + 1))
        a[i], a[j] = a[j], a[i]
    return a

def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)

def seed_for(color_index: int) -> int:
    return BASE_SEED + color_index * SEED_STEP

def _column_budgets(remaining: List[int], strips_left: int, rng) -> List[int]:
    # a column can give at most one number per row, and must leave no more
    # than the later strips can still hold
    hi = [min(ROWS, r) for r in remaining]
    lo = [max(0, r - ROWS * (strips_left - 1)) for r in remaining]
    budget = [min(max(min(_round_half_up(r / strips_left), ROWS), lo[c]), hi[c])
              for c, r in enumerate(remaining)]
    total = sum(budget)

    order = shuffled(range(COLS), rng)
    while total > PER_STRIP:
        for c in order:
            if total <= PER_STRIP:
                break
            if budget[c] > lo[c]:
                budget[c] -= 1
                total -= 1
    while total < PER_STRIP:
        for c in order:
            if total >= PER_STRIP:
                break
            if budget[c] < hi[c]:
                budget[c] += 1
                total += 1
    return budget

def _strip_pattern(budget: List[int], rng) -> List[List[bool]]:
    pattern = [[False] * COLS for _ in range(ROWS)]
    row_counts = [0] * ROWS

    # most constrained columns first
    col_order = sorted(shuffled(range(COLS), rng), key=lambda c: -budget[c])
    for c in col_order:
        if budget[c] == 0:
            continue
        candidates = sorted(
            (r for r in range(ROWS) if not pattern[r][c] and row_counts[r] < PER_ROW),
            key=lambda r: row_counts[r],
        )
        for r in candidates[:budget[c]]:
            pattern[r][c] = True
            row_counts[r] += 1
    return pattern

def build_ticket(col_nums: List[List[int]], rng) -> List[StripGrid]:
    """Lay one ticket's sorted column numbers out over three strips."""
    strips: List[StripGrid] = []
    used = [0] * COLS

    for s in range(STRIPS):
        remaining = [len(col_nums[c]) - used[c] for c in range(COLS)]
        budget = _column_budgets(remaining, STRIPS - s, rng)
        pattern = _strip_pattern(budget, rng)

        strip: StripGrid = [[None] * COLS for _ in range(ROWS)]
        for c in range(COLS):
            nums = sorted(col_nums[c][used[c]:used[c] + budget[c]])
            it = iter(nums)
            for r in range(ROWS):
                if pattern[r][c]:
                    strip[r][c] = next(it)
            used[c] += budget[c]
        strips.append(strip)
    return strips

def generate_pair(seed: int) -> Tuple[List[StripGrid], List[StripGrid]]:
    rng = make_rng(seed)
    all_cols = [shuffled(range(lo, hi + 1), rng) for lo, hi in COL_RANGES]

    # floor split gives ticket A 44 numbers; the odd-sized columns make up the rest
    splits = [len(col) // 2 for col in all_cols]
    total_a = sum(splits)
    odd_cols = shuffled([i for i, col in enumerate(all_cols) if len(col) % 2], rng)
    for i in odd_cols:
        if total_a >= PER_TICKET:
            break
        splits[i] += 1
        total_a += 1

    a_cols = [sorted(col[:at]) for col, at in zip(all_cols, splits)]
    b_cols = [sorted(col[at:]) for col, at in zip(all_cols, splits)]
    return build_ticket(a_cols, rng), build_ticket(b_cols, rng)

@lru_cache(maxsize=None)
def ticket_groups() -> Tuple[TicketGroup, ...]:
    groups = []
    for i, color in enumerate(COLORS):
        strips_a, strips_b = generate_pair(seed_for(i))
        groups.append(TicketGroup(
            color=color,
            label=COLOR_LABELS[color],
            tickets=[
                LotoTicket(id=f"{color}-1", strips=strips_a, color=color),
                LotoTicket(id=f"{color}-2", strips=strips_b, color=color),
            ],
        ))
    return tuple(groups)

def all_tickets() -> List[LotoTicket]:
    return [t for g in ticket_groups() for t in g.tickets]

def find_ticket(ticket_id: str) -> LotoTicket | None:
    for t in all_tickets():
        if t.id == ticket_id:
            return t
    return None

def ticket_numbers(ticket: LotoTicket) -> List[int]:
    return sorted(n for strip in ticket.strips for row in strip for n in row if n is not None)
