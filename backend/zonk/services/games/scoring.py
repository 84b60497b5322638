from collections import Counter
from typing import Iterable, Sequence

DICE_COUNT = 6

STRAIGHT_POINTS = 1500
THREE_PAIRS_POINTS = 750
SINGLE_ONE_POINTS = 100
SINGLE_FIVE_POINTS = 50

# Multiplier applied to the three-of-a-kind base for 3, 4, 5 and 6 of a kind
_OF_A_KIND_MULTIPLIER = {3: 1, 4: 2, 5: 3, 6: 4}


def _held_values(dice: Sequence[int], held: Sequence[bool]) -> list:
    return [value for value, is_held in zip(dice, held) if is_held]


def _is_straight(values: Sequence[int]) -> bool:
    return len(values) == DICE_COUNT and sorted(values) == [1, 2, 3, 4, 5, 6]


def _is_three_pairs(counts: Counter) -> bool:
    return sum(1 for c in counts.values() if c == 2) == 3


def score_values(values: Iterable[int]) -> int:
    """Score a group of dice values as if every one of them were held."""
    values = list(values)
    if not values:
        return 0
    if _is_straight(values):
        return STRAIGHT_POINTS
    counts = Counter(values)
    if _is_three_pairs(counts):
        return THREE_PAIRS_POINTS

    total = 0
    for face in range(1, 7):
        if counts[face] >= 3:
            base = 1000 if face == 1 else face * 100
            total += base * _OF_A_KIND_MULTIPLIER[counts[face]]
            counts[face] = 0

    # Singles left over after any three-or-more of a kind consumed its dice
    total += counts[1] * SINGLE_ONE_POINTS
    total += counts[5] * SINGLE_FIVE_POINTS
    return total


def score(dice: Sequence[int], held: Sequence[bool]) -> int:
    """Points for the held subset of a six-dice pool.

    Non-held dice contribute nothing. A held straight is worth 1500 and
    three held pairs 750; otherwise three or more of a kind score
    1000 (ones) or face x 100, doubled, tripled or quadrupled for 4, 5 or 6
    of a kind, and the remaining single 1s and 5s score 100 and 50. Any
    other held die is legal but worth 0.
    """
    return score_values(_held_values(dice, held))


def is_zonk(values: Sequence[int]) -> bool:
    """True when freshly rolled dice contain no scoring combination."""
    if not values:
        return False
    return score_values(values) == 0


def is_hot_dice(dice: Sequence[int], held: Sequence[bool]) -> bool:
    return len(held) == DICE_COUNT and all(held) and score(dice, held) > 0


def can_bank(banked_score: int, round_score: int, opening_min: int = 300) -> bool:
    """Whether a player with `banked_score` may bank `round_score` now.

    Until a player has banked anything, the first bank must reach
    `opening_min`; after that any positive round score is enough.
    """
    if banked_score == 0:
        return round_score >= opening_min
    return round_score > 0
