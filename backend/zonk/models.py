import string
import random

from zonk.services.games.scoring import DICE_COUNT, score

# Dice shown between turns, before a player's first roll
DEFAULT_DICE = (1, 1, 1, 1, 1, 1)
MAX_NAME_LENGTH = 24


def generate_room_code(length=6):
    """Generate a short room code. Uniqueness is checked by the registry."""
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


def clean_name(name, seat):
    """Trim a display name, falling back to a seat-based default."""
    if isinstance(name, str):
        name = name.strip()[:MAX_NAME_LENGTH]
    if not name or not isinstance(name, str):
        return f'Player {seat}'
    return name


class Player:
    """A seated player and the state of their current turn."""

    def __init__(self, player_id, name):
        self.id = player_id
        self.name = name
        self.score = 0
        self.zonk_streak = 0
        self.reset_turn()

    def reset_turn(self):
        self.dice = list(DEFAULT_DICE)
        self.held = [False] * DICE_COUNT
        self.dice_to_roll = DICE_COUNT
        self.first_roll = True
        self.hot_dice = False
        self.turn_carry = 0
        self.rolls = 0
        self.round_score = 0

    @property
    def held_count(self):
        return sum(1 for h in self.held if h)

    def recompute_round_score(self):
        self.round_score = self.turn_carry + score(self.dice, self.held)
        return self.round_score

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'round_score': self.round_score,
            'turn_carry': self.turn_carry,
            'dice': list(self.dice),
            'held': list(self.held),
            'dice_to_roll': self.dice_to_roll,
            'first_roll': self.first_roll,
            'hot_dice': self.hot_dice,
            'rolls': self.rolls,
            'zonk_streak': self.zonk_streak,
        }
