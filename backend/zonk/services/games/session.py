"""Room-level game state machine.

A GameSession owns the roster, the turn pointer and every rule about what
a player may do next. Each action either raises a GameError before
touching any state, or applies the whole change and returns the discrete
events it produced as ``(name, payload)`` tuples. Callers are expected to
serialise access per room (see RoomRegistry.with_room).
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from zonk.models import Player, clean_name
from zonk.services.games.errors import (
    CannotBank,
    InvalidAction,
    NotCreator,
    NotEnoughPlayers,
    NotYourTurn,
    RoomFull,
    ValidationError,
)
from zonk.services.games.scoring import DICE_COUNT, can_bank, is_hot_dice, is_zonk, score

WAITING = 'waiting'
PLAYING = 'playing'
FINISHED = 'finished'

Event = Tuple[str, Dict[str, Any]]


@dataclass(frozen=True)
class GameRules:
    win_score: int = 1000
    max_players: int = 4
    min_players: int = 2
    opening_min_score: int = 300
    zonk_streak_limit: int = 3
    zonk_streak_penalty: int = 0

    @classmethod
    def from_config(cls, config) -> 'GameRules':
        return cls(
            win_score=int(config.get('WIN_SCORE', cls.win_score)),
            max_players=int(config.get('MAX_PLAYERS', cls.max_players)),
            min_players=int(config.get('MIN_PLAYERS', cls.min_players)),
            opening_min_score=int(config.get('OPENING_MIN_SCORE', cls.opening_min_score)),
            zonk_streak_limit=int(config.get('ZONK_STREAK_LIMIT', cls.zonk_streak_limit)),
            zonk_streak_penalty=int(config.get('ZONK_STREAK_PENALTY', cls.zonk_streak_penalty)),
        )


class GameSession:

    def __init__(self, room_id: str, rules: GameRules = None, rng=None):
        self.room_id = room_id
        self.rules = rules or GameRules()
        self.rng = rng or random.SystemRandom()
        self.players: List[Player] = []
        self.current_player_index = 0
        self.status = WAITING
        self.winner: Optional[Player] = None

    # ---- queries ----

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def current_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.current_player_index]

    def find_player(self, player_id) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def _index_of(self, player_id) -> int:
        for i, p in enumerate(self.players):
            if p.id == player_id:
                return i
        return -1

    # ---- guards ----

    def _require_playing(self) -> None:
        if self.status != PLAYING:
            raise InvalidAction(f'Game is {self.status}, not playing')

    def _require_turn(self, requester) -> Player:
        self._require_playing()
        player = self.current_player
        if player is None or player.id != requester:
            raise NotYourTurn()
        return player

    # ---- lobby ----

    def add_player(self, player_id, name=None) -> List[Event]:
        if self.find_player(player_id) is not None:
            return []
        if self.status != WAITING:
            raise InvalidAction('Game has already started')
        if len(self.players) >= self.rules.max_players:
            raise RoomFull()
        player = Player(player_id, clean_name(name, len(self.players) + 1))
        self.players.append(player)
        return [('player_joined', {'player_id': player.id, 'name': player.name})]

    def start(self, requester) -> List[Event]:
        if self.status != WAITING:
            raise InvalidAction('Game has already started')
        if not self.players or self.players[0].id != requester:
            raise NotCreator()
        if len(self.players) < self.rules.min_players:
            raise NotEnoughPlayers(f'At least {self.rules.min_players} players are required to start')
        self.status = PLAYING
        self.current_player_index = 0
        self.players[0].reset_turn()
        return [('game_started', {'player_id': self.players[0].id, 'name': self.players[0].name})]

    # ---- turn actions ----

    def roll(self, requester) -> List[Event]:
        """Re-roll the unheld dice; it is a zonk when the fresh dice alone score nothing."""
        player = self._require_turn(requester)
        roll_all = player.first_roll or player.dice_to_roll == DICE_COUNT
        if roll_all:
            positions = list(range(DICE_COUNT))
        else:
            positions = [i for i, h in enumerate(player.held) if not h]
        if not positions:
            raise InvalidAction('No dice left to roll')

        rolled = [self.rng.randint(1, 6) for _ in positions]

        if roll_all:
            player.held = [False] * DICE_COUNT
        for i, value in zip(positions, rolled):
            player.dice[i] = value
        player.first_roll = False
        player.hot_dice = False
        player.rolls += 1
        player.dice_to_roll = DICE_COUNT - player.held_count
        player.recompute_round_score()

        if is_zonk(rolled):
            return self._zonk(player, rolled)
        return [('dice_rolled', {
            'player_id': player.id,
            'name': player.name,
            'dice': list(player.dice),
            'rolled': rolled,
            'round_score': player.round_score,
        })]

    def _zonk(self, player: Player, rolled: List[int]) -> List[Event]:
        lost = player.round_score
        player.held = [False] * DICE_COUNT
        player.turn_carry = 0
        player.round_score = 0
        player.dice_to_roll = DICE_COUNT
        player.first_roll = True
        player.zonk_streak += 1

        penalty = 0
        rules = self.rules
        if rules.zonk_streak_penalty > 0 and player.zonk_streak >= rules.zonk_streak_limit:
            penalty = min(player.score, rules.zonk_streak_penalty)
            player.score -= penalty
            player.zonk_streak = 0

        self.next_player()
        return [('zonk', {
            'player_id': player.id,
            'name': player.name,
            'dice': list(player.dice),
            'rolled': list(rolled),
            'lost': lost,
            'penalty': penalty,
        })]

    def toggle_hold(self, requester, index) -> List[Event]:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < DICE_COUNT:
            raise ValidationError(f'Die index must be an integer from 0 to {DICE_COUNT - 1}')
        player = self._require_turn(requester)
        if player.first_roll:
            raise InvalidAction('Roll the dice before holding any')
        if player.hot_dice:
            raise InvalidAction('Hot dice: roll all six again before holding')

        player.held[index] = not player.held[index]
        player.recompute_round_score()
        player.dice_to_roll = DICE_COUNT - player.held_count

        if is_hot_dice(player.dice, player.held):
            # Set the scored dice aside so the bonus roll starts from a clean mask
            player.turn_carry += score(player.dice, player.held)
            player.held = [False] * DICE_COUNT
            player.dice_to_roll = DICE_COUNT
            player.hot_dice = True
            player.recompute_round_score()
            return [('hot_dice', {
                'player_id': player.id,
                'name': player.name,
                'round_score': player.round_score,
            })]
        return []

    def bank(self, requester) -> List[Event]:
        player = self._require_turn(requester)
        if not can_bank(player.score, player.round_score, self.rules.opening_min_score):
            if player.score == 0:
                raise CannotBank(f'First bank needs at least {self.rules.opening_min_score} points')
            raise CannotBank()

        points = player.round_score
        player.score += points
        player.zonk_streak = 0
        events = [('banked_points', {
            'player_id': player.id,
            'name': player.name,
            'points': points,
            'score': player.score,
        })]
        if player.score >= self.rules.win_score:
            self.status = FINISHED
            self.winner = player
            events.append(('win', {'player_id': player.id, 'name': player.name, 'score': player.score}))
        else:
            self.next_player()
        player.reset_turn()
        return events

    def next_player(self) -> None:
        if not self.players:
            return
        self.current_player_index = (self.current_player_index + 1) % len(self.players)
        self.players[self.current_player_index].reset_turn()

    # ---- departures ----

    def remove_player(self, player_id) -> List[Event]:
        idx = self._index_of(player_id)
        if idx == -1:
            raise InvalidAction('Player is not in this room')
        player = self.players[idx]

        if self.status == PLAYING and idx == self.current_player_index and len(self.players) > 1:
            self.next_player()
        del self.players[idx]
        if idx < self.current_player_index:
            self.current_player_index -= 1
        if self.current_player_index >= len(self.players):
            self.current_player_index = 0

        return [('player_left', {'player_id': player.id, 'name': player.name})]

    # ---- snapshot ----

    def to_dict(self) -> Dict[str, Any]:
        current = self.current_player
        winner = None
        if self.winner is not None:
            winner = {'id': self.winner.id, 'name': self.winner.name, 'score': self.winner.score}
        return {
            'room_id': self.room_id,
            'status': self.status,
            'players': [p.to_dict() for p in self.players],
            'current_player_index': self.current_player_index,
            'current_player_id': current.id if current and self.status == PLAYING else None,
            'winner': winner,
            'win_score': self.rules.win_score,
            'max_players': self.rules.max_players,
        }
