from typing import Any, Dict


class GameError(Exception):
    """Base for every rejected action. Reported to the sender only."""

    code = 'game_error'
    default_message = 'Action rejected'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'message': self.message}


class RoomNotFound(GameError):
    code = 'room_not_found'
    default_message = 'Room not found'


class RoomFull(GameError):
    code = 'room_full'
    default_message = 'Room is full'


class NotEnoughPlayers(GameError):
    code = 'not_enough_players'
    default_message = 'Not enough players to start'


class NotCreator(GameError):
    code = 'not_creator'
    default_message = 'Only the room creator may start the game'


class NotYourTurn(GameError):
    code = 'not_your_turn'
    default_message = 'It is not your turn'


class InvalidAction(GameError):
    code = 'invalid_action'
    default_message = 'Action not allowed right now'


class ValidationError(InvalidAction):
    """Malformed request payload: bad index, missing room id, etc."""

    code = 'invalid_request'
    default_message = 'Invalid request'


class CannotBank(GameError):
    code = 'cannot_bank'
    default_message = 'Not enough points to bank'
