import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma-separated list of allowed origins for HTTP and Socket.IO
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
    # Banked total that ends the game
    WIN_SCORE = int(os.environ.get('WIN_SCORE', '1000'))
    # Seats per room
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '4'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    # A player who has never banked must bank at least this much
    OPENING_MIN_SCORE = int(os.environ.get('OPENING_MIN_SCORE', '300'))
    # Consecutive zonks that trigger the penalty. Penalty of 0 disables it.
    ZONK_STREAK_LIMIT = int(os.environ.get('ZONK_STREAK_LIMIT', '3'))
    ZONK_STREAK_PENALTY = int(os.environ.get('ZONK_STREAK_PENALTY', '0'))
    # Seconds an empty room is kept around waiting for someone to rejoin
    ROOM_GRACE_SEC = float(os.environ.get('ROOM_GRACE_SEC', '30'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
