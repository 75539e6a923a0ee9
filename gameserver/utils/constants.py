"""Constants for the game server match core."""

# Match statuses (persisted as-is)
STATUS_WAITING = "WAITING"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_COMPLETED = "COMPLETED"
STATUS_ABANDONED = "ABANDONED"
MATCH_STATUSES = [
    STATUS_WAITING,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_ABANDONED,
]
ACTIVE_STATUSES = (STATUS_WAITING, STATUS_IN_PROGRESS)
TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_ABANDONED)

# Game types shipped with the server
GAME_TIC_TAC_TOE = "tic-tac-toe"
GAME_DRAW_A_CARD = "draw-a-card"

# Ratings
DEFAULT_RATING = 1200
DEFAULT_K_FACTOR = 32
RATING_FLOOR = 0
ELO_SCALE = 400

# Requester id used by the deadline sweep
SYSTEM_REQUESTER = "system"
DEFAULT_WAITING_TTL_SECONDS = 3600

# Store
DEFAULT_TABLE_PREFIX = "GameServer"
DEFAULT_STORE_TIMEOUT_SECONDS = 3.0

# Retry at the call boundary
RETRY_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 0.05

# Tic-tac-toe
BOARD_SIZE = 3
EMPTY_CELL = ""
MARKS = ["X", "O"]
WINNING_LINES = [
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
]

# Draw-a-card
HEARTS = "h"
DIAMONDS = "d"
CLUBS = "c"
SPADES = "s"
SUITS = [HEARTS, DIAMONDS, CLUBS, SPADES]
RANKS = list(range(1, 14))  # 1-13
RANK_NAMES = {
    1: "A",
    2: "2",
    3: "3",
    4: "4",
    5: "5",
    6: "6",
    7: "7",
    8: "8",
    9: "9",
    10: "10",
    11: "J",
    12: "Q",
    13: "K",
}
SUIT_SYMBOLS = {
    HEARTS: "♥",
    DIAMONDS: "♦",
    CLUBS: "♣",
    SPADES: "♠",
}
DEFAULT_HAND_SIZE = 3
DECK_SIZE = 52
