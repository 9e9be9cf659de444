"""
Game-balance constants and shared enums.

The numeric constants here are user-visible game rules and are deliberately
not exposed as settings.
"""
from enum import Enum

# Unboxing is gated to one card per cooldown window
UNBOX_COOLDOWN_SECONDS = 30

# Pending trades lapse this long after creation
TRADE_EXPIRY_HOURS = 24

# Collection ceiling enforced on every acquisition path
MAX_CARDS_PER_USER = 100

# Energy accrual stops here
MAX_ENERGY = 100_000

MIN_MOMENTUM = 1
MAX_MOMENTUM = 100

# Cards dealt into a mini-game deck
GAME_DECK_SIZE = 20

# Tracks dealt onto the unbox wheel
WHEEL_SIZE = 10

# Upper bound on the most-owned cards listing
TOP_CARDS_MAX_LIMIT = 50

RECENT_TRADES_LIMIT = 5


class AcquiredVia(str, Enum):
    """How an ownership row came to exist."""
    UNBOX = "unbox"
    TRADE = "trade"
    BLACKJACK = "blackjack"


class TradeStatus(str, Enum):
    """Status of a trade offer. Everything but PENDING is terminal."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not TradeStatus.PENDING


class TradeSide(str, Enum):
    """Which party currently holds a card listed in a trade."""
    SENDER = "sender"
    RECEIVER = "receiver"


class Privacy(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class CardMintPolicy(str, Enum):
    """
    How card resolution treats an external track id.

    REUSE_TEMPLATE dedups on the catalog track id (unboxing).
    MINT_FRESH always creates a new card row with its own energy clock
    (game winnings).
    """
    REUSE_TEMPLATE = "reuse_template"
    MINT_FRESH = "mint_fresh"


class GameOutcome(str, Enum):
    WIN = "win"
    LOSS = "loss"
    PUSH = "push"


class TimeScale(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def days(self) -> int:
        return {"day": 1, "week": 7, "month": 30}[self.value]
