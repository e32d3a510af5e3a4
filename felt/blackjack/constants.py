"""Blackjack-specific constants and value mappings."""

# Table defaults
STARTING_CHIPS = 1000
MIN_BET = 10
MAX_BET = 500
CHIP_DENOMINATIONS = (10, 25, 50, 100)

# Shoe
CARDS_PER_DECK = 52
MIN_DECKS = 1
MAX_DECKS = 8
RESHUFFLE_THRESHOLD = 0.25  # reshuffle below this fraction of a full shoe

# Hands
MAX_HANDS_PER_PLAYER = 4
BLACKJACK_SCORE = 21
DEALER_STAND_THRESHOLD = 17
ACE_HIGH_VALUE = 11
ACE_LOW_VALUE = 1
ACE_VALUE_DIFFERENCE = ACE_HIGH_VALUE - ACE_LOW_VALUE

# Payouts
BLACKJACK_PAYOUT_3_2 = 1.5
BLACKJACK_PAYOUT_6_5 = 1.2
INSURANCE_PAYOUT = 2

# AI
AI_BET_PERCENTAGE = 0.05

# Array-indexed blackjack values (indexed by Rank.value)
_BLACKJACK_VALUE_ARRAY = [
    0,   # unused
    11,  # ACE (1)
    2,   # TWO (2)
    3,   # THREE (3)
    4,   # FOUR (4)
    5,   # FIVE (5)
    6,   # SIX (6)
    7,   # SEVEN (7)
    8,   # EIGHT (8)
    9,   # NINE (9)
    10,  # TEN (10)
    10,  # JACK (11)
    10,  # QUEEN (12)
    10,  # KING (13)
]


def get_blackjack_value(rank) -> int:
    """Get the blackjack value for a given rank using array lookup."""
    return _BLACKJACK_VALUE_ARRAY[rank.value]
