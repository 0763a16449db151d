import random
import string
import time

PREFIX = "OCT"
ALPHABET = string.ascii_uppercase + string.digits


def generate_tracking_number(
    now_ms: int | None = None, rng: random.Random | None = None
) -> str:
    """OCT + last 8 digits of the epoch millis + 4 random [A-Z0-9] chars.

    Uniqueness is enforced by the store's unique index, not here.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    rng = rng or random.SystemRandom()
    timestamp = str(now_ms)[-8:].rjust(8, "0")
    suffix = "".join(rng.choice(ALPHABET) for _ in range(4))
    return f"{PREFIX}{timestamp}{suffix}"
