import random
import string
from typing import Callable, Optional

from app.errors import StoreError
from app.obs.logger import log_event

REF_ALPHABET = string.ascii_uppercase + string.digits
REF_SUFFIX_LENGTH = 6

_rng = random.SystemRandom()


def generate_ref_id(prefix: str = "ACB", rng: Optional[random.Random] = None) -> str:
    r = rng or _rng
    return prefix + "".join(r.choice(REF_ALPHABET) for _ in range(REF_SUFFIX_LENGTH))


def claim_ref_id(try_claim: Callable[[str], bool], prefix: str = "ACB",
                 max_attempts: int = 20, rng: Optional[random.Random] = None) -> str:
    """Draw candidates until try_claim accepts one.

    try_claim must atomically reserve the code and return False on collision.
    Raises StoreError once max_attempts candidates have collided.
    """
    for attempt in range(1, max_attempts + 1):
        candidate = generate_ref_id(prefix, rng)
        if try_claim(candidate):
            return candidate
        log_event("ref_collision", level="WARNING", attempt=attempt)
    raise StoreError(f"Could not allocate a unique booking reference after {max_attempts} attempts")
