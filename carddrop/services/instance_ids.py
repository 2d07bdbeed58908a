"""Short random identifiers for owned card instances ("po" + 4 characters)."""

import random
import string

from carddrop.config import INSTANCE_ID_LENGTH, INSTANCE_ID_PREFIX

INSTANCE_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_instance_id(
    rng: random.Random,
    prefix: str = INSTANCE_ID_PREFIX,
    length: int = INSTANCE_ID_LENGTH,
) -> str:
    """
    Generate a candidate instance id.

    Characters are drawn uniformly from a-z0-9. The result is not checked for
    uniqueness here; InventoryMutator retries on collision.
    """
    return prefix + "".join(rng.choice(INSTANCE_ID_ALPHABET) for _ in range(length))
