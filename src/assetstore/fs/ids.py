"""
Identifier generation for assets and objects.

Identifier format: <token8><node7><counter>

- token8: 8 lowercase hex characters from `secrets`
- node7: base36 value drawn once per generator from a seeded PRNG
- counter: base36 value of a per-generator counter, starting at a random offset

The counter makes every identifier from one generator distinct regardless of
how quickly calls arrive; the token keeps identifiers from separate processes
apart. Only [0-9a-z] is used so identifiers are safe filename stems and shard keys.
"""

from __future__ import annotations

import itertools
import os
import random
import re
import secrets
import threading
import time
from typing import Optional


TOKEN_BYTES = 4
NODE_WIDTH = 7

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
ID_PATTERN = re.compile(r"^[0-9a-z]{4,}$")


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError(f"value must be non-negative, got {value}")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


class IdGenerator:
    """
    Thread-safe generator of collision-resistant identifiers.

    Usage:
        generator = IdGenerator()
        asset_id = generator.generate()
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = time.time_ns() ^ (os.getpid() << 40) ^ int.from_bytes(os.urandom(8), "big")
        self._random = random.Random(seed)
        self._lock = threading.Lock()
        self._node = to_base36(self._random.getrandbits(35)).rjust(NODE_WIDTH, "0")[-NODE_WIDTH:]
        self._counter = itertools.count(self._random.randrange(36 ** 4))

    def generate(self) -> str:
        with self._lock:
            sequence = next(self._counter)
        return f"{secrets.token_hex(TOKEN_BYTES)}{self._node}{to_base36(sequence)}"


_default_generator = IdGenerator()


def create_id() -> str:
    """Create a new asset/object identifier from the process-wide generator."""
    return _default_generator.generate()


def is_valid_id(value: str) -> bool:
    return bool(ID_PATTERN.match(value or ""))
