"""Short identifier generation and validation.

Volume and collection ids share one draw-and-retry routine: a lowercase
letter followed by characters that are digits with a configurable bias.
"""

from __future__ import annotations

import random
import re
from collections.abc import Collection

from core.constants import (
    COLLECTION_NAME_PATTERN,
    DEFAULT_ID_DIGIT_BIAS,
    DEFAULT_ID_LENGTH,
    ID_DIGITS,
    ID_LETTERS,
    ID_PATTERN,
    MAX_ID_LENGTH,
    MIN_ID_LENGTH,
)
from core.errors import ConfigError

_ID_RE = re.compile(ID_PATTERN)
_COLLECTION_NAME_RE = re.compile(COLLECTION_NAME_PATTERN)


class IdGenerator:
    """Collision-free short id generator.

    Each instance owns its random source, so separate generators never
    share state and tests can pass a seeded ``random.Random``.
    """

    def __init__(
        self,
        length: int = DEFAULT_ID_LENGTH,
        digit_bias: float = DEFAULT_ID_DIGIT_BIAS,
        rng: random.Random | None = None,
    ) -> None:
        if not MIN_ID_LENGTH <= length <= MAX_ID_LENGTH:
            raise ConfigError(
                f"Id length {length} must be between {MIN_ID_LENGTH} and {MAX_ID_LENGTH}."
            )
        if not 0.0 <= digit_bias <= 1.0:
            raise ConfigError(f"Id digit bias {digit_bias} must be within [0, 1].")
        self._length = length
        self._digit_bias = digit_bias
        self._rng = rng or random.SystemRandom()

    @property
    def length(self) -> int:
        return self._length

    def generate(self, existing: Collection[str]) -> str:
        """Draw ids until one is absent from ``existing``.

        Args:
            existing: Ids already taken in the target scope.

        Returns:
            A fresh id of the configured length.
        """
        while True:
            candidate = self._draw()
            if candidate not in existing:
                return candidate

    def _draw(self) -> str:
        characters = [self._rng.choice(ID_LETTERS)]
        for _ in range(self._length - 1):
            if self._rng.random() < self._digit_bias:
                characters.append(self._rng.choice(ID_DIGITS))
            else:
                characters.append(self._rng.choice(ID_LETTERS))
        return "".join(characters)


def is_valid_id(value: str) -> bool:
    """Return whether value matches the canonical volume/collection id pattern."""
    return _ID_RE.fullmatch(value) is not None


def is_valid_collection_name(name: str) -> bool:
    """Return whether name is a non-empty run of [a-z0-9_]."""
    return _COLLECTION_NAME_RE.fullmatch(name) is not None
