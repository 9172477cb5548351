"""
Candidate id generation strategies.
Uses Strategy Pattern so the allocator does not care how ids are drawn.
"""

import string
from abc import ABC, abstractmethod
from typing import Optional

from nanoid import generate


ALPHANUMERIC = string.ascii_letters + string.digits


class IdGenerator(ABC):
    """Abstract base class for candidate id generators"""

    default_length: int

    @abstractmethod
    def generate(self, length: Optional[int] = None) -> str:
        """
        Draw a candidate id.

        Uniqueness is not checked here: the insert into the store decides.

        Args:
            length: Number of characters; ``default_length`` when None

        Returns:
            A candidate id string
        """
        pass


class NanoidGenerator(IdGenerator):
    """
    Random token from a fixed alphabet (nanoid, cryptographically secure).

    Collision probability per draw is ``stored / len(alphabet) ** length``.
    Short lengths or narrowed alphabets make collisions likely, which is
    how the retry path gets exercised.
    """

    def __init__(self, alphabet: str = ALPHANUMERIC, default_length: int = 6):
        if not alphabet:
            raise ValueError("Id alphabet must not be empty")
        if len(set(alphabet)) != len(alphabet):
            raise ValueError("Id alphabet must not repeat characters")
        if default_length < 1:
            raise ValueError(f"Id length must be positive, got {default_length}")
        self.alphabet = alphabet
        self.default_length = default_length

    def generate(self, length: Optional[int] = None) -> str:
        return generate(self.alphabet, length or self.default_length)

    def __repr__(self):
        return f"NanoidGenerator(alphabet_size={len(self.alphabet)}, default_length={self.default_length})"
