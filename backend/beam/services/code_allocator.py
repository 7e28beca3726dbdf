"""Retrieval code allocation.

A code is never trusted as free because of a prior lookup. The caller's
``claim`` coroutine performs the insert, and a ``CodeTakenError`` from it
means another live record already holds that code, so we draw again.
"""
import logging
import secrets
from typing import Awaitable, Callable, TypeVar

from beam.errors import CodeSpaceExhaustedError, CodeTakenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CodeAllocator:
    """Draws fixed-width decimal codes and retries on collision."""

    def __init__(self, length: int = 4, max_attempts: int = 50):
        if length < 1:
            raise ValueError("Code length must be at least 1")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.length = length
        self.max_attempts = max_attempts

    @property
    def space(self) -> int:
        return 10 ** self.length

    def generate(self) -> str:
        return f"{secrets.randbelow(self.space):0{self.length}d}"

    async def allocate(self, claim: Callable[[str], Awaitable[T]]) -> T:
        """Call ``claim(code)`` with fresh codes until one sticks.

        Raises CodeSpaceExhaustedError after ``max_attempts`` collisions.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generate()
            try:
                return await claim(code)
            except CodeTakenError:
                logger.info(f"Code collision on {code} (attempt {attempt}/{self.max_attempts})")
        logger.error(f"Code allocation failed after {self.max_attempts} attempts")
        raise CodeSpaceExhaustedError(self.max_attempts)
