"""Core symbols for the mini fixture package."""

import functools


class Base:
    """Root of the greeter hierarchy."""


class Greeter(Base):
    """Simple class with a documented method."""

    def greet(self, name: str) -> str:
        """Return a deterministic greeting."""
        return f"hello, {name}"

    @staticmethod
    def default() -> "Greeter":
        return Greeter()


@functools.cache
def compute_value(x: int) -> int:
    return x + 1
