from __future__ import annotations


class SetCoverError(Exception):
    """Base class for errors raised by pdcover."""


class ValidationError(SetCoverError, ValueError):
    """Instance data is inconsistent and must not be solved."""


class InfeasibleInstance(SetCoverError):
    """Some element is not covered by any set of finite cost."""

    def __init__(self, element: int, message: str | None = None, unbounded: bool = False) -> None:
        self.element = int(element)
        self.unbounded = unbounded
        super().__init__(message or f"element {self.element} has no covering set")
