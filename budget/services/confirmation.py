"""
Confirmation Providers

Destructive or consequential actions (merge-on-delete, auto-allocate,
card deletion, import overwrite) are gated on a yes/no answer from the
user. The ledger asks through this interface and never talks to a UI.
"""

from abc import ABC, abstractmethod
from typing import Callable


class ConfirmationProvider(ABC):
    """Answers a yes/no question about a pending action."""

    @abstractmethod
    def confirm(self, message: str) -> bool:
        pass

    def __call__(self, message: str) -> bool:
        return self.confirm(message)


class StaticConfirmation(ConfirmationProvider):
    """Always gives the same answer. Records every question asked."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.messages: list[str] = []

    def confirm(self, message: str) -> bool:
        self.messages.append(message)
        return self.answer


class CallbackConfirmation(ConfirmationProvider):
    """Delegates to a callable, e.g. a UI prompt."""

    def __init__(self, callback: Callable[[str], bool]):
        self._callback = callback

    def confirm(self, message: str) -> bool:
        return bool(self._callback(message))
