"""Local cache of the authenticated user's FXCT balance."""
from __future__ import annotations


class BalanceCache:
    """Single writer for the locally displayed balance.

    The balance source is the authority. A debit applied after a successful
    charge is provisional until the next authoritative value overwrites it.
    ``version`` increases on every write so callers can tell whether a value
    they fetched earlier is older than what the cache now holds.
    """

    def __init__(self) -> None:
        self._value = 0
        self._provisional = False
        self._version = 0

    @property
    def value(self) -> int:
        return self._value

    @property
    def is_provisional(self) -> bool:
        return self._provisional

    @property
    def version(self) -> int:
        return self._version

    def apply_authoritative(self, value: int) -> None:
        """Store a value fetched from the balance source."""

        self._value = max(int(value), 0)
        self._provisional = False
        self._version += 1

    def debit(self, amount: int) -> int:
        """Optimistically subtract ``amount`` and return the new balance."""

        if amount < 0:
            raise ValueError("amount must be >= 0")
        self._value = max(self._value - amount, 0)
        self._provisional = True
        self._version += 1
        return self._value

    def reset(self) -> None:
        self._value = 0
        self._provisional = False
        self._version += 1
