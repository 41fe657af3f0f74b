"""Abstract repository for reservation-to-ledger transaction links."""

from __future__ import annotations

from abc import ABC, abstractmethod

from orderflow.domain.model.reservation import TransactionLink


class TransactionLinkRepository(ABC):

    @abstractmethod
    def add(self, link: TransactionLink) -> TransactionLink:
        """Store a new link and return it with its ID assigned."""

    @abstractmethod
    def find_by_order(self, order_id: int) -> list[TransactionLink]:
        """Return the links written while fulfilling an order."""
