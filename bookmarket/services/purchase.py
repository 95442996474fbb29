"""
Purchase workflow with a simulated, fallible payment gateway.

Ordering matters:

1. the gateway decides first, so a declined payment mutates nothing;
2. a book already owned by the buyer is rejected without mutation;
3. the buyer is persisted before the seller is looked up, and a missing
   seller does not roll the buyer back.

Buyer and seller are written by two independent commits. There is no
per-(buyer, book) lock, so two concurrent purchases of the same book by the
same buyer can both pass the ownership check.
"""

from __future__ import annotations

import logging
import random
from typing import Protocol

from bookmarket.core.exceptions import (
    AlreadyPurchasedError,
    PaymentDeclinedError,
    SellerNotFoundError,
)
from bookmarket.db.repository import UserRepository
from bookmarket.models.book import Book
from bookmarket.models.user import User

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    def authorize(self, buyer: User, book: Book) -> None:
        """Raise ``PaymentDeclinedError`` when the payment is refused."""


class SimulatedPaymentGateway:
    """Declines a payment with probability ``failure_rate``."""

    def __init__(self, failure_rate: float, rng: random.Random | None = None) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()

    def authorize(self, buyer: User, book: Book) -> None:
        if self._rng.random() < self.failure_rate:
            logger.info("Payment declined for buyer %s on book %s", buyer.id, book.id)
            raise PaymentDeclinedError()


async def process_purchase(
    buyer: User,
    book: Book,
    users: UserRepository,
    gateway: PaymentGateway,
) -> None:
    gateway.authorize(buyer, book)

    if buyer.owns_book(book.id):
        raise AlreadyPurchasedError()

    # JSON column: assign a new list so the change is tracked
    buyer.purchased_books = [*(buyer.purchased_books or []), book.id]
    await users.save(buyer)

    seller = await users.find_by_id(book.seller_id)
    if seller is None:
        logger.warning(
            "Seller %s of book %s not found; buyer %s keeps the purchase",
            book.seller_id,
            book.id,
            buyer.id,
        )
        raise SellerNotFoundError()

    seller.books_sold = (seller.books_sold or 0) + 1
    seller.balance = (seller.balance or 0.0) + book.price
    await users.save(seller)
    logger.info("Buyer %s purchased book %s from seller %s", buyer.id, book.id, seller.id)
