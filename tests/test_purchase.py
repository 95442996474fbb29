"""Tests for the purchase workflow and the simulated payment gateway."""

import random

import pytest

from bookmarket.core.exceptions import (
    AlreadyPurchasedError,
    PaymentDeclinedError,
    SellerNotFoundError,
)
from bookmarket.db.repository import UserRepository
from bookmarket.models.book import Book
from bookmarket.models.user import Role
from bookmarket.services.purchase import SimulatedPaymentGateway, process_purchase


@pytest.mark.asyncio
async def test_purchase_credits_seller(users: UserRepository, gateway, make_user, make_book):
    seller = await make_user(Role.SELLER)
    buyer = await make_user()
    book = await make_book(seller, price=19.99)

    await process_purchase(buyer, book, users, gateway)

    reloaded_buyer = await users.find_by_id(buyer.id)
    reloaded_seller = await users.find_by_id(seller.id)
    assert reloaded_buyer.purchased_books == [book.id]
    assert reloaded_seller.books_sold == 1
    assert reloaded_seller.balance == pytest.approx(19.99)


@pytest.mark.asyncio
async def test_second_purchase_is_rejected(users: UserRepository, gateway, make_user, make_book):
    seller = await make_user(Role.SELLER)
    buyer = await make_user()
    book = await make_book(seller, price=5.0)

    await process_purchase(buyer, book, users, gateway)
    with pytest.raises(AlreadyPurchasedError):
        await process_purchase(buyer, book, users, gateway)

    assert buyer.purchased_books == [book.id]
    assert seller.books_sold == 1
    assert seller.balance == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_declined_payment_changes_nothing(users: UserRepository, make_user, make_book):
    seller = await make_user(Role.SELLER)
    buyer = await make_user()
    book = await make_book(seller, price=5.0)
    before = (list(buyer.purchased_books), seller.balance, seller.books_sold)

    with pytest.raises(PaymentDeclinedError):
        await process_purchase(buyer, book, users, SimulatedPaymentGateway(failure_rate=1.0))

    buyer = await users.find_by_id(buyer.id)
    seller = await users.find_by_id(seller.id)
    assert (buyer.purchased_books, seller.balance, seller.books_sold) == before


@pytest.mark.asyncio
async def test_decline_is_checked_before_ownership(users: UserRepository, gateway, make_user, make_book):
    seller = await make_user(Role.SELLER)
    buyer = await make_user()
    book = await make_book(seller)
    await process_purchase(buyer, book, users, gateway)

    with pytest.raises(PaymentDeclinedError):
        await process_purchase(buyer, book, users, SimulatedPaymentGateway(failure_rate=1.0))
    assert buyer.purchased_books == [book.id]


@pytest.mark.asyncio
async def test_missing_seller_keeps_buyer_mutation(users: UserRepository, gateway, make_user):
    buyer = await make_user()
    orphan = Book(
        id="orphan-book",
        title="T",
        authors="A",
        pages=1,
        publisher="P",
        price=3.0,
        seller_id="ghost-seller",
    )

    with pytest.raises(SellerNotFoundError):
        await process_purchase(buyer, orphan, users, gateway)

    reloaded = await users.find_by_id(buyer.id)
    assert reloaded.purchased_books == ["orphan-book"]


@pytest.mark.asyncio
async def test_owned_book_never_duplicated_under_random_gateway(
    users: UserRepository, make_user, make_book
):
    seller = await make_user(Role.SELLER)
    buyer = await make_user()
    book = await make_book(seller)
    flaky = SimulatedPaymentGateway(failure_rate=0.5, rng=random.Random(1234))

    for _ in range(20):
        try:
            await process_purchase(buyer, book, users, flaky)
        except (PaymentDeclinedError, AlreadyPurchasedError):
            pass

    reloaded = await users.find_by_id(buyer.id)
    assert reloaded.purchased_books.count(book.id) <= 1


def test_gateway_rejects_invalid_rate():
    with pytest.raises(ValueError):
        SimulatedPaymentGateway(failure_rate=1.5)
    with pytest.raises(ValueError):
        SimulatedPaymentGateway(failure_rate=-0.1)


def test_gateway_rate_bounds():
    always = SimulatedPaymentGateway(failure_rate=1.0)
    never = SimulatedPaymentGateway(failure_rate=0.0)
    book = Book(id="b", seller_id="s", price=1.0)
    for _ in range(50):
        with pytest.raises(PaymentDeclinedError):
            always.authorize(buyer=_Buyer(), book=book)
        never.authorize(buyer=_Buyer(), book=book)


class _Buyer:
    id = "buyer"
