"""End-to-end marketplace flow over HTTP: register, list, upload, buy, download."""

from datetime import datetime

import pytest
from conftest import make_pdf
from httpx import AsyncClient

from bookmarket.db.repository import UserRepository
from bookmarket.models.user import Role


async def _register(client: AsyncClient, name: str, email: str) -> dict[str, str]:
    resp = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": "password123"},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.mark.asyncio
async def test_full_marketplace_flow(
    async_client: AsyncClient, users: UserRepository, content_store
):
    seller_headers = await _register(async_client, "Seller", "seller@mail.co")
    buyer_headers = await _register(async_client, "Buyer", "buyer@mail.co")

    seller = await users.find_by_email("seller@mail.co")
    seller.role = int(Role.SELLER)
    await users.save(seller)

    # Seller lists one book
    csv_body = (
        "title,authors,numPages,publicationDate,publisher,price\n"
        "Solaris,Stanislaw Lem,204,1961-06-01,MON,14.5\n"
    )
    resp = await async_client.post(
        "/api/books",
        files={"attachment": ("books.csv", csv_body.encode(), "text/csv")},
        headers=seller_headers,
    )
    assert resp.status_code == 201
    book_id = resp.json()[0]["id"]

    # ...and uploads its PDF
    pdf = make_pdf(
        author="Stanislaw Lem",
        title="Solaris",
        pages=204,
        producer="MON",
        created=datetime(1961, 6, 1, 9, 30),
    )
    resp = await async_client.post(
        f"/api/books/{book_id}",
        files={"attachment": ("solaris.pdf", pdf, "application/pdf")},
        headers=seller_headers,
    )
    assert resp.status_code == 200
    stored = await content_store.get_book_pdf_path(seller.id, book_id)
    assert stored == content_store.root / "books" / seller.id / book_id / "Solaris.pdf"

    # Buyer purchases it and downloads it
    resp = await async_client.post(f"/api/books/{book_id}/buy", headers=buyer_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"/api/books/{book_id}/download", headers=buyer_headers)
    assert resp.status_code == 200
    assert resp.content == pdf

    # Balances as seen through the API
    me = (await async_client.get("/api/auth/@me", headers=buyer_headers)).json()
    assert me["details"]["purchased_books"] == [book_id]

    profile = (
        await async_client.get(f"/api/users/{seller.id}", headers=seller_headers)
    ).json()
    assert profile["details"]["role"] == "seller"
    assert profile["details"]["books_sold"] == 1
    assert profile["details"]["balance"] == pytest.approx(14.5)

    # Deleting the seller removes the catalogue entry and its PDF
    resp = await async_client.delete(f"/api/users/{seller.id}", headers=seller_headers)
    assert resp.status_code == 200
    assert (await async_client.get(f"/api/books/{book_id}")).status_code == 404
    assert not content_store.seller_dir(seller.id).exists()
