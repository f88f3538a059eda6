"""Test reading-list upserts and the profile summary."""
import pytest
from sqlalchemy import select

from verticals.catalog.models.db_models import UserBook
from verticals.catalog.models.schemas import ReadingStatus
from verticals.catalog.repository import UserBookRepository


@pytest.mark.asyncio
async def test_upsert_overwrites_status(seeded):
    async with seeded.session() as session:
        repo = UserBookRepository(session)
        await repo.upsert(1, 2, ReadingStatus.WANT)
        await repo.upsert(1, 2, ReadingStatus.READING)

    async with seeded.session() as session:
        result = await session.execute(
            select(UserBook).where(UserBook.user_id == 1, UserBook.book_id == 2)
        )
        entries = result.scalars().all()

    assert len(entries) == 1
    assert entries[0].status == "reading"


@pytest.mark.asyncio
async def test_add_and_list(client, alice_headers):
    response = await client.post(
        "/api/user/books", json={"book_id": 3, "status": "finished"}, headers=alice_headers
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    listing = (await client.get("/api/user/books", headers=alice_headers)).json()
    assert listing["count"] == 1
    assert listing["data"][0]["book_id"] == 3
    assert listing["data"][0]["status"] == "finished"
    assert listing["data"][0]["title"] == "The Dispossessed"


@pytest.mark.asyncio
async def test_unknown_status_becomes_want(client, alice_headers):
    await client.post("/api/user/books", json={"book_id": "4", "status": "someday"}, headers=alice_headers)
    listing = (await client.get("/api/user/books", headers=alice_headers)).json()
    assert listing["data"][0]["status"] == "want"


@pytest.mark.asyncio
@pytest.mark.parametrize("book_id", [None, "abc", 0, -3])
async def test_invalid_book_id(client, alice_headers, book_id):
    response = await client.post(
        "/api/user/books", json={"book_id": book_id, "status": "want"}, headers=alice_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid book_id"


@pytest.mark.asyncio
async def test_missing_book(client, alice_headers):
    response = await client.post("/api/user/books", json={"book_id": 999}, headers=alice_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_lists_are_per_user(client, alice_headers, bob_headers):
    await client.post("/api/user/books", json={"book_id": 1}, headers=alice_headers)
    listing = (await client.get("/api/user/books", headers=bob_headers)).json()
    assert listing["count"] == 0


@pytest.mark.asyncio
async def test_remove_entry(client, alice_headers):
    await client.post("/api/user/books", json={"book_id": 1}, headers=alice_headers)
    response = await client.delete("/api/user/books/1", headers=alice_headers)
    assert response.status_code == 204

    again = await client.delete("/api/user/books/1", headers=alice_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_reading_list_requires_auth(client):
    assert (await client.get("/api/user/books")).status_code == 401
    assert (await client.post("/api/user/books", json={"book_id": 1})).status_code == 401


@pytest.mark.asyncio
async def test_profile_summary(client, alice_headers):
    await client.post("/api/user/books", json={"book_id": 1, "status": "finished"}, headers=alice_headers)
    await client.post("/api/user/books", json={"book_id": 2, "status": "reading"}, headers=alice_headers)
    await client.post("/api/user/books", json={"book_id": 3, "status": "reading"}, headers=alice_headers)

    response = await client.get("/api/me/summary", headers=alice_headers)
    assert response.status_code == 200
    summary = response.json()
    assert summary["user"]["username"] == "alice"
    assert "password_hash" not in summary["user"]
    assert summary["stats"]["reviews_count"] == 3
    assert summary["stats"]["books_total"] == 3
    assert summary["stats"]["lists_counts"] == {"want": 0, "reading": 2, "finished": 1}
    assert [row["book_id"] for row in summary["lists"]["finished"]] == [1]
