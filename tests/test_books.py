"""Test book comparison, detail and admin CRUD."""
import pytest


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_compare_skips_unknown_ids(client):
    response = await client.get("/api/books/compare", params={"ids": "2,1,99"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert [row["book_id"] for row in data] == [1, 2]


@pytest.mark.asyncio
async def test_compare_flattens_authors_and_genres(client):
    response = await client.get("/api/books/compare", params={"ids": "2,1"})
    omens = next(row for row in response.json()["data"] if row["book_id"] == 2)
    assert omens["authors"] == "Neil Gaiman, Terry Pratchett"
    assert omens["genres"] == "Fantasy, Humor"
    assert omens["avg_rating"] == 4.0
    assert omens["reviews_count"] == 3


@pytest.mark.asyncio
async def test_compare_book_without_links(client):
    response = await client.get("/api/books/compare", params={"ids": "5,1"})
    pure = next(row for row in response.json()["data"] if row["book_id"] == 5)
    assert pure["authors"] is None
    assert pure["genres"] is None
    assert pure["reviews_count"] == 0


@pytest.mark.asyncio
async def test_compare_all_unknown_is_empty(client):
    response = await client.get("/api/books/compare", params={"ids": "98,99"})
    assert response.status_code == 200
    assert response.json()["data"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", ["5", "", "5,abc"])
async def test_compare_needs_two_ids(client, raw):
    response = await client.get("/api/books/compare", params={"ids": raw})
    assert response.status_code == 400
    assert response.json()["error"] == "Select at least two books to compare"


@pytest.mark.asyncio
async def test_compare_repeated_id_returns_one_row(client):
    response = await client.get("/api/books/compare", params={"ids": "5,5"})
    assert response.status_code == 200
    assert [row["book_id"] for row in response.json()["data"]] == [5]


# ---------------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_detail_structured_lists(client):
    response = await client.get("/api/books/2")
    assert response.status_code == 200
    book = response.json()
    assert book["title"] == "Good Omens"
    assert [a["full_name"] for a in book["authors"]] == ["Neil Gaiman", "Terry Pratchett"]
    assert [g["genre_name"] for g in book["genres"]] == ["Fantasy", "Humor"]
    assert book["avg_rating"] == 4.0
    assert book["reviews_count"] == 3


@pytest.mark.asyncio
async def test_detail_unreviewed_book(client):
    book = (await client.get("/api/books/5")).json()
    assert book["authors"] == []
    assert book["genres"] == []
    assert book["avg_rating"] == 0
    assert book["reviews_count"] == 0


@pytest.mark.asyncio
async def test_detail_missing_book(client):
    response = await client.get("/api/books/999")
    assert response.status_code == 404
    assert response.json() == {"error": "Book not found", "detail": None, "status_code": 404}


@pytest.mark.asyncio
async def test_detail_non_numeric_id(client):
    response = await client.get("/api/books/abc")
    assert response.status_code == 400


# ---------------------------------------------------------------------------
# Admin CRUD
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_book_requires_admin(client, alice_headers):
    payload = {"title": "Small Gods"}
    assert (await client.post("/api/books", json=payload)).status_code == 401
    assert (await client.post("/api/books", json=payload, headers=alice_headers)).status_code == 403


@pytest.mark.asyncio
async def test_create_book_with_links(client, admin_headers):
    response = await client.post(
        "/api/books",
        json={"title": "Small Gods", "publication_year": 1992, "author_ids": [2], "genre_ids": [1, 3]},
        headers=admin_headers,
    )
    assert response.status_code == 201
    book_id = response.json()["book_id"]

    detail = (await client.get(f"/api/books/{book_id}")).json()
    assert detail["title"] == "Small Gods"
    assert [a["author_id"] for a in detail["authors"]] == [2]
    assert sorted(g["genre_id"] for g in detail["genres"]) == [1, 3]


@pytest.mark.asyncio
async def test_create_book_unknown_author(client, admin_headers):
    response = await client.post(
        "/api/books", json={"title": "Ghost", "author_ids": [42]}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "42"

    listing = (await client.get("/api/books", params={"q": "Ghost"})).json()
    assert listing["count"] == 0


@pytest.mark.asyncio
async def test_create_book_blank_title(client, admin_headers):
    response = await client.post("/api/books", json={"title": "   "}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_book_replaces_links(client, admin_headers):
    response = await client.put(
        "/api/books/2",
        json={"title": "Good Omens (Revised)", "publication_year": 1990, "author_ids": [3]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Good Omens (Revised)"

    detail = (await client.get("/api/books/2")).json()
    assert [a["full_name"] for a in detail["authors"]] == ["Neil Gaiman"]
    # genre links untouched when genre_ids is omitted
    assert len(detail["genres"]) == 2


@pytest.mark.asyncio
async def test_update_book_without_title_keeps_it(client, admin_headers):
    response = await client.put(
        "/api/books/3", json={"description": "Anarres and Urras"}, headers=admin_headers
    )
    assert response.status_code == 200
    book = response.json()
    assert book["title"] == "The Dispossessed"
    assert book["description"] == "Anarres and Urras"
    # fields are replaced wholesale, so the omitted year is cleared
    assert book["publication_year"] is None


@pytest.mark.asyncio
async def test_update_missing_book(client, admin_headers):
    response = await client.put("/api/books/999", json={"title": "Nope"}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_book_cascades(client, admin_headers, alice_headers):
    await client.post("/api/user/books", json={"book_id": 2, "status": "reading"}, headers=alice_headers)

    response = await client.delete("/api/books/2", headers=admin_headers)
    assert response.status_code == 204

    assert (await client.get("/api/books/2")).status_code == 404
    assert (await client.get("/api/reviews/books/2")).json()["count"] == 0
    mine = (await client.get("/api/user/books", headers=alice_headers)).json()
    assert all(row["book_id"] != 2 for row in mine["data"])


@pytest.mark.asyncio
async def test_delete_missing_book(client, admin_headers):
    response = await client.delete("/api/books/999", headers=admin_headers)
    assert response.status_code == 404
