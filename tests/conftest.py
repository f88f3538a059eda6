"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database with the schema created
from the models, a small seeded catalog and an httpx client bound to the
app through ASGITransport (the lifespan does not run, so the database and
config are attached to the app directly).
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from api.main import create_app
from core.config import AuthConfig, CatalogConfig, DatabaseConfig
from core.database import Database
from core.security import Identity, hash_password, issue_token
from verticals.catalog.models.db_models import (
    Author,
    Book,
    Bookstore,
    Genre,
    Review,
    User,
    book_authors,
    book_genres,
)

TEST_SECRET = "test-secret-for-the-catalog-suite-0123456789"
TEST_PASSWORD = "secret123"
TEST_ITERATIONS = 1000


@pytest.fixture
def config():
    return CatalogConfig(
        database=DatabaseConfig(url="sqlite+aiosqlite:///:memory:"),
        auth=AuthConfig(secret=TEST_SECRET, token_ttl_seconds=3600, hash_iterations=TEST_ITERATIONS),
    )


@pytest.fixture
async def database(config):
    db = Database(config.database)
    await db.connect()
    yield db
    await db.close()


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


async def seed_catalog(session, now):
    """Seed a small catalog.

    Books and their review stats:
        1 A Wizard of Earthsea  avg 4.5  2 reviews
        2 Good Omens            avg 4.0  3 reviews (two authors, two genres)
        3 The Dispossessed      avg 3.0  1 review
        4 Mort                  avg 2.0  1 review (30 days old)
        5 100%_Pure             no reviews, no authors, no genres
    Genre 4 (Poetry) has no books.
    """
    password_hash = hash_password(TEST_PASSWORD, TEST_ITERATIONS)
    session.add_all([
        User(user_id=1, username="admin", email="admin@example.com",
             password_hash=password_hash, role="admin"),
        User(user_id=2, username="alice", email="alice@example.com",
             password_hash=password_hash, role="user"),
        User(user_id=3, username="bob", email="bob@example.com",
             password_hash=password_hash, role="user"),
        Author(author_id=1, full_name="Ursula K. Le Guin", country="USA"),
        Author(author_id=2, full_name="Terry Pratchett", country="UK"),
        Author(author_id=3, full_name="Neil Gaiman", country="UK"),
        Genre(genre_id=1, genre_name="Fantasy"),
        Genre(genre_id=2, genre_name="Science Fiction"),
        Genre(genre_id=3, genre_name="Humor"),
        Genre(genre_id=4, genre_name="Poetry"),
        Book(book_id=1, title="A Wizard of Earthsea", publication_year=1968),
        Book(book_id=2, title="Good Omens", publication_year=1990),
        Book(book_id=3, title="The Dispossessed", publication_year=1974),
        Book(book_id=4, title="Mort", publication_year=1987),
        Book(book_id=5, title="100%_Pure", publication_year=2001),
        Bookstore(store_id=1, name="Downtown Books", latitude=40.7128, longitude=-74.0060),
        Bookstore(store_id=2, name="Harbor Reads", latitude=42.3601, longitude=-71.0589),
        Bookstore(store_id=3, name="Bay Pages", latitude=37.7749, longitude=-122.4194),
    ])
    await session.flush()

    await session.execute(book_authors.insert(), [
        {"book_id": 1, "author_id": 1},
        {"book_id": 2, "author_id": 2},
        {"book_id": 2, "author_id": 3},
        {"book_id": 3, "author_id": 1},
        {"book_id": 4, "author_id": 2},
    ])
    await session.execute(book_genres.insert(), [
        {"book_id": 1, "genre_id": 1},
        {"book_id": 2, "genre_id": 1},
        {"book_id": 2, "genre_id": 3},
        {"book_id": 3, "genre_id": 2},
        {"book_id": 4, "genre_id": 1},
        {"book_id": 4, "genre_id": 3},
    ])

    yesterday = now - timedelta(days=1)
    three_days_ago = now - timedelta(days=3)
    session.add_all([
        Review(review_id=1, book_id=1, user_id=2, rating=5, review_text="Classic", review_date=yesterday),
        Review(review_id=2, book_id=1, user_id=3, rating=4, review_date=yesterday),
        Review(review_id=3, book_id=2, user_id=2, rating=4, review_date=three_days_ago),
        Review(review_id=4, book_id=2, user_id=3, rating=5, review_date=three_days_ago),
        Review(review_id=5, book_id=2, user_id=1, rating=3, review_date=three_days_ago),
        Review(review_id=6, book_id=3, user_id=2, rating=3, review_date=yesterday),
        Review(review_id=7, book_id=4, user_id=3, rating=2, review_date=now - timedelta(days=30)),
    ])
    await session.flush()


@pytest.fixture
async def seeded(database, now):
    async with database.session() as session:
        await seed_catalog(session, now)
    return database


@pytest.fixture
def app(seeded, config):
    return create_app(config=config, database=seeded)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def bearer(user_id: int, username: str, role: str = "user", secret: str = TEST_SECRET) -> dict:
    """Authorization header for a seeded user."""
    identity = Identity(
        user_id=user_id, username=username, email=f"{username}@example.com", role=role
    )
    return {"Authorization": f"Bearer {issue_token(identity, secret, 3600)}"}


@pytest.fixture
def admin_headers():
    return bearer(1, "admin", role="admin")


@pytest.fixture
def alice_headers():
    return bearer(2, "alice")


@pytest.fixture
def bob_headers():
    return bearer(3, "bob")


@pytest.fixture
def make_headers():
    return bearer
