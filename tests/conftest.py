from pathlib import Path

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.components.assets import AssetsConfig
from src.domain.entities import Identity, Post
from src.domain.policy import PolicyEngine
from src.rules.loader import load_rules
from src.rules.models import Rules
from tests.fakes import (
    FakeCodec,
    FakeObjectStore,
    InMemoryCommentRepo,
    InMemoryImageRepo,
    InMemoryPostRepo,
    InMemoryProfileRepo,
    InMemoryTagRepo,
    MockClock,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(scope="session")
def rules() -> Rules:
    """The real rules file from the project root."""
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def policy(rules: Rules) -> PolicyEngine:
    return PolicyEngine(rules.rbac)


@pytest.fixture
def assets_config(rules: Rules) -> AssetsConfig:
    return AssetsConfig.from_rules(rules.uploads)


# --- Identities ---


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id="admin-1", email="admin@example.com", role="admin")


@pytest.fixture
def author() -> Identity:
    return Identity(user_id="author-1", email="author@example.com", role="author")


@pytest.fixture
def other_author() -> Identity:
    return Identity(user_id="author-2", email="other@example.com", role="author")


@pytest.fixture
def reader() -> Identity:
    return Identity(user_id="reader-1", email="reader@example.com", role="reader")


# --- Ports ---


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def post_repo() -> InMemoryPostRepo:
    return InMemoryPostRepo()


@pytest.fixture
def image_repo(post_repo: InMemoryPostRepo) -> InMemoryImageRepo:
    return InMemoryImageRepo(post_repo)


@pytest.fixture
def tag_repo() -> InMemoryTagRepo:
    return InMemoryTagRepo()


@pytest.fixture
def comment_repo() -> InMemoryCommentRepo:
    return InMemoryCommentRepo()


@pytest.fixture
def profile_repo() -> InMemoryProfileRepo:
    return InMemoryProfileRepo()


@pytest.fixture
def store(rules: Rules) -> FakeObjectStore:
    return FakeObjectStore(bucket=rules.uploads.bucket)


@pytest.fixture
def codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def make_post(post_repo: InMemoryPostRepo, clock: MockClock):
    """Seed a post; keyword arguments override the defaults."""

    def _make(**overrides) -> Post:
        fields = {
            "title": "A Post",
            "author_id": "author-1",
            "status": "published",
            "published_at": clock.now_utc(),
            "created_at": clock.now_utc(),
        }
        fields.update(overrides)
        return post_repo.add(Post(**fields))

    return _make


# --- SQLite ---


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """A migrated SQLite database in a temporary directory."""
    path = str(tmp_path / "blog.db")
    SQLiteMigrator(path).run_migrations()
    return path
