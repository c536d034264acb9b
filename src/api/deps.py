import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.auth.identity import JWTIdentityProvider
from src.adapters.clock import SystemClock
from src.adapters.local_storage import LocalObjectStore
from src.adapters.pillow_codec import PillowImageCodec
from src.adapters.sqlite.repos import (
    SQLiteCommentRepo,
    SQLiteImageRepo,
    SQLitePostRepo,
    SQLiteProfileRepo,
    SQLiteTagRepo,
)
from src.components.assets import AssetsConfig
from src.components.comments import CommentsConfig
from src.components.posts import PostsConfig
from src.core.ports import (
    ClockPort,
    CommentRepoPort,
    IdentityProviderPort,
    ImageCodecPort,
    ImageRepoPort,
    ObjectStorePort,
    PostRepoPort,
    ProfileRepoPort,
    TagRepoPort,
)
from src.domain.entities import Identity
from src.domain.policy import PolicyEngine
from src.rules.loader import load_rules
from src.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parents[2]


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.data_dir = Path(os.environ.get("BLOG_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "blog.db")
        self.storage_dir = self.data_dir / "storage"
        self.public_base_url = os.environ.get("BLOG_PUBLIC_BASE_URL", "http://localhost:8000")
        self.secret_key = os.environ.get("BLOG_SECRET_KEY", "dev-secret-unsafe")
        self.rules_path = Path(os.environ.get("BLOG_RULES_PATH", PROJECT_ROOT / "rules.yaml"))
        self.sweep_enabled = os.environ.get("BLOG_SWEEP_ENABLED", "true").lower() in (
            "1",
            "true",
            "yes",
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def get_policy(rules: Rules = Depends(get_rules)) -> PolicyEngine:
    return PolicyEngine(rules.rbac)


def get_assets_config(rules: Rules = Depends(get_rules)) -> AssetsConfig:
    return AssetsConfig.from_rules(rules.uploads)


def get_posts_config(rules: Rules = Depends(get_rules)) -> PostsConfig:
    return PostsConfig.from_rules(rules)


def get_comments_config(rules: Rules = Depends(get_rules)) -> CommentsConfig:
    return CommentsConfig.from_rules(rules.comments)


# --- Repos ---
def get_post_repo(settings: Settings = Depends(get_settings)) -> PostRepoPort:
    return SQLitePostRepo(settings.db_path)


def get_image_repo(settings: Settings = Depends(get_settings)) -> ImageRepoPort:
    return SQLiteImageRepo(settings.db_path)


def get_tag_repo(settings: Settings = Depends(get_settings)) -> TagRepoPort:
    return SQLiteTagRepo(settings.db_path)


def get_comment_repo(settings: Settings = Depends(get_settings)) -> CommentRepoPort:
    return SQLiteCommentRepo(settings.db_path)


def get_profile_repo(settings: Settings = Depends(get_settings)) -> ProfileRepoPort:
    return SQLiteProfileRepo(settings.db_path)


# --- Adapters ---
def get_object_store(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> ObjectStorePort:
    return LocalObjectStore(
        settings.storage_dir,
        bucket=rules.uploads.bucket,
        public_base_url=settings.public_base_url,
    )


def get_codec() -> ImageCodecPort:
    return PillowImageCodec()


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> ClockPort:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_provider(
    settings: Settings = Depends(get_settings),
    profiles: ProfileRepoPort = Depends(get_profile_repo),
) -> IdentityProviderPort:
    return JWTIdentityProvider(settings.secret_key, profiles)


async def get_viewer(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    provider: IdentityProviderPort = Depends(get_identity_provider),
) -> Identity | None:
    """Caller identity, or None for anonymous requests. A bad token is a 401, not anonymous."""
    if credentials is None:
        return None

    identity = await provider.verify_token(credentials.credentials)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def get_current_identity(
    viewer: Identity | None = Depends(get_viewer),
) -> Identity:
    if viewer is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return viewer
