"""
Runtime configuration, read once from the environment.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

CACHE_BACKENDS = ("none", "memory", "redis")


@dataclass
class GalleryConfig:
    images_dir: Path
    port: int = 3000
    bind_all: bool = True
    upload_token: str = ""
    redis_url: str = ""
    cache_backend: str = "none"
    listing_ttl: int = 30
    thumb_width: int = 480
    thumb_quality: int = 70
    likes_db: Optional[Path] = None
    build_id: str = ""
    log_level: str = "INFO"
    default_limit: int = 120
    max_limit: int = 500
    max_upload_files: int = 50
    max_upload_bytes: int = 25 * 1024 * 1024


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", name, raw, default)
        return default
    return value if value > 0 else default


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config(env: Mapping[str, str] = None) -> GalleryConfig:
    """
    Build a GalleryConfig from environment variables.

    Args:
        env: Mapping to read from; defaults to os.environ.

    Returns:
        GalleryConfig: The populated configuration object.

    Raises:
        ValueError: If CACHE_BACKEND names an unknown backend.
    """
    if env is None:
        env = os.environ

    redis_url = env.get("REDIS_URL", "").strip()
    cache_backend = env.get("CACHE_BACKEND", "").strip().lower()
    if not cache_backend:
        cache_backend = "redis" if redis_url else "none"
    if cache_backend not in CACHE_BACKENDS:
        raise ValueError(
            f"Unknown CACHE_BACKEND {cache_backend!r}; expected one of {', '.join(CACHE_BACKENDS)}"
        )

    likes_db = env.get("LIKES_DB", "").strip()

    return GalleryConfig(
        images_dir=Path(env.get("IMAGES_DIR") or "/images"),
        port=_int_env(env, "PORT", 3000),
        bind_all=_bool_env(env, "BIND_ALL", True),
        upload_token=env.get("UPLOAD_TOKEN", ""),
        redis_url=redis_url,
        cache_backend=cache_backend,
        listing_ttl=_int_env(env, "LISTING_TTL", 30),
        thumb_width=_int_env(env, "THUMB_WIDTH", 480),
        thumb_quality=_int_env(env, "THUMB_QUALITY", 70),
        likes_db=Path(likes_db) if likes_db else None,
        build_id=env.get("BUILD_ID", ""),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )
