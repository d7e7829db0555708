"""
Application Core – high-level gallery logic bridging the filesystem, the
listing cache and the like store. Used by the web layer.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import BadPath, NotFound, UploadRejected
from .listing_cache import ListingCache
from .paginator import clamp_limit, clamp_offset, order_files, paginate
from .scanner import DirectoryScanner
from ..db.manager import DatabaseManager
from ..utils.config import GalleryConfig
from ..utils.helpers import (
    PASSTHROUGH_EXTENSIONS, clean_upload_name, is_image_file, make_thumbnail,
    safe_join, thumb_path_for, unique_path
)

logger = logging.getLogger(__name__)


def like_id(dir_key: str, name: str) -> str:
    dir_key = (dir_key or "").strip("/")
    return f"{dir_key}/{name}" if dir_key else name


def _entry_path(dir_path: Path, name: str) -> Path:
    """Path of a direct child *name* of *dir_path*; BadPath for anything else."""
    if not name or "/" in name or "\\" in name:
        raise BadPath("bad name")
    path = safe_join(dir_path, name)
    if path is None or path == dir_path:
        raise BadPath("bad name")
    return path


class GalleryCore:
    """Central business-logic facade used by the web layer."""

    def __init__(self, config: GalleryConfig, cache: ListingCache,
                 db: Optional[DatabaseManager] = None):
        self.config = config
        self.cache = cache
        self.db = db
        self.scanner = DirectoryScanner(config.images_dir)

    # ─────────────────────────────────────────────────────────────────── #
    # Listing                                                              #
    # ─────────────────────────────────────────────────────────────────── #

    def list_directory(self, dir: str = "", offset=0, limit=None,
                       order: str = "", seed: str = "") -> dict:
        """
        Return one page of *dir*.

        The listing comes from the cache when present, otherwise from a fresh
        scan which is then cached. ``order="random"`` shuffles with *seed* so
        that successive pages of one session come from the same permutation.
        """
        dir_key = self.scanner.canonical_key(dir)

        offset = clamp_offset(offset)
        limit = clamp_limit(limit, self.config.default_limit, self.config.max_limit)

        listing = self.cache.get(dir_key)
        if listing is None:
            listing = self.scanner.scan(dir_key)
            self.cache.set(dir_key, listing)

        files = order_files(listing.files, order, seed)
        page = paginate(files, offset, limit)
        return {
            "dir": dir_key,
            "dirs": list(listing.dirs),
            "files": [f.to_dict() for f in page.files],
            "total": page.total,
            "offset": page.offset,
            "limit": page.limit,
            "nextOffset": page.next_offset,
            "hasMore": page.has_more,
            "cached": self.cache.enabled,
        }

    # ─────────────────────────────────────────────────────────────────── #
    # Mutations                                                            #
    # ─────────────────────────────────────────────────────────────────── #

    def save_uploads(self, dir: str, files: list) -> List[dict]:
        """
        Store uploaded files (werkzeug ``FileStorage`` objects) in *dir*.

        Files that are not images are skipped. Existing files are never
        overwritten; a numeric suffix is added instead. If any file is over the
        size limit, every file saved by this call is removed again and
        UploadRejected is raised. Any other failure is rolled back the same way.
        """
        dir_key = self.scanner.canonical_key(dir)
        target = self.scanner.resolve(dir_key)
        if target.exists() and not target.is_dir():
            raise BadPath("bad dir")
        files = [f for f in files if f and f.filename]
        if len(files) > self.config.max_upload_files:
            raise UploadRejected(
                f"too many files (max {self.config.max_upload_files})", status_code=413)

        target.mkdir(parents=True, exist_ok=True)
        saved: List[Tuple[Path, int]] = []
        try:
            for storage in files:
                name = clean_upload_name(storage.filename)
                if not is_image_file(name):
                    logger.info("Skipping non-image upload %r", storage.filename)
                    continue
                save_path = unique_path(target / name)
                storage.save(str(save_path))
                size = save_path.stat().st_size
                saved.append((save_path, size))
                if size > self.config.max_upload_bytes:
                    raise UploadRejected(f"file too large: {name}", status_code=413)
        except Exception:
            for path, _size in saved:
                path.unlink(missing_ok=True)
            raise
        finally:
            self.cache.invalidate(dir_key)

        logger.info("Uploaded %d file(s) to %r", len(saved), dir_key)
        return [{"name": p.name, "size": size} for p, size in saved]

    def delete_images(self, dir: str, names: Iterable[str]) -> Tuple[List[str], List[dict]]:
        """
        Delete images and their thumbnails from *dir*.

        Returns (deleted, failed). A name that is already gone still counts as
        deleted; a name with a path separator goes to *failed*.
        """
        dir_key = self.scanner.canonical_key(dir)
        dir_path = self.scanner.resolve(dir_key)

        deleted: List[str] = []
        failed: List[dict] = []
        for name in names:
            try:
                image_path = _entry_path(dir_path, name)
                if image_path.is_dir():
                    raise BadPath("not a file")
                if image_path.is_file():
                    image_path.unlink()
                thumb = thumb_path_for(image_path, self.config.thumb_width,
                                       self.config.thumb_quality)
                thumb.unlink(missing_ok=True)
                deleted.append(name)
            except (BadPath, OSError) as exc:
                logger.warning("Delete failed for %r in %r: %s", name, dir_key, exc)
                failed.append({"name": name, "error": str(exc)})

        if deleted and self.db is not None:
            self.db.delete_likes(like_id(dir_key, n) for n in deleted)
        self.cache.invalidate(dir_key)
        logger.info("Deleted %d file(s) from %r (%d failed)", len(deleted), dir_key, len(failed))
        return deleted, failed

    # ─────────────────────────────────────────────────────────────────── #
    # Files                                                                #
    # ─────────────────────────────────────────────────────────────────── #

    def resolve_image(self, dir: str, name: str) -> Path:
        """Absolute path of *name* inside *dir*; BadPath if either is invalid."""
        dir_path = self.scanner.resolve(self.scanner.canonical_key(dir))
        return _entry_path(dir_path, name)

    def image_path(self, rel_path: str) -> Path:
        path = safe_join(self.config.images_dir, rel_path)
        if path is None:
            raise BadPath("bad path")
        parts = rel_path.replace("\\", "/").split("/")
        if any(p.startswith(".") for p in parts if p) or not is_image_file(path):
            raise NotFound("not found")
        if not path.is_file():
            raise NotFound("not found")
        return path

    def thumbnail_for(self, dir: str, name: str) -> Path:
        """
        Path of a thumbnail for *name*, generating it on first request.

        SVG and GIF images are returned as-is.
        """
        image_path = self.resolve_image(dir, name)
        if not image_path.is_file():
            raise NotFound("not found")
        if image_path.suffix.lower() in PASSTHROUGH_EXTENSIONS:
            return image_path

        thumb = thumb_path_for(image_path, self.config.thumb_width, self.config.thumb_quality)
        try:
            if thumb.is_file() and thumb.stat().st_size > 0:
                return thumb
        except OSError:
            pass
        return make_thumbnail(image_path, thumb, self.config.thumb_width,
                              self.config.thumb_quality)

    # ─────────────────────────────────────────────────────────────────── #
    # Likes                                                                #
    # ─────────────────────────────────────────────────────────────────── #

    def get_likes(self, dir: str, names: Iterable[str]) -> Dict[str, int]:
        names = [n for n in names if n]
        if self.db is None:
            return {n: 0 for n in names}
        dir_key = self.scanner.canonical_key(dir)
        counts = self.db.get_likes(like_id(dir_key, n) for n in names)
        return {n: counts.get(like_id(dir_key, n), 0) for n in names}

    def add_like(self, dir: str, name: str) -> int:
        if not name:
            raise BadPath("bad name")
        image_path = self.resolve_image(dir, name)
        if not image_path.is_file():
            raise NotFound("not found")
        if self.db is None:
            raise NotFound("likes are disabled")
        count = self.db.increment_like(like_id(self.scanner.canonical_key(dir), name))
        logger.debug("Like %r/%r -> %d", dir, name, count)
        return count

    # ─────────────────────────────────────────────────────────────────── #
    # Settings helpers                                                     #
    # ─────────────────────────────────────────────────────────────────── #

    def get_build_id(self, assets_dir: Optional[Path] = None) -> str:
        """BUILD_ID (if any) plus a stamp from the newest asset mtime."""
        stamp = ""
        if assets_dir is not None and assets_dir.is_dir():
            mtimes = [p.stat().st_mtime for p in assets_dir.iterdir() if p.is_file()]
            if mtimes:
                stamp = "b" + str(int(max(mtimes) * 1000))
        if self.config.build_id and stamp:
            return f"{self.config.build_id}-{stamp}"
        return self.config.build_id or stamp or "dev"

    def get_web_port(self) -> int:
        return self.config.port

    def get_web_bind_all(self) -> bool:
        return self.config.bind_all
