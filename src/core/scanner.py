"""
Directory scanner: reads one directory under the images root and builds an
immutable listing of its sub-folders and image files.

The scanner is the source of truth for listings; the cache in
``listing_cache`` only ever stores what this module produced.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple
from urllib.parse import quote

from .errors import BadPath, ScanFailure
from ..utils.helpers import THUMBS_SUBDIR, is_image_file, safe_join

logger = logging.getLogger(__name__)


def normalize_dir_key(raw: str) -> str:
    """
    First, purely textual, pass over a client-supplied directory.

    "/a//b/./c/" -> "a/b/c". ".." segments are kept so that the traversal
    guard in ``DirectoryScanner.resolve`` can reject them;
    ``DirectoryScanner.canonical_key`` gives the final key.
    """
    parts = (raw or "").replace("\\", "/").split("/")
    return "/".join(p for p in parts if p and p != ".")


def sort_key(name: str) -> Tuple[str, str]:
    return name.casefold(), name


@dataclass(frozen=True)
class FileEntry:
    name: str
    url: str
    thumb_url: str

    def to_dict(self) -> dict:
        return {"name": self.name, "url": self.url, "thumbUrl": self.thumb_url}

    @classmethod
    def from_dict(cls, data: dict) -> "FileEntry":
        return cls(name=data["name"], url=data["url"], thumb_url=data["thumbUrl"])

    @classmethod
    def for_file(cls, dir_key: str, name: str) -> "FileEntry":
        rel = f"{dir_key}/{name}" if dir_key else name
        return cls(
            name=name,
            url="/images/" + quote(rel, safe="/"),
            thumb_url=f"/api/thumb?dir={quote(dir_key, safe='')}&name={quote(name, safe='')}",
        )


@dataclass(frozen=True)
class DirectoryListing:
    dir: str
    dirs: Tuple[str, ...] = ()
    files: Tuple[FileEntry, ...] = field(default=())

    @property
    def total(self) -> int:
        return len(self.files)

    def to_dict(self) -> dict:
        return {
            "dir": self.dir,
            "dirs": list(self.dirs),
            "allFiles": [f.to_dict() for f in self.files],
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DirectoryListing":
        return cls(
            dir=data["dir"],
            dirs=tuple(data.get("dirs") or ()),
            files=tuple(FileEntry.from_dict(f) for f in data.get("allFiles") or ()),
        )


class DirectoryScanner:
    """Lists directories below *images_root*."""

    def __init__(self, images_root: str | Path):
        self.images_root = Path(images_root)

    def resolve(self, dir_key: str) -> Path:
        """Absolute path for *dir_key*; BadPath if it leaves the root."""
        path = safe_join(self.images_root, dir_key)
        if path is None:
            raise BadPath("bad dir")
        return path

    def canonical_key(self, dir_key: str) -> str:
        """
        Root-relative key of the directory *dir_key* points at.

        Aliases such as "empty/../trips" collapse to "trips" so that one
        directory always maps to one cache entry. BadPath if it leaves the root.
        """
        path = self.resolve(normalize_dir_key(dir_key))
        rel = os.path.relpath(path, os.path.normpath(str(self.images_root)))
        return "" if rel == "." else rel.replace(os.sep, "/")

    def scan(self, dir_key: str) -> DirectoryListing:
        dir_key = self.canonical_key(dir_key)
        path = self.resolve(dir_key)
        if not path.is_dir():
            raise BadPath("bad dir")

        dirs: List[str] = []
        files: List[FileEntry] = []
        try:
            with os.scandir(path) as it:
                for entry in it:
                    if entry.is_dir():
                        if entry.name == THUMBS_SUBDIR:
                            continue
                        dirs.append(entry.name)
                    elif entry.is_file() and is_image_file(entry.name):
                        files.append(FileEntry.for_file(dir_key, entry.name))
        except OSError as exc:
            logger.error("Failed to scan %s: %s", path, exc)
            raise ScanFailure(str(exc)) from exc

        dirs.sort(key=sort_key)
        files.sort(key=lambda f: sort_key(f.name))
        logger.debug("Scanned %r: %d dirs, %d files", dir_key, len(dirs), len(files))
        return DirectoryListing(dir=dir_key, dirs=tuple(dirs), files=tuple(files))
