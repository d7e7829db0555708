"""
Utility helpers used across the application.
"""

import os
import re
import logging
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg"
}

# Formats served as-is instead of being thumbnailed
PASSTHROUGH_EXTENSIONS = {".svg", ".gif"}

THUMBS_SUBDIR = ".thumbs"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._\-一-龥]")


def is_image_file(path: str | Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def is_within(child: str | Path, base: str | Path) -> bool:
    """True if *child* is *base* or lies below it (both resolved)."""
    child = os.path.realpath(str(child))
    base = os.path.realpath(str(base))
    try:
        return os.path.commonpath([child, base]) == base
    except ValueError:
        return False


def safe_join(base: str | Path, target: str) -> Optional[Path]:
    """
    Join *target* onto *base*, refusing anything that escapes *base*.

    Leading slashes on *target* are ignored so "/a/b" behaves like "a/b".
    Returns None when the result would fall outside *base*.
    """
    target = (target or "").replace("\\", "/").lstrip("/")
    full = os.path.normpath(os.path.join(str(base), target))
    if not is_within(full, base):
        return None
    return Path(full)


def clean_upload_name(filename: str) -> str:
    """Strip any directory part and replace unsafe characters with '_'."""
    base = os.path.basename((filename or "").replace("\\", "/")) or "upload"
    clean = _UNSAFE_NAME_CHARS.sub("_", base)
    if clean in (".", ".."):
        clean = "upload"
    return clean


def unique_path(path: Path) -> Path:
    """Return *path*, or the first free "<stem>_<n><suffix>" beside it."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def thumb_path_for(image_path: str | Path, width: int, quality: int) -> Path:
    image_path = Path(image_path)
    out_name = f"{image_path.name}.w{width}.q{quality}.webp"
    return image_path.parent / THUMBS_SUBDIR / out_name


def make_thumbnail(image_path: str | Path, out_path: str | Path,
                   width: int = 480, quality: int = 70) -> Path:
    """
    Write a WebP thumbnail of *image_path* to *out_path* and return it.

    The image is rotated according to its EXIF orientation and scaled down to
    *width* pixels wide. Smaller images are never enlarged. Each call writes
    through its own temporary file.
    """
    from PIL import Image, ImageOps

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with Image.open(str(image_path)) as img:
        img = ImageOps.exif_transpose(img)
        if img.width > width:
            height = max(1, round(img.height * width / img.width))
            img = img.resize((width, height), Image.LANCZOS)
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() else "RGB")
        fd, tmp = tempfile.mkstemp(prefix=out_path.name + ".", suffix=".tmp",
                                   dir=str(out_path.parent))
        os.close(fd)
        try:
            img.save(tmp, format="WEBP", quality=quality)
            os.replace(tmp, out_path)
        except Exception:
            Path(tmp).unlink(missing_ok=True)
            raise
    logger.debug("Thumbnail written: %s", out_path)
    return out_path


def get_local_ip() -> str:
    import socket
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


def data_dir() -> Path:
    """Return platform-appropriate user data directory."""
    import sys
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home()))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    d = base / "PhotoGallery"
    d.mkdir(parents=True, exist_ok=True)
    return d
