"""
Start the photo gallery web server.
Usage: python run_web.py   (configured through environment variables, see README)
"""

import sys
import logging
import time
from pathlib import Path

ROOT = Path(__file__).parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.core.app_core import GalleryCore
from src.core.listing_cache import ListingCache, create_store
from src.db.manager import DatabaseManager
from src.utils.config import GalleryConfig, load_config
from src.utils.helpers import data_dir, get_local_ip
from src.web.server import is_running, start_server, stop_server


def setup_logging(level: str = "INFO"):
    log_dir = ROOT / "logs"
    log_dir.mkdir(exist_ok=True)
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    fh = logging.FileHandler(log_dir / "web_server.log", encoding="utf-8")
    fh.setFormatter(formatter)
    root.addHandler(fh)

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(formatter)
    root.addHandler(ch)


def build_core(config: GalleryConfig) -> GalleryCore:
    """Wire the like store, listing cache and core from *config*."""
    db = DatabaseManager(config.likes_db or data_dir() / "likes.db")
    store = create_store(config.cache_backend, config.redis_url)
    cache = ListingCache(store, ttl_seconds=config.listing_ttl)
    return GalleryCore(config, cache, db)


def main():
    config = load_config()
    setup_logging(config.log_level)
    logger = logging.getLogger("WebRunner")

    if not config.images_dir.is_dir():
        logger.error("IMAGES_DIR %s does not exist or is not a directory", config.images_dir)
        sys.exit(1)

    core = build_core(config)
    port = core.get_web_port()
    bind_all = core.get_web_bind_all()

    start_server(core, port=port, bind_all=bind_all)
    logger.info("Serving images from %s", config.images_dir)
    if not config.upload_token:
        logger.warning("UPLOAD_TOKEN is not set: upload and delete are open to anyone")

    ip = get_local_ip()
    print(f"\n🌐 Photo gallery is now ACTIVE:")
    print(f"   Local:   http://localhost:{port}")
    if bind_all:
        print(f"   Network: http://{ip}:{port}")
    print("\n   Press Ctrl+C to terminate the server.\n")

    try:
        while is_running():
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping web server...")
        stop_server()
        return
    logger.error("Web server stopped unexpectedly")
    sys.exit(1)


if __name__ == "__main__":
    main()
