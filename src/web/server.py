"""
Flask web server for the photo gallery.

Endpoints:
  GET  /                  → service status (JSON)
  GET  /api/config        → build id + autoplay interval for the frontend
  GET  /api/images        → paginated directory listing (?dir=&offset=&limit=&order=&seed=)
  POST /api/upload        → multipart upload into ?dir= (token-gated)
  POST /api/delete        → delete {dir, names} (token-gated)
  GET  /api/thumb         → thumbnail for ?dir=&name=
  GET  /api/likes         → like counters for ?dir=&names=a,b
  POST /api/like          → increment the counter for {dir, name}
  GET  /images/<path>     → original image file
"""

import hmac
import logging
import threading
from functools import wraps
from typing import Optional
from urllib.parse import unquote

from flask import Flask, jsonify, request, send_file
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from ..core.app_core import GalleryCore
from ..core.errors import GalleryError

logger = logging.getLogger(__name__)

APP_NAME = "photo-gallery"
APP_VERSION = "1.0.0"
AUTOPLAY_MS = 3000

_flask_app = None
_server_thread: Optional[threading.Thread] = None
_server_running = False


def create_flask_app(core: GalleryCore) -> Flask:
    """Build and return the Flask application."""
    config = core.config

    flask_app = Flask(__name__)
    flask_app.config["MAX_CONTENT_LENGTH"] = config.max_upload_files * config.max_upload_bytes
    flask_app.json.sort_keys = False

    # ── auth decorator ────────────────────────────────────────────────── #
    def upload_token_required(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            expected = config.upload_token
            if expected:
                body = request.get_json(silent=True) or {}
                token = (request.headers.get("X-Upload-Token")
                         or request.form.get("token")
                         or (body.get("token") if isinstance(body, dict) else None)
                         or "")
                if not hmac.compare_digest(str(token).encode(), expected.encode()):
                    logger.warning("Rejected %s %s: bad upload token", request.method, request.path)
                    return jsonify({"error": "bad token"}), 401
            return f(*args, **kwargs)
        return decorated

    @flask_app.errorhandler(GalleryError)
    def handle_gallery_error(exc):
        return jsonify({"error": str(exc)}), exc.status_code

    @flask_app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(exc):
        return jsonify({"error": "upload too large"}), 413

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.error("Unhandled error on %s %s: %s", request.method, request.path, exc,
                     exc_info=exc)
        return jsonify({"error": str(exc)}), 500

    @flask_app.after_request
    def add_header(r):
        """Keep API responses out of browser and proxy caches."""
        if "Cache-Control" not in r.headers and request.path.startswith("/api/"):
            r.headers["Cache-Control"] = "no-store"
        return r

    # ──────────────────────────────────────────────────────────────────── #
    # Service info                                                         #
    # ──────────────────────────────────────────────────────────────────── #

    @flask_app.route("/")
    def index():
        return jsonify({"ok": True, "name": APP_NAME, "version": APP_VERSION})

    @flask_app.route("/api/config")
    def api_config():
        return jsonify({"buildId": core.get_build_id(), "autoplayMs": AUTOPLAY_MS})

    # ──────────────────────────────────────────────────────────────────── #
    # Listing                                                              #
    # ──────────────────────────────────────────────────────────────────── #

    @flask_app.route("/api/images")
    def api_images():
        args = request.args
        result = core.list_directory(
            dir=args.get("dir", ""),
            offset=args.get("offset", 0),
            limit=args.get("limit"),
            order=args.get("order", ""),
            seed=args.get("seed", ""),
        )
        return jsonify(result)

    # ──────────────────────────────────────────────────────────────────── #
    # Upload / delete                                                      #
    # ──────────────────────────────────────────────────────────────────── #

    @flask_app.route("/api/upload", methods=["POST"])
    @upload_token_required
    def api_upload():
        subdir = request.args.get("dir", "")
        files = request.files.getlist("files")
        saved = core.save_uploads(subdir, files)
        return jsonify({"ok": True, "uploaded": len(saved), "files": saved})

    @flask_app.route("/api/delete", methods=["POST"])
    @upload_token_required
    def api_delete():
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "bad request"}), 400
        subdir = data.get("dir")
        if subdir is None:
            subdir = request.args.get("dir", "")
        names = data.get("names")
        names = [str(n) for n in names] if isinstance(names, list) else []

        deleted, failed = core.delete_images(str(subdir), names)
        return jsonify({"ok": True, "deleted": deleted, "failed": failed})

    # ──────────────────────────────────────────────────────────────────── #
    # Media endpoints                                                      #
    # ──────────────────────────────────────────────────────────────────── #

    @flask_app.route("/api/thumb")
    def api_thumb():
        subdir = request.args.get("dir", "")
        name = request.args.get("name", "")
        path = core.thumbnail_for(subdir, name)
        return send_file(path, max_age=3600)

    @flask_app.route("/images/<path:rel_path>")
    def serve_image(rel_path):
        path = core.image_path(rel_path)
        return send_file(path, max_age=3600)

    # ──────────────────────────────────────────────────────────────────── #
    # Likes                                                                #
    # ──────────────────────────────────────────────────────────────────── #

    @flask_app.route("/api/likes")
    def api_likes():
        subdir = request.args.get("dir", "")
        names_raw = request.args.get("names", "")
        names = [unquote(n) for n in names_raw.split(",")] if names_raw else []
        return jsonify({"ok": True, "likes": core.get_likes(subdir, names)})

    @flask_app.route("/api/like", methods=["POST"])
    def api_like():
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({"error": "bad request"}), 400
        subdir = str(data.get("dir") or "")
        name = str(data.get("name") or "")
        count = core.add_like(subdir, name)
        return jsonify({"ok": True, "name": name, "count": count})

    return flask_app


# ─────────────────────────────────────────────────────────────────────────────
# Server lifecycle
# ─────────────────────────────────────────────────────────────────────────────

def start_server(core: GalleryCore, port: int = 3000, bind_all: bool = True):
    """Start Flask in a daemon thread. Safe to call from any thread."""
    global _flask_app, _server_thread, _server_running

    if _server_running:
        logger.warning("Web server already running.")
        return

    flask_app = create_flask_app(core)
    _flask_app = flask_app
    host = "0.0.0.0" if bind_all else "127.0.0.1"

    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    def _run():
        global _server_running
        try:
            flask_app.run(host=host, port=port, debug=False,
                          use_reloader=False, threaded=True)
        except Exception as exc:
            logger.error("Web server error: %s", exc)
        finally:
            _server_running = False

    _server_running = True
    _server_thread = threading.Thread(target=_run, daemon=True, name="FlaskThread")
    _server_thread.start()
    logger.info("Web server started on %s:%d", host, port)


def stop_server():
    global _server_running
    _server_running = False
    # Flask dev server doesn't support clean shutdown easily; daemon thread dies with app


def is_running() -> bool:
    return _server_running
