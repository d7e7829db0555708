"""
Database schema definitions (CREATE TABLE statements) for the gallery.
"""

# ─────────────────────────────────────────────────────────────────────────────
# Table creation SQL
# ─────────────────────────────────────────────────────────────────────────────

CREATE_LIKES_TABLE = """
CREATE TABLE IF NOT EXISTS likes (
    like_id     TEXT    PRIMARY KEY,
    count       INTEGER NOT NULL DEFAULT 0,
    updated_at  TEXT    NOT NULL DEFAULT (datetime('now'))
);
"""

ALL_TABLES = [
    CREATE_LIKES_TABLE,
]

INDEXES = []
