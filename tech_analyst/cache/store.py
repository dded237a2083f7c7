"""SQLite-backed page cache keyed by exact URL, with per-category content."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Callable

from tech_analyst.models import SCRAPE_CATEGORIES, CacheEntry

logger = logging.getLogger(__name__)


class PageCache:
    """Scraped page content, one row per URL, one field per category.

    ``put`` merges a single category into the row and pushes the whole row's
    expiry out to now + TTL. An empty ``db_path`` disables the cache: every
    read misses and every write is dropped. Storage failures degrade the same
    way instead of raising.
    """

    def __init__(
        self,
        db_path: str = ".page_cache.db",
        ttl_days: int = 7,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.db_path = db_path
        self.ttl = timedelta(days=ttl_days)
        self._clock = clock
        self.conn: sqlite3.Connection | None = None
        if self.enabled:
            self._init_db()

    @property
    def enabled(self) -> bool:
        return bool(self.db_path)

    def _init_db(self) -> None:
        """Initialize database tables."""
        try:
            self.conn = sqlite3.connect(self.db_path, timeout=10)
            if self.db_path != ":memory:":
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.executescript("""
                CREATE TABLE IF NOT EXISTS page_cache (
                    url TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    scraped_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_page_cache_expires
                    ON page_cache (expires_at);
            """)
            self.conn.commit()
        except sqlite3.Error as e:
            logger.warning("Cache init failed, running without cache: %s", e)
            self.conn = None

    def _ensure_connection(self) -> bool:
        """Verify the SQLite connection is alive, reconnect if needed."""
        if not self.enabled:
            return False
        if self.conn is None:
            self._init_db()
        if self.conn is None:
            return False
        try:
            self.conn.execute("SELECT 1")
            return True
        except (sqlite3.OperationalError, sqlite3.DatabaseError, sqlite3.ProgrammingError):
            logger.warning("SQLite connection lost, reconnecting")
            self.conn = None
            self._init_db()
            return self.conn is not None

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    # --- Reads ---

    def get(self, url: str) -> CacheEntry | None:
        """Return the live entry for ``url``; missing or expired entries are None."""
        if not self._ensure_connection():
            return None
        try:
            row = self.conn.execute(
                "SELECT data, scraped_at, expires_at FROM page_cache WHERE url = ?",
                (url,),
            ).fetchone()
        except sqlite3.Error as e:
            logger.debug("Cache read error for %s: %s", url[:80], e)
            return None
        if not row:
            return None
        try:
            expires_at = datetime.fromisoformat(row[2])
            if expires_at <= self._clock():
                return None
            return CacheEntry(
                url=url,
                data=json.loads(row[0]),
                scraped_at=datetime.fromisoformat(row[1]),
                expires_at=expires_at,
            )
        except (ValueError, TypeError) as e:
            logger.debug("Corrupt cache row for %s: %s", url[:80], e)
            return None

    def get_content(self, url: str, category: str) -> str | None:
        entry = self.get(url)
        if entry is None:
            return None
        return entry.data.get(category) or None

    # --- Writes ---

    def put(self, url: str, category: str, content: str) -> None:
        """Upsert one category for ``url``, keeping the other categories."""
        if category not in SCRAPE_CATEGORIES:
            raise ValueError(f"Unknown cache category: {category}")
        if not self._ensure_connection():
            return
        now = self._clock()
        try:
            row = self.conn.execute(
                "SELECT data, expires_at FROM page_cache WHERE url = ?", (url,),
            ).fetchone()
            data: dict[str, str] = {}
            if row and datetime.fromisoformat(row[1]) > now:
                data = json.loads(row[0])
            data[category] = content
            self.conn.execute(
                "INSERT OR REPLACE INTO page_cache (url, data, scraped_at, expires_at) "
                "VALUES (?, ?, ?, ?)",
                (url, json.dumps(data), now.isoformat(), (now + self.ttl).isoformat()),
            )
            self.conn.commit()
        except (sqlite3.Error, ValueError) as e:
            logger.debug("Cache write error (%s) for %s: %s", category, url[:80], e)

    # --- Maintenance ---

    def purge_expired(self) -> int:
        """Delete expired rows. Returns the number removed."""
        if not self._ensure_connection():
            return 0
        try:
            cursor = self.conn.execute(
                "DELETE FROM page_cache WHERE expires_at <= ?", (self._clock().isoformat(),),
            )
            self.conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            logger.debug("Cache purge error: %s", e)
            return 0

    def stats(self) -> dict:
        """Return entry counts and date range, live entries only."""
        if not self._ensure_connection():
            return {}
        try:
            count, oldest, newest = self.conn.execute(
                "SELECT COUNT(*), MIN(scraped_at), MAX(scraped_at) FROM page_cache "
                "WHERE expires_at > ?",
                (self._clock().isoformat(),),
            ).fetchone()
        except sqlite3.Error:
            return {"pages": 0, "oldest": None, "newest": None}
        return {"pages": count, "oldest": oldest, "newest": newest}
