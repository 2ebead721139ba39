"""
Local key-value persistence for fallback data.

Values are JSON-encoded strings under fixed keys. There is no TTL:
an entry stays until it is overwritten or deleted.

Backends:
    InMemoryStore        - process-local dict (tests, one-shot CLI runs)
    SQLiteKeyValueStore  - single-file store, one `kv` table
    RedisKeyValueStore   - shared store, keys namespaced as `namespace:key`
"""

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

import redis

logger = logging.getLogger('devicebench.kv_store')

BENCHMARK_KEY = 'wolf_benchmark'
GEEKBENCH_PROFILE_KEY = 'wolf_geekbench_profile'


class KeyValueStore:
    """String key -> string value store."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def set_json(self, key: str, data: Any) -> None:
        self.set(key, json.dumps(data))

    def get_json(self, key: str) -> Optional[Any]:
        """Decoded value, or None if the key is missing."""
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)


class InMemoryStore(KeyValueStore):

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._data)


class SQLiteKeyValueStore(KeyValueStore):
    """
    SQLite-backed store.

    Schema:
        kv: key (primary key), value (JSON text), updated_at (epoch seconds)
    """

    def __init__(self, db_path: str):
        """
        Initialize storage.

        Args:
            db_path: Path to SQLite database file (created if missing)
        """
        self.db_path = Path(db_path)
        self._init_database()

    def _init_database(self):
        """Create database schema if not exists"""
        if self.db_path.parent and not self.db_path.parent.exists():
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            ''')
            conn.commit()

        logger.debug(f"Initialized key-value store: {self.db_path}")

    @contextmanager
    def _connect(self):
        """Context manager for database connections"""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute('SELECT value FROM kv WHERE key = ?', (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                'INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)',
                (key, value, time.time())
            )
            conn.commit()
        logger.debug(f"Stored {key} in {self.db_path}")

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute('DELETE FROM kv WHERE key = ?', (key,))
            conn.commit()

    def keys(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute('SELECT key FROM kv ORDER BY key').fetchall()
        return [row[0] for row in rows]

    def updated_at(self, key: str) -> Optional[float]:
        """Epoch seconds of the last write to `key`."""
        with self._connect() as conn:
            row = conn.execute('SELECT updated_at FROM kv WHERE key = ?', (key,)).fetchone()
        return row[0] if row else None


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store. All keys are namespaced for isolation."""

    def __init__(self, redis_client, namespace: str = 'devicebench'):
        """
        Args:
            redis_client: redis.Redis instance
            namespace: Prefix for every key
        """
        if not redis_client:
            raise RuntimeError("Redis client is required but was None")

        self.client = redis_client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = 'devicebench') -> 'RedisKeyValueStore':
        return cls(redis.Redis.from_url(url, decode_responses=True), namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode('utf-8')
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(self._key(key), value)
            logger.debug(f"Wrote {key} to Redis (namespace={self.namespace})")
        except Exception as e:
            logger.error(f"Failed to write {key} to Redis: {e}")
            raise

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))

    def keys(self) -> List[str]:
        prefix = f"{self.namespace}:"
        found = []
        for raw in self.client.scan_iter(match=f"{prefix}*"):
            name = raw.decode('utf-8') if isinstance(raw, bytes) else raw
            found.append(name[len(prefix):])
        return sorted(found)


def open_store(location: Optional[str]) -> KeyValueStore:
    """
    Store for a CLI/location string.

    'memory' (or None) -> InMemoryStore, 'redis://...' -> RedisKeyValueStore,
    anything else is a SQLite file path.
    """
    if not location or location == 'memory':
        return InMemoryStore()
    if location.startswith(('redis://', 'rediss://', 'unix://')):
        return RedisKeyValueStore.from_url(location)
    return SQLiteKeyValueStore(location)
