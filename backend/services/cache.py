"""File-backed TTL cache with stale reads.

One JSON record per key under the cache root, so entries survive restarts
and can be served past their expiry when the upstream API is down. Records
are never deleted by expiry alone; a later write for the same key replaces
them.

Note: there is no locking. Concurrent writes of the same key are
last-write-wins, which is fine because everything cached here can be
re-fetched.
"""

import base64
import hashlib
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable

from config import settings

logger = logging.getLogger(__name__)

# Keep encoded names well under the usual 255-byte filename limit
MAX_ENCODED_NAME = 200


class FileTTLCache:
    def __init__(self, root: str | Path, clock: Callable[[], float] = time.time):
        self.root = Path(root)
        self._clock = clock
        self.write_failures = 0

    def path_for(self, key: str) -> Path:
        """Map a key to its record file.

        URL-safe base64 without padding is injective and filename-safe. Keys
        too long for that fall back to a SHA-256 name; the record keeps its
        key so a digest collision reads as a miss.
        """
        encoded = base64.urlsafe_b64encode(key.encode("utf-8", "surrogatepass")).decode("ascii").rstrip("=")
        if len(encoded) <= MAX_ENCODED_NAME:
            return self.root / f"{encoded}.json"
        digest = hashlib.sha256(key.encode("utf-8", "surrogatepass")).hexdigest()
        return self.root / f"{digest}.sha256.json"

    def get(self, key: str, allow_stale: bool = False) -> Any | None:
        try:
            path = self.path_for(key)
            with open(path, encoding="utf-8") as f:
                record = json.load(f)
            if record.get("key", key) != key:
                return None
            expires_at = record["expires_at"]
            value = record["value"]
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Unreadable cache record for %r: %s", key, e)
            return None

        if not isinstance(expires_at, (int, float)):
            return None
        if int(self._clock()) <= expires_at or allow_stale:
            return value
        return None

    def set(self, key: str, value: Any, ttl_seconds: int = 3600) -> None:
        now = self._clock()
        tmp_name = None
        try:
            record = {
                "key": key,
                "value": value,
                "expires_at": int(now) + int(ttl_seconds),
                "stored_at": int(now * 1000),
            }
            path = self.path_for(key)
            # ASCII escapes keep lone surrogates in keys writable
            payload = json.dumps(record)
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            self.write_failures += 1
            logger.warning("Cache write failed for %r: %s", key, e)
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass


cache = FileTTLCache(settings.cache_dir)
