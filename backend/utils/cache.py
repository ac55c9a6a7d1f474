"""In-memory caching for the density map client"""

from datetime import datetime, timedelta
import hashlib
import json
import threading
from typing import Any, Optional, Dict

class InMemoryCache:
    """Simple in-memory cache with TTL support"""

    def __init__(self, default_ttl_seconds: int = 300):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.default_ttl = default_ttl_seconds
        self._access_count = 0
        self._hit_count = 0

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired"""
        with self._lock:
            self._access_count += 1

            if key in self._cache:
                entry = self._cache[key]
                if datetime.now() < entry['expires_at']:
                    self._hit_count += 1
                    return entry['value']
                else:
                    # Expired, remove it
                    del self._cache[key]

            return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None):
        """Set value in cache with TTL"""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._cache[key] = {
                'value': value,
                'expires_at': datetime.now() + timedelta(seconds=ttl),
                'created_at': datetime.now()
            }

    def clear_expired(self):
        """Remove all expired entries"""
        now = datetime.now()
        with self._lock:
            expired_keys = [k for k, v in self._cache.items() if now >= v['expires_at']]
            for key in expired_keys:
                del self._cache[key]

    def clear(self):
        with self._lock:
            self._cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        with self._lock:
            return {
                'total_entries': len(self._cache),
                'access_count': self._access_count,
                'hit_count': self._hit_count,
                'hit_rate': self._hit_count / self._access_count if self._access_count > 0 else 0
            }

def cache_key(*args, **kwargs) -> str:
    """Generate a stable digest from arguments"""
    key_data = {
        'args': args,
        'kwargs': sorted(kwargs.items())
    }
    key_string = json.dumps(key_data, sort_keys=True, default=str)
    return hashlib.md5(key_string.encode()).hexdigest()
