"""
Redis destekli önbellek yöneticisi.
REDIS_URL ayarlı değilse veya Redis'e ulaşılamıyorsa bellek içi önbelleğe geri döner.
"""

import json
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import redis

from bookswap.config import settings

logger = logging.getLogger(__name__)

MEMORY_CACHE_LIMIT = 1000


class CacheManager:
    """Redis ve bellek içi geri dönüşlü önbellek yöneticisi."""

    def __init__(self, redis_url: Optional[str] = None):
        self.redis_client = None
        self.memory_cache: Dict[str, tuple] = {}
        self.memory_cache_lock = threading.RLock()
        self.cache_stats = {
            'hits': 0,
            'misses': 0,
            'redis_hits': 0,
            'memory_hits': 0
        }
        self._init_redis(redis_url or settings.redis_url)

    def _init_redis(self, redis_url: Optional[str]):
        """Yapılandırılmışsa Redis bağlantısını başlat."""
        if not redis_url:
            logger.info("REDIS_URL ayarlı değil, yalnızca bellek içi önbellek kullanılıyor")
            return

        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=False,
                socket_connect_timeout=1,
                socket_timeout=1,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.redis_client.ping()
            logger.info("Redis önbelleği başarıyla başlatıldı")
        except redis.RedisError as e:
            logger.warning(f"Redis başlatılamadı: {e}. Yalnızca bellek önbelleği kullanılıyor.")
            self.redis_client = None

    def _make_key(self, key: str) -> str:
        return f"bookswap_cache:{key}"

    @staticmethod
    def _serialize_value(value: Any) -> bytes:
        return json.dumps(value, ensure_ascii=False).encode('utf-8')

    @staticmethod
    def _deserialize_value(data: bytes) -> Any:
        return json.loads(data.decode('utf-8'))

    def get(self, key: str) -> Optional[Any]:
        """Önbellekten değer al."""
        if self.redis_client:
            try:
                data = self.redis_client.get(self._make_key(key))
                if data is not None:
                    self.cache_stats['hits'] += 1
                    self.cache_stats['redis_hits'] += 1
                    return self._deserialize_value(data)
            except redis.RedisError as e:
                logger.warning(f"Redis get hatası: {e}")

        with self.memory_cache_lock:
            cache_entry = self.memory_cache.get(key)
            if cache_entry:
                value, expires_at = cache_entry
                if datetime.now() < expires_at:
                    self.cache_stats['hits'] += 1
                    self.cache_stats['memory_hits'] += 1
                    return value
                del self.memory_cache[key]

        self.cache_stats['misses'] += 1
        return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Önbellekte TTL ile değer ayarla."""
        ttl_seconds = ttl_seconds or settings.cache_ttl
        if self.redis_client:
            try:
                self.redis_client.setex(self._make_key(key), ttl_seconds, self._serialize_value(value))
            except redis.RedisError as e:
                logger.warning(f"Redis set hatası: {e}")

        # Redis olsa da olmasa da bellek önbelleği yedek olarak tutulur
        with self.memory_cache_lock:
            self.memory_cache[key] = (value, datetime.now() + timedelta(seconds=ttl_seconds))
            if len(self.memory_cache) > MEMORY_CACHE_LIMIT:
                # En erken süresi dolacak %10'u at
                oldest = sorted(self.memory_cache.items(), key=lambda item: item[1][1])
                for k, _ in oldest[:MEMORY_CACHE_LIMIT // 10]:
                    self.memory_cache.pop(k, None)

    def delete(self, key: str) -> bool:
        redis_deleted = False
        if self.redis_client:
            try:
                redis_deleted = bool(self.redis_client.delete(self._make_key(key)))
            except redis.RedisError as e:
                logger.warning(f"Redis delete hatası: {e}")

        with self.memory_cache_lock:
            memory_deleted = self.memory_cache.pop(key, None) is not None

        return redis_deleted or memory_deleted

    def clear(self) -> None:
        """Tüm önbelleği temizle."""
        if self.redis_client:
            try:
                keys = self.redis_client.keys(self._make_key("*"))
                if keys:
                    self.redis_client.delete(*keys)
            except redis.RedisError as e:
                logger.warning(f"Redis temizleme hatası: {e}")

        with self.memory_cache_lock:
            self.memory_cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        stats = self.cache_stats.copy()
        stats['redis_available'] = self.redis_client is not None
        stats['memory_cache_size'] = len(self.memory_cache)
        total = stats['hits'] + stats['misses']
        stats['hit_ratio'] = stats['hits'] / total if total else 0.0
        return stats


# Global önbellek yöneticisi örneği
cache_manager = CacheManager()
