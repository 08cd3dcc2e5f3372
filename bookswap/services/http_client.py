import logging
import time
from typing import Optional

import httpx

from bookswap.config import settings

logger = logging.getLogger(__name__)


class HTTPClient:
    """Bağlantı havuzu ve yeniden deneme mantığı ile HTTP istemcisi"""

    def __init__(self, timeout: Optional[float] = None, user_agent: Optional[str] = None):
        limits = httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0
        )
        timeout_value = timeout or settings.geocoding_timeout
        self._client = httpx.Client(
            limits=limits,
            timeout=httpx.Timeout(timeout=timeout_value, connect=5.0),
            follow_redirects=True,
            headers={"User-Agent": user_agent or settings.geocoding_user_agent},
        )

    def get(self, url: str, **kwargs) -> httpx.Response:
        return self._client.get(url, **kwargs)

    def get_with_retry(self, url: str, retries: int = 3, backoff: float = 0.5, **kwargs) -> httpx.Response:
        """Üstel geri çekilme ile GET isteği. Son denemede de bağlantı hatası olursa istisnayı yükseltir."""
        for attempt in range(retries):
            try:
                return self.get(url, **kwargs)
            except httpx.RequestError as e:
                if attempt == retries - 1:
                    raise
                wait_time = backoff * (2 ** attempt)
                logger.warning(f"İstek başarısız ({e}); {wait_time:.1f} sn sonra yeniden denenecek")
                time.sleep(wait_time)
        raise RuntimeError("retries en az 1 olmalı")

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# Global HTTP istemci örneği
_global_client: Optional[HTTPClient] = None


def get_http_client() -> HTTPClient:
    """Global HTTP istemci örneğini al veya oluştur"""
    global _global_client
    if _global_client is None:
        _global_client = HTTPClient()
    return _global_client


def cleanup_http_client():
    """Global HTTP istemcisini kapat"""
    global _global_client
    if _global_client:
        _global_client.close()
        _global_client = None
