import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API Ayarları
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Veritabanı Ayarları
    db_file: str = os.getenv("BOOKSWAP_DB_FILE", "bookswap.db")

    # Önbellek Ayarları (REDIS_URL boşsa yalnızca bellek içi önbellek)
    redis_url: Optional[str] = os.getenv("REDIS_URL") or None
    cache_ttl: int = int(os.getenv("CACHE_TTL", "300"))

    # Coğrafi Kodlama Ayarları (OpenStreetMap Nominatim)
    geocoding_url: str = os.getenv("GEOCODING_URL", "https://nominatim.openstreetmap.org/search")
    geocoding_timeout: float = float(os.getenv("GEOCODING_TIMEOUT", "10"))
    geocoding_user_agent: str = os.getenv("GEOCODING_USER_AGENT", "bookswap/1.0")
    geocode_cache_ttl: int = int(os.getenv("GEOCODE_CACHE_TTL", "86400"))  # 24 saat
    enable_geocoding: bool = _env_flag("ENABLE_GEOCODING", "True")

    # Eşleştirme Ayarları: 'token' (kelime sınırlı) veya 'substring' (eski davranış)
    title_match_mode: str = os.getenv("TITLE_MATCH_MODE", "token").lower()

    # Uygulama Ayarları
    app_name: str = os.getenv("APP_NAME", "BookSwap")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    debug: bool = _env_flag("DEBUG", "False")
    environment: str = os.getenv("ENVIRONMENT", "development")


settings = Settings()
