"""Uygulama genelinde kullanılan istisnalar."""


class OwnershipError(PermissionError):
    """Çağıran, sahibi olmadığı bir kaydı değiştirmeye çalıştığında."""


class ExternalServiceError(Exception):
    """Veri deposu veya harici bir servis yanıt veremediğinde."""


class GeocodingError(ExternalServiceError):
    """Adres koordinatlara çözümlenemediğinde."""
