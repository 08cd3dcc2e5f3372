"""BookSwap - Services Package

This package contains service modules for external integrations:
- Geocoding service (OpenStreetMap Nominatim)
- HTTP client abstraction
"""
