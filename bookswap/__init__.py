"""BookSwap - Core Application Package

This package contains the core application modules including:
- API endpoints (api.py)
- Library, wishlist and profile stores (library.py, wishlist.py, profiles.py)
- Match & distance ranking (matching.py) and book discovery (discovery.py)
- CLI interface (main.py)
- Data models (book.py, wishlist_entry.py, profile.py)
- Database layer (database.py)
"""
