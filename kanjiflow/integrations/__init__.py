"""
External integrations for kanjiflow.

Modules:
- kanji_api_client: async HTTP client for the kanji study API
"""
from .kanji_api_client import KanjiApiClient

__all__ = ["KanjiApiClient"]
