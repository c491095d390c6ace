"""
kanjiflow: terminal study client for kanji flashcard decks.

Cards are scheduled by a remote spaced-repetition API; this package drives
one study session at a time and reports each grade back to that API.
"""

__version__ = "1.0.0"
