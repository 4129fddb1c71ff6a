"""
Opening Book Module

Static opening repertoire consulted before any search. Built once at import
time and shared read-only by every search.

Key Components:
    - OpeningBook: Fingerprint → candidate moves lookup
    - DEFAULT_BOOK: Book built from OPENING_LINES
"""

from castle_engine.book.openings import DEFAULT_BOOK, OPENING_LINES, OpeningBook

__all__ = ['DEFAULT_BOOK', 'OPENING_LINES', 'OpeningBook']
