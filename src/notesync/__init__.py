"""
NoteSync Backend - collaborative notes with realtime sharing.

REST API for accounts, notes and sharing, plus a WebSocket channel that
fans edits out to everyone viewing the same note.
"""

__version__ = "1.0.0"
