"""Karma Ledger API: karma events, AI feedback, weekly suggestions, badges and leaderboard."""

__version__ = "0.1.0"
