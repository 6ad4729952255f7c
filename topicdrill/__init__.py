"""
topicdrill: spaced-repetition practice over a past-paper question bank.

Picks which topics to practice next and tracks a per-topic FSRS memory
state, stored as a single progress file in GitHub or on disk.
"""

__version__ = "1.0.0"
