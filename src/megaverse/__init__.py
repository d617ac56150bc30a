"""
megaverse: concurrent retry/backoff dispatch of independent remote writes.
"""

__version__ = "1.0.0"
