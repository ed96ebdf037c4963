"""
Session storage exceptions.
"""


class SessionStoreError(Exception):
    """Exception raised when conversation state cannot be read or written."""
    pass
