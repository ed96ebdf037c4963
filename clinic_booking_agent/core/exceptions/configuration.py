"""
Configuration exceptions.
"""


class ConfigurationError(Exception):
    """Required clinic configuration is missing.

    The message is shown to the user verbatim, so it should say what an
    operator needs to fix.
    """
    pass
