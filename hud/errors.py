"""
gh-hud exceptions
"""


class HudError(Exception):
    """Base exception for all gh-hud errors"""

    pass


class SourceError(HudError):
    """Raised when an external query tool fails or returns unusable output"""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class RateLimitError(HudError):
    """Raised when GitHub reports that the API rate limit is exhausted.

    Not a SourceError: handlers that fail soft on SourceError
    must still let this one surface.
    """

    def __init__(self, message: str = "GitHub API rate limit exceeded. Please wait before trying again."):
        super().__init__(message)


class ConfigError(HudError):
    """Raised when configuration values are invalid"""

    pass
