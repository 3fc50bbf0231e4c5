"""Exception types raised by the bot."""


class ReviewBotError(Exception):
    """Base error for all bot failures."""


class CloneError(ReviewBotError):
    """Error during a local git operation."""


class GitHubError(ReviewBotError):
    """GitHub API request failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubAuthError(GitHubError):
    """GitHub rejected the configured credentials."""
