"""Custom exceptions for GitHub Agent."""


class GitHubAPIError(Exception):
    """Raised when the GitHub REST API returns an error response."""

    def __init__(self, status_code: int, message: str, path: str | None = None):
        self.status_code = status_code
        self.path = path
        detail = f"GitHub API error {status_code}: {message}"
        if path:
            detail += f" ({path})"
        super().__init__(detail)


class VercelAPIError(Exception):
    """Raised when the Vercel API returns an error response."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"Vercel API error {status_code}: {message}")


class SlackAPIError(Exception):
    """Raised when posting to the Slack Web API fails."""


class LLMNotConfiguredError(Exception):
    """Raised when an LLM call is needed but no provider key is configured."""


class CredentialEncryptionError(Exception):
    """Raised when secret encryption/decryption fails."""


class EmailNotConfiguredError(Exception):
    """Raised when email delivery is requested without SMTP settings."""


class EmailDeliveryError(Exception):
    """Raised when an SMTP send or verification fails.

    The message is safe to show to the user.
    """


class APIError(Exception):
    """Error raised by /api/v1 handlers, rendered as the v1 error envelope."""

    def __init__(self, message: str, code: str, status: int = 400):
        self.message = message
        self.code = code
        self.status = status
        super().__init__(message)
