"""Exception hierarchy for chatbox."""


class ChatboxError(Exception):
    """Base exception for all chatbox errors."""

    exit_code = 1

    def __init__(self, message: str, exit_code: int | None = None, hint: str | None = None):
        """
        Initialize exception with optional exit code and hint.

        Args:
            message: Error message
            exit_code: Override default exit code
            hint: Helpful hint for resolving the error (uses Python 3.11+ __notes__)
        """
        super().__init__(message)
        if exit_code:
            self.exit_code = exit_code
        if hint:
            if hasattr(self, "add_note"):
                self.add_note(hint)


class ResourceError(ChatboxError):
    """External resources unavailable (API, network, storage)."""

    exit_code = 75


class ConfigError(ChatboxError):
    """Configuration-related errors (.env, config.yaml, missing keys)."""

    exit_code = 78


class ProviderError(ResourceError):
    """Provider API errors (network, rate limit, structured error payloads)."""

    pass


class AuthenticationRequiredError(ProviderError):
    """Provider rejected the request until the user signs in again."""

    category = "UNAUTHORIZED"


class SecurityChallengeError(ProviderError):
    """Provider asks for a security check before answering."""

    category = "CLOUDFLARE"


class SessionNotFoundError(ChatboxError):
    """Requested session does not exist in the session store."""

    exit_code = 66

    def __init__(self, session_id: str):
        super().__init__(
            f"Session '{session_id}' not found",
            hint="Run 'chatbox sessions list' to see stored sessions",
        )


class UsageError(ChatboxError):
    """Invalid CLI arguments or options."""

    exit_code = 64
