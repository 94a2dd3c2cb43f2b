"""
Engine-specific exceptions.
"""


class RagCheckError(Exception):
    """Base exception for retrieval and similarity errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class InvalidInputError(RagCheckError, ValueError):
    """Raised when an argument cannot be scored as given."""

    def __init__(self, message: str):
        super().__init__(message, code="invalid_input")


class RetrievalUnavailableError(RagCheckError):
    """Raised when every data source for a request failed."""

    def __init__(self, reasons: dict[str, str] | None = None):
        self.reasons = reasons or {}
        detail = "; ".join(f"{name}: {reason}" for name, reason in self.reasons.items())
        message = "All retrieval sources are unavailable"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, code="retrieval_unavailable")


class ProviderError(RagCheckError):
    """Raised when an external collaborator fails."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"Provider '{provider}' failed: {message}", code="provider_error")
