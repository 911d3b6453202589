from abc import ABC, abstractmethod


class AIProvider(ABC):
    """Abstract base class for chat-completion providers."""

    DEFAULT_MODEL = ""
    BASE_URL = ""

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float = 15.0,
    ):
        self.api_key = api_key
        self._model = model
        self._base_url = base_url
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        system: str = "",
        max_tokens: int = 150,
        temperature: float = 0.7,
    ) -> dict:
        """Send a single non-streaming chat request.

        Args:
            messages: List of message dicts with role and content.
            system: Optional system instruction.
            max_tokens: Completion token limit.
            temperature: Sampling temperature.

        Returns:
            dict with content, tokens_in, tokens_out, model.

        Raises:
            UpstreamError if the provider answers with a non-200 status.
        """
        ...

    def get_model(self) -> str:
        return self._model or self.DEFAULT_MODEL

    def get_url(self) -> str:
        return self._base_url or self.BASE_URL
