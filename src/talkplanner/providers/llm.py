"""Text generation client used by background tasks.

Tasks depend on the ``generate(system, prompt)`` method only, which keeps
them independent of the provider SDK.
"""

from typing import Any

from groq import AsyncGroq


class GroqLLMClient:
    """Text generation backed by AsyncGroq.

    Example:
        from groq import AsyncGroq
        from talkplanner.providers.llm import GroqLLMClient

        llm = GroqLLMClient(AsyncGroq(api_key="..."), model="llama-3.3-70b-versatile")
        text = await llm.generate("You are...", "Tweets from @alice: ...")
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = "llama-3.3-70b-versatile",
        max_tokens: int = 512,
    ) -> None:
        """Initialize the Groq client wrapper.

        Args:
            client: The AsyncGroq client instance to wrap.
            model: The model to use for completions.
            max_tokens: Output token cap per call.
        """
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    async def generate(self, system: str, prompt: str) -> str:
        """Generate text for a user prompt under a system prompt."""
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            max_tokens=self._max_tokens,
            temperature=0.2,
        )

        return response.choices[0].message.content or ""

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model
