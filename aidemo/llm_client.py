"""Ollama LLM client wrapper with error handling."""
import httpx
from typing import Any, Dict, List, Optional
import structlog

from aidemo import config
from aidemo.errors import EmptyResponseError
from aidemo.http_client import create_async_client
from aidemo.lazy import AsyncOnce

logger = structlog.get_logger()


class OllamaClient:
    """Async client for interacting with Ollama API.

    One ``httpx.AsyncClient`` is shared by all calls. It is created on first
    use through an initialize-once guard, so concurrent first requests never
    build two connection pools.
    """

    def __init__(
        self,
        base_url: str = None,
        chat_model: str = None,
        embedding_model: str = None,
        proxy_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            chat_model: Default chat model (defaults to config.CHAT_MODEL)
            embedding_model: Default embedding model (defaults to config.EMBEDDING_MODEL)
            proxy_url: Outbound proxy (defaults to config.HTTP_PROXY_URL)
            transport: Custom httpx transport, mainly for tests
        """
        self.base_url = base_url or config.OLLAMA_BASE_URL
        self.chat_model = chat_model or config.CHAT_MODEL
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.proxy_url = proxy_url if proxy_url is not None else config.HTTP_PROXY_URL
        self._http = AsyncOnce(
            lambda: create_async_client(
                base_url=self.base_url,
                proxy_url=self.proxy_url,
                transport=transport,
            ),
            name="ollama_http_client",
        )

    async def _client(self) -> httpx.AsyncClient:
        return await self._http.get()

    async def aclose(self) -> None:
        """Close the shared HTTP client if it was ever created."""
        client = self._http.reset()
        if client is not None:
            await client.aclose()

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
        format: Optional[Dict[str, Any] | str] = None,
    ) -> Dict:
        """Send chat completion request to Ollama.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to the client's chat model)
            temperature: Sampling temperature (0.0-2.0)
            format: "json" or a JSON schema constraining the reply

        Returns:
            Response dict with 'message' containing 'content'

        Raises:
            httpx.HTTPError: On API errors
            httpx.ConnectError: If Ollama service is unavailable
        """
        model = model or self.chat_model

        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
        }

        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        if format is not None:
            payload["format"] = format

        try:
            client = await self._client()
            logger.info(
                "ollama_chat_request",
                model=model,
                message_count=len(messages),
                structured=format is not None,
            )

            response = await client.post("/api/chat", json=payload)
            response.raise_for_status()

            data = response.json()

            logger.info(
                "ollama_chat_response",
                model=model,
                response_length=len(data.get("message", {}).get("content", "")),
            )

            return data

        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise
        except httpx.HTTPError as e:
            logger.error(
                "ollama_http_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise

    async def generate(
        self,
        system_prompt: Optional[str],
        user_message: str,
        temperature: Optional[float] = None,
    ) -> str:
        """Single-turn completion: optional system prompt plus one user message.

        Returns:
            The assistant's reply text

        Raises:
            EmptyResponseError: If the model returned nothing but whitespace
        """
        messages = []
        if system_prompt and system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})

        data = await self.chat(messages, temperature=temperature)
        content = data.get("message", {}).get("content", "")

        if not content or not content.strip():
            logger.error("empty_ollama_response", model=data.get("model"))
            raise EmptyResponseError("Model returned an empty response")

        return content

    async def embeddings(
        self,
        prompt: str,
        model: str = None,
    ) -> Dict:
        """Generate embeddings for a text prompt.

        Args:
            prompt: Text to embed
            model: Model to use (defaults to the client's embedding model)

        Returns:
            Response dict with 'embedding' list

        Raises:
            httpx.HTTPError: On API errors
        """
        model = model or self.embedding_model

        payload = {
            "model": model,
            "prompt": prompt,
        }

        try:
            client = await self._client()
            logger.debug(
                "ollama_embedding_request",
                model=model,
                prompt_length=len(prompt),
            )

            response = await client.post("/api/embeddings", json=payload)
            response.raise_for_status()

            data = response.json()

            logger.debug(
                "ollama_embedding_response",
                model=model,
                dimension=len(data.get("embedding", [])),
            )

            return data

        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e))
            raise

    async def embed(self, text: str) -> List[float]:
        """Return the embedding vector for ``text``.

        Raises:
            RuntimeError: If Ollama returned an empty vector
        """
        data = await self.embeddings(text)
        embedding = data.get("embedding", [])
        if not embedding:
            raise RuntimeError("Empty embedding returned from Ollama")
        return embedding

    async def list_models(self) -> List[str]:
        """List all available Ollama models.

        Returns:
            List of model names

        Raises:
            httpx.HTTPError: On API errors
        """
        try:
            client = await self._client()
            response = await client.get("/api/tags", timeout=5.0)
            response.raise_for_status()
            data = response.json()
            return [m["name"] for m in data.get("models", [])]
        except httpx.HTTPError as e:
            logger.error("ollama_list_models_error", error=str(e))
            raise


# Global client instance
ollama_client = OllamaClient()
