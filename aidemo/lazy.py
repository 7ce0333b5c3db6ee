"""Initialize-once guarded resources."""
import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class AsyncOnce(Generic[T]):
    """Build a value on first use, at most once per instance.

    Concurrent first callers wait on the same lock; the factory runs once
    and every caller receives the same object. A factory that raises leaves
    the slot empty so the next call retries the construction.

    Example:
        >>> client = AsyncOnce(lambda: build_client(), name="http_client")
        >>> http = await client.get()
    """

    def __init__(self, factory: Callable[[], Awaitable[T] | T], name: str = "resource"):
        self._factory = factory
        self._name = name
        self._value: Optional[T] = None
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    def peek(self) -> Optional[T]:
        """Return the value if already built, without building it."""
        return self._value

    async def get(self) -> T:
        if self._initialized:
            return self._value

        async with self._lock:
            if not self._initialized:
                value = self._factory()
                if asyncio.iscoroutine(value):
                    value = await value
                self._value = value
                self._initialized = True
                logger.info("lazy_resource_initialized", resource=self._name)

        return self._value

    def reset(self) -> Optional[T]:
        """Forget the built value and return it (caller disposes of it)."""
        value = self._value
        self._value = None
        self._initialized = False
        return value
