"""Shared route dependencies: run store and chat provider.

Tests swap these through ``app.dependency_overrides``.
"""

from collections.abc import AsyncIterator

from specharness.llm import get_provider
from specharness.llm.base import ChatProvider
from specharness.store import RunStore, get_run_store


def get_store() -> RunStore:
    return get_run_store()


async def get_chat() -> AsyncIterator[ChatProvider]:
    """One provider router per request, closed once the response is built."""
    router = get_provider()
    try:
        yield router
    finally:
        await router.aclose()
