"""Shared async helpers.

Backoff and batch pauses all wait through ``sleep`` so tests can patch a
single attribute.
"""

import asyncio


async def sleep(seconds: float) -> None:
    """Wait ``seconds`` without blocking the event loop."""
    await asyncio.sleep(seconds)
