"""
Drop every cached similar-posts result.

Run after changing the embedding model or the similarity threshold.

Usage:
    python scripts/clear_similar_cache.py
"""
from __future__ import annotations

import sys
import asyncio
from pathlib import Path

from rich.console import Console

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shotshare.core.redis import redis_client
from shotshare.services import SimilarityCache

console = Console()


async def run():
    cache = SimilarityCache(redis_client)
    try:
        if not await cache.ping():
            console.print("[red]✗ Redis is not reachable[/red]")
            return
        removed = await cache.clear()
        console.print(f"[green]✓[/green] Removed {removed} cached entr{'y' if removed == 1 else 'ies'}")
    finally:
        await redis_client.disconnect()


def main():
    """Main entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
