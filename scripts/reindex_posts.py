"""
Re-run indexing for posts whose background indexing never completed.

Usage:
    python scripts/reindex_posts.py [--limit N] [--post-id UUID]
"""
from __future__ import annotations

import sys
import asyncio
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shotshare.api.dependencies import (
    get_indexing_dispatcher,
    get_indexing_pipeline,
    get_similarity_cache,
    get_storage_service,
)
from shotshare.core.config import settings
from shotshare.core.database import get_db_context, close_db
from shotshare.core.redis import redis_client
from shotshare.repositories import PostRepository
from shotshare.services import PostService

console = Console()


async def reindex(post_ids: Optional[List[UUID]], limit: int):
    """Reindex the given posts, or every post without an index document."""
    console.print(Panel.fit(
        "[bold cyan]Reindex Posts[/bold cyan]\n"
        f"Store: {settings.file_search_store_name or '[red]not configured[/red]'}\n"
        f"Poll: every {settings.index_poll_interval_seconds}s, "
        f"up to {settings.index_max_poll_attempts} attempts",
        border_style="cyan"
    ))

    table = Table(title="\n[bold]Results[/bold]")
    table.add_column("Post", style="cyan")
    table.add_column("State")
    table.add_column("Attempts", justify="right")
    table.add_column("Embedded", justify="center")

    async with get_db_context() as db:
        if not post_ids:
            post_ids = await PostRepository(db).ids_not_indexed(limit=limit)

        if not post_ids:
            console.print("\n[green]Nothing to reindex.[/green]")
            return

        service = PostService(
            db,
            get_storage_service(),
            get_similarity_cache(),
            get_indexing_pipeline(),
            get_indexing_dispatcher()
        )

        for post_id in post_ids:
            console.print(f"Indexing {post_id}...")
            try:
                outcome = await service.reindex_post(post_id)
            except Exception as e:
                await db.rollback()
                table.add_row(str(post_id), f"[red]error: {e}[/red]", "-", "-")
                continue

            state = outcome.indexing.state.value
            color = "green" if outcome.indexing.succeeded else "red"
            table.add_row(
                str(post_id),
                f"[{color}]{state}[/{color}]",
                str(outcome.indexing.attempts),
                "✓" if outcome.embedded else "-"
            )

    console.print(table)


async def _main(post_ids: Optional[List[UUID]], limit: int):
    try:
        await reindex(post_ids, limit)
    finally:
        await redis_client.disconnect()
        await close_db()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Reindex posts into the file search store")
    parser.add_argument("--limit", type=int, default=50, help="Maximum posts to process")
    parser.add_argument("--post-id", type=UUID, action="append", help="Reindex a specific post (repeatable)")

    args = parser.parse_args()
    asyncio.run(_main(args.post_id, args.limit))


if __name__ == "__main__":
    main()
