"""
Generate caption embeddings for posts that don't have one.

Posts uploaded while the embedding provider was down, or before similar-photo
discovery existed, fall back to recent posts until this is run.

Usage:
    python scripts/backfill_embeddings.py [--limit N] [--dry-run]
"""
from __future__ import annotations

import sys
import asyncio
from pathlib import Path

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
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


class EmbeddingBackfill:
    """Backfill missing post embeddings."""

    def __init__(self, limit: int = 500, dry_run: bool = False):
        self.limit = limit
        self.dry_run = dry_run
        self.stats = {
            "total": 0,
            "embedded": 0,
            "skipped": 0,
            "errors": 0
        }

    async def run(self):
        """Run the backfill."""
        console.print(Panel.fit(
            "[bold cyan]Embedding Backfill[/bold cyan]\n"
            f"Mode: {'DRY RUN' if self.dry_run else 'WRITE'}\n"
            f"Limit: {self.limit}\n"
            f"Caption generator: {settings.caption_generator}\n"
            f"Embedding provider: {settings.embedding_provider} ({settings.embedding_dimension} dims)",
            border_style="cyan"
        ))

        async with get_db_context() as db:
            post_ids = await PostRepository(db).ids_without_embedding(limit=self.limit)
            self.stats["total"] = len(post_ids)

            if not post_ids:
                console.print("\n[green]Every post already has an embedding.[/green]")
                return

            if self.dry_run:
                for post_id in post_ids:
                    console.print(f"  would embed {post_id}")
                return

            service = PostService(
                db,
                get_storage_service(),
                get_similarity_cache(),
                get_indexing_pipeline(),
                get_indexing_dispatcher()
            )

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task("Embedding posts...", total=len(post_ids))

                for post_id in post_ids:
                    progress.update(task, description=f"Processing: {post_id}")
                    try:
                        if await service.backfill_embedding(post_id):
                            self.stats["embedded"] += 1
                        else:
                            self.stats["skipped"] += 1
                    except Exception as e:
                        self.stats["errors"] += 1
                        await db.rollback()
                        console.print(f"[red]✗[/red] {post_id}: {e}")
                    progress.update(task, advance=1)

        self.display_summary()

    def display_summary(self):
        """Display backfill summary."""
        table = Table(title="\n[bold]Backfill Summary[/bold]")
        table.add_column("Metric", style="cyan")
        table.add_column("Count", justify="right", style="green")

        table.add_row("Posts without embedding", str(self.stats["total"]))
        table.add_row("Embedded", str(self.stats["embedded"]))
        table.add_row("Skipped (empty caption)", str(self.stats["skipped"]))
        table.add_row("Errors", str(self.stats["errors"]), style="red" if self.stats["errors"] > 0 else "green")

        console.print(table)


async def _main(limit: int, dry_run: bool):
    try:
        await EmbeddingBackfill(limit=limit, dry_run=dry_run).run()
    finally:
        await redis_client.disconnect()
        await close_db()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Backfill missing post embeddings")
    parser.add_argument("--limit", type=int, default=500, help="Maximum posts to process")
    parser.add_argument("--dry-run", action="store_true", help="List posts without embedding them")

    args = parser.parse_args()
    asyncio.run(_main(args.limit, args.dry_run))


if __name__ == "__main__":
    main()
