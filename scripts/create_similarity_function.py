"""
Install pgvector and the search_similar_posts() stored function.

Usage:
    python scripts/create_similarity_function.py [--create-tables]
"""
from __future__ import annotations

import sys
import asyncio
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from sqlalchemy import text

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shotshare.core.config import settings
from shotshare.core.database import engine, init_db, close_db
from shotshare.services.vector_search_service import SIMILARITY_FUNCTION_SQL

console = Console()


async def run(create_tables: bool):
    """Create tables (optional), the vector extension and the similarity function."""
    if settings.is_sqlite:
        console.print("[yellow]Not a PostgreSQL database; similarity search uses the in-process scan.[/yellow]")
        return

    console.print(Panel.fit(
        "[bold cyan]Similarity Function Setup[/bold cyan]\n"
        f"Database: {settings.database_url.split('@')[-1]}\n"
        f"Threshold default: {settings.similarity_threshold}",
        border_style="cyan"
    ))

    try:
        if create_tables:
            await init_db()
            console.print("[green]✓[/green] Tables created")

        async with engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            console.print("[green]✓[/green] pgvector extension available")

            await conn.execute(text(SIMILARITY_FUNCTION_SQL))
            console.print("[green]✓[/green] search_similar_posts() installed")
    finally:
        await close_db()


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Install the pgvector similarity function")
    parser.add_argument("--create-tables", action="store_true", help="Create ORM tables first")

    args = parser.parse_args()
    asyncio.run(run(args.create_tables))


if __name__ == "__main__":
    main()
