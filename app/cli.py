# app/cli.py
import asyncio
from typing import Optional

import typer

from app.cache import MemoryCache, build_cache
from app.config import ENABLE_REDIS_CACHE, FEED_MAX_LIMIT
from app.db import get_session, init_db
from app.errors import DomainError
from app.services import seeder
from app.services.posts import PostService

app = typer.Typer(help="Social feed CLI with subcommands")


async def _seed(users: int, posts: int, max_comments: int, like_ratio: float) -> dict:
    await init_db()
    async with get_session() as db:
        us = await seeder.make_users(db, users)
        ps = await seeder.make_posts(db, us, posts)
        cs = await seeder.make_comments(db, ps, us, frac_with_threads=0.6, max_roots=max_comments)
        likes = await seeder.make_likes(db, ps, cs, us, like_ratio=like_ratio)
    return {"users": len(us), "posts": len(ps), "comments": len(cs), "likes": likes}


@app.command("seed")
def seed_cmd(
    users: int = typer.Option(100, help="Number of users", min=1),
    posts: int = typer.Option(1000, help="Number of posts", min=0),
    max_comments: int = typer.Option(3, "--max-comments", help="Max top-level comments per post", min=0),
    like_ratio: float = typer.Option(0.2, "--like-ratio", help="Share of users liking a post", min=0.0, max=1.0),
):
    """Populate the database with mock data."""
    # Set deterministic seeds for reproducible data
    seeder.seed_random_generators()

    counts = asyncio.run(_seed(users, posts, max_comments, like_ratio))
    typer.echo(
        f"Seed complete: users={counts['users']}, posts={counts['posts']}, "
        f"comments={counts['comments']}, likes={counts['likes']}"
    )


async def _feed(viewer: Optional[str], limit: int, cursor: Optional[str]):
    cache = build_cache() if ENABLE_REDIS_CACHE else MemoryCache()
    try:
        async with get_session() as db:
            return await PostService(db, cache).list_posts(viewer, cursor, limit)
    finally:
        await cache.close()


@app.command("feed")
def feed_cmd(
    viewer: Optional[str] = typer.Option(None, "--viewer", help="Viewer user id (anonymous if omitted)"),
    limit: int = typer.Option(10, "--limit", "-l", help="Page size", min=1, max=FEED_MAX_LIMIT),
    cursor: Optional[str] = typer.Option(None, "--cursor", help="Cursor from a previous page"),
):
    """Print one page of the feed."""
    try:
        page = asyncio.run(_feed(viewer, limit, cursor))
    except DomainError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1)

    if not page.items:
        typer.echo("No posts found")
        return

    for post in page.items:
        author = f"{post.author.first_name} {post.author.last_name}"
        liked = " *" if post.has_user_liked else ""
        typer.echo(
            f"{post.created_at:%Y-%m-%d %H:%M}  {author:<24} "
            f"likes={post.like_count:<4} comments={post.comment_count:<4}{liked}"
        )
        typer.echo(f"    {post.content}")

    if page.has_more:
        typer.echo(f"\nNext cursor: {page.next_cursor}")


async def _clear_cache(pattern: str) -> Optional[int]:
    cache = build_cache()
    try:
        if not cache.enabled:
            return None
        return await cache.delete_pattern(pattern)
    finally:
        await cache.close()


@app.command("clear-cache")
def clear_cache_cmd(
    pattern: str = typer.Option("posts:feed:*", "--pattern", "-p", help="Glob pattern of keys to delete"),
):
    """Delete cached entries matching a pattern."""
    removed = asyncio.run(_clear_cache(pattern))
    if removed is None:
        typer.echo("Redis cache is disabled; nothing to clear")
        return
    typer.echo(f"Removed {removed} keys matching {pattern!r}")


if __name__ == "__main__":
    app()
