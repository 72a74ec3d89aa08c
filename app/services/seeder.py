from __future__ import annotations

import random
from datetime import timedelta
from typing import Optional, Sequence

from faker import Faker
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Comment, CommentLike, Post, PostLike, User, utcnow
from app.security import hash_password

SEED = 1337
DEFAULT_PASSWORD = "password123"

fake = Faker()


def seed_random_generators(seed: int = SEED) -> None:
    """Seed ``random`` and Faker so repeated runs produce identical data."""
    random.seed(seed)
    Faker.seed(seed)
    fake.seed_instance(seed)
    fake.unique.clear()


async def make_users(db: AsyncSession, n_users: int) -> list[User]:
    # every seeded account shares one password; hashing per user is slow
    password_hash = hash_password(DEFAULT_PASSWORD)
    users = []
    for _ in range(n_users):
        users.append(User(
            email=fake.unique.email().lower(),
            password_hash=password_hash,
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            created_at=utcnow() - timedelta(days=random.randint(60, 365)),
        ))
    db.add_all(users)
    await db.flush()
    return users


async def make_posts(db: AsyncSession, users: Sequence[User], n_posts: int,
                     private_ratio: float = 0.1) -> list[Post]:
    posts: list[Post] = []
    now = utcnow()
    for _ in range(n_posts):
        u = random.choice(users)
        created = now - timedelta(minutes=random.randint(1, 60 * 24 * 60))
        p = Post(
            user_id=u.id,
            content=fake.sentence(nb_words=random.randint(8, 20)),
            image_url=fake.image_url() if random.random() < 0.2 else None,
            is_public=random.random() >= private_ratio,
            created_at=created,
            updated_at=created,
        )
        db.add(p)
        posts.append(p)
    await db.flush()
    return posts


async def make_comment_tree(db: AsyncSession, post: Post, users: Sequence[User],
                            max_roots: int = 3, max_depth: int = 4,
                            max_children: int = 3) -> list[Comment]:
    """
    Generate a small random tree of comments for one post.
    """
    created: list[Comment] = []

    async def make_node(parent: Comment, depth: int):
        if depth > max_depth:
            return
        # each node has 0..max_children children, decreasing with depth
        n_children = random.randint(0, max(0, max_children - depth + 1))
        for _ in range(n_children):
            when = parent.created_at + timedelta(minutes=random.randint(1, 10 * depth + 5))
            c = Comment(
                post_id=post.id, user_id=random.choice(users).id,
                parent_comment_id=parent.id, content=fake.sentence(),
                created_at=when, updated_at=when,
            )
            db.add(c)
            await db.flush()
            created.append(c)
            await make_node(c, depth + 1)

    for _ in range(random.randint(0, max_roots)):
        when = post.created_at + timedelta(minutes=random.randint(1, 30))
        c = Comment(
            post_id=post.id, user_id=random.choice(users).id,
            parent_comment_id=None, content=fake.sentence(),
            created_at=when, updated_at=when,
        )
        db.add(c)
        await db.flush()
        created.append(c)
        await make_node(c, 2)

    return created


async def make_comments(db: AsyncSession, posts: Sequence[Post], users: Sequence[User],
                        frac_with_threads: float = 0.6, max_roots: int = 3) -> list[Comment]:
    comments: list[Comment] = []
    for p in posts:
        if random.random() < frac_with_threads:
            comments.extend(await make_comment_tree(db, p, users, max_roots=max_roots))
    return comments


async def make_likes(db: AsyncSession, posts: Sequence[Post], comments: Sequence[Comment],
                     users: Sequence[User], like_ratio: float = 0.2,
                     max_likers: Optional[int] = None) -> int:
    """
    Scatter likes over posts and comments.

    Each target is liked by a random sample of distinct users, about
    ``like_ratio`` of the user base, so the unique (target, user) rule holds.
    """
    cap = max_likers or len(users)
    total = 0
    for p in posts:
        k = min(cap, int(len(users) * like_ratio * random.random()))
        for u in random.sample(list(users), k):
            db.add(PostLike(post_id=p.id, user_id=u.id))
        total += k
    for c in comments:
        k = min(cap, int(len(users) * like_ratio * random.random() / 2))
        for u in random.sample(list(users), k):
            db.add(CommentLike(comment_id=c.id, user_id=u.id))
        total += k
    await db.flush()
    return total
