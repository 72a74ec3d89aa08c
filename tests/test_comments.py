# tests/test_comments.py
"""Tests for the comment service: threading rules, listing and the tree view."""

import pytest

from app.cache import CacheKeys
from app.errors import DomainError
from app.schemas import CommentCreate
from app.services.comments import CommentService
from app.services.posts import PostService
from factories import make_comment, make_post


def chain(tree):
    """Follow the first reply at every level, returning the comment contents."""
    contents = []
    nodes = tree.comments
    while nodes:
        contents.append(nodes[0].content)
        nodes = nodes[0].replies
    return contents


class TestCreateComment:
    async def test_create_top_level_comment(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)

        comment = await CommentService(db, cache).create_comment(
            post_id, bob, CommentCreate(content="  first!  ")
        )

        assert comment.content == "first!"
        assert comment.parent_comment_id is None
        assert comment.author.id == bob
        assert (comment.like_count, comment.reply_count, comment.has_user_liked) == (0, 0, False)

    async def test_reply_to_comment(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        parent_id = await make_comment(db, post_id, alice)

        reply = await CommentService(db, cache).create_comment(
            post_id, bob, CommentCreate(content="reply", parent_comment_id=parent_id)
        )

        assert reply.parent_comment_id == parent_id

    async def test_parent_must_belong_to_same_post(self, db, cache, alice):
        post_a = await make_post(db, alice, "a")
        post_b = await make_post(db, alice, "b")
        foreign_parent = await make_comment(db, post_b, alice)

        with pytest.raises(DomainError) as exc_info:
            await CommentService(db, cache).create_comment(
                post_a, alice, CommentCreate(content="x", parent_comment_id=foreign_parent)
            )

        assert exc_info.value.code == "VALIDATION_ERROR"

    async def test_missing_parent(self, db, cache, alice):
        post_id = await make_post(db, alice)

        with pytest.raises(DomainError) as exc_info:
            await CommentService(db, cache).create_comment(
                post_id, alice, CommentCreate(content="x", parent_comment_id="nope")
            )

        assert exc_info.value.code == "NOT_FOUND"

    async def test_missing_post(self, db, cache, alice):
        with pytest.raises(DomainError) as exc_info:
            await CommentService(db, cache).create_comment("nope", alice, CommentCreate(content="x"))
        assert exc_info.value.code == "NOT_FOUND"

    async def test_blank_content(self, db, cache, alice):
        post_id = await make_post(db, alice)
        payload = CommentCreate.model_construct(content="  ", parent_comment_id=None)

        with pytest.raises(DomainError) as exc_info:
            await CommentService(db, cache).create_comment(post_id, alice, payload)

        assert exc_info.value.code == "VALIDATION_ERROR"

    async def test_comment_count_refreshes(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        posts = PostService(db, cache)
        assert (await posts.get_post_by_id(post_id)).comment_count == 0

        await CommentService(db, cache).create_comment(post_id, bob, CommentCreate(content="hi"))

        assert await cache.get(CacheKeys.post_comment_count(post_id)) is None
        assert (await posts.get_post_by_id(post_id)).comment_count == 1
        assert (await posts.list_posts(None, None, 10)).items[0].comment_count == 1

    async def test_create_reply_by_comment_id(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        parent_id = await make_comment(db, post_id, alice)

        reply = await CommentService(db, cache).create_reply(parent_id, bob, "thanks")

        assert reply.post_id == post_id
        assert reply.parent_comment_id == parent_id


class TestListComments:
    async def test_top_level_newest_first_with_reply_counts(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        older = await make_comment(db, post_id, alice, "older", minutes=1)
        newer = await make_comment(db, post_id, bob, "newer", minutes=2)
        await make_comment(db, post_id, bob, "reply", parent_comment_id=older, minutes=3)

        comments = await CommentService(db, cache).list_comments(post_id, bob)

        assert [c.id for c in comments] == [newer, older]
        assert [c.reply_count for c in comments] == [0, 1]

    async def test_list_replies(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        parent = await make_comment(db, post_id, alice)
        r1 = await make_comment(db, post_id, bob, "r1", parent_comment_id=parent, minutes=1)
        r2 = await make_comment(db, post_id, bob, "r2", parent_comment_id=parent, minutes=2)
        service = CommentService(db, cache)

        by_filter = await service.list_comments(post_id, None, parent_comment_id=parent)
        by_parent = await service.list_replies(parent)

        assert [c.id for c in by_filter] == [r2, r1]
        assert by_parent == by_filter

    async def test_private_post_comments_hidden(self, db, cache, alice, bob):
        post_id = await make_post(db, alice, is_public=False)
        await make_comment(db, post_id, alice)
        service = CommentService(db, cache)

        assert len(await service.list_comments(post_id, alice)) == 1
        with pytest.raises(DomainError):
            await service.list_comments(post_id, bob)


class TestDeleteComment:
    async def test_delete_own_comment(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        comment_id = await make_comment(db, post_id, bob)
        await cache.set(CacheKeys.post_comment_count(post_id), 1, 60)
        service = CommentService(db, cache)

        await service.delete_comment(comment_id, bob)

        assert await cache.get(CacheKeys.post_comment_count(post_id)) is None
        assert await service.list_comments(post_id) == []

    async def test_delete_other_users_comment_forbidden(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        comment_id = await make_comment(db, post_id, bob)

        with pytest.raises(DomainError) as exc_info:
            await CommentService(db, cache).delete_comment(comment_id, alice)

        assert exc_info.value.code == "FORBIDDEN"

    async def test_delete_missing_comment(self, db, cache, alice):
        with pytest.raises(DomainError) as exc_info:
            await CommentService(db, cache).delete_comment("nope", alice)
        assert exc_info.value.code == "NOT_FOUND"


class TestCommentTree:
    async def build_chain(self, db, post_id, user_id, length):
        parent = None
        for level in range(1, length + 1):
            parent = await make_comment(db, post_id, user_id, f"level {level}",
                                        parent_comment_id=parent, minutes=level)
        return parent

    async def test_empty_tree(self, db, cache, alice):
        post_id = await make_post(db, alice)

        tree = await CommentService(db, cache).get_comment_tree(post_id)

        assert tree.post_id == post_id
        assert tree.comments == []

    async def test_depth_limit_truncates_but_counts_replies(self, db, cache, alice):
        post_id = await make_post(db, alice)
        await self.build_chain(db, post_id, alice, 5)

        tree = await CommentService(db, cache).get_comment_tree(post_id, max_depth=3)

        assert chain(tree) == ["level 1", "level 2", "level 3"]
        deepest = tree.comments[0].replies[0].replies[0]
        assert deepest.replies == []
        assert deepest.reply_count == 1

    async def test_full_depth(self, db, cache, alice):
        post_id = await make_post(db, alice)
        await self.build_chain(db, post_id, alice, 4)

        tree = await CommentService(db, cache).get_comment_tree(post_id, max_depth=10)

        assert chain(tree) == ["level 1", "level 2", "level 3", "level 4"]

    async def test_siblings_newest_first(self, db, cache, alice, bob):
        post_id = await make_post(db, alice)
        root = await make_comment(db, post_id, alice, "root")
        await make_comment(db, post_id, bob, "a", parent_comment_id=root, minutes=1)
        await make_comment(db, post_id, bob, "b", parent_comment_id=root, minutes=2)

        tree = await CommentService(db, cache).get_comment_tree(post_id, alice)

        assert [r.content for r in tree.comments[0].replies] == ["b", "a"]
        assert tree.comments[0].reply_count == 2

    async def test_invalid_depth(self, db, cache, alice):
        post_id = await make_post(db, alice)
        with pytest.raises(DomainError):
            await CommentService(db, cache).get_comment_tree(post_id, max_depth=0)
