"""
blog/service.py -- Owner-scoped post operations.

Every operation takes the request's Principal. The principal's username is
resolved to a user id on each call; a post owned by someone else is reported
as NotFoundError so callers cannot probe other users' post ids.
"""

import logging

from auth.errors import NotFoundError
from auth.models import Principal
from auth.store import UserRepository
from blog.models import Post
from blog.store import PostStore

logger = logging.getLogger("inkwell.blog")


class PostService:
    def __init__(self, posts: PostStore, users: UserRepository) -> None:
        self.posts = posts
        self.users = users

    def list_posts(self, principal: Principal) -> list[Post]:
        return self.posts.find_all_by_user(self._owner_id(principal))

    def create_post(self, principal: Principal, title: str, body: str) -> Post:
        post = self.posts.save(Post(title=title, body=body, user_id=self._owner_id(principal)))
        logger.info("Post created: post_id=%s user_id=%s", post.id, post.user_id)
        return post

    def get_post(self, principal: Principal, post_id: int) -> Post:
        post = self.posts.find_by_id(post_id)
        if post is None or post.user_id != self._owner_id(principal):
            raise NotFoundError("Post not found.")
        return post

    def delete_post(self, principal: Principal, post_id: int) -> None:
        post = self.get_post(principal, post_id)
        self.posts.delete(post.id)
        logger.info("Post deleted: post_id=%s user_id=%s", post.id, post.user_id)

    def _owner_id(self, principal: Principal) -> int:
        # Tokens outlive accounts; a deleted user's token resolves to nobody.
        user = self.users.find_by_username(principal.username)
        if user is None:
            raise NotFoundError("User not found.")
        return user.id
