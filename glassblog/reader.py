"""Public reader: feed, post detail, comments, likes, sharing."""
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .comment_tree import build_tree
from .errors import ActionFailed, BackendError, NotFound, ValidationFailure
from .feed import FeedState, avatar, embed_url, format_date, paginate, snippet
from .likes import toggle_like
from .media import parse_data_url
from .schemas import (
    CommentView, FeedOut, LikeResult, PostCard, PostDetail, decode_comment, decode_post,
)

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Everything the reader renders from; replaced whole on each reload."""
    posts: list = field(default_factory=list)
    comments: Dict[int, List[CommentView]] = field(default_factory=dict)
    loaded_at: Optional[datetime] = None

    def find(self, post_id: int):
        return next((p for p in self.posts if p.id == post_id), None)

    def comments_for(self, post_id: int) -> List[CommentView]:
        return self.comments.get(post_id, [])


def load_snapshot(backend) -> Snapshot:
    post_records = backend.select("posts", order_by="created_at", descending=True)
    like_counts = Counter(r["post_id"] for r in backend.select("post_likes"))
    posts = [decode_post(r, like_counts.get(r["id"], 0)) for r in post_records]

    comments = defaultdict(list)
    for r in backend.select("comments", order_by="created_at"):
        comments[r["post_id"]].append(decode_comment(r))
    return Snapshot(posts=posts, comments=dict(comments), loaded_at=datetime.utcnow())


class Reader:
    def __init__(self, backend, settings):
        self.backend = backend
        self.settings = settings
        self.snapshot = Snapshot()

    # ---------- Loading ----------
    def refresh(self) -> Snapshot:
        try:
            snapshot = load_snapshot(self.backend)
        except BackendError as e:
            logger.error("Data loading error: %s", e)
            raise ActionFailed("Failed to load content. Please refresh.") from e
        self.snapshot = snapshot
        logger.debug("Reloaded %d posts", len(snapshot.posts))
        return snapshot

    def ensure_loaded(self) -> Snapshot:
        if self.snapshot.loaded_at is None:
            return self.refresh()
        return self.snapshot

    def get_post(self, post_id: int):
        post = self.ensure_loaded().find(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    # ---------- Views ----------
    def card(self, post, now: Optional[datetime] = None) -> PostCard:
        comments = self.snapshot.comments_for(post.id)
        return PostCard(
            post=post,
            snippet=snippet(post),
            comment_count=sum(1 for c in comments if c.parent_id is None),
            avatar=avatar(post.author),
            date_label=format_date(post.created_at, now=now),
        )

    def feed(self, state: FeedState) -> FeedOut:
        snapshot = self.ensure_loaded()
        page = paginate(snapshot.posts, state, self.settings.page_size)
        return FeedOut(
            posts=[self.card(p) for p in page.posts],
            total=page.total,
            has_more=page.has_more,
            page=state.page,
            filter=state.filter,
            sort=page.sort,
        )

    def detail(self, post_id: int) -> PostDetail:
        post = self.get_post(post_id)
        comments = self.snapshot.comments_for(post_id)
        return PostDetail(
            post=post,
            embed_url=embed_url(post.video_url) if post.kind == "vlog" else None,
            comment_count=len(comments),
            comments=build_tree(comments, self.settings.max_comment_depth),
            share_url=self.share_link(post_id),
        )

    def share_link(self, post_id: int) -> str:
        return f"{self.settings.public_url.rstrip('/')}/?post={post_id}"

    def document(self, post_id: int) -> Tuple[str, str, bytes]:
        """(file name, media type, bytes) of a docs post."""
        post = self.get_post(post_id)
        if post.kind != "docs" or not post.file_data:
            raise NotFound("No document attached to this post")
        try:
            media_type, data = parse_data_url(post.file_data)
        except ValueError as e:
            logger.error("Post %s has an unreadable document: %s", post_id, e)
            raise ActionFailed("Document could not be read") from e
        return post.file_name or f"post-{post_id}", media_type, data

    # ---------- Actions ----------
    def open_post(self, post_id: int) -> PostDetail:
        post = self.get_post(post_id)
        try:
            self.backend.update("posts", post_id, {"views": post.views + 1})
        except BackendError as e:
            # a lost view is not worth bothering the reader about
            logger.warning("Could not count view on post %s: %s", post_id, e)
        else:
            self.refresh()
        return self.detail(post_id)

    def add_comment(self, post_id: int, author: str, text: str, parent_id: Optional[int] = None) -> PostDetail:
        text = (text or "").strip()
        if not text:
            raise ValidationFailure("Comment cannot be empty")
        self.get_post(post_id)
        if parent_id is not None and not any(c.id == parent_id for c in self.snapshot.comments_for(post_id)):
            raise ValidationFailure("The comment you are replying to no longer exists")
        try:
            self.backend.insert("comments", {
                "post_id": post_id,
                "parent_id": parent_id,
                "author": author,
                "text": text,
                "created_at": datetime.utcnow(),
                "likes": 0,
            })
        except BackendError as e:
            logger.error("Error adding comment: %s", e)
            raise ActionFailed("Failed to add comment.") from e
        self.refresh()
        return self.detail(post_id)

    def like(self, post_id: int, user: str) -> LikeResult:
        post = self.get_post(post_id)
        try:
            result = toggle_like(self.backend, post, user)
        except BackendError as e:
            logger.error("Like error: %s", e)
            raise ActionFailed("Like failed.") from e
        self.refresh()
        return result
