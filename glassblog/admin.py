"""Admin console: publish, edit, delete, table and stats."""
import logging
import pathlib
from collections import Counter
from datetime import datetime
from typing import List, Optional

from .config import default_cover
from .errors import ActionFailed, BackendError, NotFound, ValidationFailure
from .feed import format_date
from .media import Upload, to_data_url
from .schemas import AdminRow, AdminStats, PostEditIn, PublishIn, decode_post

logger = logging.getLogger(__name__)


class Admin:
    def __init__(self, backend, storage, settings):
        self.backend = backend
        self.storage = storage
        self.settings = settings
        self.posts: List = []
        self.stats = AdminStats(total_posts=0, total_views=0, total_comments=0)

    # ---------- Data ----------
    def refresh(self) -> None:
        try:
            records = self.backend.select("posts", order_by="created_at", descending=True)
            like_counts = Counter(r["post_id"] for r in self.backend.select("post_likes"))
            total_comments = self.backend.count("comments")
        except BackendError as e:
            logger.error("Initialization error: %s", e)
            raise ActionFailed("Error loading data") from e
        self.posts = [decode_post(r, like_counts.get(r["id"], 0)) for r in records]
        self.stats = AdminStats(
            total_posts=len(self.posts),
            total_views=sum(p.views for p in self.posts),
            total_comments=total_comments,
        )

    def table(self, now: Optional[datetime] = None) -> List[AdminRow]:
        # the table only lists articles
        return [
            AdminRow(
                id=p.id, title=p.title, author=p.author, cover_image=p.cover_image,
                views=p.views, likes=p.likes, created_at=p.created_at,
                date_label=format_date(p.created_at, now=now),
            )
            for p in self.posts if p.kind == "article"
        ]

    # ---------- Publish ----------
    def validate(self, form: PublishIn, cover: Optional[Upload] = None,
                 video: Optional[Upload] = None, document: Optional[Upload] = None) -> None:
        if not form.title or not form.author:
            raise ValidationFailure("Title and Author are required!")
        if cover is not None:
            self._check_file(cover, "Cover image", self.settings.cover_extensions, self.settings.max_cover_size)
        if form.kind == "article" and not form.content.strip():
            raise ValidationFailure("Content is required for articles!")
        if form.kind == "vlog" and not (form.video_url or video is not None):
            raise ValidationFailure("Either a video URL or a video file is required for vlogs!")
        if form.kind == "vlog" and video is not None:
            self._check_file(video, "Video", self.settings.video_extensions, self.settings.max_video_size)
        if form.kind == "docs":
            if document is None:
                raise ValidationFailure("Please select a file to upload!")
            if document.size > self.settings.max_document_size:
                raise ValidationFailure("File size exceeds 10MB limit")

    @staticmethod
    def _check_file(upload: Upload, what: str, extensions, max_size: int) -> None:
        ext = pathlib.Path(upload.filename).suffix.lower()
        if ext not in extensions:
            raise ValidationFailure(f"{what} must be one of: {', '.join(sorted(extensions))}")
        if upload.size > max_size:
            raise ValidationFailure(f"{what} too large (max {max_size // (1024 * 1024)} MB)")

    def _upload(self, upload: Upload, bucket: str, what: str) -> str:
        try:
            return self.storage.upload(bucket, upload.filename, upload.data)
        except BackendError as e:
            logger.error("%s upload failed: %s", what, e)
            raise ActionFailed(f"{what} upload failed: {e.message}") from e

    def publish(self, form: PublishIn, cover: Optional[Upload] = None,
                video: Optional[Upload] = None, document: Optional[Upload] = None) -> dict:
        self.validate(form, cover, video, document)

        cover_image = form.cover_image
        if cover is not None:
            cover_image = self._upload(cover, "covers", "Cover image")

        record = {
            "title": form.title,
            "author": form.author,
            "kind": form.kind,
            "cover_image": cover_image or default_cover(form.kind),
            "tags": form.tags,
            "content": None,
            "video_url": None,
            "file_name": None,
            "file_data": None,
            "views": 0,
            "likes": 0,
            "created_at": datetime.utcnow(),
        }
        if form.kind == "article":
            record["content"] = form.content
        elif form.kind == "vlog":
            record["video_url"] = self._upload(video, "videos", "Video") if video is not None else form.video_url
        else:
            record["file_name"] = pathlib.Path(document.filename).name
            record["file_data"] = to_data_url(document)

        try:
            saved = self.backend.insert("posts", record)
        except BackendError as e:
            logger.error("Error saving post: %s", e)
            raise ActionFailed(f"Failed to publish: {e.message}") from e
        logger.info("Published %s %s: %s", form.kind, saved["id"], form.title)
        self.refresh()
        return saved

    # ---------- Edit / delete ----------
    def _find(self, post_id: int):
        post = next((p for p in self.posts if p.id == post_id), None)
        if post is None:
            # list may predate the post, look again on fresh data
            self.refresh()
            post = next((p for p in self.posts if p.id == post_id), None)
        if post is None:
            raise NotFound("Post not found")
        return post

    def edit(self, post_id: int, data: PostEditIn) -> dict:
        title = data.title.strip()
        if not title:
            raise ValidationFailure("Title is required!")
        post = self._find(post_id)
        changes = {"title": title, "updated_at": datetime.utcnow()}
        if post.kind == "article" and data.content is not None:
            changes["content"] = data.content
        try:
            saved = self.backend.update("posts", post_id, changes)
        except BackendError as e:
            logger.error("Error updating post: %s", e)
            raise ActionFailed(f"Failed to update: {e.message}") from e
        self.refresh()
        return saved

    def delete(self, post_id: int) -> None:
        self._find(post_id)
        try:
            self.backend.delete("posts", post_id)
        except BackendError as e:
            logger.error("Error deleting post: %s", e)
            raise ActionFailed(f"Failed to delete: {e.message}") from e
        logger.info("Deleted post %s", post_id)
        self.refresh()
