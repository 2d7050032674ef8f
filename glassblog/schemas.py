from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from .config import default_cover

KINDS = ("article", "vlog", "docs")
FILTERS = ("all", "article", "vlog", "docs", "popular")
SORTS = ("newest", "oldest", "popular")

# content fields populated for each kind, everything else is dropped on decode
CONTENT_FIELDS = {
    "article": ("content",),
    "vlog": ("video_url",),
    "docs": ("file_name", "file_data"),
}

EPOCH = datetime(1970, 1, 1)


# ---------- Posts ----------
class PostBase(BaseModel):
    id: int
    title: str = "Untitled"
    author: str = "Anonymous"
    cover_image: str
    tags: List[str] = []
    created_at: datetime
    views: int = 0
    likes: int = 0


class ArticlePost(PostBase):
    kind: Literal["article"] = "article"
    content: str = ""


class VlogPost(PostBase):
    kind: Literal["vlog"] = "vlog"
    video_url: Optional[str] = None


class DocsPost(PostBase):
    kind: Literal["docs"] = "docs"
    file_name: Optional[str] = None
    file_data: Optional[str] = Field(default=None, exclude=True)  # served by /download


PostView = Annotated[Union[ArticlePost, VlogPost, DocsPost], Field(discriminator="kind")]
_post_adapter = TypeAdapter(PostView)


def decode_post(record: dict, likes: int = 0) -> PostView:
    """Turn a loosely shaped ``posts`` record into the variant for its kind."""
    kind = record.get("kind") if record.get("kind") in KINDS else "article"
    data = {
        "id": record["id"],
        "kind": kind,
        "title": record.get("title") or "Untitled",
        "author": record.get("author") or "Anonymous",
        "cover_image": record.get("cover_image") or default_cover(kind),
        "tags": [str(t) for t in (record.get("tags") or [])],
        "created_at": record.get("created_at") or EPOCH,
        "views": record.get("views") or 0,
        "likes": likes,
    }
    for name in CONTENT_FIELDS[kind]:
        data[name] = record.get(name)
    if kind == "article":
        data["content"] = data["content"] or ""
    return _post_adapter.validate_python(data)


# ---------- Comments ----------
class CommentView(BaseModel):
    id: int
    post_id: int
    parent_id: Optional[int] = None
    author: str = "Anonymous"
    text: str = ""
    created_at: datetime
    likes: int = 0


def decode_comment(record: dict) -> CommentView:
    return CommentView(
        id=record["id"], post_id=record["post_id"], parent_id=record.get("parent_id"),
        author=record.get("author") or "Anonymous", text=record.get("text") or "",
        created_at=record.get("created_at") or EPOCH, likes=record.get("likes") or 0,
    )


class CommentNode(BaseModel):
    comment: CommentView
    replies: List["CommentNode"] = []


CommentNode.model_rebuild()


# ---------- Inputs ----------
class LoginIn(BaseModel):
    username: str
    password: str


class DisplayNameIn(BaseModel):
    name: str


class CommentIn(BaseModel):
    text: str = ""
    parent_id: Optional[int] = None


class PostEditIn(BaseModel):
    title: str = ""
    content: Optional[str] = None


class PublishIn(BaseModel):
    kind: Literal["article", "vlog", "docs"] = "article"
    title: str = ""
    author: str = ""
    tags: List[str] = []
    cover_image: str = ""
    content: str = ""
    video_url: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v):
        if v is None: return []
        if isinstance(v, str):
            v = v.split(",")
        return [t.strip() for t in v if t and t.strip()]

    @field_validator("title", "author", "cover_image", "video_url", mode="before")
    @classmethod
    def strip_text(cls, v):
        return (v or "").strip()


# ---------- Outputs ----------
class Notice(BaseModel):
    level: Literal["success", "info", "warning", "error"] = "info"
    message: str


class PostCard(BaseModel):
    post: PostView
    snippet: str
    comment_count: int
    avatar: str
    date_label: str


class FeedOut(BaseModel):
    ok: bool = True
    posts: List[PostCard]
    total: int
    has_more: bool
    page: int
    filter: str
    sort: str


class PostDetail(BaseModel):
    ok: bool = True
    post: PostView
    embed_url: Optional[str] = None
    comment_count: int
    comments: List[CommentNode]
    share_url: str


class LikeResult(BaseModel):
    post_id: int
    liked: bool
    likes: int


class AdminRow(BaseModel):
    id: int
    title: str
    author: str
    cover_image: str
    views: int
    likes: int
    created_at: datetime
    date_label: str


class AdminStats(BaseModel):
    total_posts: int
    total_views: int
    total_comments: int
