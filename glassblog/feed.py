"""Filter -> search -> sort -> paginate over the in-memory post list."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence
from urllib.parse import urlparse, parse_qs

from .schemas import FILTERS, SORTS

SNIPPET_LENGTH = 120


@dataclass
class FeedState:
    """Feed controls of one viewer."""
    filter: str = "all"
    search: str = ""
    sort: str = "newest"
    page: int = 1

    def set_filter(self, value: str) -> None:
        if value not in FILTERS:
            raise ValueError(f"unknown filter: {value}")
        self.filter = value
        self.page = 1
        if value == "popular":
            self.sort = "popular"  # only mirrors the ordering popular forces

    def set_search(self, term: str) -> None:
        self.search = term or ""
        self.page = 1

    def set_sort(self, value: str) -> None:
        if value not in SORTS:
            raise ValueError(f"unknown sort: {value}")
        self.sort = value

    def load_more(self) -> None:
        self.page += 1

    @property
    def effective_sort(self) -> str:
        return "popular" if self.filter == "popular" else self.sort


@dataclass
class FeedPage:
    posts: list
    total: int
    has_more: bool
    sort: str


def matches_kind(post, filter: str) -> bool:
    # popular looks at every kind
    return filter in ("all", "popular") or post.kind == filter


def matches_search(post, term: str) -> bool:
    if not term:
        return True
    term = term.lower()
    return (term in post.title.lower()
            or term in post.author.lower()
            or any(term in tag.lower() for tag in post.tags))


def sort_posts(posts: Sequence, sort: str) -> list:
    # sorted() is stable, ties keep fetch order
    if sort == "newest":
        return sorted(posts, key=lambda p: p.created_at, reverse=True)
    if sort == "oldest":
        return sorted(posts, key=lambda p: p.created_at)
    if sort == "popular":
        return sorted(posts, key=lambda p: -(p.likes or 0))
    return list(posts)


def select(posts: Sequence, filter: str = "all", search: str = "", sort: str = "newest") -> list:
    """Every matching post, ordered; the unpaginated feed."""
    matched = [p for p in posts if matches_kind(p, filter) and matches_search(p, search)]
    return sort_posts(matched, "popular" if filter == "popular" else sort)


def view(posts: Sequence, filter: str = "all", search: str = "", sort: str = "newest",
         page_size: int = 5, page_count: int = 1) -> list:
    return select(posts, filter, search, sort)[:page_size * max(page_count, 1)]


def paginate(posts: Sequence, state: FeedState, page_size: int) -> FeedPage:
    matched = select(posts, state.filter, state.search, state.sort)
    window = page_size * max(state.page, 1)
    return FeedPage(
        posts=matched[:window],
        total=len(matched),
        has_more=len(matched) > window,
        sort=state.effective_sort,
    )


# ---------- Card helpers ----------
def snippet(post) -> str:
    content = getattr(post, "content", None)
    if content:
        return content[:SNIPPET_LENGTH] + "…"
    return "▶️ Video content" if post.kind == "vlog" else "📄 Document"


def avatar(name: str) -> str:
    return (name or "?")[:1].upper()


def format_date(value: Optional[datetime], style: str = "short", now: Optional[datetime] = None) -> str:
    if value is None:
        return ""
    now = now or datetime.utcnow()
    if style == "short":
        days = math.ceil((now - value).total_seconds() / 86400)
        if days == 1:
            return "Yesterday"
        if days < 7:
            return f"{days}d ago"
        if days < 30:
            return f"{days // 7}w ago"
        return f"{value:%b} {value.day}"
    return f"{value:%B} {value.day}, {value.year}"


def embed_url(video_url: Optional[str]) -> Optional[str]:
    """Player URL for a vlog: YouTube and Vimeo links become embeds."""
    if not video_url:
        return None
    if "youtu" in video_url:
        parsed = urlparse(video_url)
        if "youtu.be" in video_url:
            video_id = parsed.path.rstrip("/").split("/")[-1]
        else:
            video_id = (parse_qs(parsed.query).get("v") or [""])[0]
        return f"https://www.youtube.com/embed/{video_id}" if video_id else video_url
    if "vimeo" in video_url:
        return f"https://player.vimeo.com/video/{video_url.rstrip('/').split('/')[-1]}"
    return video_url
