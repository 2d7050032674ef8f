import os
from dataclasses import dataclass, field
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


@dataclass
class Settings:
    db_url: str = field(default_factory=lambda: os.getenv("GLASSBLOG_DB_URL", "sqlite:///db.sqlite3"))
    upload_dir: Path = field(default_factory=lambda: Path(os.getenv("GLASSBLOG_UPLOAD_DIR", "uploads")))
    public_url: str = field(default_factory=lambda: os.getenv("GLASSBLOG_PUBLIC_URL", "http://localhost:8080"))

    # Override through the environment
    admin_username: str = field(default_factory=lambda: os.getenv("ADMIN_USERNAME", "admin"))
    admin_password: str = field(default_factory=lambda: os.getenv("ADMIN_PASSWORD", "1234"))
    session_ttl: int = field(default_factory=lambda: _env_int("GLASSBLOG_SESSION_TTL", 12 * 3600))  # seconds

    page_size: int = field(default_factory=lambda: _env_int("GLASSBLOG_PAGE_SIZE", 5))
    refresh_interval: int = field(default_factory=lambda: _env_int("GLASSBLOG_REFRESH_INTERVAL", 60))  # seconds, 0 = off
    max_comment_depth: int = field(default_factory=lambda: _env_int("GLASSBLOG_MAX_COMMENT_DEPTH", 32))
    log_level: str = field(default_factory=lambda: os.getenv("GLASSBLOG_LOG_LEVEL", "INFO"))
    port: int = field(default_factory=lambda: _env_int("PORT", 8080))

    # Upload limits
    cover_extensions: frozenset = frozenset({".jpg", ".jpeg", ".png", ".webp"})
    max_cover_size: int = 5 * 1024 * 1024      # 5 MB
    video_extensions: frozenset = frozenset({".mp4", ".webm", ".mov", ".m4v", ".ogv"})
    max_video_size: int = 200 * 1024 * 1024    # 200 MB
    max_document_size: int = 10 * 1024 * 1024  # 10 MB

    @property
    def uploads_url(self) -> str:
        return f"{self.public_url.rstrip('/')}/uploads"


DEFAULT_COVERS = {
    "article": "https://images.unsplash.com/photo-1499750310107-5fef28a66643?w=800",
    "vlog": "https://images.unsplash.com/photo-1574717024653-61fd2cf4d44d?w=800",
    "docs": "https://images.unsplash.com/photo-1569336415962-a4bd9f69cdc5?w=800",
}


def default_cover(kind: str) -> str:
    return DEFAULT_COVERS.get(kind, DEFAULT_COVERS["article"])
