"""GlassBlog: blog/vlog/docs feed with a public reader and an admin console."""
from .app import create_app

__version__ = "0.1.0"
__all__ = ["create_app"]
