import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional
from urllib.parse import quote, unquote

from fastapi import FastAPI, Depends, Request, Query, Form, UploadFile, File, Cookie, Header
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from .admin import Admin
from .auth import SessionStore, verify_token
from .backend import Backend, Storage
from .config import Settings
from .errors import GlassblogError
from .feed import FeedState
from .media import Upload, content_disposition
from .reader import Reader
from .schemas import CommentIn, DisplayNameIn, LoginIn, Notice, PostEditIn, PublishIn

logger = logging.getLogger(__name__)

NAME_COOKIE = "glassblog_username"
DEFAULT_NAME = "Anonymous"


def notice(message: str, level: str = "success") -> dict:
    return Notice(level=level, message=message).model_dump()


def display_name(value: Optional[str]) -> str:
    # the cookie holds the name percent-encoded
    return unquote(value or "").strip() or DEFAULT_NAME


async def to_upload(file: Optional[UploadFile]) -> Optional[Upload]:
    # empty file inputs still arrive, just without a name
    if file is None or not file.filename:
        return None
    return Upload(filename=file.filename, data=await file.read(), content_type=file.content_type)


async def periodic_refresh(reader: Reader, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(reader.refresh)
        except GlassblogError as e:
            logger.warning("Periodic refresh failed, keeping previous data: %s", e.message)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    backend = Backend.from_url(settings.db_url)
    storage = Storage(settings.upload_dir, settings.uploads_url)
    reader = Reader(backend, settings)
    admin = Admin(backend, storage, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if settings.refresh_interval > 0:
            task = asyncio.create_task(periodic_refresh(reader, settings.refresh_interval))
        yield
        if task is not None:
            task.cancel()

    app = FastAPI(title="GlassBlog API", lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend
    app.state.reader = reader
    app.state.admin = admin
    app.state.sessions = SessionStore(
        settings.admin_username, settings.admin_password, ttl=settings.session_ttl)

    # Uploaded covers and videos under /uploads/<bucket>/...
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir)), name="uploads")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"]
    )

    @app.exception_handler(GlassblogError)
    async def glassblog_error(request: Request, exc: GlassblogError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"ok": False, "notice": notice(exc.message, exc.level)},
        )

    # ---------- Reader ----------
    @app.get("/posts")
    def list_posts(
        filter: Literal["all", "article", "vlog", "docs", "popular"] = "all",
        search: str = "",
        sort: Literal["newest", "oldest", "popular"] = "newest",
        page: int = Query(1, ge=1),
    ):
        state = FeedState()
        state.set_sort(sort)
        state.set_filter(filter)
        state.set_search(search)
        state.page = page
        return reader.feed(state)

    @app.get("/posts/{post_id}")
    def open_post(post_id: int):
        return reader.open_post(post_id)

    @app.post("/posts/{post_id}/comments")
    def add_comment(post_id: int, data: CommentIn,
                    glassblog_username: Optional[str] = Cookie(None)):
        detail = reader.add_comment(post_id, display_name(glassblog_username), data.text, data.parent_id)
        return {"ok": True, "notice": notice("Comment added!"), "post": detail}

    @app.post("/posts/{post_id}/like")
    def like_post(post_id: int, glassblog_username: Optional[str] = Cookie(None)):
        result = reader.like(post_id, display_name(glassblog_username))
        msg = notice("Liked!") if result.liked else notice("Unliked", "info")
        return {"ok": True, "notice": msg, **result.model_dump()}

    @app.get("/posts/{post_id}/share")
    def share_post(post_id: int):
        reader.get_post(post_id)
        return {"url": reader.share_link(post_id)}

    @app.get("/posts/{post_id}/download")
    def download_document(post_id: int):
        file_name, media_type, data = reader.document(post_id)
        return Response(
            content=data, media_type=media_type,
            headers={"Content-Disposition": content_disposition(file_name)},
        )

    @app.get("/me")
    def whoami(glassblog_username: Optional[str] = Cookie(None)):
        return {"name": display_name(glassblog_username)}

    @app.post("/me")
    def set_name(data: DisplayNameIn, response: Response):
        name = display_name(data.name)
        response.set_cookie(NAME_COOKIE, quote(name, safe=""), max_age=10 * 365 * 24 * 3600, samesite="lax")
        return {"name": name}

    # ---------- Auth ----------
    @app.post("/auth/login")
    def login(data: LoginIn):
        token = app.state.sessions.sign_in(data.username, data.password)
        return {"token": token, "notice": notice("Welcome back, Admin!")}

    @app.post("/auth/logout")
    def logout(user=Depends(verify_token)):
        app.state.sessions.sign_out(user["token"])
        return {"ok": True, "notice": notice("Logged out successfully")}

    @app.get("/auth/session")
    def session(Authorization: Optional[str] = Header(None)):
        token = Authorization.split(" ", 1)[-1].strip() if Authorization else None
        current = app.state.sessions.get_session(token)
        return {"signed_in": current is not None, "user": current["user"] if current else None}

    # ---------- Admin ----------
    @app.get("/admin/posts")
    def admin_posts(_user=Depends(verify_token)):
        admin.refresh()
        rows = admin.table()
        return {"posts": rows, "count": len(rows), "stats": admin.stats}

    @app.get("/admin/stats")
    def admin_stats(_user=Depends(verify_token)):
        admin.refresh()
        return admin.stats

    @app.post("/admin/posts")
    async def publish_post(
        kind: Literal["article", "vlog", "docs"] = Form("article"),
        title: str = Form(""),
        author: str = Form(""),
        tags: str = Form(""),
        cover_image: str = Form(""),
        content: str = Form(""),
        video_url: str = Form(""),
        cover_file: Optional[UploadFile] = File(None),
        video_file: Optional[UploadFile] = File(None),
        document: Optional[UploadFile] = File(None),
        _user=Depends(verify_token),
    ):
        form = PublishIn(kind=kind, title=title, author=author, tags=tags,
                         cover_image=cover_image, content=content, video_url=video_url)
        saved = await run_in_threadpool(
            admin.publish, form,
            await to_upload(cover_file), await to_upload(video_file), await to_upload(document),
        )
        return {"ok": True, "notice": notice("Post published successfully!"), "id": saved["id"]}

    @app.put("/admin/posts/{post_id}")
    def update_post(post_id: int, data: PostEditIn, _user=Depends(verify_token)):
        admin.edit(post_id, data)
        return {"ok": True, "notice": notice("Post updated successfully!")}

    @app.delete("/admin/posts/{post_id}")
    def delete_post(post_id: int, _user=Depends(verify_token)):
        admin.delete(post_id)
        return {"ok": True, "notice": notice("Post deleted successfully")}

    return app
