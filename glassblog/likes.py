import logging

from .schemas import LikeResult

logger = logging.getLogger(__name__)


def toggle_like(backend, post, user: str) -> LikeResult:
    """Flip ``user``'s like on ``post``.

    Check-then-act against the backend with no transaction: two racing
    toggles from the same user can leave a duplicate record or lose one.
    Counts are re-derived from the records on the next reload, so the
    drift is cosmetic.
    """
    where = {"post_id": post.id, "user_identifier": user}
    existing = backend.select("post_likes", where=where)
    if existing:
        backend.delete("post_likes", existing[0]["id"])
        logger.info("%s unliked post %s", user, post.id)
        return LikeResult(post_id=post.id, liked=False, likes=max(post.likes - 1, 0))
    backend.insert("post_likes", where)
    logger.info("%s liked post %s", user, post.id)
    return LikeResult(post_id=post.id, liked=True, likes=post.likes + 1)
