import uvicorn

from .config import Settings

if __name__ == "__main__":
    settings = Settings()
    uvicorn.run("glassblog.app:create_app", factory=True, host="0.0.0.0", port=settings.port)
