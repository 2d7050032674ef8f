import base64
import binascii
import mimetypes
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import quote


@dataclass
class Upload:
    """A file handed in by the admin form."""
    filename: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def media_type(self) -> str:
        if self.content_type:
            return self.content_type
        return mimetypes.guess_type(self.filename)[0] or "application/octet-stream"


def to_data_url(upload: Upload) -> str:
    return f"data:{upload.media_type};base64,{base64.b64encode(upload.data).decode('ascii')}"


def parse_data_url(url: str) -> Tuple[str, bytes]:
    """Split a base64 ``data:`` URL into (media type, bytes)."""
    if not url.startswith("data:") or "," not in url:
        raise ValueError("not a data URL")
    header, payload = url[5:].split(",", 1)
    media_type, _, encoding = header.partition(";")
    if encoding != "base64":
        raise ValueError(f"unsupported data URL encoding: {encoding or 'none'}")
    try:
        return media_type or "application/octet-stream", base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"bad base64 payload: {e}") from e


def content_disposition(file_name: str) -> str:
    """Attachment header with an ASCII fallback name and the UTF-8 name."""
    fallback = file_name.encode("ascii", "replace").decode("ascii")
    fallback = "".join(c for c in fallback if c.isprintable())
    fallback = fallback.replace("\\", "\\\\").replace('"', '\\"')
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"
