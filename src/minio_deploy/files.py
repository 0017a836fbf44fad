import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

# Exact-match extension lookup; anything else is uploaded as a binary stream.
CONTENT_TYPES = {
    "html": "text/html",
    "htm": "text/html",
    "js": "application/javascript",
    "mjs": "application/javascript",
    "css": "text/css",
    "json": "application/json",
    "svg": "image/svg+xml",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "ico": "image/x-icon",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class LocalFile:
    absolute_path: Path
    relative_path: str  # always "/"-separated
    size_bytes: int


def content_type_for(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return DEFAULT_CONTENT_TYPE
    ext = name.rsplit(".", 1)[-1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def _raise(err: OSError) -> None:
    raise err


def walk_directory(root: Path) -> List[LocalFile]:
    """Collect every regular file under ``root``, sorted by relative path.

    Symlinked files are included (their target's content is read); symlinked
    directories are not descended into, so link cycles cannot occur. Dangling
    links are skipped.
    """
    root = Path(root)
    if not root.exists():
        raise FileNotFoundError(f"No such directory: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    found: List[LocalFile] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise, followlinks=False):
        dirnames.sort()
        for name in filenames:
            path = Path(dirpath) / name
            if not path.is_file():
                continue
            rel = path.relative_to(root).as_posix()
            found.append(LocalFile(absolute_path=path.resolve(), relative_path=rel, size_bytes=path.stat().st_size))

    found.sort(key=lambda f: f.relative_path)
    return found
