"""Per-file transfer policy: content type, compression and cache-control.

Pure functions only; the upload scheduler calls :func:`resolve_file_policy`
once per discovered file.
"""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Mapping, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: dict[str, str] = {
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".svg": "image/svg+xml",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".ico": "image/x-icon",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".eot": "application/vnd.ms-fontobject",
}

COMPRESSIBLE_EXTENSIONS = frozenset(
    {".html", ".htm", ".css", ".js", ".mjs", ".json", ".xml", ".txt", ".md", ".svg"}
)
COMPRESSIBLE_TYPES = frozenset(
    {"application/javascript", "application/json", "application/xml", "image/svg+xml"}
)

ASSETS_SEGMENT = "assets"

IMMUTABLE_DIRECTIVE = "public, max-age=31536000, immutable"
HTML_DIRECTIVE = "public, max-age=3600"
DEFAULT_DIRECTIVE = "public, max-age=86400"

# Reserved keys of the cacheControl table; everything else is a MIME override
IMMUTABLE_KEY = "immutable"
HTML_KEY = "text/html"
DEFAULT_KEY = "default"


@dataclass(frozen=True)
class CachePolicy:
    """Literal directives for the three cache tiers plus default-tier overrides.

    Tier precedence is fixed: immutable hashed asset, then HTML, then default.
    ``overrides`` only refines the default tier, keyed by exact MIME type or
    by a ``type/*`` prefix.
    """

    immutable: str = IMMUTABLE_DIRECTIVE
    html: str = HTML_DIRECTIVE
    default: str = DEFAULT_DIRECTIVE
    overrides: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_table(cls, table: Optional[Mapping[str, str]]) -> "CachePolicy":
        table = dict(table or {})
        immutable = table.pop(IMMUTABLE_KEY, IMMUTABLE_DIRECTIVE)
        html = table.pop(HTML_KEY, HTML_DIRECTIVE)
        default = table.pop(DEFAULT_KEY, DEFAULT_DIRECTIVE)
        return cls(immutable=immutable, html=html, default=default, overrides=table)

    def for_default_tier(self, content_type: str) -> str:
        if content_type in self.overrides:
            return self.overrides[content_type]
        major = content_type.split("/", 1)[0]
        return self.overrides.get(f"{major}/*", self.default)


DEFAULT_CACHE_POLICY = CachePolicy()


@dataclass(frozen=True)
class FilePolicy:
    content_type: str
    compress: bool
    cache_control: str


def _extension(path: str) -> str:
    return posixpath.splitext(path.replace("\\", "/"))[1].lower()


def content_type_for(path: str) -> str:
    return CONTENT_TYPES.get(_extension(path), DEFAULT_CONTENT_TYPE)


def should_compress(path: str, content_type: Optional[str] = None) -> bool:
    if _extension(path) in COMPRESSIBLE_EXTENSIONS:
        return True
    content_type = content_type or content_type_for(path)
    return content_type.startswith("text/") or content_type in COMPRESSIBLE_TYPES


def is_immutable_asset(key: str) -> bool:
    """Content-hashed build artifact under an assets directory."""
    key = key.replace("\\", "/").strip("/")
    if ASSETS_SEGMENT not in key.split("/")[:-1]:
        return False
    # hyphen or dot anywhere in the key, directories included
    return "-" in key or "." in key


def is_html_page(key: str) -> bool:
    key = key.lower()
    return key == "index.html" or key.endswith(".html")


def cache_control_for(
    key: str,
    content_type: Optional[str] = None,
    policy: CachePolicy = DEFAULT_CACHE_POLICY,
) -> str:
    if is_immutable_asset(key):
        return policy.immutable
    if is_html_page(key):
        return policy.html
    return policy.for_default_tier(content_type or content_type_for(key))


def resolve_file_policy(
    key: str,
    policy: CachePolicy = DEFAULT_CACHE_POLICY,
) -> FilePolicy:
    """Resolve (content type, compress?, cache-control) for a remote key.

    The key keeps the local file's extension, so it is enough for all three.
    """
    content_type = content_type_for(key)
    return FilePolicy(
        content_type=content_type,
        compress=should_compress(key, content_type),
        cache_control=cache_control_for(key, content_type, policy),
    )
