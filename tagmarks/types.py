"""
Data types for the bookmark store.
"""

import re
from dataclasses import dataclass, field, replace as _replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import urlparse, urlunparse


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime, truncated to the second.

    All timestamps in tagmarks are UTC. This is the single source of truth
    for "now" unless a store is given its own clock.
    """
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(dt: datetime) -> str:
    """Format a timestamp in canonical form: YYYY-MM-DDTHH:MM:SSZ."""
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Accepts the canonical format as well as legacy strings with
    microseconds, '+00:00' suffixes or no zone at all (taken as UTC).
    Integers are read as milliseconds since the epoch. Out-of-range
    values raise ValueError.
    """
    if isinstance(ts, (int, float)):
        try:
            return datetime.fromtimestamp(ts / 1000, timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {ts!r}") from e
    dt = datetime.fromisoformat(ts.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {ts!r}") from e


# ---------------------------------------------------------------------------
# Locator: normalized URL, RFC 3986 §6.2.2 syntax-based normalization
# ---------------------------------------------------------------------------

_UNRESERVED = frozenset(
    'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~'
)
_DEFAULT_PORTS = {'http': 80, 'https': 443}
# Schemes written without "//" that should not get a default http://
_OPAQUE_SCHEMES = ("mailto:", "javascript:", "data:", "about:", "tel:")


def _decode_unreserved(s: str) -> str:
    """Decode percent-encoded unreserved characters (RFC 3986 §2.3).

    Reserved percent-encodings are kept, with uppercase hex digits.
    A "%" needs two characters after it to be an escape; a truncated
    one at the end of the string is kept as written.
    """
    if '%' not in s:
        return s
    result: list[str] = []
    i = 0
    while i < len(s):
        if s[i] == '%' and i + 3 <= len(s):
            hex_str = s[i + 1:i + 3]
            try:
                char = chr(int(hex_str, 16))
                if char in _UNRESERVED:
                    result.append(char)
                else:
                    result.append(f'%{hex_str.upper()}')
                i += 3
                continue
            except ValueError:
                pass
        result.append(s[i])
        i += 1
    return ''.join(result)


def _resolve_dot_segments(path: str) -> str:
    """Remove dot segments from a URI path (RFC 3986 §5.2.4)."""
    output: list[str] = []
    for seg in path.split('/'):
        if seg == '.':
            continue
        elif seg == '..':
            if output and output[-1] != '':
                output.pop()
        else:
            output.append(seg)
    resolved = '/'.join(output)
    if path.startswith('/') and not resolved.startswith('/'):
        resolved = '/' + resolved
    return resolved


def _normalize_http_url(url: str) -> str:
    parsed = urlparse(url)

    scheme = parsed.scheme.lower()
    host = (parsed.hostname or '').lower()

    try:
        port = parsed.port
    except ValueError:
        # Unparseable port: leave the netloc alone
        return url
    if port and port == _DEFAULT_PORTS.get(scheme):
        port = None
    netloc = f'{host}:{port}' if port else host
    if parsed.username:
        userinfo = parsed.username
        if parsed.password:
            userinfo += f':{parsed.password}'
        netloc = f'{userinfo}@{netloc}'

    path = _resolve_dot_segments(_decode_unreserved(parsed.path))
    if not path:
        path = '/'

    query = _decode_unreserved(parsed.query)
    fragment = _decode_unreserved(parsed.fragment)

    return urlunparse((scheme, netloc, path, parsed.params, query, fragment))


def normalize_url(url: str) -> str:
    """Normalize a bookmark URL.

    Strips whitespace and defaults the scheme to http:// when none is given.
    HTTP/HTTPS URLs get RFC 3986 safe normalizations so equivalent URLs
    map to the same bookmark. Other schemes are kept as written.

    Raises ValueError for empty URLs.
    """
    url = (url or "").strip()
    if not url:
        raise ValueError("URL must not be empty")
    if "://" not in url and not url.lower().startswith(_OPAQUE_SCHEMES):
        url = "http://" + url
    if url[:8].lower().startswith(('http://', 'https://')):
        url = _normalize_http_url(url)
    return url


@dataclass(frozen=True, order=True)
class Locator:
    """The normalized URL identifying a bookmark.

    Two bookmarks with equal locators are the same bookmark.
    """
    url: str

    @classmethod
    def of(cls, value: "Locator | str") -> "Locator":
        if isinstance(value, Locator):
            return value
        return cls(normalize_url(value))

    @property
    def host(self) -> Optional[str]:
        """Lower-cased hostname, or None if the URL has no parseable host."""
        try:
            host = urlparse(self.url).hostname
        except ValueError:
            return None
        return host.lower() if host else None

    def __str__(self) -> str:
        return self.url


# ---------------------------------------------------------------------------
# Tags and colors
# ---------------------------------------------------------------------------

_TAG_SPLIT_RE = re.compile(r'[,\s]+')
_COLOR_RE = re.compile(r'^#?([0-9a-fA-F]{6})$')


def normalize_tag(name: str) -> str:
    """Strip and casefold a tag name. Empty tag names are rejected."""
    tag = (name or "").strip().casefold()
    if not tag:
        raise ValueError("Tag name must not be empty")
    return tag


def parse_tags(text: str) -> frozenset[str]:
    """Split a comma/whitespace separated string into a set of tag names."""
    return frozenset(normalize_tag(t) for t in _TAG_SPLIT_RE.split(text or "") if t.strip())


def normalize_color(color: Optional[str]) -> Optional[str]:
    """Normalize a '#rrggbb' color annotation; empty means no color."""
    if color is None or not color.strip():
        return None
    m = _COLOR_RE.match(color.strip())
    if not m:
        raise ValueError(f"Invalid color (expected #rrggbb): {color!r}")
    return f"#{m.group(1).lower()}"


# ---------------------------------------------------------------------------
# Bookmark
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bookmark:
    """
    A bookmark record.

    This is an immutable snapshot. Use replace() to derive a modified copy
    and BookmarkStore.add() to persist it.

    Attributes:
        locator: Normalized URL, the bookmark's identity
        title: Display title
        notes: Freeform notes
        image_url: Optional thumbnail/image URL
        tags: Case-folded tag names
        color: Optional '#rrggbb' annotation
        created: When the bookmark was first added (UTC)
        modified: When the bookmark was last changed (UTC)
        last_visited: When the bookmark was last opened (UTC)
        visit_count: Number of recorded visits
    """
    locator: Locator
    title: str = ""
    notes: str = ""
    image_url: Optional[str] = None
    tags: frozenset[str] = field(default_factory=frozenset)
    color: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    last_visited: Optional[datetime] = None
    visit_count: Optional[int] = None

    def __post_init__(self):
        if self.visit_count is not None and self.visit_count < 0:
            raise ValueError(f"visit_count must be non-negative: {self.visit_count}")

    @classmethod
    def of(cls, url: "Locator | str", **fields: Any) -> "Bookmark":
        """Build a bookmark, normalizing the URL, tags and color."""
        tags = fields.pop("tags", None) or ()
        if isinstance(tags, str):
            tags = parse_tags(tags)
        return cls(
            locator=Locator.of(url),
            tags=frozenset(normalize_tag(t) for t in tags),
            color=normalize_color(fields.pop("color", None)),
            **fields,
        )

    @property
    def url(self) -> str:
        return self.locator.url

    def replace(self, **changes: Any) -> "Bookmark":
        """Return a copy with the given fields changed."""
        return _replace(self, **changes)

    def visited(self, now: Optional[datetime] = None) -> "Bookmark":
        """Return a copy recording one more visit at `now`."""
        return self.replace(
            visit_count=(self.visit_count or 0) + 1,
            last_visited=now or utc_now(),
        )

    def to_dict(self) -> dict:
        """Serialize to a JSON-ready dict. Absent optional fields are omitted."""
        d: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "tags": sorted(self.tags),
        }
        if self.notes:
            d["notes"] = self.notes
        if self.image_url:
            d["imageUrl"] = self.image_url
        if self.color:
            d["color"] = self.color
        for key, value in (
            ("created", self.created),
            ("modified", self.modified),
            ("lastVisited", self.last_visited),
        ):
            if value is not None:
                d[key] = format_timestamp(value)
        if self.visit_count is not None:
            d["visitCount"] = self.visit_count
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Bookmark":
        """Deserialize from a dict written by to_dict() (or an import file)."""
        def ts(key: str) -> Optional[datetime]:
            value = d.get(key)
            return parse_timestamp(value) if value not in (None, "") else None

        tags = d.get("tags") or []
        if isinstance(tags, str):
            tags = parse_tags(tags)
        visit_count = d.get("visitCount")
        return cls.of(
            d["url"],
            title=d.get("title") or "",
            notes=d.get("notes") or "",
            image_url=d.get("imageUrl") or None,
            tags=tags,
            color=d.get("color"),
            created=ts("created"),
            modified=ts("modified"),
            last_visited=ts("lastVisited"),
            visit_count=int(visit_count) if visit_count is not None else None,
        )

    def __str__(self) -> str:
        title = f" {self.title}" if self.title else ""
        return f"{self.url}{title}"


# ---------------------------------------------------------------------------
# Sort orders
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SortOrder:
    """A stable ordering of bookmarks by one field.

    Descending orders put the largest value first and bookmarks missing
    the field last. reversed() flips the whole order, so missing values
    come first in the reversed direction. Equal keys keep input order.
    """
    name: str
    key: Callable[[Bookmark], Any]
    descending: bool = False

    def reversed(self, name: Optional[str] = None) -> "SortOrder":
        return SortOrder(name or f"reversed-{self.name}", self.key, not self.descending)

    def sort(self, bookmarks) -> list[Bookmark]:
        present = [b for b in bookmarks if self.key(b) is not None]
        missing = [b for b in bookmarks if self.key(b) is None]
        if self.descending:
            return sorted(present, key=self.key, reverse=True) + missing
        return missing + sorted(present, key=self.key)


def _title_key(b: Bookmark):
    return (b.title.casefold(), b.title)


MOST_RECENTLY_CREATED_FIRST = SortOrder("most-recently-created", lambda b: b.created, descending=True)
MOST_RECENTLY_VISITED_FIRST = SortOrder("most-recently-visited", lambda b: b.last_visited, descending=True)
MOST_RECENTLY_MODIFIED_FIRST = SortOrder("most-recently-modified", lambda b: b.modified, descending=True)
MOST_VISITED_FIRST = SortOrder("most-visited", lambda b: b.visit_count, descending=True)
BY_TITLE = SortOrder("title", _title_key)
BY_URL = SortOrder("url", lambda b: b.url)
