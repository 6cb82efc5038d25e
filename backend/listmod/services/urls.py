from __future__ import annotations
import re
from dataclasses import dataclass
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError as PydanticValidationError
from listmod.errors import ValidationError

# Where a provider's links may be used
COMPLETION = "completion"
RAW = "raw"
BOTH = "both"


@dataclass(frozen=True)
class Provider:
    name: str
    usage: str
    patterns: tuple[re.Pattern, ...]
    canonical: str           # format string; gets id, ts, other
    canonical_ts: str | None = None

    def allowed_for_completion(self) -> bool:
        return self.usage in (COMPLETION, BOTH)

    def normalize(self, m: re.Match) -> str:
        groups = m.groupdict()
        ts = groups.get("ts")
        if ts and self.canonical_ts:
            return self.canonical_ts.format(**groups)
        return self.canonical.format(**groups)


@dataclass(frozen=True)
class ProviderMatch:
    provider: Provider
    content_id: str
    normalized_url: str


def _p(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p) for p in patterns)


_HTTP_URL = TypeAdapter(AnyHttpUrl)

_TS_QUERY = r"(?:\?(?:(?:[^#]*?&)?(?:t|start)=(?P<ts>[^&#]+)[^#]*)?[^#]*)?(?:[&#].*)?$"

PROVIDERS: tuple[Provider, ...] = (
    Provider(
        "youtube", COMPLETION,
        _p(
            r"^https?://(?:www\.|m\.)?youtube\.com/watch\?(?:[^#]*?[&?])?v=(?P<id>[A-Za-z0-9_-]{11})(?:[^#]*?[&?](?:t|start)=(?P<ts>[^&#]+))?(?:[&#].*)?$",
            r"^https?://youtu\.be/(?P<id>[A-Za-z0-9_-]{11})" + _TS_QUERY,
            r"^https?://(?:www\.|m\.)?youtube\.com/shorts/(?P<id>[A-Za-z0-9_-]{11})" + _TS_QUERY,
            r"^https?://(?:www\.|m\.)?youtube\.com/live/(?P<id>[A-Za-z0-9_-]{11})" + _TS_QUERY,
        ),
        "https://www.youtube.com/watch?v={id}",
        "https://www.youtube.com/watch?v={id}&t={ts}",
    ),
    Provider(
        "twitch", BOTH,
        _p(
            r"^https?://(?:www\.)?twitch\.tv/videos/(?P<id>\d+)(?:\?(?:(?:[^#]*?&)?t=(?P<ts>[^&#]+)[^#]*)?[^#]*)?(?:[&#].*)?$",
            r"^https?://(?:www\.)?twitch\.tv/(?P<other>[A-Za-z0-9_]+)/v(?:ideo)?/(?P<id>\d+)(?:\?(?:(?:[^#]*?&)?t=(?P<ts>[^&#]+)[^#]*)?[^#]*)?(?:[&#].*)?$",
            r"^https?://player\.twitch\.tv/\?(?:[^#&]*&)*video=v(?P<id>\d+)(?:&(?:[^#&]*&)*time=(?P<ts>[^&#]+))?(?:[&#].*)?$",
        ),
        "https://www.twitch.tv/videos/{id}",
        "https://www.twitch.tv/videos/{id}?t={ts}",
    ),
    Provider(
        "vimeo", COMPLETION,
        _p(r"^https?://(?:www\.)?vimeo\.com/(?P<id>[0-9]+)", r"^https?://player\.vimeo\.com/video/(?P<id>[0-9]+)"),
        "https://vimeo.com/{id}",
    ),
    Provider(
        "medal", COMPLETION,
        _p(
            r"^https?://medal\.tv(?:/[a-z]{2})?/clips/(?P<id>[A-Za-z0-9_-]+)(?:[/?#].*)?$",
            r"^https?://medal\.tv(?:/[a-z]{2})?/games/[A-Za-z0-9_-]+/clips/(?P<id>[A-Za-z0-9_-]+)(?:[/?#].*)?$",
        ),
        "https://medal.tv/clips/{id}",
    ),
    Provider(
        "bilibili", COMPLETION,
        _p(r"^https?://(?:www\.)?bilibili\.com/video/(?P<id>[A-Za-z0-9]+)"),
        "https://www.bilibili.com/video/{id}",
    ),
    Provider(
        "outplayed", COMPLETION,
        _p(r"^https?://outplayed\.tv/[A-Za-z0-9_-]+/(?P<id>[A-Za-z0-9_-]+)"),
        "https://outplayed.tv/media/{id}",
    ),
    Provider(
        "gdrive", RAW,
        _p(
            r"^https?://drive\.google\.com(?:/u/\d+)?/file/d/(?P<id>[\w-]+)(?:[/?#].*)?$",
            r"^https?://drive\.google\.com(?:/u/\d+)?/open\?(?:[^#]*?&)?id=(?P<id>[\w-]+)(?:[&#].*)?$",
            r"^https?://drive\.google\.com(?:/u/\d+)?/uc\?(?:[^#]*?&)?id=(?P<id>[\w-]+)(?:[&#].*)?$",
        ),
        "https://drive.google.com/file/d/{id}",
    ),
    Provider(
        "gdrive_folder", RAW,
        _p(r"^https?://drive\.google\.com/drive(?:/u/\d+)?/folders/(?P<id>[\w-]+)(?:[/?#].*)?$"),
        "https://drive.google.com/drive/folders/{id}",
    ),
    Provider(
        "mega", RAW,
        _p(
            r"^https?://mega\.nz/file/(?P<id>[A-Za-z0-9_-]+)#(?P<other>[A-Za-z0-9_-]+)",
            r"^https?://mega\.nz/#!(?P<id>[A-Za-z0-9_-]+)!(?P<other>[A-Za-z0-9_-]+)",
        ),
        "https://mega.nz/file/{id}#{other}",
    ),
)


def ensure_url(url: str) -> str:
    """Well-formed absolute http(s) URL with a host, no embedded whitespace. Returns the trimmed input."""
    candidate = (url or "").strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        raise ValidationError("Malformed URL")
    try:
        _HTTP_URL.validate_python(candidate)
    except PydanticValidationError:
        raise ValidationError("Malformed URL") from None
    return candidate


def match_provider(url: str) -> ProviderMatch | None:
    for provider in PROVIDERS:
        for pattern in provider.patterns:
            m = pattern.match(url)
            if m:
                return ProviderMatch(provider, m.group("id"), provider.normalize(m))
    return None


def validate_completion_url(url: str) -> str:
    """Completion videos must come from a completion-capable provider; stored in canonical form."""
    try:
        candidate = ensure_url(url)
        matched = match_provider(candidate)
        if matched is None:
            raise ValidationError("Unsupported video provider")
        if not matched.provider.allowed_for_completion():
            raise ValidationError("This provider is not allowed for completion videos")
    except ValidationError as e:
        raise ValidationError(f"Invalid completion video URL: {e.detail}") from None
    return matched.normalized_url


def validate_raw_url(url: str) -> str:
    """Raw footage only needs a valid URL; known providers are normalized, anything else is kept as-is."""
    try:
        candidate = ensure_url(url)
    except ValidationError as e:
        raise ValidationError(f"Invalid raw footage URL: {e.detail}") from None
    matched = match_provider(candidate)
    return matched.normalized_url if matched else candidate
