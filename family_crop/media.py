"""
Storage references and signed-URL resolution.

Uploads to object storage come back as opaque references of the form
``sb://<bucket>/<object path>``.  They must be turned into time-limited
URLs before they can be displayed.  ``SignedUrlCache`` does that through
an injected signer, caching results for a TTL and collapsing concurrent
requests for the same reference into a single signer call.

The HTML helpers rewrite ``<img>`` tags in blog content between the
stored form (``src`` holds the reference) and the display form (``src``
holds a signed URL, ``data-media-ref`` keeps the reference).

This module is Qt-free and thread-safe.
"""

import logging
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from typing import Callable

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from family_crop.config import SIGNED_URL_CACHE_MAX, SIGNED_URL_CACHE_MS, STORAGE_REF_PREFIX

logger = logging.getLogger(__name__)

# signer(bucket, object_path, expires_in) -> url
Signer = Callable[[str, str, int | None], str]


# =============================================================================
# Reference helpers
# =============================================================================
def is_storage_ref(value: object) -> bool:
    return str(value or "").startswith(STORAGE_REF_PREFIX)


def create_storage_ref(bucket: str, object_path: str) -> str:
    return f"{STORAGE_REF_PREFIX}{bucket}/{object_path}"


def parse_storage_ref(value: object) -> tuple[str, str] | None:
    """Split ``sb://bucket/path`` into ``(bucket, path)``, or None if malformed."""
    raw = str(value or "").strip()
    if not is_storage_ref(raw):
        return None
    payload = raw[len(STORAGE_REF_PREFIX):]
    bucket, sep, object_path = payload.partition("/")
    if not sep or not bucket or not object_path:
        return None
    return bucket, object_path


# =============================================================================
# Signed URL cache
# =============================================================================
class SignedUrlCache:
    """TTL cache in front of a signer, with in-flight request de-duplication."""

    def __init__(
        self,
        signer: Signer,
        *,
        ttl_ms: int = SIGNED_URL_CACHE_MS,
        max_entries: int = SIGNED_URL_CACHE_MAX,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._signer = signer
        self._ttl = ttl_ms / 1000.0
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()  # key -> (url, expires_at)
        self._in_flight: dict[str, Future] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def resolve(self, value: str, expires_in: int | None = None) -> str:
        """Return a displayable URL for *value*.

        Non-references pass through unchanged.  A signer failure yields ``""``
        and is not cached.
        """
        raw = str(value or "").strip()
        if not raw:
            return ""
        parsed = parse_storage_ref(raw)
        if parsed is None:
            return raw

        if expires_in is not None and expires_in <= 0:
            expires_in = None
        key = f"{raw}|{expires_in or ''}"

        with self._lock:
            cached = self._entries.get(key)
            if cached and cached[1] > self._clock() and cached[0]:
                return cached[0]
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            return future.result()

        url = ""
        try:
            url = self._signer(parsed[0], parsed[1], expires_in) or ""
        except Exception as exc:  # backend-specific error types
            logger.warning("Could not sign %s: %s", raw, exc)
            url = ""
        finally:
            with self._lock:
                if url and self._ttl > 0:
                    self._store(key, url)
                self._in_flight.pop(key, None)
            future.set_result(url)
        return url

    def prime(self, ref: str, url: str, expires_in: int | None = None):
        """Record a URL that is already known for *ref* (e.g. from an upload reply)."""
        if not is_storage_ref(ref) or not url or self._ttl <= 0:
            return
        with self._lock:
            self._store(f"{ref.strip()}|{expires_in or ''}", url)

    def _store(self, key: str, url: str):
        self._entries[key] = (url, self._clock() + self._ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            oldest, _ = self._entries.popitem(last=False)
            logger.debug("Evicted signed URL for %s", oldest)

    def clear(self):
        with self._lock:
            self._entries.clear()


# =============================================================================
# HTML <img> rewriting
# =============================================================================
# Attribute order is kept and void tags are written as ``<img ...>``
_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


def _rewrite_images(source: str, rewrite: Callable[[Tag], bool]) -> str:
    """Apply *rewrite* to every ``<img>``; return *source* untouched if nothing changed."""
    if "<img" not in source.lower():
        return source
    soup = BeautifulSoup(source, "html.parser")
    changed = False
    for tag in soup.find_all("img"):
        changed = rewrite(tag) or changed
    if not changed:
        return source
    return soup.decode(formatter=_FORMATTER)


def resolve_html_image_sources(
    html: str,
    cache: SignedUrlCache,
    *,
    with_data_ref: bool = False,
    expires_in: int | None = None,
) -> str:
    """Replace storage references in ``<img>`` tags with signed URLs."""

    def _resolve(tag: Tag) -> bool:
        ref = tag.get("data-media-ref") or tag.get("src") or ""
        if not is_storage_ref(ref):
            return False
        signed = cache.resolve(ref, expires_in)
        if not signed:
            return False
        tag["src"] = signed
        if with_data_ref:
            tag["data-media-ref"] = ref
        return True

    return _rewrite_images(str(html or ""), _resolve)


def normalize_html_for_storage(html: str) -> str:
    """Put storage references back into ``src`` and drop ``data-media-ref``."""

    def _normalize(tag: Tag) -> bool:
        if not tag.has_attr("data-media-ref"):
            return False
        ref = tag["data-media-ref"]
        if is_storage_ref(ref):
            tag["src"] = ref
        del tag["data-media-ref"]
        return True

    return _rewrite_images(str(html or ""), _normalize)
