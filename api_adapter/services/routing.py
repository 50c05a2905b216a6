from collections.abc import Sequence
from urllib.parse import quote

# Characters left as-is when re-encoding a decoded path
SAFE_PATH_CHARS = "/:@!$&'()*+,;=-._~"


def join_path_segments(captured: str | Sequence[str] | None) -> str:
    """
    Normalize a captured catch-all path into the remainder string.

    Accepts either a single wildcard remainder ("stats/summary") or an array
    of segments (["stats", "summary"]); both give the same result. Nothing
    captured gives an empty remainder.

    Segments are not validated or escaped: "../admin" passes through as-is.
    """
    if not captured:
        return ""

    if isinstance(captured, str):
        return captured

    return "/".join(segment for segment in captured if segment)


def build_upstream_url(base_url: str, remainder: str, query_string: str = "") -> str:
    """Append the remainder and the original query string to the upstream base."""
    target_url = f"{base_url}{remainder}"
    if query_string:
        target_url = f"{target_url}?{query_string}"
    return target_url


def remainder_from_raw_path(raw_path: bytes | None, prefix: str, captured: str = "") -> str:
    """
    Take the remainder after the prefix from the still-encoded request path.

    The decoded path cannot be spliced back into a URL: "%23", "%3F" and
    "%2F" would turn into a fragment, a query and a separator. Falls back to
    re-encoding the decoded capture when the raw path is missing or does not
    start with the prefix literally.
    """
    prefix = "/" + prefix.strip("/")
    if prefix == "/":
        prefix = ""

    if raw_path is not None:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
        if path == prefix:
            return ""
        if path.startswith(prefix + "/"):
            return path[len(prefix) + 1:]

    return quote(captured, safe=SAFE_PATH_CHARS)
