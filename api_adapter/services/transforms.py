import json
import re
from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Source fields tried in order for each friendly alias
ALIAS_FIELDS: dict[str, tuple[str, ...]] = {
    "title": ("title", "name"),
    "image": ("image", "image_url"),
    "description": ("description", "short_desc", "long_desc"),
}


class TransformError(Exception):
    """Raised when a transform cannot use the upstream body."""


class ResponseTransform(ABC):
    """A rewrite applied to upstream responses of matching routes."""

    name: str = ""
    content_type: str | None = None

    @abstractmethod
    def accepts(self, response: httpx.Response) -> bool:
        """Check whether this upstream response should be rewritten at all."""

    @abstractmethod
    def apply(self, body: bytes) -> bytes:
        """Rewrite the body. Raises TransformError to fall back to pass-through."""


class ProductsNormalizer(ResponseTransform):
    """
    Reshape product listings into {"items": [...], "products": [...]}.

    The upstream may answer with a bare array, {"items": [...]} or
    {"products": [...]}. Each record keeps its original fields and gains
    title/image/description aliases so any frontend shape works.
    """

    name = "products"
    content_type = JSON_CONTENT_TYPE

    def accepts(self, response: httpx.Response) -> bool:
        content_type = response.headers.get("content-type", "")
        return "application/json" in content_type and response.is_success

    def apply(self, body: bytes) -> bytes:
        try:
            data = json.loads(body, parse_constant=reject_constant)
        except (ValueError, RecursionError) as e:
            raise TransformError(f"Invalid JSON body: {e}") from e

        normalized = [normalize_item(item) for item in extract_items(data)]
        payload = {"items": normalized, "products": normalized}

        return dump_json(payload)


def reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON; browsers refuse them
    raise ValueError(f"Non-standard JSON constant {name}")


def dump_json(payload: Any) -> bytes:
    """Compact UTF-8 JSON; lone surrogates from the upstream are kept as \\u escapes."""
    try:
        return json.dumps(
            payload, ensure_ascii=False, allow_nan=False, separators=(",", ":"),
        ).encode("utf-8")
    except UnicodeEncodeError:
        return json.dumps(
            payload, ensure_ascii=True, allow_nan=False, separators=(",", ":"),
        ).encode("ascii")


def extract_items(data: Any) -> list:
    """Pick the item list out of the accepted upstream shapes."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("items"), list):
            return data["items"]
        if isinstance(data.get("products"), list):
            return data["products"]
    return []


def first_present(item: dict, keys: tuple[str, ...], default: str = "") -> Any:
    """First value that is present and not null; empty strings count as present."""
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return default


def normalize_item(item: Any) -> dict:
    # Non-object records carry no fields of their own
    source = item if isinstance(item, dict) else {}

    normalized = dict(source)
    for alias, keys in ALIAS_FIELDS.items():
        normalized[alias] = first_present(source, keys)
    return normalized


TRANSFORM_TYPES: dict[str, type[ResponseTransform]] = {
    ProductsNormalizer.name: ProductsNormalizer,
}


class TransformRegistry:
    """Ordered path pattern -> transform mapping; first match wins."""

    def __init__(self, transforms: dict[str, str] | None = None):
        self._routes: list[tuple[re.Pattern, ResponseTransform]] = []

        for pattern, name in (transforms or {}).items():
            transform_type = TRANSFORM_TYPES.get(name)
            if transform_type is None:
                raise ValueError(f"Unknown transform {name!r} for pattern {pattern!r}")
            self.register(pattern, transform_type())

        logger.info(
            "TransformRegistry initialized",
            routes={pattern.pattern: t.name for pattern, t in self._routes},
        )

    def register(self, pattern: str, transform: ResponseTransform) -> None:
        self._routes.append((re.compile(pattern), transform))

    def resolve(self, remainder: str) -> ResponseTransform | None:
        """Find the transform for a remainder path, if any."""
        for pattern, transform in self._routes:
            if pattern.search(remainder):
                return transform
        return None
