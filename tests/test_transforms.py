"""Products normalization and the transform registry."""

import json

import httpx
import pytest

from api_adapter.services.transforms import (
    JSON_CONTENT_TYPE,
    ProductsNormalizer,
    TransformError,
    TransformRegistry,
    extract_items,
    normalize_item,
)


@pytest.mark.parametrize(
    "data, expected",
    [
        ([{"id": 1}], [{"id": 1}]),
        ({"items": [{"id": 1}]}, [{"id": 1}]),
        ({"products": [{"id": 2}]}, [{"id": 2}]),
        ({"items": [{"id": 1}], "products": [{"id": 2}]}, [{"id": 1}]),
        ({"items": "nope", "products": [{"id": 2}]}, [{"id": 2}]),
        ({"count": 0}, []),
        (None, []),
        ("text", []),
    ],
)
def test_extract_items(data, expected):
    assert extract_items(data) == expected


def test_normalize_item_uses_fallback_fields():
    item = {"name": "Widget", "image_url": "x.png", "long_desc": "Long"}

    assert normalize_item(item) == {
        "name": "Widget",
        "image_url": "x.png",
        "long_desc": "Long",
        "title": "Widget",
        "image": "x.png",
        "description": "Long",
    }


def test_normalize_item_prefers_primary_fields():
    item = {"title": "T", "name": "N", "image": "i.png", "image_url": "u.png",
            "description": "D", "short_desc": "S"}

    normalized = normalize_item(item)

    assert (normalized["title"], normalized["image"], normalized["description"]) == ("T", "i.png", "D")


def test_normalize_item_keeps_empty_string_but_skips_null():
    normalized = normalize_item({"title": "", "image": None, "image_url": "u.png"})

    assert normalized["title"] == ""
    assert normalized["image"] == "u.png"
    assert normalized["description"] == ""


def test_normalize_item_does_not_mutate_original():
    item = {"name": "Widget"}
    normalize_item(item)
    assert item == {"name": "Widget"}


def test_normalize_non_object_item():
    assert normalize_item(42) == {"title": "", "image": "", "description": ""}


def test_normalizer_emits_dual_keyed_envelope():
    body = ProductsNormalizer().apply(b'{"items":[{"name":"Widget","image_url":"x.png"}]}')

    item = '{"name":"Widget","image_url":"x.png","title":"Widget","image":"x.png","description":""}'
    assert body == f'{{"items":[{item}],"products":[{item}]}}'.encode()


def test_normalizer_keeps_non_ascii_text():
    body = ProductsNormalizer().apply('[{"name":"Café"}]'.encode())
    assert json.loads(body)["items"][0]["title"] == "Café"


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_normalizer_rejects_non_standard_constants(constant):
    with pytest.raises(TransformError):
        ProductsNormalizer().apply(f'[{{"price":{constant}}}]'.encode())


def test_normalizer_escapes_lone_surrogates():
    body = ProductsNormalizer().apply(b'[{"name":"\\ud83d"}]')

    body.decode("utf-8")
    assert json.loads(body)["items"][0]["title"] == "\ud83d"


def test_normalizer_rejects_deeply_nested_json():
    with pytest.raises(TransformError):
        ProductsNormalizer().apply(b"[" * 100000 + b"]" * 100000)


def test_normalizer_rejects_malformed_json():
    with pytest.raises(TransformError):
        ProductsNormalizer().apply(b'{"items": [')


@pytest.mark.parametrize(
    "status_code, content_type, accepted",
    [
        (200, "application/json", True),
        (201, "application/json; charset=utf-8", True),
        (200, "text/html", False),
        (404, "application/json", False),
        (500, "application/json", False),
    ],
)
def test_normalizer_guard(status_code, content_type, accepted):
    response = httpx.Response(status_code, headers={"content-type": content_type})
    assert ProductsNormalizer().accepts(response) is accepted


def test_normalizer_content_type():
    assert ProductsNormalizer.content_type == JSON_CONTENT_TYPE


@pytest.mark.parametrize(
    "remainder, matched",
    [
        ("products", True),
        ("products/", True),
        ("products/123", True),
        ("productsX", False),
        ("stats/products", False),
        ("", False),
    ],
)
def test_registry_resolves_products_family(remainder, matched):
    registry = TransformRegistry({"^products(/|$)": "products"})
    assert (registry.resolve(remainder) is not None) is matched


def test_registry_empty_by_default():
    assert TransformRegistry().resolve("products") is None


def test_registry_rejects_unknown_transform():
    with pytest.raises(ValueError, match="Unknown transform"):
        TransformRegistry({"^orders": "orders"})
