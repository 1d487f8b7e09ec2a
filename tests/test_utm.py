"""UTM helpers."""

import pytest

from biolink.schemas import UtmParams
from biolink.services.utm import (
    build_utm_url,
    clean_utm_params,
    has_utm_params,
    profile_page_url,
    short_url,
)


def test_clean_utm_params_strips_and_drops_blanks() -> None:
    cleaned = clean_utm_params(UtmParams(utm_source=" newsletter ", utm_medium="", utm_term="   "))

    assert cleaned == UtmParams(utm_source="newsletter")
    assert has_utm_params(cleaned)
    assert not has_utm_params(clean_utm_params(UtmParams(utm_campaign=" ")))


def test_build_utm_url_keeps_existing_query() -> None:
    url = build_utm_url(
        "https://example.com/u/alice?ref=bio&utm_source=old",
        UtmParams(utm_source="email", utm_campaign="spring"),
    )

    assert url == "https://example.com/u/alice?ref=bio&utm_source=email&utm_campaign=spring"


def test_build_utm_url_encodes_values() -> None:
    url = build_utm_url("https://example.com/u/alice", UtmParams(utm_campaign="spring sale & more"))

    assert url == "https://example.com/u/alice?utm_campaign=spring+sale+%26+more"


@pytest.mark.parametrize("base_url", ["", "/u/alice", "example.com/u/alice"])
def test_build_utm_url_rejects_relative_urls(base_url: str) -> None:
    with pytest.raises(ValueError, match="Invalid base URL"):
        build_utm_url(base_url, UtmParams(utm_source="x"))


def test_public_urls() -> None:
    assert profile_page_url("https://biolink.example/", "alice") == "https://biolink.example/u/alice"
    assert short_url("https://go.example", "abc1234") == "https://go.example/r/abc1234"
    assert short_url("https://go.example", None) is None
