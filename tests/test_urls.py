import pytest

from seo_scout.crawler.urls import (
    UrlPolicy,
    ensure_scheme,
    is_same_domain,
    normalize_url,
    should_skip,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://Example.COM/About/", "https://example.com/About"),
        ("https://example.com", "https://example.com/"),
        ("https://example.com/", "https://example.com/"),
        ("https://example.com/a#section", "https://example.com/a"),
        ("https://example.com/blog?page=2", "https://example.com/blog?page=2"),
        ("https://example.com/p?utm_source=x&id=7&gclid=1", "https://example.com/p?id=7"),
        ("https://example.com/p?ref=tw&fbclid=z", "https://example.com/p"),
        ("https://example.com:8443/x/", "https://example.com:8443/x"),
        ("https://example.com/a//", "https://example.com/a"),
        ("https://example.com//", "https://example.com/"),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize(
    "url",
    [
        "https://Example.com/a/b/",
        "http://example.com/?utm_campaign=a&q=1#frag",
        "https://example.com/x//",
        "https://www.example.com",
        "not a url",
        "/relative/path/",
    ],
)
def test_normalize_is_idempotent(url):
    once = normalize_url(url)
    assert normalize_url(once) == once


def test_normalize_passes_unparseable_input_through():
    assert normalize_url("http://[::1") == "http://[::1"
    assert normalize_url("no-scheme/path/") == "no-scheme/path/"


def test_normalize_with_custom_tracking_params():
    policy = UrlPolicy.build(tracking_params={"session"})
    assert policy.normalize("https://example.com/a?session=1&utm_source=x") == (
        "https://example.com/a?utm_source=x"
    )


def test_same_domain_is_symmetric_under_www():
    assert is_same_domain("https://www.x.com/a", "x.com")
    assert is_same_domain("https://x.com/a", "www.x.com")
    assert is_same_domain("https://WWW.X.COM/a", "x.com")


def test_same_domain_accepts_subdomains_only_on_dot_boundary():
    assert is_same_domain("https://blog.x.com/", "x.com")
    assert not is_same_domain("https://notx.com/", "x.com")
    assert not is_same_domain("https://x.com.evil.org/", "x.com")
    assert not is_same_domain("https://other.com/x", "example.com")


def test_same_domain_rejects_unparseable():
    assert not is_same_domain("http://[::1", "x.com")
    assert not is_same_domain("/relative", "x.com")


@pytest.mark.parametrize(
    "url",
    [
        "https://x.com/logo.PNG",
        "https://x.com/files/archive.tar",
        "https://x.com/app.js",
        "https://x.com/feed.xml",
        "https://x.com/api/users",
        "https://x.com/_next/chunk",
        "https://x.com/.well-known/security.txt",
        "https://x.com/wp-json/v2/posts",
        "ftp://x.com/file",
        "mailto:someone@x.com",
        "http://[::1",
    ],
)
def test_should_skip(url):
    assert should_skip(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://x.com/",
        "https://x.com/about",
        "https://x.com/blog/post.html",
        "https://x.com/v1.2/notes",
        "https://x.com/apiary",
    ],
)
def test_should_not_skip(url):
    assert not should_skip(url)


def test_policy_overrides_skip_sets():
    policy = UrlPolicy.build(skip_extensions={".html"}, skip_path_prefixes=("/private/",))
    assert policy.should_skip("https://x.com/index.html")
    assert policy.should_skip("https://x.com/private/area")
    assert not policy.should_skip("https://x.com/logo.png")


def test_ensure_scheme():
    assert ensure_scheme("  example.com ") == "https://example.com"
    assert ensure_scheme("http://example.com") == "http://example.com"
    assert ensure_scheme("HTTPS://example.com") == "HTTPS://example.com"
