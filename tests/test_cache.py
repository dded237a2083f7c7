from datetime import datetime, timedelta

import pytest

from tech_analyst.cache.store import PageCache


class Clock:
    def __init__(self):
        self.now = datetime(2025, 3, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(tmp_path, clock):
    store = PageCache(str(tmp_path / "pages.db"), ttl_days=7, clock=clock)
    yield store
    store.close()


def test_put_then_get(cache, clock):
    cache.put("https://acme.io/pricing", "pricing", "Free, Pro, Enterprise")

    entry = cache.get("https://acme.io/pricing")
    assert entry.data == {"pricing": "Free, Pro, Enterprise"}
    assert entry.scraped_at == clock.now
    assert entry.expires_at == clock.now + timedelta(days=7)
    assert cache.get_content("https://acme.io/pricing", "pricing") == "Free, Pro, Enterprise"
    assert cache.get_content("https://acme.io/pricing", "docs") is None


def test_categories_merge_and_refresh_expiry(cache, clock):
    url = "https://acme.io"
    cache.put(url, "enrichment", "home page")
    clock.advance(days=5)
    cache.put(url, "about", "about page")

    entry = cache.get(url)
    assert entry.data == {"enrichment": "home page", "about": "about page"}
    assert entry.expires_at == clock.now + timedelta(days=7)

    clock.advance(days=6)
    assert cache.get_content(url, "enrichment") == "home page"


def test_expired_entries_miss_and_are_not_merged(cache, clock):
    url = "https://acme.io"
    cache.put(url, "docs", "old docs")
    clock.advance(days=7)

    assert cache.get(url) is None

    cache.put(url, "pricing", "new pricing")
    assert cache.get(url).data == {"pricing": "new pricing"}


def test_last_write_wins_per_category(cache):
    cache.put("https://acme.io", "docs", "v1")
    cache.put("https://acme.io", "docs", "v2")

    assert cache.get_content("https://acme.io", "docs") == "v2"


def test_unknown_category_rejected(cache):
    with pytest.raises(ValueError):
        cache.put("https://acme.io", "careers", "jobs")


def test_purge_and_stats(cache, clock):
    cache.put("https://a.com", "docs", "a")
    clock.advance(days=3)
    cache.put("https://b.com", "docs", "b")
    clock.advance(days=5)

    stats = cache.stats()
    assert stats["pages"] == 1
    assert stats["oldest"] == stats["newest"]

    assert cache.purge_expired() == 1
    assert cache.get("https://b.com") is not None


def test_entries_survive_reopen(tmp_path, clock):
    path = str(tmp_path / "pages.db")
    first = PageCache(path, clock=clock)
    first.put("https://acme.io", "about", "About Acme")
    first.close()

    second = PageCache(path, clock=clock)
    assert second.get_content("https://acme.io", "about") == "About Acme"
    second.close()


def test_empty_path_disables_cache():
    cache = PageCache("")

    cache.put("https://acme.io", "docs", "ignored")

    assert not cache.enabled
    assert cache.get("https://acme.io") is None
    assert cache.stats() == {}
    assert cache.purge_expired() == 0
