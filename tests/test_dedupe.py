import pytest

from tech_analyst.models import Lead
from tech_analyst.search.dedupe import (
    dedupe_companies,
    dedupe_leads,
    normalize_to_homepage,
    root_domain,
    should_skip_url,
)


def test_hostname_dedupe_merges_www_and_paths():
    leads = [
        Lead(name="A", url="https://a.com"),
        Lead(name="A blog", url="https://www.a.com/blog", snippet="Engineering blog"),
        Lead(name="B", url="https://b.com"),
    ]

    result = dedupe_leads(leads)

    assert [lead.url for lead in result] == ["https://a.com", "https://b.com"]
    assert [lead.occurrences for lead in result] == [2, 1]
    assert result[0].name == "A"
    assert result[0].snippet == "Engineering blog"


def test_dedupe_does_not_mutate_input():
    lead = Lead(name="A", url="https://a.com", occurrences=7)

    dedupe_leads([lead, Lead(name="A2", url="https://a.com/x")])

    assert lead.occurrences == 7


def test_dedupe_bounds_and_occurrence_sums():
    urls = [f"https://site{i % 7}.com/page{i}" for i in range(40)]
    leads = [Lead(name=f"L{i}", url=url) for i, url in enumerate(urls)]

    full = dedupe_leads(leads, max_leads=100)
    capped = dedupe_leads(leads, max_leads=3)

    assert len(full) == 7
    assert sum(lead.occurrences for lead in full) == 40
    assert len({lead.url.split("/")[2] for lead in full}) == 7
    assert len(capped) == 3
    assert [lead.occurrences for lead in capped] == sorted(
        (lead.occurrences for lead in capped), reverse=True,
    )


def test_leads_without_hostname_fall_back_to_name():
    leads = [Lead(name="Acme", url="not a url"), Lead(name="acme", url="also bad")]

    result = dedupe_leads(leads)

    assert len(result) == 1
    assert result[0].occurrences == 2


@pytest.mark.parametrize("order", [0, 1])
def test_company_dedupe_prefers_root_domain_in_either_order(order):
    companies = [
        Lead(name="Acme Cloud", url="https://cloud.acme.com"),
        Lead(name="Acme", url="https://acme.com"),
    ]
    if order:
        companies.reverse()

    result = dedupe_companies(companies)

    assert len(result) == 1
    assert result[0].url == "https://acme.com"


def test_company_dedupe_keeps_first_of_equal_rank_and_drops_invalid():
    companies = [
        Lead(name="Zilliz", url="https://zilliz.com"),
        Lead(name="Zilliz again", url="https://www.zilliz.com"),
        Lead(name="Broken", url="::::"),
        Lead(name="Pinecone", url="https://pinecone.io"),
    ]

    result = dedupe_companies(companies)

    assert [c.name for c in result] == ["Zilliz", "Pinecone"]


def test_root_domain_handles_two_part_tlds():
    assert root_domain("cloud.zilliz.com") == "zilliz.com"
    assert root_domain("www.shop.example.co.uk") == "example.co.uk"
    assert root_domain("localhost") == "localhost"


def test_normalize_to_homepage():
    assert normalize_to_homepage("https://docs.acme.io:8443/a/b?q=1#x") == "https://docs.acme.io:8443"
    assert normalize_to_homepage("no scheme here") == "no scheme here"


@pytest.mark.parametrize("url, expected", [
    ("https://www.youtube.com/watch?v=abc", True),
    ("https://old.reddit.com/r/databases", True),
    ("https://www.linkedin.com/company/acme", True),
    ("not a url", True),
    ("https://acme.com/pricing", False),
    ("https://www.dropbox.com", False),
])
def test_should_skip_url(url, expected):
    assert should_skip_url(url) is expected
