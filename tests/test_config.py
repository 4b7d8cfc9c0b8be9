from deep_research.config import Settings


def test_defaults(monkeypatch):
    for name in ("SEARCH_MAX_RESULTS", "DEFAULT_BREADTH", "RETRY_MAX"):
        monkeypatch.delenv(name, raising=False)

    config = Settings(_env_file=None)

    assert config.search_max_results == 5
    assert config.default_breadth == 6
    assert config.retry_max == 3
    assert config.feedback_max_parallel_requests == 5


def test_firecrawl_url_defaults_to_hosted_api():
    assert Settings(_env_file=None, firecrawl_base_url="").firecrawl_api_url == "https://api.firecrawl.dev"
    assert Settings(_env_file=None, firecrawl_base_url="http://localhost:3002").firecrawl_api_url == (
        "http://localhost:3002"
    )


def test_missing_credentials(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("FIRECRAWL_KEY", raising=False)

    assert Settings(_env_file=None).missing_credentials() == ["GOOGLE_API_KEY", "FIRECRAWL_KEY"]
    assert Settings(_env_file=None, google_api_key="g", firecrawl_key="f").missing_credentials() == []
