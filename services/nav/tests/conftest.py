import pytest

from services.nav.config import Settings


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)
    return Settings(
        finnhub_api_key="test-token",
        nav_weights="AAPL:0.065,MSFT:0.06,AMZN:0.033,GOOGL:0.025,NVDA:0.04",
        fetch_retries=3,
        fetch_retry_delay=0,
        fetch_timeout=1.0,
        history_file=str(tmp_path / "history.json"),
        _env_file=None,
    )
