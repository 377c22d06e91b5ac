import pytest

from emailoutput.core.settings import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch):
    for var in (
        "LOG_LEVEL",
        "EMAIL_OUTPUT_LAYOUT",
        "EMAIL_OUTPUT_DISPLAY_TIMEZONE",
        "EMAIL_OUTPUT_SMTP_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
