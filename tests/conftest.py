import argparse

import pytest
from selenium.common.exceptions import NoSuchElementException

from order_history import AmazonOrderHistoryScraper, settings


def make_options(**kwargs):
    values = {
        "loglevel": "DEBUG",
        "year": None,
        "no_close_browser": False,
        "no_details": False,
        "output": None,
        "cookies": None,
    }
    values.update(kwargs)
    return argparse.Namespace(**values)


class FakeBrowser:
    """Just enough of a WebDriver for session handling"""

    def __init__(self, cookies=None, ready_after=0):
        self.cookies = list(cookies or [])
        self.visited = []
        self.current_url = ""
        self.page_source = "<html></html>"
        self.ready_after = ready_after
        self.lookups = 0
        self.refreshed = False
        self.quit_called = False

    def get(self, url):
        self.visited.append(url)
        self.current_url = url

    def refresh(self):
        self.refreshed = True

    def add_cookie(self, cookie):
        self.cookies.append(cookie)

    def get_cookies(self):
        return self.cookies

    def find_element(self, _by, value):
        self.lookups += 1
        if self.lookups > self.ready_after:
            return value
        raise NoSuchElementException(value)

    def find_elements(self, _by, value):
        self.lookups += 1
        return [value] if self.lookups > self.ready_after else []

    def quit(self):
        self.quit_called = True


@pytest.fixture
def options(tmp_path):
    return make_options(
        year=2023,
        output=str(tmp_path / "orders.csv"),
        cookies=str(tmp_path / "cookies.json"),
    )


@pytest.fixture
def fast_settings(monkeypatch):
    monkeypatch.setattr(settings, "MAX_SLEEP", 0)
    monkeypatch.setattr(settings, "LOGIN_POLL_INTERVAL", 0)
    monkeypatch.setattr(settings, "PAGE_LOAD_TIMEOUT", 0)
    return settings


@pytest.fixture
def scraper(options, fast_settings):
    return AmazonOrderHistoryScraper(options)


@pytest.fixture
def browser(scraper):
    fake = FakeBrowser()
    scraper.browser = fake
    scraper.browser_status = "created"
    return fake
