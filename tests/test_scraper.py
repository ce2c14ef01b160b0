import datetime
import json

import pytest
from selenium.common.exceptions import WebDriverException

from order_history import (
    AmazonOrderHistoryScraper,
    LoginTimeoutError,
    ScraperError,
    settings,
)
from order_history.csv_export import OrderCsv

from .conftest import FakeBrowser, make_options
from .test_parsing import EMPTY_ORDER_LIST_HTML, ORDER_LIST_HTML


def test_check_year_single(scraper):
    assert scraper.check_year("2023") == [2023]
    assert scraper.check_year(2001) == [2001]


def test_check_year_default_is_all_years(scraper):
    years = scraper.check_year(None)
    assert years[0] == datetime.date.today().year  # noqa: DTZ011
    assert years[-1] == settings.EARLIEST_YEAR
    assert years == sorted(years, reverse=True)


@pytest.mark.parametrize("year", ["23", "1999", "3000", "20x3", "0000", 0])
def test_check_year_invalid(scraper, year):
    with pytest.raises(ScraperError):
        scraper.check_year(year)


def test_details_flag(options, fast_settings):
    assert AmazonOrderHistoryScraper(options).fetch_details
    options.no_details = True
    assert not AmazonOrderHistoryScraper(options).fetch_details


def test_default_paths(fast_settings):
    scraper = AmazonOrderHistoryScraper(make_options(year=2023))
    assert scraper.csv_path == (
        settings.OUTPUT_FOLDER / settings.CSV_FILENAME
    ).resolve()
    assert scraper.cookie_path == settings.COOKIE_FILE


def test_skip_order(scraper, monkeypatch):
    monkeypatch.setattr(settings, "ORDERS_SKIP", ["111-1"])
    assert scraper.skip_order("111-1")
    assert not scraper.skip_order("111-2")
    assert not scraper.skip_order(None)


def test_orders_max(scraper, monkeypatch):
    monkeypatch.setattr(settings, "ORDERS_MAX", -1)
    scraper.order_count = 100
    assert not scraper.orders_max_reached()
    monkeypatch.setattr(settings, "ORDERS_MAX", 2)
    scraper.order_count = 1
    assert not scraper.orders_max_reached()
    scraper.order_count = 2
    assert scraper.orders_max_reached()


def test_wait_until_ignores_webdriver_errors(scraper):
    answers = iter([WebDriverException("navigating"), False, True])

    def check():
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    assert scraper.wait_until(check, timeout=10, interval=0)


def test_wait_until_times_out(scraper):
    with pytest.raises(LoginTimeoutError):
        scraper.wait_until(lambda: False, timeout=-1, interval=0)


def test_load_cookies(scraper, browser):
    scraper.cookie_path.write_text(
        json.dumps(
            [
                {
                    "name": "session-id",
                    "value": "abc",
                    "domain": ".amazon.com",
                    "path": "/",
                    "expiry": 1893456000.0,
                    "size": 12,
                },
            ],
        ),
        encoding="utf-8",
    )
    assert scraper.load_cookies(scraper.cookie_path)
    assert browser.visited == [settings.BASE_URL]
    assert browser.cookies == [
        {
            "name": "session-id",
            "value": "abc",
            "domain": ".amazon.com",
            "path": "/",
            "expiry": 1893456000,
        },
    ]


def test_load_cookies_missing_or_broken(scraper, browser):
    assert not scraper.load_cookies(scraper.cookie_path)
    scraper.cookie_path.write_text("{not json", encoding="utf-8")
    assert not scraper.load_cookies(scraper.cookie_path)
    assert browser.cookies == []
    assert not scraper.cookie_path.exists()


@pytest.mark.parametrize("contents", ['{"a": 1}', "null", "42"])
def test_load_cookies_not_a_list(scraper, browser, contents):
    scraper.cookie_path.write_text(contents, encoding="utf-8")
    assert not scraper.load_cookies(scraper.cookie_path)
    assert browser.cookies == []
    assert not scraper.cookie_path.exists()


def test_load_cookies_skips_malformed_entries(scraper, browser):
    scraper.cookie_path.write_text(
        json.dumps(["oops", {"name": "session-id", "value": "abc"}, 7]),
        encoding="utf-8",
    )
    assert scraper.load_cookies(scraper.cookie_path)
    assert browser.cookies == [{"name": "session-id", "value": "abc"}]


def test_load_cookies_only_malformed_entries(scraper, browser):
    scraper.cookie_path.write_text('["oops"]', encoding="utf-8")
    assert not scraper.load_cookies(scraper.cookie_path)
    assert browser.cookies == []


def test_remove(scraper, tmp_path):
    path = tmp_path / "stale.json"
    path.write_text("[]", encoding="utf-8")
    assert scraper.remove(path)
    assert not path.exists()
    assert not scraper.remove(path)


def test_find_elements(scraper, browser):
    assert scraper.find_elements("css selector", ".a-box-group") == [
        ".a-box-group",
    ]
    browser.ready_after = 10
    assert scraper.find_elements("css selector", ".a-box-group") == []


def test_save_cookies(scraper, browser):
    browser.cookies = [{"name": "session-id", "value": "abc"}]
    assert scraper.save_cookies(scraper.cookie_path)
    assert json.loads(scraper.cookie_path.read_text(encoding="utf-8")) == [
        {"name": "session-id", "value": "abc"},
    ]


def test_ensure_signed_in_waits_for_order_list(scraper):
    fake = FakeBrowser(cookies=[{"name": "a", "value": "b"}], ready_after=3)
    scraper.browser = fake
    scraper.browser_status = "created"
    scraper.ensure_signed_in()
    assert fake.visited == [scraper.ORDERS_URL]
    assert fake.lookups == 4
    assert scraper.cookie_path.exists()


def test_ensure_signed_in_timeout(scraper, monkeypatch):
    monkeypatch.setattr(settings, "LOGIN_TIMEOUT", -1)
    scraper.browser = FakeBrowser(ready_after=1000)
    scraper.browser_status = "created"
    with pytest.raises(LoginTimeoutError):
        scraper.ensure_signed_in()


def test_browser_safe_quit(scraper, browser):
    scraper.options.no_close_browser = True
    scraper.browser_safe_quit()
    assert not browser.quit_called
    scraper.options.no_close_browser = False
    scraper.browser_safe_quit()
    assert browser.quit_called
    assert scraper.browser_status == "quit"


def test_scrape_year_pages(scraper, monkeypatch):
    monkeypatch.setattr(settings, "PAGE_SIZE", 2)
    scraper.fetch_details = False
    pages = {0: ORDER_LIST_HTML, 2: EMPTY_ORDER_LIST_HTML}
    visited = []

    def visit(year, start_index):
        visited.append((year, start_index))
        return pages[start_index]

    monkeypatch.setattr(scraper, "browser_visit_order_list", visit)
    csv = OrderCsv(scraper.csv_path)
    csv.start()

    total = scraper.scrape_year(2024, csv)

    assert visited == [(2024, 0), (2024, 2)]
    # 2 x 10.00 + 5.00 + 10.00 shipping, returned order: 12.00 shipping
    assert total == 3500 + 1200
    lines = scraper.csv_path.read_text(encoding="utf-8").splitlines()
    assert lines[1] == (
        '"March 3, 2024";"Delivered Mar 5, 2024";"2";"USB Cable, 2m";'
        '"10.00";"20.00";""'
    )
    assert lines[3] == '"March 3, 2024";"";"1";"shipment";"10.00";"10.00";""'
    assert len(lines) == 5


def test_scrape_year_short_page_is_last(scraper, monkeypatch):
    scraper.fetch_details = False
    visited = []

    def visit(year, start_index):
        visited.append(start_index)
        return ORDER_LIST_HTML

    monkeypatch.setattr(scraper, "browser_visit_order_list", visit)
    csv = OrderCsv(scraper.csv_path)
    csv.start()
    scraper.scrape_year(2024, csv)
    assert visited == [0]
    assert scraper.order_count == 2


def test_process_order_details_browser_error(scraper, monkeypatch):
    order = scraper.lxml_parse_order_list(ORDER_LIST_HTML)[0]

    def broken(_order):
        msg = "tab crashed"
        raise WebDriverException(msg)

    monkeypatch.setattr(scraper, "browser_scrape_order_details", broken)
    csv = OrderCsv(scraper.csv_path)
    csv.start()
    assert scraper.process_order(order, csv) == 3500
    lines = scraper.csv_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    assert lines[1].startswith('"March 3, 2024";"Delivered Mar 5, 2024";"2"')
    assert lines[3] == '"March 3, 2024";"";"1";"shipment";"10.00";"10.00";""'


def test_process_order_falls_back_to_list_data(scraper, browser):
    order = scraper.lxml_parse_order_list(ORDER_LIST_HTML)[0]
    browser.page_source = "<html><body>Sorry, something went wrong</body></html>"
    csv = OrderCsv(scraper.csv_path)
    csv.start()
    assert scraper.process_order(order, csv) == 3500
    assert browser.visited == [order["details_url"]]


def test_command_scrape(scraper, monkeypatch):
    scraper.fetch_details = False
    calls = []
    monkeypatch.setattr(
        scraper, "browser_load_session", lambda: calls.append("session")
    )
    monkeypatch.setattr(
        scraper,
        "browser_visit_order_list",
        lambda year, start_index: ORDER_LIST_HTML,
    )
    scraper.command_scrape()
    assert calls == ["session"]
    lines = scraper.csv_path.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith('"Date";"Shipment Status"')
    assert len(lines) == 5
