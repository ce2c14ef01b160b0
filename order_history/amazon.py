import argparse
import datetime
import re
from pathlib import Path
from typing import Final

from lxml.html import HtmlElement
from lxml.html.soupparser import fromstring
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.wait import WebDriverWait

from . import settings
from .base import BaseScraper
from .csv_export import OrderCsv
from .exceptions import OrderParseError, ScraperError
from .money import format_cents, to_cents
from .orders import summarize_order

from .utils import AMBER, BLUE, GREEN


class AmazonOrderHistoryScraper(BaseScraper):
    name: Final[str] = "amazon.com"

    # Order list (orderFilter=year-XXXX)
    ORDER_CONTAINER: Final[str] = "section.your-orders-content-container"
    ORDER_GROUP: Final[str] = f"{ORDER_CONTAINER} .a-box-group"
    ORDER_DATE: Final[str] = (
        ".order-header .a-fixed-right-grid-col.a-col-left .a-row"
        " .a-column.a-span3 .a-row span.aok-break-word"
    )
    ORDER_PRICE: Final[str] = (
        ".order-header .a-fixed-right-grid-col.a-col-left .a-row"
        " .a-column.a-span2 .a-row span.aok-break-word"
    )
    ORDER_LINK: Final[str] = "a[href*='orderID=']"
    ORDER_SHIPMENTS: Final[str] = ".a-box.shipment"
    SHIPMENT_STATUS: Final[str] = (
        ".a-box-inner .a-row.shipment-top-row.js-shipment-info-container"
    )
    SHIPMENT_ITEMS: Final[str] = (
        ".a-box-inner .a-fixed-right-grid.a-spacing-top-medium"
        " .a-fixed-right-grid-inner.a-grid-vertical-align.a-grid-top"
        " .a-fixed-right-grid-col.a-col-left .a-row .a-fixed-left-grid"
        " .a-fixed-left-grid-inner"
    )
    ITEM_NAME: Final[str] = (
        ".a-fixed-left-grid-col.a-col-right div:nth-of-type(1).a-row"
    )
    ITEM_PRICE: Final[str] = (
        ".a-fixed-left-grid-col.a-col-right div.a-row"
        " .a-size-small.a-color-price"
    )

    # Order details page
    DETAILS_CONTAINER: Final[str] = "#orderDetails"
    DETAILS_SHIPMENTS: Final[str] = "#orderDetails .a-box.shipment"
    DETAILS_ITEM_XPATH: Final[str] = (
        ".//div[contains(@class, 'yohtmlc-item')]/parent::div"
    )
    DETAILS_ITEM_NAME: Final[str] = ".yohtmlc-item a.a-link-normal"
    DETAILS_ITEM_PRICE: Final[str] = ".yohtmlc-item .a-color-price"
    DETAILS_ITEM_QTY: Final[str] = ".item-view-qty"
    DETAILS_SUBTOTALS: Final[str] = "#od-subtotals .a-row"

    ORDER_ID_RE: Final[str] = r"orderID=([A-Z0-9-]+)"

    def __init__(self, options: argparse.Namespace):
        super().__init__(options, __name__)
        # pylint: disable=invalid-name
        self.BASE_URL = settings.BASE_URL
        self.LOGIN_PAGE_RE = (
            r"/ap/(signin|mfa|cvf|challenge)|transactionapproval"
        )
        self.YEARS = self.check_year(options.year)
        self.fetch_details = settings.FETCH_DETAILS and not options.no_details
        self.csv_path = Path(
            options.output or settings.OUTPUT_FOLDER / settings.CSV_FILENAME
        ).resolve()
        self.cookie_path = Path(
            options.cookies or settings.COOKIE_FILE
        ).resolve()
        self.order_count = 0
        self.setup_templates()

    # Scraper commands
    def command_scrape(self) -> None:
        csv = OrderCsv(self.csv_path)
        running_total = 0
        try:
            self.browser_load_session()
            csv.start()
            for year in self.YEARS:
                self.log.info(BLUE("STARTING %s"), year)
                year_total = self.scrape_year(year, csv)
                running_total += year_total
                self.log.info(
                    "Total for %s: %s", year, format_cents(year_total)
                )
                self.log.info(
                    GREEN("TOTAL SUM NOW: %s"), format_cents(running_total)
                )
                if self.orders_max_reached():
                    self.log.info(
                        "Scraped %s order(s), stopping", self.order_count
                    )
                    break
        finally:
            if self.browser_status == "created":
                self.save_cookies(self.cookie_path)
            self.browser_safe_quit()
        self.log.info(GREEN("Done. CSV saved to: %s"), self.csv_path)

    def scrape_year(self, year: int, csv: OrderCsv) -> int:
        start_index = 0
        year_total = 0
        while True:
            html = self.browser_visit_order_list(year, start_index)
            orders = self.lxml_parse_order_list(html)
            if not orders:
                self.log.debug(
                    "No orders for %s at index %s", year, start_index
                )
                break
            for order in orders:
                if self.orders_max_reached():
                    return year_total
                if self.skip_order(order.get("id")):
                    continue
                year_total += self.process_order(order, csv)
            if len(orders) < settings.PAGE_SIZE:
                # Last page for this year
                break
            start_index += settings.PAGE_SIZE
            self.rand_sleep(0, settings.MAX_SLEEP)
        return year_total

    def process_order(self, order: dict, csv: OrderCsv) -> int:
        self.order_count += 1
        if self.fetch_details and order.get("details_url"):
            try:
                self.browser_scrape_order_details(order)
            except OrderParseError as ope:
                self.log.warning(
                    AMBER("Using order list data for %s: %s"),
                    order.get("id"),
                    ope,
                )
            except WebDriverException as wde:
                self.log.warning(
                    AMBER(
                        "Could not open details for %s,"
                        " using order list data: %s"
                    ),
                    order.get("id"),
                    wde.msg,
                )
        rows, totals = summarize_order(order)
        self.log_order(order, totals)
        csv.append(rows)
        return totals["total"]

    def log_order(self, order: dict, totals: dict) -> None:
        self.log.info(
            "%s, %s",
            order.get("date"),
            format_cents(order.get("grand_total") or order.get("total", 0)),
        )
        for shipment in order.get("shipments", []):
            self.log.info(
                "  %s", shipment.get("status") or "no shipment status shown"
            )
            for item in shipment.get("items", []):
                self.log.info("    %s", item.get("name"))
                self.log.info(
                    "    (%s) %s",
                    item.get("count"),
                    format_cents(item.get("line", 0)),
                )
        self.log.info(
            "order total paid after returns: %s", format_cents(totals["paid"])
        )
        self.log.info(
            "order total shipment costs: %s", format_cents(totals["shipping"])
        )
        if totals["tax"]:
            self.log.info("order total tax: %s", format_cents(totals["tax"]))

    # Function primarily using Selenium to scrape websites
    def browser_load_session(self) -> None:
        if self.load_cookies(self.cookie_path):
            self.b.refresh()
        self.ensure_signed_in()

    def ensure_signed_in(self) -> None:
        """
        Opens the order list once and waits for it to render.

        Sign-in, 2FA and CAPTCHA are left to the user. We do not
        navigate while waiting, that would interrupt them.
        """
        self.browser_visit(self.ORDERS_URL)
        if not self.order_list_loaded():
            self.log.info(
                BLUE(
                    "If prompted, complete sign-in/MFA in the browser window."
                    " Will continue automatically when the order list loads"
                    " (waiting up to %s seconds)."
                ),
                settings.LOGIN_TIMEOUT,
            )
        self.wait_until(
            self.order_list_loaded,
            settings.LOGIN_TIMEOUT,
            settings.LOGIN_POLL_INTERVAL,
        )
        self.log.info(GREEN("Signed in to %s"), self.name)
        self.save_cookies(self.cookie_path)

    def order_list_loaded(self) -> bool:
        return bool(self.find_element(By.CSS_SELECTOR, self.ORDER_CONTAINER))

    def on_login_page(self) -> bool:
        return bool(re.search(self.LOGIN_PAGE_RE, self.b.current_url))

    def browser_visit_order_list(self, year: int, start_index: int) -> str:
        url = self.ORDER_LIST_URL_TEMPLATE.format(
            year=year, start_index=start_index
        )
        self.log.debug(
            "Scraping order list for %s, index %s", year, start_index
        )
        brws = self.browser_visit(url)
        if not self.order_list_loaded():
            self.log.warning(
                AMBER("Session might have expired, re-checking login...")
            )
            self.ensure_signed_in()
            brws = self.browser_visit(url)
        try:
            WebDriverWait(brws, settings.PAGE_LOAD_TIMEOUT).until(
                EC.presence_of_element_located(
                    (By.CSS_SELECTOR, self.ORDER_CONTAINER)
                ),
            )
        except TimeoutException:
            self.log.debug("Timeout waiting for order list at %s", url)
        self.log.debug(
            "%s orders on page",
            len(self.find_elements(By.CSS_SELECTOR, self.ORDER_GROUP)),
        )
        return brws.page_source

    def browser_scrape_order_details(self, order: dict) -> dict:
        url = order["details_url"]
        self.log.debug("Scraping %s, visiting %s", order.get("id"), url)
        brws = self.browser_visit(url)
        if self.on_login_page():
            self.log.warning(
                AMBER("Session might have expired, re-checking login...")
            )
            self.ensure_signed_in()
            brws = self.browser_visit(url)
        try:
            WebDriverWait(brws, settings.PAGE_LOAD_TIMEOUT).until(
                EC.presence_of_element_located(
                    (By.CSS_SELECTOR, self.DETAILS_CONTAINER)
                ),
            )
        except TimeoutException:
            self.log.debug("Timeout waiting for order details at %s", url)
        self.rand_sleep(0, settings.MAX_SLEEP)
        return self.lxml_parse_order_details(brws.page_source, order)

    # Functions using lxml to parse page source
    @classmethod
    def text_or_empty(cls, element: HtmlElement, selector: str) -> str:
        found = element.cssselect(selector)
        if not found:
            return ""
        return found[0].text_content().strip()

    @classmethod
    def first_line(cls, text: str) -> str:
        for line in text.splitlines():
            if line.strip():
                return line.strip()
        return ""

    def lxml_parse_order_list(self, html: str) -> list[dict]:
        orders = []
        for order_el in fromstring(html).cssselect(self.ORDER_GROUP):
            order = {
                "date": self.text_or_empty(order_el, self.ORDER_DATE),
                "total": to_cents(
                    self.text_or_empty(order_el, self.ORDER_PRICE)
                ),
                "id": None,
                "details_url": None,
                "shipments": self.lxml_parse_shipments(
                    order_el.cssselect(self.ORDER_SHIPMENTS),
                    self.SHIPMENT_ITEMS,
                    self.ITEM_NAME,
                    self.ITEM_PRICE,
                ),
            }
            for link in order_el.cssselect(self.ORDER_LINK):
                match = re.search(self.ORDER_ID_RE, link.get("href", ""))
                if match:
                    order["id"] = match.group(1)
                    order["details_url"] = self.ORDER_URL_TEMPLATE.format(
                        order_id=order["id"]
                    )
                    break
            orders.append(order)
        self.log.debug("Found %s orders on page", len(orders))
        return orders

    def lxml_parse_shipments(
        self,
        shipment_els: list[HtmlElement],
        items_selector: str,
        name_selector: str,
        price_selector: str,
        *,
        items_xpath: bool = False,
    ) -> list[dict]:
        shipments = []
        for shipment_el in shipment_els:
            item_els = (
                shipment_el.xpath(items_selector)
                if items_xpath
                else shipment_el.cssselect(items_selector)
            )
            shipments.append(
                {
                    "status": self.first_line(
                        self.text_or_empty(shipment_el, self.SHIPMENT_STATUS)
                    ),
                    "items": [
                        {
                            "name": self.text_or_empty(item_el, name_selector),
                            "price": self.text_or_empty(
                                item_el, price_selector
                            ),
                            "quantity": self.text_or_empty(
                                item_el, self.DETAILS_ITEM_QTY
                            ),
                        }
                        for item_el in item_els
                    ],
                }
            )
        return shipments

    def lxml_parse_order_details(self, html: str, order: dict) -> dict:
        root = fromstring(html)
        if not root.cssselect(self.DETAILS_CONTAINER):
            msg = f"No order details found for {order.get('id')}"
            raise OrderParseError(msg)

        shipments = self.lxml_parse_shipments(
            root.cssselect(self.DETAILS_SHIPMENTS),
            self.DETAILS_ITEM_XPATH,
            self.DETAILS_ITEM_NAME,
            self.DETAILS_ITEM_PRICE,
            items_xpath=True,
        )
        if any(shipment["items"] for shipment in shipments):
            order["shipments"] = shipments
        else:
            self.log.debug(
                "No items on details page for %s, keeping order list items",
                order.get("id"),
            )

        order.update(self.lxml_parse_subtotals(root))
        return order

    def lxml_parse_subtotals(self, root: HtmlElement) -> dict:
        """
        Reads the "Order Summary" box. Values not stated
        on the page stay None.
        """
        subtotals = {
            "items_subtotal": None,
            "shipping": None,
            "tax": None,
            "grand_total": None,
        }

        def add(key, cents):
            subtotals[key] = (subtotals[key] or 0) + cents

        for price_row in root.cssselect(self.DETAILS_SUBTOTALS):
            price_columns: list[HtmlElement] = price_row.xpath("./div")
            if len(price_columns) != 2:  # noqa: PLR2004
                continue
            label = price_columns[0].text_content().strip().lower()
            cents = to_cents(price_columns[1].text_content().strip())
            self.log.debug("Subtotal %s %s", label, format_cents(cents))
            if "grand total" in label:
                subtotals["grand_total"] = cents
            elif "subtotal" in label and "item" in label:
                subtotals["items_subtotal"] = cents
            elif "shipping" in label or "postage" in label:
                # "Free Shipping: -$5.99" is a negative row
                add("shipping", cents)
            elif "tax" in label and "before tax" not in label:
                add("tax", cents)
        return subtotals

    # Init / Utility Functions
    def check_year(self, opt_year: int | str | None) -> list[int]:
        this_year = datetime.date.today().year  # noqa: DTZ011
        if opt_year is not None:
            if not re.fullmatch(r"\d{4}", str(opt_year)):
                err = f"Year must be four digits: {opt_year}"
                self.log.error(err)
                raise ScraperError(err)
            year = int(opt_year)
            if year > this_year or year < settings.EARLIEST_YEAR:
                err = (
                    f"The year {year} is in the future or before"
                    f" {settings.EARLIEST_YEAR}"
                )
                self.log.error(err)
                raise ScraperError(err)
            years = [year]
        else:
            years = list(range(this_year, settings.EARLIEST_YEAR - 1, -1))
        self.log.info(
            "Will scrape %s",
            ", ".join(str(year) for year in years),
        )
        return years

    def skip_order(self, order_id: str | None) -> bool:
        if order_id and order_id in settings.ORDERS_SKIP:
            self.log.info("Skipping order ID %s", order_id)
            return True
        return False

    def orders_max_reached(self) -> bool:
        return 0 < settings.ORDERS_MAX <= self.order_count

    def setup_templates(self):
        # pylint: disable=invalid-name
        # URL Templates
        self.ORDERS_URL = f"{self.BASE_URL}/gp/your-account/order-history"
        self.ORDER_LIST_URL_TEMPLATE = (
            f"{self.BASE_URL}/gp/your-account/order-history?"
            "orderFilter=year-{year}&startIndex={start_index}"
        )
        self.ORDER_URL_TEMPLATE = (
            f"{self.BASE_URL}/"
            "gp/your-account/order-details/?ie=UTF8&orderID={order_id}"
        )
