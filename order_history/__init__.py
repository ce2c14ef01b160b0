from .amazon import AmazonOrderHistoryScraper
from .base import BaseScraper
from .csv_export import OrderCsv
from .exceptions import LoginTimeoutError, OrderParseError, ScraperError
from .utils import AMBER, BLUE, GREEN, RED

__all__ = [
    "AmazonOrderHistoryScraper",
    "BaseScraper",
    "OrderCsv",
    "LoginTimeoutError",
    "OrderParseError",
    "ScraperError",
    "RED",
    "BLUE",
    "AMBER",
    "GREEN",
]
