#!/usr/bin/env python3
import argparse
import datetime
import logging.config
import re
import sys

from order_history import (
    AmazonOrderHistoryScraper,
    RED,
    LoginTimeoutError,
    ScraperError,
)
from order_history import settings

log = logging.getLogger("scraper")


def year_type(value: str) -> int:
    if not re.fullmatch(r"\d{4}", value):
        msg = f"not a four digit year: {value}"
        raise argparse.ArgumentTypeError(msg)
    return int(value)


def parse_args(argv=None):
    log.debug("Parsing command line arguments")
    parser = argparse.ArgumentParser(
        description=(
            "Scrape your Amazon order history into a semicolon separated CSV"
        ),
    )

    parser.add_argument(
        "year",
        nargs="?",
        type=year_type,
        metavar="YEAR",
        help=(
            "What year to get orders for. Default is all years from"
            f" {datetime.date.today().year} down to"  # noqa: DTZ011
            f" {settings.EARLIEST_YEAR}."
        ),
    )

    parser.add_argument(
        "--loglevel",
        type=str.upper,
        default="INFO",
        choices=["DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"],
    )

    parser.add_argument(
        "--no-close-browser",
        action="store_true",
        help="Do not close browser window.",
    )

    parser.add_argument(
        "--no-details",
        action="store_true",
        help=(
            "Only use the order list, do not open order details pages."
            " Shipping is then calculated from the order total."
        ),
    )

    parser.add_argument(
        "--output",
        type=str,
        help=(
            "CSV file to write. Default"
            f" {settings.OUTPUT_FOLDER / settings.CSV_FILENAME}"
        ),
    )

    parser.add_argument(
        "--cookies",
        type=str,
        help=f"Cookie jar to load and save. Default {settings.COOKIE_FILE}",
    )

    args = parser.parse_args(argv)

    log.debug("Command line arguments: %s", args)
    return args


def main(argv=None):
    logging.config.dictConfig(settings.LOGGING)
    args = parse_args(argv)
    log.setLevel(level=args.loglevel)

    try:
        AmazonOrderHistoryScraper(args).command_scrape()
    except LoginTimeoutError:
        log.error(RED("Sign-in was not completed in time, giving up"))
        return 1
    except ScraperError as err:
        log.error(RED("%s"), err)  # noqa: TRY400
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
