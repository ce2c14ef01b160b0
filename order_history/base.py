import argparse
import contextlib
import json
import logging
import os
import random
import time
from collections.abc import Callable
from logging import Logger
from pathlib import Path
from typing import Any

from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    WebDriverException,
)
from selenium.webdriver.firefox.options import Options
from selenium.webdriver.firefox.service import Service as FirefoxService
from selenium.webdriver.remote.webelement import WebElement
from webdriver_manager.core.driver_cache import DriverCacheManager
from webdriver_manager.firefox import GeckoDriverManager as FirefoxDriverManager

from . import settings
from .exceptions import LoginTimeoutError

from .utils import AMBER

# Keys Selenium accepts in add_cookie()
COOKIE_KEYS = (
    "name",
    "value",
    "path",
    "domain",
    "secure",
    "httpOnly",
    "expiry",
    "sameSite",
)


class BaseScraper:
    browser: webdriver.Firefox
    browser_status: str = "no-created"
    log: Logger
    options: argparse.Namespace
    BASE_URL: str = "https://www.example.com"
    name: str = "Base"

    def __init__(
        self,
        options: argparse.Namespace,
        logname: str,
    ):
        self.options = options
        self.log = logging.getLogger(logname)
        self.log.setLevel(options.loglevel)
        self.log.debug("Init complete: %s/%s", __name__, logname)

    def find_element(
        self,
        by_obj: str,
        value: str | None,
        element=None,
    ) -> WebElement | None:
        try:
            if not element:
                element = self.browser_get_instance()
            return element.find_element(by_obj, value)
        except NoSuchElementException:
            return None

    def find_elements(
        self,
        by_obj: str,
        value: str | None,
        element=None,
    ) -> list[WebElement]:
        try:
            if not element:
                element = self.browser_get_instance()
            return element.find_elements(by_obj, value)
        except NoSuchElementException:
            return []

    def browser_get_instance(self) -> webdriver.Firefox:
        """
        Initializing and configures a browser (Firefox)
        using Selenium.

        Returns a exsisting object if avaliable.

            Returns:
                browser (WebDriver): the configured and initialized browser
        """
        if self.browser_status != "created":
            self.log.debug("Loading Firefox webdriver binary")
            os.environ["WDM_LOG"] = str(logging.NOTSET)

            service = FirefoxService(
                executable_path=FirefoxDriverManager(
                    cache_manager=DriverCacheManager(),
                ).install(),
            )
            self.log.debug("Initializing browser")
            options = Options()
            if settings.FF_PROFILE_PATH:
                options.add_argument("-profile")
                options.add_argument(str(settings.FF_PROFILE_PATH))
                self.log.debug("Using profile %s", settings.FF_PROFILE_PATH)
            if settings.HEADLESS:
                options.add_argument("-headless")
            self.log.info("Starting browser")
            self.browser = webdriver.Firefox(options=options, service=service)
            if not settings.HEADLESS:
                self.browser.maximize_window()

            self.browser_status = "created"
            self.log.debug("Returning browser")
        return self.browser

    @property
    def b(self):
        return self.browser_get_instance()

    def browser_safe_quit(self):
        """
        Safely closed the browser instance. (without exceptions)
        """
        try:
            if self.browser_status == "created":
                if self.options.no_close_browser:
                    self.log.info(
                        "Not closing browser because of --no-close-browser",
                    )
                    return
                self.log.info("Safely closing browser")
                self.browser.quit()
                self.browser_status = "quit"
        except WebDriverException:
            pass

    def browser_visit(self, url: str):
        brws = self.browser_get_instance()
        self.log.debug("Visiting %s", url)
        brws.get(url)
        return brws

    def wait_until(
        self,
        check: Callable[[], Any],
        timeout: float,
        interval: float = 1,
    ) -> bool:
        """
        Poll check() until it returns something truthy.

        The page may be in the middle of a navigation when we
        look, so WebDriverExceptions from check() only mean
        "not yet". Raises LoginTimeoutError after timeout seconds.
        """
        start = time.monotonic()
        while True:
            try:
                if check():
                    return True
            except WebDriverException as wde:
                self.log.debug("Ignoring while waiting: %s", wde.msg)
            if time.monotonic() - start > timeout:
                msg = f"Timed out after {timeout} seconds waiting for condition"
                raise LoginTimeoutError(msg)
            time.sleep(interval)

    def load_cookies(self, path: Path) -> bool:
        """
        Adds cookies saved by a previous run to the browser.

        Cookies can only be set for the domain the browser is
        on, so we visit BASE_URL first.
        """
        if not self.can_read(path):
            self.log.debug("No cookie file at %s", path)
            return False
        try:
            cookies = self.read(path, from_json=True)
        except OSError as err:
            self.log.warning(
                AMBER("Could not load cookies from %s: %s"), path, err
            )
            return False
        except ValueError as err:
            self.log.warning(
                AMBER("Discarding unreadable cookie file %s: %s"), path, err
            )
            self.discard_cookies(path)
            return False
        if not isinstance(cookies, list):
            self.log.warning(
                AMBER("Cookie file %s does not hold a list of cookies"), path
            )
            self.discard_cookies(path)
            return False
        loaded = 0
        try:
            brws = self.browser_visit(self.BASE_URL)
            for saved in cookies:
                if not isinstance(saved, dict):
                    self.log.warning(
                        AMBER("Ignoring malformed cookie in %s: %r"),
                        path,
                        saved,
                    )
                    continue
                cookie = {k: v for k, v in saved.items() if k in COOKIE_KEYS}
                if "expiry" in cookie:
                    cookie["expiry"] = int(cookie["expiry"])
                brws.add_cookie(cookie)
                loaded += 1
        except (TypeError, ValueError, WebDriverException) as err:
            self.log.warning(
                AMBER("Could not load cookies from %s: %s"), path, err
            )
            return False
        self.log.info("Loaded %s cookies from %s", loaded, path)
        return loaded > 0

    def discard_cookies(self, path: Path) -> None:
        # Next successful sign-in writes a fresh one
        with contextlib.suppress(OSError):
            self.remove(path)

    def save_cookies(self, path: Path) -> bool:
        try:
            cookies = self.browser_get_instance().get_cookies()
            self.makedir(path.parent)
            self.write(path, cookies, to_json=True)
        except (OSError, WebDriverException) as err:
            self.log.warning(
                AMBER("Could not save cookies to %s: %s"), path, err
            )
            return False
        self.log.debug("Saved %s cookies to %s", len(cookies), path)
        return True

    def rand_sleep(self, min_seconds: int = 0, max_seconds: int = 5) -> None:
        """
        Wait rand(min_seconds(0), max_seconds(5)), so we don't spam Amazon.
        """
        time.sleep(random.randint(min_seconds, max_seconds))  # noqa: S311

    def makedir(self, path: Path | str) -> None:
        with contextlib.suppress(FileExistsError):
            Path(path).mkdir(parents=True)

    def remove(self, path: Path | str) -> bool:
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        self.log.debug("Removed %s", path)
        return True

    def can_read(self, path: Path | str):
        return os.access(path, os.R_OK)

    def write(
        self,
        path: Path | str,
        content: Any,
        *,
        to_json=False,
    ):
        if not isinstance(path, Path):
            path = Path(path)
        if to_json:
            content = json.dumps(content, indent=2)
        with path.open("w", encoding="utf-8") as file:
            file.write(content)
        return content

    def read(
        self,
        path: Path | str,
        *,
        from_json=False,
    ) -> Any:
        if not isinstance(path, Path):
            path = Path(path)
        with path.open(encoding="utf-8-sig") as file:
            contents: str = file.read()
            if from_json:
                try:
                    contents = json.loads(contents)
                except json.decoder.JSONDecodeError as jde:
                    msg = f"Encountered error when reading {path}"
                    raise ValueError(msg) from jde
            return contents
