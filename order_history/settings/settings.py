from pathlib import Path

from environs import Env

env = Env()
with env.prefixed("OH_"):
    env.read_env()

    NO_COLOR: bool = env.bool("NO_COLOR", default=False)
    LOG_FILE: Path = Path(env("LOG_FILE", default="scraper.log")).resolve()

    LOGGING = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{asctime} [{levelname}] {module}: {message}",
                "style": "{",
            },
            "colored": {
                "()": "order_history.settings.log_formatter.LogFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose" if NO_COLOR else "colored",
            },
            "file": {
                "class": "logging.FileHandler",
                "filename": str(LOG_FILE),
                "formatter": "verbose",
                "encoding": "utf-8",
            },
        },
        "loggers": {
            "scraper": {
                "handlers": ["console"],
                "level": "WARNING",
            },
            "order_history": {
                "handlers": ["console", "file"],
                "level": "INFO",
            },
        },
    }

    BASE_URL: str = env("BASE_URL", default="https://www.amazon.com").rstrip(
        "/"
    )
    OUTPUT_FOLDER: Path = Path(
        env("OUTPUT_FOLDER", default="./output")
    ).resolve()
    CSV_FILENAME: str = env("CSV_FILENAME", default="amazon-orders-us.csv")
    COOKIE_FILE: Path = Path(
        env("COOKIE_FILE", default="./cookies_us.json")
    ).resolve()

    # Seconds
    LOGIN_TIMEOUT: int = env.int("LOGIN_TIMEOUT", default=10 * 60)
    LOGIN_POLL_INTERVAL: float = env.float("LOGIN_POLL_INTERVAL", default=1)
    PAGE_LOAD_TIMEOUT: int = env.int("PAGE_LOAD_TIMEOUT", default=15)
    MAX_SLEEP: int = env.int("MAX_SLEEP", default=2)

    PAGE_SIZE: int = env.int("PAGE_SIZE", default=10)
    EARLIEST_YEAR: int = env.int("EARLIEST_YEAR", default=2000)
    NAME_MAX_LENGTH: int = env.int("NAME_MAX_LENGTH", default=80)
    FETCH_DETAILS: bool = env.bool("FETCH_DETAILS", default=True)

    HEADLESS: bool = env.bool("HEADLESS", default=False)
    FF_PROFILE_PATH: str = env("FF_PROFILE_PATH", default=None)

    ORDERS_MAX: int = env.int("ORDERS_MAX", default=-1)
    # Strip any whitespace
    ORDERS_SKIP = [x.strip() for x in env.list("ORDERS_SKIP", default=[])]
