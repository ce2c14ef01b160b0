class ScraperError(RuntimeError):
    pass


class LoginTimeoutError(ScraperError):
    """Manual sign-in did not finish before the login timeout."""


class OrderParseError(ScraperError):
    """An order card or details page did not have the expected shape."""
