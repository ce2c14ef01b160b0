import logging

from colored import Style, fore

DETAILED = "%(asctime)s [%(levelname)s] %(module)s:%(funcName)s: %(message)s"
BRIEF = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"

# https://dslackw.gitlab.io/colored/tables/colors/
LEVEL_FORMATS = {
    logging.DEBUG: ("dark_gray", DETAILED),
    logging.INFO: (None, BRIEF),
    logging.WARNING: ("dark_orange", DETAILED),
    logging.ERROR: ("red", DETAILED),
    logging.CRITICAL: ("red", DETAILED),
}


class LogFormatter(logging.Formatter):
    """
    Console formatter that colours the whole line by log level.

    Messages that are already highlighted (RED(), AMBER() ...)
    end with a reset, so the level colour is applied again after
    the message to keep the rest of the line readable.
    """

    def __init__(self, datefmt=None):
        super().__init__(fmt=BRIEF, datefmt=datefmt, style="%")
        self.formatters = {
            level: logging.Formatter(self.colorize(fmt, color), datefmt)
            for level, (color, fmt) in LEVEL_FORMATS.items()
        }

    @staticmethod
    def colorize(fmt: str, color: str | None) -> str:
        if color is None:
            return f"{Style.reset}{fmt}{Style.reset}"
        start = fore(color)
        fmt = fmt.replace("%(message)s", f"%(message)s{start}")
        return f"{start}{fmt}{Style.reset}"

    def format(self, record):
        # Custom levels fall back to the closest standard one below
        level = max(
            (lvl for lvl in self.formatters if lvl <= record.levelno),
            default=logging.DEBUG,
        )
        return self.formatters[level].format(record)
