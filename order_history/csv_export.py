import csv
import logging
from pathlib import Path

from .orders import CSV_HEADER

log = logging.getLogger(__name__)


class OrderCsv:
    """
    Semicolon separated, every field quoted. Rows are appended
    as orders are scraped, so a crash keeps what we have so far.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _open(self, mode: str):
        return self.path.open(mode, encoding="utf-8", newline="")

    def _writer(self, file):
        return csv.writer(
            file,
            delimiter=";",
            quotechar='"',
            quoting=csv.QUOTE_ALL,
            lineterminator="\n",
        )

    def start(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        log.debug("Writing CSV header to %s", self.path)
        with self._open("w") as file:
            self._writer(file).writerow(CSV_HEADER)

    def append(self, rows: list[list[str]]) -> None:
        if not rows:
            return
        with self._open("a") as file:
            self._writer(file).writerows(rows)
