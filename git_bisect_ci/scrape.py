"""Fetch the evaluation history of a Hydra jobset."""

import logging
import os
import tempfile
from typing import Any, Dict, Iterator, Optional, Tuple

import requests

from . import __version__
from .errors import BisectCIError
from .oid import Oid, OidParseError

logger = logging.getLogger("git-bisect-ci")

REQUEST_TIMEOUT_SECONDS = 60


class ScrapeError(BisectCIError):
    """Raised when the evaluation history cannot be fetched or stored."""
    pass


def parse_page(page_suffix: str) -> Optional[int]:
    """Extract the page number from a ``?page=N`` link suffix."""
    _, sep, number = page_suffix.partition("=")
    if not sep:
        return None
    try:
        return int(number)
    except ValueError:
        return None


class HydraScraper:
    """Pages through the evaluations of a Hydra jobset.

    Each evaluation contributes one ``"<revision> <eval id>"`` record for the
    revision of the configured jobset input.
    """

    def __init__(
        self,
        base_url: str,
        project: str,
        jobset: str,
        input_name: str = "nixpkgs",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.project = project
        self.jobset = jobset
        self.input_name = input_name
        self.session = session or requests.Session()

    @property
    def evals_url(self) -> str:
        return f"{self.base_url}/jobset/{self.project}/{self.jobset}/evals"

    def fetch_page(self, page_suffix: str = "") -> Dict[str, Any]:
        """Fetch one page of evaluations as a JSON object."""
        url = self.evals_url + page_suffix
        headers = {
            "Accept": "application/json",
            "User-Agent": f"git-bisect-ci/{__version__}",
        }
        logger.debug(f"Fetching {url}")
        try:
            response = self.session.get(
                url, headers=headers, timeout=REQUEST_TIMEOUT_SECONDS
            )
            response.raise_for_status()
            page = response.json()
        except requests.RequestException as e:
            raise ScrapeError(f"fetching {url}: {e}") from e
        except ValueError as e:
            raise ScrapeError(f"decoding {url}: {e}") from e

        if not isinstance(page, dict):
            raise ScrapeError(f"decoding {url}: expected an object")
        return page

    def parse_evaluation(self, evaluation: Dict[str, Any]) -> Tuple[str, int]:
        """Return the input revision and id of one evaluation.

        Raises:
            ScrapeError: If the evaluation lacks the input or its revision
                is not a git object id.
        """
        try:
            eval_id = int(evaluation["id"])
            inputs = evaluation["jobsetevalinputs"]
            revision = inputs[self.input_name]["revision"]
        except (KeyError, TypeError, ValueError) as e:
            raise ScrapeError(f"unexpected evaluation format: {e!r}") from e
        if not isinstance(revision, str) or not revision:
            raise ScrapeError(f"evaluation {eval_id}: revision is not a string")
        try:
            oid = Oid.parse(revision)
        except OidParseError as e:
            raise ScrapeError(f"evaluation {eval_id}: revision {revision!r}: {e}") from e
        return str(oid), eval_id

    def iter_evaluations(self) -> Iterator[Tuple[str, int]]:
        """Yield ``(revision, eval_id)`` for every evaluation, page by page."""
        page_suffix = ""
        last_page = None

        while True:
            page = self.fetch_page(page_suffix)
            if last_page is None:
                last_page = parse_page(page.get("last") or "")
            logger.info(
                f"Fetched page {parse_page(page_suffix) or 1}"
                f"/{last_page or '?'} of {self.project}/{self.jobset}"
            )

            for evaluation in page.get("evals") or []:
                # Inputs that are not git revisions (e.g. paths) are skipped
                try:
                    yield self.parse_evaluation(evaluation)
                except ScrapeError as e:
                    logger.warning(f"Skipping evaluation: {e}")

            next_suffix = page.get("next")
            if not next_suffix:
                break
            page_suffix = next_suffix

    def scrape(self, path: str) -> int:
        """Replace the history file at ``path`` with freshly fetched records.

        Records are written oldest first, so the last line names the newest
        evaluation. The file is written next to ``path`` and renamed into
        place, leaving the old file untouched on failure.

        Returns:
            The number of records written.

        Raises:
            ScrapeError: If fetching fails, no usable evaluation was found,
                or the file cannot be written.
        """
        logger.info(f"Scraping {self.project}/{self.jobset} evaluations from {self.base_url}...")
        records = sorted(set(self.iter_evaluations()), key=lambda r: (r[1], r[0]))
        if not records:
            raise ScrapeError(
                f"no usable evaluations of {self.project}/{self.jobset}; "
                f"keeping {path} unchanged"
            )

        directory = os.path.dirname(path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=".hydra-eval-history-", suffix=".tmp"
            )
        except OSError as e:
            raise ScrapeError(f"creating temporary history file: {e}") from e

        try:
            with os.fdopen(fd, "w") as f:
                for revision, eval_id in records:
                    f.write(f"{revision} {eval_id}\n")
            os.replace(tmp_path, path)
        except OSError as e:
            raise ScrapeError(f"writing history file {path}: {e}") from e
        finally:
            # Only left behind when the replace did not happen
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

        logger.info(f"Wrote {len(records)} evaluations to {path}")
        return len(records)
