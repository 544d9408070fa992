"""Main search orchestration class."""

import sys
import traceback
from typing import Optional, Set, TextIO

from .config import Config
from .errors import BisectCIError, format_error_chain, step
from .git import Git
from .graph import build_commit_graph
from .history import HistoryFreshnessPolicy, load_history
from .logging_setup import setup_logging
from .oid import Oid
from .scrape import HydraScraper
from .search import closest_commits


class SearchRunner:
    """Main search orchestration class.

    This class runs one invocation of the tool:
    - Reading the bisection range and HEAD from git
    - Refreshing the evaluation history when it is out of date
    - Searching for the closest evaluated, non-skipped commits
    - Printing them, one per line
    """

    def __init__(
        self,
        repo_path: str,
        config: Config,
        verbose: bool = False,
        prog: str = "git-bisect-ci",
        git: Optional[Git] = None,
        scraper: Optional[HydraScraper] = None,
        out: Optional[TextIO] = None,
    ):
        """Initialize the search runner.

        Args:
            repo_path: Path to the git repository being bisected.
            config: Resolved configuration.
            verbose: If True, enable verbose logging and tracebacks.
            prog: Program name used to prefix error messages.
            git: Git wrapper (default: one for repo_path).
            scraper: History scraper (default: one built from config).
            out: Stream results are printed to (default: stdout).
        """
        self.logger = setup_logging(verbose)
        self.verbose = verbose
        self.prog = prog
        self.config = config
        self.git = git or Git(repo_path, self.logger)
        self.scraper = scraper or HydraScraper(
            config.hydra_url,
            config.project,
            config.jobset,
            input_name=config.input_name,
        )
        self.out = out or sys.stdout

    def is_eligible(self, oid: Oid) -> bool:
        """A commit is eligible unless it was skipped in this bisection."""
        skipped = self.git.is_skipped(oid)
        if skipped:
            self.logger.debug(f"Ignoring skipped commit {oid}")
        return not skipped

    def refresh_history(self, path: str):
        with step("updating history file"):
            self.scraper.scrape(path)

    def find_commits(self) -> Set[Oid]:
        """Find the evaluated commits closest to HEAD.

        Raises:
            StepError: Wrapping the failure of whichever step went wrong.
        """
        with step("finding bisect graph"):
            graph = build_commit_graph(self.git.bisect_log_lines())
        self.logger.debug(f"Bisection range has {len(graph)} commit(s), bad tip {graph.bad}")

        with step("resolving HEAD"):
            head = self.git.rev_parse("HEAD")

        freshness = HistoryFreshnessPolicy(
            self.config.history_path,
            is_ancestor=self.git.is_ancestor,
            refresh=self.refresh_history,
            max_age_seconds=self.config.max_age_seconds,
        )
        with step("opening history file"):
            path = freshness.ensure_fresh(graph.bad)

        with step("reading history file"):
            history = load_history(path)
        self.logger.debug(f"History has {len(history)} evaluated commit(s)")

        with step("finding closest commits"):
            return closest_commits(head, graph, history, self.is_eligible)

    def report_error(self, e: BaseException):
        print(f"{self.prog}: {format_error_chain(e)}", file=sys.stderr, flush=True)
        if self.verbose:
            traceback.print_exc()

    def run(self) -> int:
        """Main entry point for searching.

        Returns:
            Exit code: 0 on success (even if nothing was found), 1 on failure.
        """
        try:
            commits = self.find_commits()
        except KeyboardInterrupt:
            self.logger.warning("Interrupted by user")
            return 1
        except BisectCIError as e:
            self.report_error(e)
            return 1

        if not commits:
            self.logger.info("No evaluated commit found in the bisection range")
        for oid in sorted(commits):
            print(oid, file=self.out)
        self.out.flush()
        return 0

    def scrape(self) -> int:
        """Entry point for populating the history file.

        Returns:
            Exit code: 0 on success, 1 on failure.
        """
        try:
            with step("scraping evaluation history"):
                self.scraper.scrape(self.config.history_path)
        except KeyboardInterrupt:
            self.logger.warning("Interrupted by user")
            return 1
        except BisectCIError as e:
            self.report_error(e)
            return 1
        return 0
