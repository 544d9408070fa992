"""Command line interface for git-bisect-ci."""

import argparse
import os
import sys

from . import __version__
from .config import Config, ConfigError
from .logging_setup import Colors
from .runner import SearchRunner

PROG = "git-bisect-ci"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="List the commits closest to HEAD in the current bisection "
                    "that Hydra has already evaluated",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Populate the evaluation history (once)
  git-bisect-ci scrape

  # During a git bisect, list the nearest evaluated commits
  git-bisect-ci
  git checkout $(git-bisect-ci | head -n1)

  # Use another jobset
  git-bisect-ci --project nixpkgs --jobset trunk scrape

Environment:
  XDG_CACHE_HOME, HOME         Location of the history cache
  GIT_BISECT_CI_HISTORY_FILE   Explicit history file path
  GIT_BISECT_CI_HYDRA_URL, GIT_BISECT_CI_PROJECT, GIT_BISECT_CI_JOBSET,
  GIT_BISECT_CI_INPUT, GIT_BISECT_CI_MAX_AGE

Exit Codes:
  0 - Success (possibly with no commits printed)
  1 - Search or scrape failed
  2 - Invalid arguments
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=["search", "scrape"],
        default="search",
        help="search for evaluated commits (default) or scrape the history"
    )

    parser.add_argument(
        "--repo", "-r",
        metavar="PATH",
        default=".",
        help="Path to git repository (default: current directory)"
    )
    parser.add_argument(
        "--history-file", "-f",
        metavar="FILE",
        help="Evaluation history file (default: in the cache directory)"
    )
    parser.add_argument(
        "--hydra-url",
        metavar="URL",
        help="Hydra server to scrape (default: https://hydra.nixos.org)"
    )
    parser.add_argument(
        "--project",
        metavar="NAME",
        help="Hydra project (default: nixos)"
    )
    parser.add_argument(
        "--jobset",
        metavar="NAME",
        help="Hydra jobset (default: unstable-small)"
    )
    parser.add_argument(
        "--input",
        metavar="NAME",
        dest="input_name",
        help="Jobset input whose revision is recorded (default: nixpkgs)"
    )
    parser.add_argument(
        "--max-age",
        metavar="SECONDS",
        type=int,
        help="Do not refresh a history file younger than this (default: 900)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (default: sys.argv[1:]).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.max_age is not None and args.max_age < 0:
        parser.error("--max-age must not be negative")

    Colors.init(sys.stderr)

    try:
        config = Config.from_env(history_path=args.history_file)
    except ConfigError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return 1

    config = config.override(
        hydra_url=args.hydra_url,
        project=args.project,
        jobset=args.jobset,
        input_name=args.input_name,
        max_age_seconds=args.max_age,
    )

    runner = SearchRunner(
        repo_path=os.path.abspath(args.repo),
        config=config,
        verbose=args.verbose,
        prog=PROG,
    )

    if args.command == "scrape":
        return runner.scrape()
    return runner.run()


if __name__ == "__main__":
    sys.exit(main())
