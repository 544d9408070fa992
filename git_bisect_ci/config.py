"""Configuration and cache location."""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .errors import BisectCIError
from .history import DEFAULT_MAX_AGE_SECONDS

CACHE_SUBDIR = "git-bisect-ci"
HISTORY_FILE_NAME = "hydra-eval-history"

DEFAULT_HYDRA_URL = "https://hydra.nixos.org"
DEFAULT_PROJECT = "nixos"
DEFAULT_JOBSET = "unstable-small"
DEFAULT_INPUT = "nixpkgs"

ENV_PREFIX = "GIT_BISECT_CI_"


class ConfigError(BisectCIError):
    """Raised when the configuration cannot be resolved."""
    pass


def history_file_path(environ: Optional[Mapping[str, str]] = None) -> str:
    """Locate the evaluation history file in the user's cache directory.

    Uses ``$XDG_CACHE_HOME``, falling back to ``$HOME/.cache``.

    Raises:
        ConfigError: If both variables are unset or empty.
    """
    if environ is None:
        environ = os.environ

    cache_home = environ.get("XDG_CACHE_HOME")
    if not cache_home:
        home = environ.get("HOME")
        if not home:
            raise ConfigError("XDG_CACHE_HOME and HOME are both unset or empty")
        cache_home = os.path.join(home, ".cache")

    return os.path.join(cache_home, CACHE_SUBDIR, HISTORY_FILE_NAME)


@dataclass
class Config:
    """Settings for one invocation."""
    history_path: str
    hydra_url: str = DEFAULT_HYDRA_URL
    project: str = DEFAULT_PROJECT
    jobset: str = DEFAULT_JOBSET
    input_name: str = DEFAULT_INPUT
    max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        history_path: Optional[str] = None,
    ) -> "Config":
        """Build a config from environment variables.

        ``GIT_BISECT_CI_HISTORY_FILE``, ``GIT_BISECT_CI_HYDRA_URL``,
        ``GIT_BISECT_CI_PROJECT``, ``GIT_BISECT_CI_JOBSET``,
        ``GIT_BISECT_CI_INPUT`` and ``GIT_BISECT_CI_MAX_AGE`` (seconds)
        override the defaults. An explicit ``history_path`` wins over both
        the environment and the cache directory.
        """
        if environ is None:
            environ = os.environ

        history_path = (
            history_path
            or environ.get(ENV_PREFIX + "HISTORY_FILE")
            or history_file_path(environ)
        )
        config = cls(history_path=history_path)

        max_age = environ.get(ENV_PREFIX + "MAX_AGE")
        if max_age:
            try:
                config.max_age_seconds = int(max_age)
            except ValueError as e:
                raise ConfigError(
                    f"{ENV_PREFIX}MAX_AGE must be a number of seconds, got {max_age!r}"
                ) from e
            if config.max_age_seconds < 0:
                raise ConfigError(
                    f"{ENV_PREFIX}MAX_AGE must not be negative, got {max_age!r}"
                )

        return config.override(
            hydra_url=environ.get(ENV_PREFIX + "HYDRA_URL"),
            project=environ.get(ENV_PREFIX + "PROJECT"),
            jobset=environ.get(ENV_PREFIX + "JOBSET"),
            input_name=environ.get(ENV_PREFIX + "INPUT"),
        )

    def override(self, **values) -> "Config":
        """Return a copy with every value that is set replaced."""
        return replace(self, **{k: v for k, v in values.items() if v not in (None, "")})
