"""Exception base class and error chain formatting."""

from contextlib import contextmanager


class BisectCIError(Exception):
    """Base class for all errors raised by git-bisect-ci."""
    pass


class StepError(BisectCIError):
    """A failure wrapped with the name of the step that was running."""
    pass


@contextmanager
def step(description: str):
    """Wrap any BisectCIError raised in the block with ``description``."""
    try:
        yield
    except BisectCIError as e:
        raise StepError(description) from e


def format_error_chain(exc: BaseException) -> str:
    """Join the messages of an exception and its causes.

    Walks ``__cause__`` links, so ``raise StepError("resolving HEAD") from e``
    renders as ``resolving HEAD: <message of e>``.
    """
    messages = []
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        messages.append(str(exc) or type(exc).__name__)
        exc = exc.__cause__
    return ": ".join(messages)
