"""Pipeline error types.

Catalog errors are re-exported so callers can import every error the
pipeline surfaces from one place.
"""

from __future__ import annotations

from typing import List, Optional

from catalog.errors import (  # noqa: F401
    CatalogError,
    ComponentNotFoundError,
    DimensionMismatchError,
    DuplicateIdError,
)


class PipelineError(Exception):
    """Base class for pipeline failures."""


class ParseError(PipelineError):
    """Component input is malformed or missing required fields."""


class NoCandidateError(PipelineError):
    """The component library has nothing to match against."""


class ConfigurationError(PipelineError):
    """Invalid or incomplete configuration. Carries every problem found."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class StageTransitionError(PipelineError):
    """A stage was moved to a status its current status cannot reach."""


class ExternalServiceError(PipelineError):
    """An external call (LLM, embeddings, visual validation) failed.

    Args:
        message: Description of the failure
        transient: True for timeouts, connection errors, HTTP 429 and 5xx
        status_code: HTTP status, if there was a response
    """

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.transient = transient
        self.status_code = status_code


class OutputWriteError(PipelineError, OSError):
    """Writing a generated artifact to disk failed."""
