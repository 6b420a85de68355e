"""Exception types raised by the enrichment pipeline.

Unmapped identifiers and libraries without significant terms are not errors;
they are reported through MappingReport and empty result sequences.
"""


class OraPipelineError(Exception):
    """Base class for pipeline errors.

    Attributes:
        stage: Pipeline stage that raised the error (e.g. "input", "enrichment")
        library: Library tag the error relates to, if any
    """

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        library: str | None = None,
    ):
        self.message = message
        self.stage = stage
        self.library = library
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.stage:
            context.append(f"stage={self.stage}")
        if self.library:
            context.append(f"library={self.library}")
        if context:
            return f"[{', '.join(context)}] {self.message}"
        return self.message

    def with_context(
        self,
        stage: str | None = None,
        library: str | None = None,
    ) -> "OraPipelineError":
        """Return a copy of this error with stage/library context filled in."""
        return type(self)(
            self.message,
            stage=self.stage or stage,
            library=self.library or library,
        )


class InputError(OraPipelineError, ValueError):
    """Input gene list is missing, unreadable, or empty after normalization."""


class ConfigurationError(OraPipelineError, ValueError):
    """Invalid cutoffs, universe size, or library/provider configuration."""
