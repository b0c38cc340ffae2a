"""
Error types for the Turbo-Gherkin language engine.
"""


class TurboGherkinError(Exception):
    """Base exception for all Turbo-Gherkin engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        return self.message


class ConfigurationError(TurboGherkinError):
    """
    Raised when a configuration payload cannot be applied.

    The setter that raised it leaves the state of its category untouched.

    Examples:
    - Payload text is not valid JSON
    - Payload has the wrong shape (list expected, object given)
    - A section/step/import pattern does not compile
    - turbo-gherkin.toml is not valid TOML

    Attributes:
        category: Configuration category that failed (keywords, steps, ...)
        pattern: Name of the pattern that failed to compile, if any
    """

    def __init__(self, category: str, message: str, pattern: str | None = None):
        self.category = category
        self.pattern = pattern
        super().__init__(message)

    def _format_message(self) -> str:
        if self.pattern:
            return f"[{self.category}] pattern '{self.pattern}': {self.message}"
        return f"[{self.category}] {self.message}"


class OperationCancelled(TurboGherkinError):
    """
    Raised when a full-document scan is cancelled between lines.

    Attributes:
        line: Line number (1-indexed) at which the scan stopped
    """

    def __init__(self, operation: str, line: int):
        self.operation = operation
        self.line = line
        super().__init__(f"{operation} cancelled at line {line}")
