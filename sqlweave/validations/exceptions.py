class SqlWeaveError(Exception):
    """
    Base class for every error raised by sqlweave itself.
    """


class ExpressionResolutionError(SqlWeaveError, LookupError):
    """
    Raised when an expression path cannot be resolved against the parameter graph
    (missing property, None intermediate, wrong type access).
    """
    def __init__(self, expression: str, message: str | None = None):
        self.expression = expression
        super().__init__(message or f"Cannot resolve expression '{expression}'")


class ConfigurationError(SqlWeaveError, ValueError):
    """
    Raised at setup time for malformed configuration: unparsable files, invalid
    option values, unknown override keys or a customizer that cannot be loaded.
    """
