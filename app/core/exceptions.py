"""
Domain exceptions raised by the screening services.

Routers translate these into HTTP errors; the scoring package never raises
them (rule failures are contained per rule).
"""


class ScreeningError(Exception):
    """Base class for screening engine errors."""
    pass


class TemplateNotFoundError(ScreeningError):
    """Raised when no screening template can be resolved for a request."""
    pass


class VersionNotFoundError(ScreeningError):
    """Raised when a template version referenced by string does not exist."""
    pass


class RuleNotFoundError(ScreeningError):
    pass


class ResultNotFoundError(ScreeningError):
    pass


class QualificationRuleNotFoundError(ScreeningError):
    pass


NOT_FOUND_ERRORS = (
    TemplateNotFoundError,
    VersionNotFoundError,
    RuleNotFoundError,
    ResultNotFoundError,
    QualificationRuleNotFoundError,
)
