"""
Exceptions raised by the pipeline stages. Every failure aborts the run.
"""


class PipelineError(ValueError):
    """Base class for fatal pipeline errors."""


class LoadError(PipelineError):
    """Input file is missing, unreadable, unsupported, or empty."""


class EmptyDataError(PipelineError):
    """No rows left after missing-value removal."""


class TargetError(PipelineError):
    """Target column is absent or cannot be log-transformed."""


class SplitError(PipelineError):
    """Train/test partition cannot be formed."""


class CrossValidationError(PipelineError):
    """Too few rows to form the requested folds."""


class SchemaError(PipelineError):
    """Declared features cannot be expanded into a design matrix."""
