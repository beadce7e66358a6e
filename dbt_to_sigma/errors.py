"""Exceptions raised while converting dbt semantic models to Sigma."""


class ConversionError(Exception):
    """Base class for errors that fail a single model without aborting the run."""


class NoSemanticModelError(ConversionError):
    """A file expected to declare semantic models declares none."""


class ModelNotFoundError(ConversionError):
    """A requested semantic model does not exist in the loaded corpus."""


class UnsafePathError(ConversionError):
    """A name could not be turned into a safe file name."""
