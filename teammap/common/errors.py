"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class InputError(PipelineError):
    """Raised when a stage input file is missing, unreadable or malformed."""

    error_code = "INPUT_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that should halt in strict mode."""

    error_code = "STAGE_ERROR"


class GeocodeError(StageError):
    """Raised by geocoding providers for a single failed lookup."""

    error_code = "GEOCODE_ERROR"


class DatasetUnavailableError(PipelineError):
    """Raised by the serving layer when a backing file cannot be loaded."""

    error_code = "DATASET_UNAVAILABLE"
