class ConfigurationError(ValueError):
    """Raised at construction when the detector is misconfigured."""


class CapacityExceededError(RuntimeError):
    """Raised when decoded candidates overflow a buffer set to `overflow="raise"`."""


class BackendUnavailable(RuntimeError):
    """Raised when the inference runtime cannot be imported."""


class ModelLoadError(RuntimeError):
    """Raised when model files are missing or unsupported."""
