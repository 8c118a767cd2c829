"""Exception types raised by convnet_trainer."""


class ConfigurationError(ValueError):
    """Invalid hyperparameters or a shape mismatch between config, model and data.

    Raised synchronously, before any optimization step runs.
    """


class NumericInstabilityError(RuntimeError):
    """Training loss became NaN or infinite. Terminal for the run."""
