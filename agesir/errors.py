"""Exception hierarchy for the epidemic models."""


class ModelError(Exception):
    """Base class for every error raised by the models."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


class ModelConstructionError(ModelError):
    """A model could not be built from the given inputs."""


class InvalidParameterError(ModelError, ValueError):
    """A parameter or input has an invalid value or shape."""


class InterventionError(ModelError):
    """An intervention is unknown or has invalid parameters."""


class SimulationError(ModelError):
    """A simulation failed or produced inconsistent output."""


class InvalidResultError(ModelError):
    """A simulation result is empty or unusable."""