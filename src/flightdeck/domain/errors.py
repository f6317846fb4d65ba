"""Domain-level error hierarchy."""

from __future__ import annotations


class FlightdeckError(Exception):
    """Base class for errors raised by the integration engine."""


class CatalogError(FlightdeckError):
    """Raised when a mapping plan references metadata the catalog does not know."""


class UnknownEntitySetError(CatalogError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Entity set {name!r} does not exist in the catalog")
        self.name = name


class UnknownPropertyTypeError(CatalogError):
    def __init__(self, fqn: str) -> None:
        super().__init__(f"Property type {fqn!r} does not exist in the catalog")
        self.fqn = fqn


class PipelineError(FlightdeckError):
    """Raised when a flight cannot be completed."""


class IntegrationNotFoundError(FlightdeckError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Integration with name {name} does not exist")
        self.name = name


class IntegrationExistsError(FlightdeckError):
    def __init__(self, name: str) -> None:
        super().__init__(f"An integration with name {name} already exists")
        self.name = name


class IntegrationKeyMismatchError(FlightdeckError):
    """Raised when an enqueue request presents the wrong integration key."""


class InvalidIntegrationError(FlightdeckError):
    """Raised when an integration definition fails validation."""


class JobNotFoundError(FlightdeckError):
    def __init__(self, job_id: object) -> None:
        super().__init__(f"Job id {job_id} is not assigned to an existing integration job")
        self.job_id = job_id
