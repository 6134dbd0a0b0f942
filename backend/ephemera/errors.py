# backend/ephemera/errors.py
"""Typed errors raised by the lifecycle components.

Every error carries a human readable message. The API layer maps the
category (the direct subclass of ``ControlError``) onto an HTTP status.
"""
from typing import Optional


class ControlError(Exception):
    """Base class for all control plane errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# Validation (client errors, never retried)

class ValidationError(ControlError):
    pass


class InvalidTTL(ValidationError):
    pass


class InvalidInstanceType(ValidationError):
    pass


class MissingTTL(ValidationError):
    pass


# Not found / foreign resources

class NotFoundError(ControlError):
    pass


class InstanceNotFound(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"instance {name} does not exist")
        self.name = name


class SnapshotNotFound(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"unable to find a snapshot for service {name}")
        self.name = name


class BlueprintNotFound(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"unable to find an active blueprint image for service {name}")
        self.name = name


class NotManagedError(ControlError):
    def __init__(self, name: str):
        super().__init__(f"instance {name} is not managed by this control plane")
        self.name = name


# Policy

class PolicyError(ControlError):
    pass


class TTLBoundExceeded(PolicyError):
    pass


class InstanceStillRunning(PolicyError):
    def __init__(self, name: str):
        super().__init__(f"can't change the type of {name} while it is online")
        self.name = name


class AlreadyInProgress(PolicyError):
    def __init__(self, name: str):
        super().__init__(f"a termination of {name} is already in progress")
        self.name = name


# Provider

class ProviderError(ControlError):
    """A call to the compute or DNS provider failed."""

    def __init__(self, message: str, operation: Optional[str] = None, resource: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.resource = resource


# Timeouts

class ControlTimeoutError(ControlError):
    pass


class UnlockTimeout(ControlTimeoutError):
    def __init__(self, name: str, timeout: float):
        super().__init__(f"timed out after {timeout:g}s waiting for instance {name} to unlock")
        self.name = name


class ActionTimeout(ControlTimeoutError):
    def __init__(self, phase: str, name: str, timeout: float):
        super().__init__(f"timed out after {timeout:g}s waiting for {phase} of instance {name}")
        self.phase = phase
        self.name = name
