"""Errors raised by the domain and application layers.

The API maps each class onto a status code (see api/exception_handlers.py), so services
raise these instead of HTTPException.
"""

from typing import Any


class DomainException(Exception):
    """Root of the jukebox error hierarchy; `message` is safe to show to a client."""

    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Lookup by id came back empty (404)."""

    # Yo, disc ids are "player:position" strings, e.g. "1:25"
    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Input breaks a rule the request schema can't express (422).

    Slot numbers outside the configured players/positions, state reports naming a
    track the disc doesn't have, disc edits without artist or album.
    """


class ExternalServiceError(DomainException):
    """MusicBrainz, Cover Art Archive or Last.fm failed us (502)."""

    def __init__(self, message: str, service: str | None = None) -> None:
        super().__init__(message)
        self.service = service


class ConfigurationError(DomainException):
    """A feature was used that isn't set up, e.g. Last.fm without API keys (503)."""


__all__ = [
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "ExternalServiceError",
    "ValidationException",
]
