"""Failure kinds surfaced by the sprite pipeline."""

from __future__ import annotations


class PixelSpriteError(Exception):
    """Base class for every runtime failure the pipeline reports."""

    kind = "error"

    def __str__(self) -> str:
        message = super().__str__()
        return message or self.kind


class DecodeFailure(PixelSpriteError):
    """Input could not be interpreted as a raster image."""

    kind = "decode_failure"


class EmptySubject(PixelSpriteError):
    """No pixel passed the subject alpha threshold."""

    kind = "empty_subject"


class EncodeFailure(PixelSpriteError):
    """The final canvas could not be serialized."""

    kind = "encode_failure"


class CollaboratorFailure(PixelSpriteError):
    """Background removal or the remote edit service failed."""

    kind = "collaborator_failure"
