"""Exception taxonomy for marker generation.

Builders raise these; ``pipeline.build_pattern`` catches them and turns them
into an empty, export-disabled result.
"""

from __future__ import annotations

from typing import List, Sequence


class MarkerGenerationError(Exception):
    """Base exception for marker generation errors."""
    pass


class MarkerValidationError(MarkerGenerationError):
    """Request parameters failed the validation pre-pass."""

    def __init__(self, errors: Sequence[str]):
        self.errors: List[str] = list(errors)
        super().__init__(self.errors[0] if self.errors else "Invalid request")


class PatternMissingError(MarkerGenerationError):
    """Dictionary or marker id lookup failed, or no pattern was supplied."""
    pass


class InvalidModeError(MarkerGenerationError):
    """Unknown extrusion mode."""
    pass


class ExternalToolError(MarkerGenerationError):
    """A collaborator (QR generator, mesh merge) failed."""
    pass


class QrGenerationError(ExternalToolError):
    """QR module generation failed or timed out."""
    pass


class MeshMergeError(ExternalToolError):
    """Merging box geometries into a single mesh failed."""
    pass
