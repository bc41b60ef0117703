"""Error taxonomy for the document engine."""

from __future__ import annotations

from typing import Sequence


class SilkPdfError(Exception):
    """Base class for all engine failures."""

    default_message = "Document processing failed."

    def __init__(self, message: str = "") -> None:
        """Initialize the exception, falling back to the class default message."""
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SilkPdfError):
    """Raised for bad or empty user input before any document work starts."""

    default_message = "Invalid input."


class ContainerError(SilkPdfError):
    """Raised when an input binary cannot be processed."""

    default_message = "Failed to process file."


class ContainerLoadError(ContainerError):
    """Raised when bytes are not a well-formed, unencrypted PDF."""

    default_message = "PDF appears to be corrupted or unreadable."


class RenderError(ContainerError):
    """Raised when the renderer fails on a document or page."""

    default_message = "Failed to render page."


class DecodeError(ContainerError):
    """Raised when an image could not be decoded in any of the attempted formats."""

    default_message = "Failed to decode image."

    def __init__(
        self,
        attempts: Sequence[str],
        causes: Sequence[BaseException] = (),
        name: str = "",
    ) -> None:
        self.attempts = tuple(attempts)
        self.causes = tuple(causes)
        label = f" {name}" if name else ""
        super().__init__(
            f"Failed to decode image{label} (tried: {', '.join(self.attempts)})"
        )


class DependencyUnavailableError(SilkPdfError):
    """Raised when a required library or adapter was not initialized."""

    default_message = "A required document library is unavailable."
