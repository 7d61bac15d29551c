"""Exceptions raised by the generation collaborators."""


class GenerationError(Exception):
    """Base class for generation failures."""


class TextGenerationError(GenerationError):
    """The text collaborator failed or returned an unusable payload."""


class SlideCountMismatchError(TextGenerationError):
    """The text collaborator returned a different number of slides than requested."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"Expected {expected} slides, received {received}")


class ImageGenerationError(GenerationError):
    """The image collaborator failed for one task."""
