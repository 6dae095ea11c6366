"""
Smart Scribbler Backend — Abstract LLM Service Interface
==========================================================

What:  Abstract base class for the two AI functions of the pipeline.
Why:   NotesService depends on this contract, not on the Gemini SDK, so tests
       can inject a fake and another provider could be dropped in.
How:   Concrete implementations inherit from LLMService.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Union

from scribbler.schemas.notes import ProcessedNotes
from scribbler.services.image_service import ImageInput


class LLMService(ABC):
    """
    Abstract interface for note analysis and diagram drawing.

    Contract:
        - All provider errors are wrapped in LLMServiceError
        - No retries: a failed call is reported to the caller
    """

    @abstractmethod
    async def analyze_notes(
        self, notes: Union[List[ImageInput], str]
    ) -> ProcessedNotes:
        """
        Turn handwritten note images or document text into structured notes.

        Args:
            notes: Validated images (photos of handwriting) or plain text.

        Returns:
            ProcessedNotes with title and sections; diagram_images unset.

        Raises:
            LLMServiceError: The model failed or returned malformed JSON.
        """
        ...

    @abstractmethod
    async def generate_diagram_image(self, description: str) -> Optional[str]:
        """
        Draw one diagram from its textual description.

        Returns:
            A data URI (data:image/png;base64,...) or None when the model
            answered without an image.

        Raises:
            LLMServiceError: The model call failed.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the provider is reachable with our credentials."""
        ...
