"""
Data loading functionality.

This module reads the input document (athlete profile plus activities with
their samples) from JSON and turns it into prepared activities.
"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DataLoadError, InvalidDataError
from ..models import ActivityMeta, AthleteProfile, PreparedActivity, WireModel
from ..settings import Settings
from .normalizer import StreamNormalizer

logger = logging.getLogger(__name__)


class ActivityRecord(ActivityMeta):
    """Activity metadata together with its raw samples."""

    samples: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def meta(self) -> ActivityMeta:
        """Metadata without the samples."""
        return ActivityMeta(**self.model_dump(exclude={"samples"}))


class InputDocument(WireModel):
    """Top-level input: optional profile and a list of activities."""

    profile: AthleteProfile | None = None
    activities: list[ActivityRecord] = Field(default_factory=list)


class DataLoaderProtocol(Protocol):
    """Protocol for data loaders."""

    def load_document(self, path: Path) -> InputDocument:
        """Load an input document."""
        ...


class ActivityDataLoader:
    """
    Handles loading of input documents.

    This class encapsulates file I/O and validation of the input contract,
    providing a clean interface for the rest of the application.
    """

    def __init__(self, settings: Settings):
        """
        Initialize the data loader.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self.normalizer = StreamNormalizer(settings)
        self.logger = logging.getLogger(__name__)

    def load_document(self, path: Path) -> InputDocument:
        """
        Load an input document from a JSON file.

        Args:
            path: Path to the JSON document

        Returns:
            Validated InputDocument

        Raises:
            DataLoadError: If the file cannot be read or parsed
            InvalidDataError: If the document does not match the input contract
        """
        if not path.exists():
            raise DataLoadError(f"Input file not found: {path}")

        self.logger.info(f"Loading activities from {path}")
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise DataLoadError(f"Failed to read {path}: {e}") from e

        document = self.parse_document(raw)
        self.logger.info(f"Loaded {len(document.activities)} activities")
        return document

    def parse_document(self, raw: Any) -> InputDocument:
        """
        Validate an already-decoded input document.

        Raises:
            InvalidDataError: If the document does not match the input contract
        """
        try:
            return InputDocument.model_validate(raw)
        except PydanticValidationError as e:
            raise InvalidDataError(f"Invalid input document: {e}") from e

    def prepare_activities(self, document: InputDocument) -> list[PreparedActivity]:
        """
        Normalize every activity in the document.

        Activities without samples are dropped.

        Args:
            document: Validated input document

        Returns:
            Prepared activities in document order
        """
        prepared = []
        for record in document.activities:
            activity = self.normalizer.prepare(record.meta, record.samples)
            if activity is not None:
                prepared.append(activity)
        return prepared
