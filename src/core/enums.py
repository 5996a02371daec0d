from enum import Enum


class MetadataStatus(Enum):
    """Whether a checklist row's display data came from the catalog."""

    FOUND = "found"
    PLACEHOLDER = "placeholder"
