"""Blood-cell identification interface.

``CellIdentifier.identify`` has the shape of a remote classifier call but
answers with a fixed result until a classification endpoint exists.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)

_CELL_INFO: dict[str, str] = {
    "Neutrophil": (
        "Neutrophils are the most abundant type of white blood cells and form an "
        "essential part of the innate immune system. They are usually the first "
        "cells to arrive at the site of an infection."
    ),
    "Lymphocyte": (
        "Lymphocytes are responsible for the production of antibodies and other "
        "substances that fight viral and bacterial infections. They are a key "
        "component of the adaptive immune system."
    ),
    "Monocyte": (
        "Monocytes are the largest type of white blood cells. They help other white "
        "blood cells remove dead or damaged tissues, destroy cancer cells, and "
        "regulate immunity against foreign substances."
    ),
    "Eosinophil": (
        "Eosinophils are specialized white blood cells that help fight parasitic "
        "infections and are involved in allergic responses and asthma."
    ),
    "Basophil": (
        "Basophils are the least common type of white blood cell. They are involved "
        "in inflammatory reactions and produce histamine and other chemicals."
    ),
}

UNKNOWN_CELL_INFO = "Information not available for this cell type."


@dataclass(frozen=True)
class CellIdentification:
    """Classifier verdict for one image."""

    cell_type: str
    confidence: float
    description: str
    characteristics: tuple[str, ...]


class CellIdentifier:
    """Classify a blood-cell image supplied as base64."""

    def __init__(self, api_key: str, endpoint: str) -> None:
        self.api_key = api_key
        self.endpoint = endpoint

    async def identify(self, image_base64: str) -> CellIdentification:
        """Return the classification for *image_base64*.

        Raises:
            ValueError: If no image data is given.
        """
        if not image_base64:
            raise ValueError("image_base64 must be non-empty")
        # TODO: POST the image to self.endpoint once the classifier service is live.
        logger.debug("Identifying cell image (%d base64 chars)", len(image_base64))
        return CellIdentification(
            cell_type="Neutrophil",
            confidence=0.95,
            description=(
                "A type of white blood cell that helps the body fight infection. "
                "It is the most abundant type of white blood cell."
            ),
            characteristics=(
                "Multilobed nucleus",
                "Pale pink cytoplasm",
                "Fine granules",
                "Size: 10-12 micrometers",
            ),
        )


def cell_information(cell_type: str) -> str:
    """Return reference text for a leukocyte type."""
    return _CELL_INFO.get(cell_type, UNKNOWN_CELL_INFO)
