"""
Outcome events produced for one image command.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


# ---------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Progress:
    """
    Intermediate state of a running job.
    """

    percent: int              # 0..100, parsed from "(NN%)" in the bot message
    id: str                   # Discord message id of the placeholder
    content: str
    uri: str | None = None    # preview image, once the bot attaches one

    @property
    def finished(self) -> bool:
        return False


# ---------------------------------------------------------------------
# Finish
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Finish:
    """
    Final result of a job. Always the last element of a sequence.
    """

    id: str                   # Discord message id of the completion message
    content: str
    uri: str

    @property
    def finished(self) -> bool:
        return True

    @property
    def job_hash(self) -> str:
        """
        Job hash encoded in the image file name.

        Example:
            .../user_a_cat_1b2c3d4e-aaaa-bbbb-cccc-0123456789ab.png → 1b2c3d4e-...
        """
        name = self.uri.rsplit("/", 1)[-1].split("?", 1)[0]
        stem = name.rsplit(".", 1)[0]
        return stem.rsplit("_", 1)[-1]


OutcomeEvent = Union[Progress, Finish]
