"""Row/artifact reconciliation value objects."""
from typing import List

from pydantic import BaseModel, Field

from facecatalog.core.exceptions import InconsistentStateError


class OrphanArtifact(BaseModel):
    """An artifact file with no matching database row."""
    face_id: str = Field(..., description="Id the artifact is named after")
    path: str = Field(..., description="Filesystem path of the artifact")


class ReconciliationReport(BaseModel):
    """Differences between stored rows and artifact files."""
    checked_rows: int = Field(..., description="Number of rows inspected")
    checked_artifacts: int = Field(..., description="Number of artifacts inspected")
    orphan_artifacts: List[OrphanArtifact] = Field(default_factory=list)
    orphan_rows: List[str] = Field(default_factory=list, description="Ids of rows without an artifact")

    @property
    def is_consistent(self) -> bool:
        """Whether every row has exactly one artifact and vice versa."""
        return not self.orphan_artifacts and not self.orphan_rows

    def raise_for_inconsistency(self) -> None:
        """Raise InconsistentStateError if any orphan was found."""
        if self.is_consistent:
            return
        raise InconsistentStateError(
            f"Found {len(self.orphan_artifacts)} orphan artifacts and "
            f"{len(self.orphan_rows)} orphan rows",
            details={
                "orphan_artifacts": [orphan.path for orphan in self.orphan_artifacts],
                "orphan_rows": list(self.orphan_rows),
            },
        )
