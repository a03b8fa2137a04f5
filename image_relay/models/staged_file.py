"""
Staged File Pydantic Model

Describes an upload written to the staging directory while it is forwarded.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class StagedFile(BaseModel):
    """
    A file written to the staging directory for one request.

    Owned by the upload orchestrator, which deletes it once forwarding
    completes or fails.
    """

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(
        ...,
        description="Random UUID hex prefixed to the on-disk filename"
    )
    filename: str = Field(
        ...,
        description="Sanitized client-supplied filename"
    )
    path: str = Field(
        ...,
        description="Absolute path of the staged file"
    )
    size: int = Field(
        default=0,
        description="Bytes written"
    )

    @property
    def local_path(self) -> Path:
        return Path(self.path)
