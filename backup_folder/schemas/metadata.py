"""Run metadata schema stored in the sidecar file."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from backup_folder.services.datetime_service import format_iso, parse_datetime


class RunMetadata(BaseModel):
    """One backup run, with the previous run nested under ``previous``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    upload_start_time: datetime = Field(alias="uploadStartTime")
    upload_end_time: datetime | None = Field(default=None, alias="uploadEndTime")
    previous: RunMetadata | None = Field(
        default=None,
        alias="previous",
        validation_alias=AliasChoices("previous", "lastMetaData"),
    )

    @field_validator("upload_start_time", "upload_end_time", mode="before")
    @classmethod
    def parse_timestamp(cls, v: object) -> object:
        if isinstance(v, (str, datetime)):
            return parse_datetime(v)
        return v

    @field_validator("previous", mode="before")
    @classmethod
    def drop_empty_previous(cls, v: object) -> object:
        # Older sidecars wrote an empty object for the first run's history
        if v == {}:
            return None
        return v

    @field_serializer("upload_start_time", "upload_end_time")
    def serialize_timestamp(self, v: datetime | None) -> str | None:
        return format_iso(v) if v is not None else None

    def history_depth(self) -> int:
        """Number of runs recorded, including this one."""
        depth = 0
        node: RunMetadata | None = self
        while node is not None:
            depth += 1
            node = node.previous
        return depth
