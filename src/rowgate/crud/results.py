"""Result envelopes returned by the CRUD dispatcher."""

from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, Field, model_serializer

from ..acl.handler import ACL_COLUMNS


class FindResult(BaseModel):
    """List operation envelope: ``{"data": [record, ...]}``."""
    data: List[Dict[str, Any]] = Field(default_factory=list)


class CountResult(BaseModel):
    count: int = 0


class DeleteResult(BaseModel):
    """Delete operation envelope: ``{"data": {"deleted": n}}``."""
    deleted: int = 0

    @model_serializer
    def _envelope(self) -> Dict[str, Any]:
        return {"data": {"deleted": self.deleted}}


class InsertResult(BaseModel):
    """
    Created record plus the body fields that were not entity columns.

    ``skipped_fields`` travels out-of-band and never inside ``record``.
    """
    record: Dict[str, Any]
    skipped_fields: List[str] = Field(default_factory=list)


def scrub_acl_values(record: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy of ``record`` without the four ACL columns."""
    return {key: value for key, value in record.items() if key not in ACL_COLUMNS}
