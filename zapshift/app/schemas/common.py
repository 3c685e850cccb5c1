"""
Shared schema base and write-result schemas.

Write endpoints answer with the shape of a document-store result
(acknowledged / insertedId / matchedCount ...), which is what the web client reads.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional
from zapshift.app.db.repository import UpdateOutcome


class CamelModel(BaseModel):
    """Base schema: snake_case attributes, camelCase JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class InsertResult(CamelModel):
    acknowledged: bool = True
    inserted_id: Optional[int] = None
    message: Optional[str] = None


class UpdateResult(CamelModel):
    acknowledged: bool = True
    matched_count: int
    modified_count: int

    @classmethod
    def from_outcome(cls, outcome: UpdateOutcome) -> "UpdateResult":
        return cls(matched_count=outcome.matched_count, modified_count=outcome.modified_count)


class DeleteResult(CamelModel):
    acknowledged: bool = True
    deleted_count: int
