"""Base model for records persisted in the document store."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StoredDocument(BaseModel):
    """A record whose stored keys are camelCase (``marketHalted``, ``costBasis``).

    Snake_case field names are accepted on input as well. Keys the model does
    not declare are kept and written back unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict with stored (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)
