from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Base for entities exchanged with the admin server as JSON."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready body; unset optional fields are left out rather than sent as null."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
