"""Item models.

Items are owned by the content service; the scheduler only reads them.
"""

from pydantic import BaseModel, Field


class Item(BaseModel):
    """A learnable unit as stored in the items container."""

    id: str = Field(..., description="Unique identifier")
    poolId: str = Field(..., description="Pool (section) the item belongs to (partition key)")
    front: str = Field(..., description="Text shown to the learner")
    translation: str = Field(..., description="Expected answer")
    pronunciation: str | None = Field(None, description="Optional pronunciation hint")

    class Config:
        """Pydantic config."""

        json_schema_extra = {
            "example": {
                "id": "item-0001",
                "poolId": "pool-greetings",
                "front": "Hola",
                "translation": "Hello",
                "pronunciation": "OH-lah",
            }
        }
