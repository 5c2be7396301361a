from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Snake-case fields in Python, camelCase on the wire for the mobile client."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class SuccessResponse(CamelModel):
    success: bool
    message: Optional[str] = None
