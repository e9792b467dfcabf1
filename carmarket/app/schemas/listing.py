from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class StepValidationIn(BaseModel):
    form: Dict[str, Optional[str]] = Field(default_factory=dict)
    existing_images: int = Field(default=0, ge=0)
    pending_deletion: int = Field(default=0, ge=0)
    new_images: int = Field(default=0, ge=0)


class StepValidationOut(BaseModel):
    step: int
    valid: bool
    missing: List[str]
    next_step: int
