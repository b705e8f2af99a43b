# File: vox/core/model_lifecycle/types.py

from dataclasses import dataclass
from enum import Enum

class ModelType(str, Enum):
    WHISPER = "whisper"

@dataclass(frozen=True)
class ModelKey:
    """Identifies one resident model: its family plus size/variant and device."""
    model_type: ModelType
    variant: str
    device: str = "cpu"

    def __str__(self) -> str:
        return f"{self.model_type.value}:{self.variant}@{self.device}"
