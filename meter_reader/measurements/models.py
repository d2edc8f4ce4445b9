from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any


class MeasureType(Enum):
    WATER = "WATER"
    GAS = "GAS"

    @classmethod
    def parse(cls, value: Any) -> Optional["MeasureType"]:
        """Case-insensitive lookup; None for anything that is not WATER or GAS."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Measurement:
    id: str
    customer_code: str
    reading_timestamp: datetime
    reading_type: MeasureType
    recognized_value: float
    artifact_reference: str
    confirmed: bool = False
    confirmed_value: Optional[float] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> tuple:
        return (self.reading_timestamp, self.reading_type)

    def copy(self) -> "Measurement":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customer_code': self.customer_code,
            'reading_timestamp': self.reading_timestamp.isoformat(),
            'reading_type': self.reading_type.value,
            'recognized_value': self.recognized_value,
            'confirmed_value': self.confirmed_value,
            'confirmed': self.confirmed,
            'artifact_reference': self.artifact_reference,
            'created_at': self.created_at.isoformat()
        }
