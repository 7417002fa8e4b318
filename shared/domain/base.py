"""
Base Domain Classes

Building blocks shared by every bounded context:
- ValueObject: Immutable objects compared by value
- DomainEvent: Events that represent something that happened
"""

from abc import ABC
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Events are recorded inside a unit of work and published on the
    message bus once the surrounding transaction has committed.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: int | None = None

    def to_dict(self) -> dict:
        """Convert event to a JSON-friendly dictionary"""
        payload = {}
        for key, value in asdict(self).items():
            if isinstance(value, (date, datetime)):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, UUID):
                value = str(value)
            payload[key] = value
        payload['event_type'] = self.__class__.__name__
        return payload
