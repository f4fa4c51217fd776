"""Data models for scraped events."""
from dataclasses import asdict, dataclass
from typing import Any, Dict

from processor.errors import DecodeError

# Coordinates assigned to an event whose address could not be geocoded.
SENTINEL_LATITUDE = 0.0
SENTINEL_LONGITUDE = 0.0

TEXT_FIELDS = (
    'date',
    'datetime',
    'category',
    'title',
    'event_link',
    'venue',
    'address',
    'description',
)
COORDINATE_FIELDS = ('latitude', 'longitude')


@dataclass
class Event:
    """One listed occurrence at a venue, enriched with coordinates."""
    date: str
    datetime: str
    category: str
    title: str
    event_link: str
    venue: str
    address: str
    description: str
    latitude: float = SENTINEL_LATITUDE
    longitude: float = SENTINEL_LONGITUDE

    @property
    def is_mappable(self) -> bool:
        """False when the event carries the geocoding failure sentinel."""
        return not (
            self.latitude == SENTINEL_LATITUDE and
            self.longitude == SENTINEL_LONGITUDE
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        """
        Build an Event from its serialized form.

        Args:
            data: Mapping with exactly the Event field names

        Returns:
            Event object

        Raises:
            DecodeError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise DecodeError(f"Expected an event object, got {type(data).__name__}")

        values = {}
        for name in TEXT_FIELDS:
            value = data.get(name)
            if not isinstance(value, str):
                raise DecodeError(f"Event field '{name}' must be a string")
            values[name] = value

        for name in COORDINATE_FIELDS:
            value = data.get(name)
            # bool is an int subclass but never a valid coordinate
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise DecodeError(f"Event field '{name}' must be a number")
            values[name] = float(value)

        return cls(**values)
