"""Event repository (lookups only)."""


from app.domain.event import Event
from app.repositories.base import BaseRepository


class EventRepository(BaseRepository[Event]):
    model = Event
