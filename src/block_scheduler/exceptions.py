"""Custom exceptions for the block scheduler."""

from datetime import datetime


class SchedulerError(Exception):
    """Base exception for scheduler errors."""

    pass


class ValidationError(SchedulerError):
    """Request failed validation before any search started."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        location = f" ({field})" if field else ""
        super().__init__(f"Invalid request{location}: {message}")


class NotFoundError(SchedulerError):
    """A required catalog entity could not be found."""

    pass


class NoEligibleTeachersError(NotFoundError):
    """Program has no active, program-linked teacher."""

    def __init__(self, program_id: str):
        self.program_id = program_id
        super().__init__(f"No eligible active teachers for program '{program_id}'")


class NoUsableRoomsError(NotFoundError):
    """Program has no room it is allowed to use."""

    def __init__(self, program_id: str):
        self.program_id = program_id
        super().__init__(f"No usable rooms for program '{program_id}'")


class EventNotFoundError(NotFoundError):
    """Event id does not exist in the store."""

    def __init__(self, event_id: str):
        self.event_id = event_id
        super().__init__(f"Event '{event_id}' not found")


class SlotConflictError(SchedulerError):
    """Storage rejected a write that would overlap an existing event."""

    def __init__(
        self,
        resource: str,
        start: datetime,
        end: datetime,
        resource_id: str | None = None,
    ):
        self.resource = resource
        self.resource_id = resource_id
        self.start = start
        self.end = end
        who = f" '{resource_id}'" if resource_id else ""
        super().__init__(
            f"{resource.capitalize()}{who} already booked between "
            f"{start.isoformat()} and {end.isoformat()}"
        )


class DuplicateEventError(SchedulerError):
    """Another writer stored the same (title, start, end) first."""

    def __init__(self, title: str, start: datetime, end: datetime):
        self.title = title
        self.start = start
        self.end = end
        super().__init__(
            f"Event '{title}' at {start.isoformat()}-{end.isoformat()} already exists"
        )


class StorageUnavailableError(SchedulerError):
    """The event store could not be reached or is locked."""

    def __init__(self, details: str):
        self.details = details
        super().__init__(f"Event storage unavailable: {details}")


class CatalogError(SchedulerError):
    """Reference catalog data is malformed."""

    def __init__(self, message: str, source: str | None = None, row: int | None = None):
        self.source = source
        self.row = row
        location = ""
        if source:
            location += f" in '{source}'"
        if row is not None:
            location += f" at row {row}"
        super().__init__(f"Invalid catalog data{location}: {message}")


class ModuleCompleteError(SchedulerError):
    """A block was offered for a module that already meets its requirement."""

    def __init__(self, module_id: str, satisfied: int, required: int):
        self.module_id = module_id
        self.satisfied = satisfied
        self.required = required
        super().__init__(
            f"Module '{module_id}' already has {satisfied} of {required} required blocks"
        )
