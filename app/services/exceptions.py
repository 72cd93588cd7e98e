from typing import Iterable


class ServiceError(Exception):
    """Base exception for service-level errors."""


class ReferenceNotFound(ServiceError):
    """A brand, category or product id does not resolve."""

    def __init__(self, entity: str, message: str | None = None):
        self.entity = entity
        super().__init__(message or f"{entity.capitalize()} not found")


class PartialReferenceResolution(ReferenceNotFound):
    """Some of the requested category ids resolved, but not all of them."""

    def __init__(self, entity: str, missing_ids: Iterable[int]):
        self.missing_ids = sorted(set(missing_ids))
        missing = ", ".join(str(item) for item in self.missing_ids)
        super().__init__(entity, f"One or more {entity} not found: {missing}")


class StorageError(ServiceError):
    pass


class StorageWriteError(StorageError):
    pass


class StorageDeleteError(StorageError):
    pass


class PersistenceError(ServiceError):
    pass


class ConcurrentUpdateError(ServiceError):
    pass


class ConflictError(ServiceError):
    pass
