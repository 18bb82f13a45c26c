"""Custom exceptions for the Maintenance Dashboard application."""


class MaintenanceDashboardError(Exception):
    """Base exception for Maintenance Dashboard."""

    pass


class NotFoundError(MaintenanceDashboardError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: int | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} with id {resource_id} not found")


class ValidationError(MaintenanceDashboardError):
    """Raised when client-side validation fails before any write."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class QueryError(MaintenanceDashboardError):
    """Raised when a query builder rejects a constraint."""

    def __init__(self, message: str, column: str | None = None):
        self.column = column
        super().__init__(message)


class RemoteCallError(MaintenanceDashboardError):
    """Raised when a remote write or fetch fails."""

    def __init__(self, message: str, original_error: Exception | None = None):
        self.original_error = original_error
        super().__init__(message)


class BatchOperationError(MaintenanceDashboardError):
    """Raised when some units of a batch operation fail.

    Successful units are not undone; ``failed`` maps each failed key to the
    reason it failed.
    """

    def __init__(
        self,
        message: str,
        failed: dict[int, str],
        succeeded: list[int] | None = None,
    ):
        self.failed = failed
        self.succeeded = succeeded or []
        keys = ", ".join(f"#{key}" for key in failed)
        super().__init__(f"{message}: {keys}")
