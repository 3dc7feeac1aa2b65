# ----------------------------------------------------------------
# Custom Exceptions
# ----------------------------------------------------------------
class MaintenanceError(Exception):
    """Base exception for maintenance errors."""

    pass


class InvalidConfiguration(MaintenanceError):
    """Raised when a retention count or the config file is invalid."""

    pass


class ExecutionError(MaintenanceError):
    """Raised when command execution fails."""

    pass


class LockError(MaintenanceError):
    """Raised when another instance or the package manager holds the lock."""

    pass


class PrivilegeError(MaintenanceError):
    """Raised when insufficient permissions are detected."""

    pass


class UnsupportedDistroError(MaintenanceError):
    """Raised when the system is not Debian-based."""

    pass


class MaintenanceAborted(MaintenanceError):
    """Raised when a fatal step condition or the user stops the run."""

    pass
