"""Error taxonomy for the simulation and scoring core."""


class DriveLedgerError(Exception):
    """Base class for all core errors."""

    code = "drive_ledger_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class DataLoadError(DriveLedgerError):
    """Telemetry corpus could not be read in any supported format."""

    code = "data_load_error"


class NoDataLoadedError(DriveLedgerError):
    """No telemetry samples are loaded."""

    code = "no_data_loaded"


class AlreadyStreamingError(DriveLedgerError):
    """A stream is already running."""

    code = "already_streaming"


class SessionAlreadyActiveError(DriveLedgerError):
    """A simulation is already running."""

    code = "session_already_active"


class NotRunningError(DriveLedgerError):
    """No simulation is running."""

    code = "not_running"


class UnknownRouteError(DriveLedgerError):
    """Route type is not in the route table."""

    code = "unknown_route"


class UnknownCategoryError(DriveLedgerError):
    """Data category is not in the category table."""

    code = "unknown_category"
