from .controller import ControllerLoop, ControllerResult, ControllerState, build_controller, run_controller
from .errors import ConfigurationError, ControllerError, LaunchError, OutputError
from .execution.types import TerminationOutcome
from .settings import ControllerSettings
from .status import AggregateStatus, StatusCode

__all__ = [
    "AggregateStatus",
    "ConfigurationError",
    "ControllerError",
    "ControllerLoop",
    "ControllerResult",
    "ControllerSettings",
    "ControllerState",
    "LaunchError",
    "OutputError",
    "StatusCode",
    "TerminationOutcome",
    "build_controller",
    "run_controller",
]
