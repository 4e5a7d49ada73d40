"""Round-trip test driver for ZAP Automation Framework context support."""

__version__ = "0.1.0"

# Core components
from af_roundtrip.services import Context, PlanProgress, SessionService, PlanService
from af_roundtrip.plan import AutomationPlan, PlanEnvironment
from af_roundtrip.runner.driver import RoundTripResult, run_round_trip, round_trip_file
from af_roundtrip.runner.summary import compare_outputs, compare_results, write_summary

# ZAP-backed services
from af_roundtrip.zap import ZapApiClient, ZapSessionService, ZapPlanService

__all__ = [
    # Version
    "__version__",
    # Core
    "Context",
    "PlanProgress",
    "SessionService",
    "PlanService",
    "AutomationPlan",
    "PlanEnvironment",
    # Execution
    "RoundTripResult",
    "run_round_trip",
    "round_trip_file",
    "write_summary",
    "compare_results",
    "compare_outputs",
    # ZAP
    "ZapApiClient",
    "ZapSessionService",
    "ZapPlanService",
]
