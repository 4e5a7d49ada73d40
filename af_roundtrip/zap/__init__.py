"""ZAP API implementations of the session and plan services."""

from af_roundtrip.zap.client import ZapApiClient
from af_roundtrip.zap.session import ZapSessionService
from af_roundtrip.zap.automation import ZapPlanService

__all__ = ["ZapApiClient", "ZapSessionService", "ZapPlanService"]
