"""Automation plan registration and execution through the ZAP ``automation`` API."""

import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from af_roundtrip.config import DEFAULT_PLAN_TIMEOUT, DEFAULT_POLL_INTERVAL
from af_roundtrip.exceptions import PlanExecutionError, PlanTimeoutError, ZapApiError
from af_roundtrip.logging_config import get_logger
from af_roundtrip.plan import AutomationPlan
from af_roundtrip.services import PlanProgress, PathLike
from af_roundtrip.zap.client import ZapApiClient, parse_list

logger = get_logger("zap.automation")


def _progress(payload: Dict[str, Any]) -> PlanProgress:
    return PlanProgress(
        plan_id=str(payload.get("planId")),
        started=payload.get("started") or None,
        finished=payload.get("finished") or None,
        info=parse_list(payload.get("info")),
        warn=parse_list(payload.get("warn")),
        error=parse_list(payload.get("error")),
    )


class ZapPlanService:
    """PlanService that hands plans to ZAP as YAML files.

    ``plan_dir`` must be readable by ZAP under the same path.
    """

    def __init__(
        self,
        client: ZapApiClient,
        plan_dir: PathLike,
        timeout: float = DEFAULT_PLAN_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.plan_dir = Path(plan_dir)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self._count = 0

    def create_plan(self) -> AutomationPlan:
        self._count += 1
        return AutomationPlan(name=f"roundtrip-{self._count}")

    def register_plan(self, plan: AutomationPlan) -> None:
        self.plan_dir.mkdir(parents=True, exist_ok=True)
        path = self.plan_dir / f"{plan.name}.yaml"
        path.write_text(plan.to_yaml(), encoding="utf-8")
        plan.file_path = path.absolute()
        logger.debug(f"Registered plan {plan.name} at {plan.file_path}")

    def run_plan(self, plan: AutomationPlan, wait: bool = True) -> Optional[PlanProgress]:
        if plan.file_path is None:
            raise PlanExecutionError(f"Plan {plan.name} must be registered before it is run")

        result = self.client.action("automation", "runPlan", filePath=str(plan.file_path))
        try:
            plan.plan_id = str(result["planId"])
        except KeyError:
            raise ZapApiError(f"runPlan returned no plan id: {result!r}")
        logger.debug(f"Started plan {plan.name} as plan id {plan.plan_id}")

        if not wait:
            return None
        return self.wait_for_plan(plan.plan_id)

    def plan_progress(self, plan_id: str) -> PlanProgress:
        return _progress(self.client.view("automation", "planProgress", planId=plan_id))

    def wait_for_plan(self, plan_id: str) -> PlanProgress:
        """Poll until the plan finishes; raise if it timed out or reported errors."""
        deadline = self._clock() + self.timeout
        progress = self.plan_progress(plan_id)
        while not progress.done:
            if self._clock() >= deadline:
                raise PlanTimeoutError(
                    f"Plan {plan_id} did not finish within {self.timeout:.0f}s"
                )
            self._sleep(self.poll_interval)
            progress = self.plan_progress(plan_id)

        for warning in progress.warn:
            logger.warning(f"Plan {plan_id}: {warning}", extra={"plan_id": plan_id})
        if progress.error:
            raise PlanExecutionError(
                f"Plan {plan_id} finished with errors: {'; '.join(progress.error)}",
                errors=progress.error,
            )
        return progress
