import os
import time
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional

from af_roundtrip.exceptions import AfRoundTripError, ContextNotFoundError, InputDirectoryError
from af_roundtrip.logging_config import get_logger
from af_roundtrip.services import Context, PathLike, PlanService, SessionService

logger = get_logger("runner")


@dataclass
class RoundTripResult:
    """Outcome of the round trip of one context file."""

    source: Path
    context_name: Optional[str] = None
    output: Optional[Path] = None
    success: bool = False
    error: Optional[str] = None
    duration: Optional[float] = None

    def to_dict(self):
        d = asdict(self)
        d["source"] = str(self.source)
        d["output"] = str(self.output) if self.output else None
        return d


def list_context_files(input_dir: PathLike) -> List[Path]:
    """List the files directly inside input_dir, sorted by name."""
    try:
        entries = sorted(os.listdir(input_dir))
    except OSError as e:
        raise InputDirectoryError(f"Cannot list context directory {input_dir}: {e}") from e

    files = []
    for entry in entries:
        path = Path(input_dir) / entry
        if path.is_dir():
            logger.debug(f"Skipping directory {path}")
            continue
        files.append(path)
    return files


def round_trip_file(
    session: SessionService,
    plans: PlanService,
    path: Path,
    output_dir: PathLike,
    result: Optional[RoundTripResult] = None,
) -> RoundTripResult:
    """Import, plan, delete, replay, export and delete one context file.

    ``result`` is filled in as the steps progress, so a caller catching an
    error can tell which context was left behind.
    """
    result = result or RoundTripResult(source=path)
    start_time = time.time()

    logger.info(f"Loading: {path.absolute()}")
    context = session.import_context(path)
    name = context.name
    result.context_name = name

    plan = plans.create_plan()
    plan.env.add_context(context)
    plans.register_plan(plan)

    session.delete_context(context)

    # Running the plan recreates the context
    plans.run_plan(plan, wait=True)

    # Must come back under the same name
    context = session.get_context(name)
    out_path = Path(output_dir) / name
    logger.info(f"Generating: {out_path.absolute()}")
    session.export_context(context, out_path)
    result.output = out_path

    session.delete_context(context)

    result.success = True
    result.duration = time.time() - start_time
    return result


def _discard_context(session: SessionService, name: str) -> None:
    """Remove a context a failed iteration may have left in the session."""
    try:
        session.delete_context(Context(name=name))
        logger.info(f"Removed leftover context '{name}'")
    except ContextNotFoundError:
        pass
    except AfRoundTripError as e:
        logger.warning(
            f"Could not remove leftover context '{name}': {e}",
            extra={"context_name": name, "error": str(e)},
        )


def run_round_trip(
    session: SessionService,
    plans: PlanService,
    input_dir: PathLike,
    output_dir: PathLike,
    fail_fast: bool = True,
) -> List[RoundTripResult]:
    """Round-trip every context file in input_dir, exporting into output_dir.

    With fail_fast the first error propagates and the remaining files are not
    processed. Otherwise each failure is recorded in its result, any context it
    left behind is removed, and the batch continues.
    """
    files = list_context_files(input_dir)
    overall_start = time.time()
    results: List[RoundTripResult] = []

    logger.info(
        f"Round-tripping {len(files)} context files from {input_dir}",
        extra={"input_dir": str(input_dir), "file_count": len(files)},
    )

    for path in files:
        result = RoundTripResult(source=path)
        results.append(result)
        if fail_fast:
            round_trip_file(session, plans, path, output_dir, result)
            continue

        start_time = time.time()
        try:
            round_trip_file(session, plans, path, output_dir, result)
        except Exception as e:
            result.success = False
            result.error = f"{type(e).__name__}: {e}"
            result.duration = time.time() - start_time
            logger.error(
                f"Round trip of {path} failed: {e}",
                extra={"source": str(path), "error": str(e)},
                exc_info=True,
            )
            if result.context_name:
                _discard_context(session, result.context_name)

    failed = [r for r in results if not r.success]
    total_time = time.time() - overall_start
    logger.info(
        f"Completed {len(results) - len(failed)}/{len(results)} round trips "
        f"in {total_time:.2f}s",
        extra={
            "total_time": total_time,
            "succeeded": len(results) - len(failed),
            "failed": len(failed),
        },
    )
    return results
