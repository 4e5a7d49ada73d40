import argparse
import sys
from typing import List

from af_roundtrip.config import RunSettings
from af_roundtrip.logging_config import setup_logging
from af_roundtrip.runner.driver import run_round_trip
from af_roundtrip.runner.summary import (
    ComparisonResult,
    compare_outputs,
    compare_results,
    write_summary,
)
from af_roundtrip.zap import ZapApiClient, ZapPlanService, ZapSessionService


def _settings(args) -> RunSettings:
    settings = RunSettings.from_env().override(
        input_dir=args.input,
        output_dir=args.output,
        plan_dir=getattr(args, "plan_dir", None),
        zap_url=getattr(args, "zap_url", None),
        api_key=getattr(args, "api_key", None),
        plan_timeout=getattr(args, "plan_timeout", None),
    )
    if getattr(args, "keep_going", False):
        settings.fail_fast = False
    settings.validate()
    return settings


def _report_comparisons(comparisons: List[ComparisonResult]) -> bool:
    """Print differing files; return True when every file matched."""
    ok = True
    for c in comparisons:
        if c.missing:
            print(f"MISSING {c.output} (from {c.source})")
            ok = False
        elif not c.identical:
            print(f"DIFFERS {c.source} -> {c.output}")
            print(c.diff)
            ok = False
    print(f"Compared {len(comparisons)} files: {'all identical' if ok else 'differences found'}")
    return ok


def _run(args) -> int:
    settings = _settings(args)
    settings.output_dir.mkdir(parents=True, exist_ok=True)

    with ZapApiClient(settings.zap_url, settings.api_key) as client:
        if args.wait_for_zap:
            client.wait_until_ready(args.wait_for_zap)
        session = ZapSessionService(client)
        plans = ZapPlanService(
            client,
            settings.plan_dir,
            timeout=settings.plan_timeout,
            poll_interval=settings.poll_interval,
        )
        results = run_round_trip(
            session,
            plans,
            settings.input_dir,
            settings.output_dir,
            fail_fast=settings.fail_fast,
        )

    if args.summary:
        print(f"Summary written to {write_summary(results, args.summary)}")

    ok = all(r.success for r in results)
    for r in results:
        if not r.success:
            print(f"FAILED {r.source}: {r.error}")

    if args.compare:
        ok = _report_comparisons(compare_results(results)) and ok
    return 0 if ok else 1


def _compare(args) -> int:
    settings = _settings(args)
    return 0 if _report_comparisons(compare_outputs(settings.input_dir, settings.output_dir)) else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="af-roundtrip", description="ZAP Automation Framework context round-trip tests"
    )
    p.add_argument("--log-level", type=str, help="Log level (or set AF_LOG_LEVEL)")
    p.add_argument("--log-dir", type=str, help="Also write rotating log files to this directory")
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    subs = p.add_subparsers(dest="cmd", required=True)

    p1 = subs.add_parser("run", help="Round-trip every context file through an automation plan")
    p1.add_argument("--input", type=str, help="Context files directory (or set AF_CONTEXTS_DIR)")
    p1.add_argument("--output", type=str, help="Export directory (or set AF_OUTPUT_DIR)")
    p1.add_argument("--plan-dir", type=str, help="Where generated plans are written (or set AF_PLAN_DIR)")
    p1.add_argument("--zap-url", type=str, help="ZAP API URL (or set ZAP_API_URL)")
    p1.add_argument("--api-key", type=str, help="ZAP API key (or set ZAP_API_KEY)")
    p1.add_argument("--plan-timeout", type=float, help="Seconds to wait for each plan")
    p1.add_argument("--wait-for-zap", type=float, metavar="SECONDS", help="Wait for the ZAP API first")
    p1.add_argument("--keep-going", action="store_true", help="Continue after a failed file")
    p1.add_argument("--summary", type=str, help="Write a JSON summary of the run to this file")
    p1.add_argument("--compare", action="store_true", help="Diff each export against its source")
    p1.set_defaults(func=_run)

    p2 = subs.add_parser("compare", help="Diff exported contexts against their sources")
    p2.add_argument("--input", type=str, help="Context files directory (or set AF_CONTEXTS_DIR)")
    p2.add_argument("--output", type=str, help="Export directory (or set AF_OUTPUT_DIR)")
    p2.set_defaults(func=_compare)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        level=args.log_level,
        log_dir=args.log_dir,
        enable_file=bool(args.log_dir),
        json_format=args.json_logs,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
