#!/usr/bin/env python3
"""Basic usage example for the AF context round-trip driver.

This example demonstrates how to:
1. Connect to a running ZAP instance
2. Round-trip every context file in a directory
3. Compare the exports with their sources
"""

import sys
from af_roundtrip.config import RunSettings
from af_roundtrip.logging_config import setup_logging
from af_roundtrip.runner.driver import run_round_trip
from af_roundtrip.runner.summary import compare_results
from af_roundtrip.zap import ZapApiClient, ZapSessionService, ZapPlanService


def main():
    """Run the round trip against a local ZAP."""
    setup_logging(level="INFO")

    # 1. Settings from AF_* / ZAP_* environment variables
    settings = RunSettings.from_env()
    settings.fail_fast = False

    with ZapApiClient(settings.zap_url, settings.api_key) as client:
        print(f"✅ Connected to ZAP {client.wait_until_ready(60)}")

        # 2. Round-trip the contexts
        results = run_round_trip(
            ZapSessionService(client),
            ZapPlanService(client, settings.plan_dir),
            settings.input_dir,
            settings.output_dir,
            fail_fast=settings.fail_fast,
        )

    # 3. Compare
    comparisons = compare_results(results)
    identical = sum(1 for c in comparisons if c.identical)

    print(f"\n📈 Round-trip Summary:")
    print(f"   Context files: {len(results)}")
    print(f"   ✅ Exported: {sum(1 for r in results if r.success)}")
    print(f"   ❌ Failed: {sum(1 for r in results if not r.success)}")
    print(f"   Identical exports: {identical}/{len(comparisons)}")

    return 0 if identical == len(results) else 1


if __name__ == "__main__":
    sys.exit(main())
