#!/usr/bin/env python3
"""Check that the upstream scan API answers and returns well-formed records."""
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from scanboard.services.filters import SCENARIOS, build_scan_params, normalize_scan_response
from scanboard.services.scan_client import ScanApiClient, ScanApiError


async def main() -> int:
    client = ScanApiClient()
    try:
        records = await client.scan_cached()
        print(f"scan-cached: {len(records)} valid records")
        page = normalize_scan_response(await client.scan(build_scan_params(SCENARIOS["perfect_momentum"].filters)))
        print(f"perfect_momentum: {len(page.data)} of {page.total}")
    except ScanApiError as e:
        print(f"FAILED: {e}")
        return 1
    finally:
        await client.close()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
