"""Trace writer for GitHub sync passes."""

import json
from datetime import datetime
from pathlib import Path

from ..paths import StatePaths
from .reconciler import ReconcileSummary


def write_sync_trace(
    summary: ReconcileSummary,
    run_id: str,
    owner_id: str,
    paths: StatePaths,
    date_str: str,
    start_time: datetime,
    end_time: datetime,
    api_endpoint: str,
    api_params: dict,
    external_ids: list[str],
) -> Path:
    """Write trace JSON for one sync pass.

    Follows naming convention: sync_<run_id>.json
    Written to: traces/sync/YYYY-MM-DD/

    Args:
        summary: Reconciler statistics
        run_id: Run identifier from the journal writer
        owner_id: Owner that was synced
        paths: StatePaths instance
        date_str: Date string (YYYY-MM-DD)
        start_time: Sync start timestamp
        end_time: Sync end timestamp
        api_endpoint: API endpoint URL
        api_params: API request parameters
        external_ids: External ids returned by the fetch

    Returns:
        Path to written trace file
    """
    trace_dir = paths.traces_sync_date_folder(date_str)
    trace_dir.mkdir(parents=True, exist_ok=True)

    duration_ms = int((end_time - start_time).total_seconds() * 1000)

    trace_data = {
        "run_id": run_id,
        "owner_id": owner_id,
        "date": date_str,
        "timestamp": end_time.isoformat(),
        "external_ids": external_ids,
        "api_request": {
            "endpoint": api_endpoint,
            "params": api_params,
        },
        "api_response": {
            "events_count": len(external_ids),
        },
        "reconcile_result": {
            "created": summary.created,
            "updated": summary.updated,
            "events_added": summary.events_added,
            "duplicates_skipped": summary.duplicates_skipped,
            "failed_days": summary.failed_days,
        },
        "duration_ms": duration_ms,
    }

    trace_path = trace_dir / f"sync_{run_id}.json"
    trace_path.write_text(json.dumps(trace_data, indent=2), encoding="utf-8")

    return trace_path
