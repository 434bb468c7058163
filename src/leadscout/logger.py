"""
LeadScout structured logging - operator-grade telemetry for discovery runs.

Answers three questions:
1. Is it alive or stuck?
2. What phase is it in?
3. What is the unit of progress?
"""

import sys
from datetime import UTC, datetime

# Force line buffering for immediate output (important on Windows/PowerShell)
try:
    sys.stdout.reconfigure(line_buffering=True)  # type: ignore
except (AttributeError, ValueError):
    pass  # Non-reconfigurable stream (pytest capture, pipes)


def _print(*args: object, **kwargs: object) -> None:
    """Print with immediate flush."""
    print(*args, **kwargs, flush=True)


def _eprint(*args: object, **kwargs: object) -> None:
    """Print to stderr with immediate flush."""
    print(*args, **kwargs, file=sys.stderr, flush=True)


class ProgressLogger:
    """
    Structured progress logger for LeadScout pipeline runs.

    Keeps per-URL detail behind the verbose flag so long runs stay readable.
    """

    def __init__(self, run_id: str, verbose: bool = False):
        self.run_id = run_id
        self.verbose = verbose
        self.start_time = datetime.now(UTC)
        self.last_heartbeat = self.start_time
        self.phase_times: dict[str, datetime] = {}

    def phase(self, name: str, detail: str = "") -> None:
        """Log a major phase transition."""
        now = datetime.now(UTC)
        self.phase_times[name] = now
        elapsed = (now - self.start_time).total_seconds()

        if detail:
            _print(f"[Phase] {name}: {detail} ({elapsed:.1f}s)")
        else:
            _print(f"[Phase] {name} ({elapsed:.1f}s)")

    def progress(
        self,
        item: str,
        current: int,
        total: int,
        detail: str = "",
    ) -> None:
        """Log a progress update (e.g., page 3/12)."""
        pct = (current / total * 100) if total > 0 else 0
        if detail:
            _print(f"  [{item} {current}/{total}] {detail} ({pct:.0f}%)")
        else:
            _print(f"  [{item} {current}/{total}] ({pct:.0f}%)")

    def search(self, query: str, hits: int) -> None:
        """Log a keyword search."""
        truncated = query[:60] + "..." if len(query) > 60 else query
        _print(f"  [Search] {truncated} -> {hits} results")

    def research(self, query: str, leads: int) -> None:
        """Log an AI research pass."""
        truncated = query[:60] + "..." if len(query) > 60 else query
        _print(f"  [Research] {truncated} -> {leads} leads")

    def pages(self, fetched: int, total: int) -> None:
        """Log page fetch progress."""
        _print(f"    [Pages] {fetched}/{total} fetched")

    def cache(self, hits: int, misses: int) -> None:
        _print(f"    [Cache] {hits} hits, {misses} misses")

    def extracted(self, url: str, contacts: int) -> None:
        """Log contacts found on one page (verbose only)."""
        if self.verbose:
            _print(f"    [Extracted] {contacts} contacts from {url[:60]}")

    def validated(self, kept: int, removed: int) -> None:
        """Log validation results."""
        _print(f"  [Validator] {kept} contacts kept, {removed} removed")

    def deduped(self, before: int, after: int) -> None:
        """Log deduplication results."""
        _print(f"  [Deduped] {before} -> {after} leads")

    def merged(self, created: int, merged: int) -> None:
        """Log how discoveries landed in the store."""
        _print(f"  [Merged] {created} new, {merged} merged into existing leads")

    def quality_distribution(self, tiers: dict[str, int]) -> None:
        """Log quality tier distribution."""
        tier_str = ", ".join(f"{k}={v}" for k, v in sorted(tiers.items()))
        _print(f"  [Quality] {tier_str}")

    def skip(self, reason: str, detail: str) -> None:
        """Log a skip/drop with reason (verbose only)."""
        if self.verbose:
            _print(f"    [Skip] {reason}: {detail[:60]}...")

    def heartbeat(self, activity: str = "Working") -> None:
        """
        Emit a heartbeat if nothing has happened recently.
        Call this periodically during long waits.
        """
        now = datetime.now(UTC)
        elapsed_since_last = (now - self.last_heartbeat).total_seconds()

        if elapsed_since_last >= 30:  # Heartbeat every 30s
            total_elapsed = (now - self.start_time).total_seconds()
            _print(f"  [Heartbeat] {activity}... ({total_elapsed:.0f}s elapsed)")
            self.last_heartbeat = now

    def finish(self, leads: int, data_dir: str = "") -> None:
        """Log run completion."""
        elapsed = (datetime.now(UTC) - self.start_time).total_seconds()
        minutes = int(elapsed // 60)
        seconds = int(elapsed % 60)

        _print(f"\n[LeadScout] Run complete in {minutes}m{seconds}s")
        _print(f"  Leads: {leads}")
        if data_dir:
            _print(f"  Data: {data_dir}")

    def error(self, msg: str) -> None:
        """Log an error."""
        _eprint(f"[Error] {msg}")

    def warning(self, msg: str) -> None:
        """Log a warning."""
        _eprint(f"[Warning] {msg}")
