"""Run a heavy module under the simulated host for local development."""

from __future__ import annotations

import argparse
import pathlib

from tick_loader.core.config import settings
from tick_loader.core.errors import ManifestError
from tick_loader.core.logging_config import configure_logging
from tick_loader.host.simulated import SimulatedHost
from tick_loader.main import build_process


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--manifest",
        type=pathlib.Path,
        default=settings.manifest_path,
        help="Module manifest (defaults to TICK_LOADER_MANIFEST)",
    )
    parser.add_argument("--ticks", type=int, default=100, help="Number of invocations to run")
    parser.add_argument("--limit", type=float, default=20.0, help="Budget refilled per invocation")
    parser.add_argument("--bucket", type=float, default=10_000.0, help="Starting budget bucket")
    parser.add_argument("--bucket-cap", type=float, default=10_000.0, help="Maximum budget bucket")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(settings.log_level)
    print(f"[entrypoint] starting version={settings.version} log_level={settings.log_level}", flush=True)
    if getattr(settings, 'diagnostics', None):
        for line in settings.diagnostics:
            print(f"[entrypoint][config] {line}", flush=True)
    if args.manifest is None:
        print("[entrypoint] no manifest given (use --manifest or TICK_LOADER_MANIFEST)", flush=True)
        return 2

    manifest = args.manifest
    try:
        # Fail fast on a bad manifest instead of on the first invocation
        build_process(manifest)
    except ManifestError as exc:
        print(f"[entrypoint] invalid manifest: {exc}", flush=True)
        return 2

    host = SimulatedHost(
        lambda: build_process(manifest),
        limit=args.limit,
        bucket=args.bucket,
        bucket_cap=args.bucket_cap,
    )
    for _ in range(max(0, args.ticks)):
        halts_before = len(host.halts)
        host.tick()
        if len(host.halts) > halts_before:
            print(f"[entrypoint] halt requested at invocation {host.invocation}", flush=True)
    print(
        f"[entrypoint] done invocations={host.invocation} processes={host.processes_started} "
        f"halts={len(host.halts)} aborts={len(host.aborts)} bucket={host.bucket:g}",
        flush=True,
    )
    return 0


if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main())
