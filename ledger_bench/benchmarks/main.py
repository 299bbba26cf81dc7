from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from ..blockchain import Blockchain
from ..config import CONFIG_ENV_VAR, resolve_config
from ..errors import LedgerBenchError
from .charts import render_round_charts
from .config import BenchmarkPlan, load_plan
from .runner import RoundResult, run_plan

LOGGER = logging.getLogger("ledger_bench.benchmark")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ledger benchmark harness")
    parser.add_argument(
        "--config",
        default=os.environ.get(CONFIG_ENV_VAR),
        help="JSON file describing the backend and the benchmark rounds",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("BENCHMARK_OUTPUT_DIR", "benchmark-results"),
        help="Directory to store benchmark artefacts (charts, CSV files, manifest)",
    )
    parser.add_argument(
        "--skip-init",
        action="store_true",
        help="Do not run init/install_smart_contract (backend already prepared)",
    )
    parser.add_argument(
        "--no-charts",
        action="store_true",
        help="Only write CSV files and the manifest",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the planned rounds without executing them",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("BENCHMARK_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    parser.add_argument(
        "--log-path",
        default=os.environ.get("BENCHMARK_LOG_PATH"),
        help="Optional file that receives a copy of the log",
    )
    return parser.parse_args(argv)


def configure_logger(log_path: Path) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logging.getLogger("ledger_bench").addHandler(handler)
    return handler


def setup_logging(level: str, log_path: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if log_path:
        configure_logger(Path(log_path))


def write_round_artefacts(result: RoundResult, output_dir: Path, charts: bool = True) -> dict:
    label = result.round.label
    csv_path = output_dir / f"{label}__records.csv"
    result.records.to_csv(csv_path, index=False)
    LOGGER.info("Saved %d records of round %s to %s", len(result.records), label, csv_path)

    chart_paths = render_round_charts(result, output_dir) if charts else []
    return {
        "summary": result.summary(),
        "stats": result.stats.to_dict(),
        "records_csv": str(csv_path),
        "charts": [str(path) for path in chart_paths],
    }


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_path)

    try:
        config = resolve_config(args.config)
        plan = load_plan(config)
    except LedgerBenchError as exc:
        LOGGER.error("Invalid benchmark configuration: %s", exc)
        return 2

    if args.dry_run:
        _print_plan(plan)
        return 0

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    LOGGER.info("Benchmark output directory: %s", output_dir)

    try:
        blockchain = Blockchain(config)
        results = asyncio.run(run_plan(blockchain, plan, initialise=not args.skip_init))
    except LedgerBenchError:
        LOGGER.exception("Benchmark aborted")
        return 1

    manifest = {
        "backend": blockchain.get_type(),
        "rounds": {
            result.round.label: write_round_artefacts(result, output_dir, charts=not args.no_charts)
            for result in results
        },
    }
    manifest_path = output_dir / "benchmark_manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Benchmark manifest written to %s", manifest_path)
    return 0


def _print_plan(plan: BenchmarkPlan) -> None:
    for round_ in plan:
        print(
            f"  - {round_.label}: contract={round_.contract_id}@{round_.contract_ver}, "
            f"workers={round_.workers}, tx/worker={round_.tx_number}, "
            f"tps/worker={round_.rate.tps:g}, timeout={round_.timeout_seconds}"
        )
        if round_.notes:
            print(f"      {round_.notes}")


if __name__ == "__main__":
    sys.exit(main())
