from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from ..stats import TxStatistics
from .runner import RoundResult

LOGGER = logging.getLogger("ledger_bench.benchmark.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["legend.fontsize"] = 9

LATENCY_COLOR = "#2E86AB"
AVERAGE_COLOR = "#A23B72"


def render_round_charts(result: RoundResult, output_dir: Path) -> list[Path]:
    """Render the throughput and latency charts of one round."""
    label = result.round.label
    paths = []

    throughput_path = output_dir / f"{label}__throughput.png"
    if _render_throughput_chart(label, result.stats, throughput_path):
        paths.append(throughput_path)

    latency_path = output_dir / f"{label}__latency.png"
    if _render_latency_chart(label, result.records, latency_path):
        paths.append(latency_path)
    return paths


def throughput_series(stats: TxStatistics) -> pd.Series:
    """Committed transactions per one-second bucket, gaps filled with zero.

    The index is seconds since the first bucket.
    """
    if not stats.throughput:
        return pd.Series(dtype="int64")
    first = min(stats.throughput)
    last = max(stats.throughput)
    buckets = np.arange(first, last + 1)
    counts = [stats.throughput.get(int(bucket), 0) for bucket in buckets]
    return pd.Series(counts, index=buckets - first, name="tps")


def _render_throughput_chart(label: str, stats: TxStatistics, chart_path: Path) -> bool:
    series = throughput_series(stats)
    if series.empty:
        LOGGER.warning("No committed transactions in round %s; skipping throughput chart", label)
        return False

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(series.index, series.values, marker="o", linewidth=2.5, markersize=5, color=LATENCY_COLOR)
    if stats.throughput_tps is not None:
        ax.axhline(stats.throughput_tps, color=AVERAGE_COLOR, linestyle="--", linewidth=1.5,
                   label=f"average {stats.throughput_tps:.1f} tps")
        ax.legend(loc="upper right")
    ax.set_xlabel("Time since first commit (s)", fontweight="semibold")
    ax.set_ylabel("Committed transactions per second", fontweight="semibold")
    ax.set_title(f"Throughput over time: {label}", fontweight="bold", pad=15)
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.3, linestyle="--")

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return True


def _render_latency_chart(label: str, records: pd.DataFrame, chart_path: Path) -> bool:
    if records.empty or "latency_s" not in records.columns:
        LOGGER.warning("No latency data available for round %s", label)
        return False

    latency = pd.to_numeric(records["latency_s"], errors="coerce")
    df = records[latency.notna() & (latency >= 0)].copy()
    if df.empty:
        LOGGER.warning("No valid latency data in round %s after filtering", label)
        return False
    df["latency_s"] = df["latency_s"].astype(float)
    df["worker"] = df["worker"].astype(str)

    fig, ax = plt.subplots(figsize=(12, 6))
    sns.boxplot(
        data=df,
        x="worker",
        y="latency_s",
        color=LATENCY_COLOR,
        ax=ax,
        linewidth=1.5,
        width=0.7,
    )
    ax.set_xlabel("Worker", fontweight="semibold", labelpad=12)
    ax.set_ylabel("Latency (seconds)", fontweight="semibold", labelpad=12)
    ax.set_ylim(bottom=0)
    ax.set_title(f"Commit latency by worker: {label}", fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5, axis="y")
    ax.set_axisbelow(True)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return True


__all__ = ["render_round_charts", "throughput_series"]
