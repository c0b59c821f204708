#!/usr/bin/env python3
"""
Treewatch Performance Benchmarks

Times the store's hot paths with rich-formatted output: freezing state, leaf
edits, list edits, notification fan-out and global listener cascades. Every
benchmark grows its workload until one run takes longer than the time limit.

Usage:
    python scripts/benchmark.py            # Run all benchmarks
    python scripts/benchmark.py --config   # Show current benchmark configuration
    python scripts/benchmark.py --quiet    # Only show the final table

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import time
from typing import Any, Callable, Dict

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from treewatch import Store, freeze

# Configuration constants - adjust these to change benchmark behavior
TIME_LIMIT_SECONDS = 1.0  # Maximum time allowed per operation
STARTING_N = 10  # Starting workload size
SCALE_FACTOR = 1.5  # How much to multiply N by each iteration


def _make_state(n: int) -> Dict[str, Any]:
    """A form with n items and a nested profile."""
    return {
        "name": "bench",
        "items": [{"id": i, "v": str(i)} for i in range(n)],
        "profile": {"address": {"city": "Oslo"}, "age": 30},
    }


class TreewatchBenchmark:
    """Rich-formatted display for treewatch performance benchmarking."""

    def __init__(self, quiet: bool = False):
        self.console = Console()
        self.quiet = quiet
        self.results = {}

    def run_benchmarks(self):
        start_time = time.time()
        self.console.print(
            Panel("Treewatch Performance Benchmarks", border_style="blue")
        )

        self._run("freeze", "Freeze State", self._freeze)
        self._run("leaf_edit", "Leaf Edits", self._leaf_edits)
        self._run("append", "List Appends", self._appends)
        self._run("fanout", "Notification Fan-out", self._fanout)
        self._run("cascade", "Listener Cascade", self._cascade)

        self._display_final_results(start_time)

    def _run(self, key: str, name: str, operation: Callable[[int], int]):
        if not self.quiet:
            self.console.print(f"[yellow]Running {name} benchmark...[/yellow]")
        result = self._run_adaptive_benchmark(operation)
        result["name"] = name
        self.results[key] = result
        if not self.quiet:
            self.console.print(
                f"[green]✓ {name}: {result['operations_per_second']:,.0f} ops/sec "
                f"at N={result['max_n']:,}[/green]"
            )

    def _freeze(self, n: int) -> int:
        """Freeze a state tree with n items."""
        freeze(_make_state(n))
        return n

    def _leaf_edits(self, n: int) -> int:
        """n separate edits, each replacing one leaf."""
        store = Store(_make_state(n))
        for i in range(n):

            def set_value(draft, i=i):
                draft["items"][i]["v"] = "edited"

            store.edit(set_value)
        assert store.get_snapshot()["items"][-1]["v"] == "edited"
        return n

    def _appends(self, n: int) -> int:
        """n edits appending to a growing list."""
        store = Store({"items": []})
        for i in range(n):
            store.edit(lambda draft, i=i: draft["items"].append({"id": i}))
        assert len(store.get_snapshot()["items"]) == n
        return n

    def _fanout(self, n: int) -> int:
        """One observer per item; each edit must reach exactly one of them."""
        store = Store(_make_state(n))
        counts = [0] * n
        for i in range(n):

            def on_change(snapshot, i=i):
                counts[i] += 1

            store.register([("items", i, "v")], on_change)

        for i in range(n):
            store.edit(lambda draft, i=i: draft["items"][i].__setitem__("v", "x"))
        assert counts == [1] * n
        return n

    def _cascade(self, n: int) -> int:
        """A listener keeping a derived total while n edits land."""
        store = Store({"values": [], "total": 0})

        def keep_total(event):
            if event.patch.path[:1] == ("values",):
                event.form["total"] = sum(event.form["values"])

        store.listen_global(keep_total)
        for i in range(n):
            store.edit(lambda draft, i=i: draft["values"].append(i))
        assert store.get_snapshot()["total"] == sum(range(n))
        return n

    def _run_adaptive_benchmark(self, operation_func: Callable[[int], int]):
        """Scale the workload until one run reaches the time limit."""
        n = STARTING_N
        while True:
            start_time = time.perf_counter()
            ops_performed = operation_func(n)
            operation_time = time.perf_counter() - start_time

            result = {
                "max_n": n,
                "operation_time": operation_time,
                "operations_per_second": ops_performed / max(operation_time, 1e-9),
            }
            if operation_time >= TIME_LIMIT_SECONDS:
                return result
            n = int(n * SCALE_FACTOR)

    def _display_final_results(self, start_time: float):
        table = Table(title="Final Benchmark Results")
        table.add_column("Benchmark", style="cyan", no_wrap=True)
        table.add_column("Max Workload", style="magenta", justify="right")
        table.add_column("Time (s)", style="yellow", justify="right")
        table.add_column("Performance", style="green", justify="right")

        for result in self.results.values():
            table.add_row(
                result["name"],
                f"{result['max_n']:,}",
                f"{result['operation_time']:.3f}",
                f"{result['operations_per_second']:,.0f} ops/sec",
            )

        self.console.print()
        self.console.print(table)
        elapsed = time.time() - start_time
        self.console.print(f"[dim]Benchmark completed in {elapsed:.2f} seconds[/dim]")


def print_config():
    """Print the current benchmark configuration."""
    print("Treewatch Benchmark Configuration:")
    print(f"  TIME_LIMIT_SECONDS: {TIME_LIMIT_SECONDS}")
    print(f"  STARTING_N: {STARTING_N}")
    print(f"  SCALE_FACTOR: {SCALE_FACTOR}")


def main():
    parser = argparse.ArgumentParser(description="Treewatch Performance Benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show current benchmark configuration"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output, show only final results",
    )
    args = parser.parse_args()

    if args.config:
        print_config()
        return

    if not args.quiet:
        print_config()
        print()

    TreewatchBenchmark(quiet=args.quiet).run_benchmarks()


if __name__ == "__main__":
    main()
