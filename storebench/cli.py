"""
Command-line interface.

    storebench list
    storebench run single-document-insertion cache-hot-keys --iterations 20
    storebench run --all --size medium --no-save
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from storebench.benchmark.options import SizeClass
from storebench.benchmark.result import BenchmarkResult
from storebench.benchmark.runner import BenchmarkOrchestrator
from storebench.benchmark.scenarios import register_default_benchmarks
from storebench.config.settings import Settings, get_settings
from storebench.core.exceptions import StoreBenchError
from storebench.observability.logging import configure_logging
from storebench.stores.mongodb import MongoDBAdapter
from storebench.stores.postgresql import PostgreSQLAdapter

logger = structlog.get_logger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storebench",
        description="MongoDB vs PostgreSQL latency benchmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show available benchmarks
  storebench list

  # Run two benchmarks with more iterations
  storebench run single-document-insertion cache-hot-keys --iterations 20

  # Run everything on a medium data set without writing result files
  storebench run --all --size medium --no-save
""",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List registered benchmarks")

    run = subparsers.add_parser("run", help="Run benchmarks")
    run.add_argument("names", nargs="*", metavar="NAME", help="Benchmark name(s) to run")
    run.add_argument("--all", action="store_true", help="Run every registered benchmark")

    # Options; unset flags fall through to settings and benchmark defaults
    run.add_argument("--size", choices=[s.value for s in SizeClass], default=None, help="Data size class")
    run.add_argument("--custom-size", type=int, default=None, help="Record count when --size custom")
    run.add_argument("--iterations", type=int, default=None, help="Timed iterations per store")
    run.add_argument("--seed", type=int, default=None, help="Seed for workload generators")
    run.add_argument(
        "--no-setup", dest="setup_environment", action="store_const", const=False, default=None,
        help="Skip benchmark setup",
    )
    run.add_argument(
        "--no-cleanup", dest="cleanup_environment", action="store_const", const=False, default=None,
        help="Keep benchmark data after the run",
    )
    run.add_argument(
        "--no-save", dest="save_results", action="store_const", const=False, default=None,
        help="Do not write result files",
    )
    run.add_argument("--output-dir", type=Path, default=None, help="Directory for result files")
    run.add_argument(
        "--verbose", action="store_const", const=True, default=None, help="Log every iteration"
    )
    run.add_argument("--log-format", choices=["console", "json"], default=None, help="Log output format")

    return parser


def overrides_from_args(args: argparse.Namespace) -> dict:
    """Caller overrides for the options given on the command line."""
    overrides = {
        "size": args.size,
        "custom_size": args.custom_size,
        "iterations": args.iterations,
        "setup_environment": args.setup_environment,
        "cleanup_environment": args.cleanup_environment,
        "save_results": args.save_results,
        "output_dir": str(args.output_dir) if args.output_dir else None,
        "verbose": args.verbose,
    }
    return {key: value for key, value in overrides.items() if value is not None}


def describe_validation_error(error: ValidationError) -> str:
    """One-line rendering of pydantic validation errors for the command line."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'options'}: {err['msg']}"
        for err in error.errors()
    )


def print_summary(results: dict[str, BenchmarkResult]) -> None:
    print()
    print(f"{'Benchmark':<28} {'Winner':<12} {'Ratio':>8} {'Faster':>9}  Status")
    print("-" * 72)
    for name, result in results.items():
        if result.comparison:
            c = result.comparison
            print(f"{name:<28} {c.winner:<12} {c.median_ratio:>7.2f}x {c.percentage_diff:>8.1f}%  ok")
        else:
            status = "failed" if not result.succeeded else "no comparison"
            print(f"{name:<28} {'-':<12} {'-':>8} {'-':>9}  {status}")
        for store, store_result in result.stores.items():
            if store_result.error:
                print(f"    {store}: {store_result.error}")
        if result.error and not result.stores:
            print(f"    {result.error}")
        if result.persistence_error:
            print(f"    results not saved: {result.persistence_error}")


async def _list(settings: Settings) -> int:
    orchestrator = BenchmarkOrchestrator(settings=settings)
    await register_default_benchmarks(orchestrator, seed=settings.benchmark.seed)
    for info in orchestrator.describe_benchmarks():
        print(f"{info['name']:<28} {info['description']}  [{', '.join(info['stores'])}]")
    return 0


async def _run(args: argparse.Namespace, settings: Settings, parser: argparse.ArgumentParser) -> int:
    seed = args.seed if args.seed is not None else settings.benchmark.seed

    async with BenchmarkOrchestrator(settings=settings) as orchestrator:
        await register_default_benchmarks(orchestrator, seed=seed)

        if args.all:
            names = orchestrator.list_benchmarks()
        else:
            unknown = [n for n in args.names if not orchestrator.has_benchmark(n)]
            if unknown:
                parser.error(
                    f"unknown benchmark(s): {', '.join(unknown)} "
                    f"(available: {', '.join(orchestrator.list_benchmarks())})"
                )
            names = args.names

        overrides = overrides_from_args(args)
        try:
            for name in names:
                orchestrator.resolve_options(name, overrides)
        except ValidationError as e:
            parser.error(f"invalid options: {describe_validation_error(e)}")

        await orchestrator.register_adapter(MongoDBAdapter(settings.mongodb))
        await orchestrator.register_adapter(PostgreSQLAdapter(settings.postgresql))

        results: dict[str, BenchmarkResult] = {}
        if args.all:
            results = await orchestrator.run_all_benchmarks(overrides)
        else:
            for name in names:
                try:
                    results[name] = await orchestrator.run_benchmark(name, overrides)
                except StoreBenchError as e:
                    logger.error("Benchmark aborted", benchmark=name, error=str(e))
                    results[name] = BenchmarkResult(name=name, error=str(e))

    print_summary(results)
    return 0 if all(r.succeeded for r in results.values()) else 1


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "run" and not args.all and not args.names:
        parser.error("give at least one benchmark NAME or --all")

    settings = get_settings()
    log_format = getattr(args, "log_format", None) or settings.observability.log_format
    configure_logging(level=settings.log_level, format=log_format, service_name=settings.app_name)

    if args.command == "list":
        return asyncio.run(_list(settings))
    return asyncio.run(_run(args, settings, parser))


if __name__ == "__main__":
    sys.exit(main())
