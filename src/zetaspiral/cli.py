"""
CLI entry point for the zeta spiral generator.

Usage:
    zetaspiral [--imag T] [--downsample] [--aggressive A] [-o out.json]
"""

import argparse
import logging
import sys
import time
from pathlib import Path

from zetaspiral.config import SpiralConfig
from zetaspiral.core.cancellation import CancellationToken
from zetaspiral.errors import ComputationCancelled, ConfigurationError, DomainError
from zetaspiral.pipeline import SpiralPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zetaspiral",
        description="Chunked partial-sum spirals of sum k^(-s) with pixel-space downsampling",
    )

    # Exponent
    parser.add_argument("--real", type=float, default=0.5, help="Real part of s (default: 0.5)")
    parser.add_argument(
        "--imag", type=float, default=6_300_000.0,
        help="Imaginary part of s (default: 6300000.0)",
    )

    # Term range
    parser.add_argument("--min-n", type=int, default=100, help="Minimum number of terms")
    parser.add_argument(
        "--max-n", type=int, default=65_000_000_000,
        help="Maximum number of terms",
    )
    parser.add_argument(
        "--chunk-width", type=int, default=100_000,
        help="Terms per concurrent chunk (does not change the result)",
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count)")

    # Downsampling
    parser.add_argument("--downsample", action="store_true", help="Enable downsampling")
    parser.add_argument(
        "--aggressive", type=float, default=0.5,
        help="Downsampling aggressiveness, 0.0-4.0 (default: 0.5)",
    )
    parser.add_argument("--size", type=int, default=2048, help="Output resolution in pixels")
    parser.add_argument(
        "--mode", type=str, default="auto",
        choices=["auto", "sequential", "parallel"],
        help="Downsampler variant (default: auto)",
    )

    # Output
    parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write points to .json or .npz",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Abort after N seconds")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # Caching
    parser.add_argument("--no-cache", action="store_true", help="Force recomputation")
    parser.add_argument("--clear-cache", action="store_true", help="Clear the trajectory cache first")

    return parser


def _print_stats(stats, aggressiveness: float):
    print(f"\nDownsampling Statistics (aggressiveness={aggressiveness:.2f}):")
    print(f"Points reduced: {stats.points_before} -> {stats.points_after}")
    print(f"Reduction ratio: {stats.reduction_ratio:.2f}x")
    print(f"Memory saved: {stats.memory_saved_kb:.2f} KB")
    print(f"Average distance between points: {stats.average_distance:.6f}")
    print(f"Maintained visual quality while using {stats.percent_fewer:.1f}% fewer points")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = SpiralConfig(
            min_terms=args.min_n,
            max_terms=args.max_n,
            chunk_width=args.chunk_width,
            output_resolution=args.size,
            aggressiveness=args.aggressive,
            max_workers=args.workers,
            debug=args.debug,
        ).validate()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    pipeline = SpiralPipeline(config)
    if args.clear_cache:
        pipeline.clear_cache()

    s = complex(args.real, args.imag)
    token = CancellationToken(args.timeout)
    start = time.perf_counter()

    try:
        output = pipeline.process(
            s,
            output_path=args.output,
            downsample=args.downsample,
            mode=args.mode,
            use_cache=not args.no_cache,
            token=token,
        )
    except DomainError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ComputationCancelled as e:
        print(f"Aborted: {e}", file=sys.stderr)
        return 3

    if output["stats"] is not None:
        _print_stats(output["stats"], config.aggressiveness)

    total = output["total"]
    elapsed = time.perf_counter() - start
    print(f"\nEuler-Maclaurin result: ({total.real:.6f}, {total.imag:.6f})")
    print(f"Terms: {output['n_terms']}  Time taken: {elapsed:.3f}s")
    if "output_path" in output:
        print(f"Saved to {output['output_path']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
