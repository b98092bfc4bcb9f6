"""
CLI interface for the IPS candidate evaluator.

Usage:
    python -m ips_scoring chain.csv --policy policy.yaml --price 500
    python -m ips_scoring chain.csv --policy policy.yaml --price 500 --side call --top 5
    python -m ips_scoring chain.csv --policy policy.yaml --price 500 --csv output.csv
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from ips_scoring.chain_loader import load_chain_csv
from ips_scoring.config import GeneratorFilters
from ips_scoring.exceptions import ScoringError
from ips_scoring.observations import load_observations_file
from ips_scoring.policy import load_policy_file
from ips_scoring.screener import screen_candidates


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    defaults = GeneratorFilters()
    parser = argparse.ArgumentParser(
        prog="ips_scoring",
        description="Generate credit-spread candidates from an option chain and score them against an IPS policy.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500
  python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500 --symbol SPY --top 5
  python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500 --side call
  python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500 --observations market.yaml
  python -m ips_scoring spy_chain.csv --policy policy.yaml --price 500 --csv results.csv

Scoring Overview:
  Each factor scores 0-100 against its target; meeting the target scores 70.
  The IPS score is the weighted average over the factors that could be
  observed, and weight coverage reports how much of the policy that was.
        """,
    )

    # Positional arguments
    parser.add_argument(
        "chain",
        type=str,
        help="Option chain CSV file",
    )

    # Required inputs
    parser.add_argument(
        "--policy",
        type=str,
        required=True,
        help="IPS policy YAML file",
    )
    parser.add_argument(
        "--price",
        type=float,
        required=True,
        help="Current underlying price",
    )
    parser.add_argument(
        "--symbol",
        type=str,
        default="",
        help="Underlying symbol (e.g., SPY)",
    )
    parser.add_argument(
        "--side",
        type=str,
        choices=["put", "call"],
        default="put",
        help="Sell put or call verticals (default: put)",
    )
    parser.add_argument(
        "--as-of",
        type=_parse_date,
        default=None,
        help="Valuation date YYYY-MM-DD (default: today)",
    )

    # Generator filters
    parser.add_argument(
        "--min-dte",
        type=int,
        default=defaults.min_dte,
        help=f"Minimum days to expiration (default: {defaults.min_dte})",
    )
    parser.add_argument(
        "--max-dte",
        type=int,
        default=defaults.max_dte,
        help=f"Maximum days to expiration (default: {defaults.max_dte})",
    )
    parser.add_argument(
        "--min-delta",
        type=float,
        default=defaults.min_delta,
        help=f"Minimum absolute short delta (default: {defaults.min_delta})",
    )
    parser.add_argument(
        "--max-delta",
        type=float,
        default=defaults.max_delta,
        help=f"Maximum absolute short delta (default: {defaults.max_delta})",
    )
    parser.add_argument(
        "--min-oi",
        type=int,
        default=defaults.min_open_interest,
        help=f"Short-leg open interest must exceed this (default: {defaults.min_open_interest})",
    )
    parser.add_argument(
        "--min-bid",
        type=float,
        default=defaults.min_bid,
        help=f"Short-leg bid must exceed this (default: {defaults.min_bid})",
    )

    # Observations
    parser.add_argument(
        "--observations",
        type=str,
        metavar="FILE",
        help="YAML/JSON mapping of factor id to externally observed value",
    )

    # Results
    parser.add_argument(
        "--top", "-n",
        type=int,
        default=10,
        help="Number of top results to show (default: 10)",
    )

    # Output format
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--csv",
        type=str,
        metavar="FILE",
        help="Output results to CSV file",
    )
    output.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON to stdout",
    )

    # Verbosity
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)

    # Setup logging
    setup_logging(args.verbose, args.debug)

    try:
        filters = GeneratorFilters(
            min_dte=args.min_dte,
            max_dte=args.max_dte,
            min_delta=args.min_delta,
            max_delta=args.max_delta,
            min_open_interest=args.min_oi,
            min_bid=args.min_bid,
        )

        policy = load_policy_file(args.policy)
        legs = load_chain_csv(args.chain)
        observations = load_observations_file(args.observations) if args.observations else {}

        result = screen_candidates(
            legs,
            args.price,
            policy,
            side=args.side,
            symbol=args.symbol.upper(),
            filters=filters,
            observations=observations,
            as_of=args.as_of,
            top_n=args.top,
        )

        # Output results
        if args.json:
            print(json.dumps(result.to_json_dict(), indent=2))

        elif args.csv:
            output_path = Path(args.csv)
            output_path.write_text(result.to_csv())
            print(f"Results saved to {args.csv}")
            print()
            print(result.to_report())

        else:
            print(result.to_report())

        return 0

    except (ScoringError, ValueError, FileNotFoundError) as e:
        logging.getLogger(__name__).debug("Error during evaluation", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
