#!/usr/bin/env python3
"""
Main entry point for the range order hedging simulation.

Builds the USDC/WETH world, issues a delta request to the reactor, walks the
pool price through the resulting range order and prints the timeline.
"""

import sys
import logging
import argparse

import pandas as pd

from range_order_hedging.core.errors import HedgeEngineError
from range_order_hedging.simulation.environment import EnvironmentConfig
from range_order_hedging.simulation.scenario import run_hedge_scenario


def print_results_summary(results: pd.DataFrame):
    """Print a formatted summary of the hedge timeline"""
    print("\n" + "=" * 80)
    print("HEDGE SCENARIO TIMELINE")
    print("=" * 80)

    columns = ["step", "event", "pool_tick", "pool_price", "state", "lower_tick", "upper_tick",
               "engine_collateral", "engine_underlying", "delta"]
    with pd.option_context("display.width", 200, "display.max_columns", None):
        print(results[columns].to_string(index=False))

    final = results.iloc[-1]
    print()
    print("FINAL STATE:")
    print(f"  Position State: {final['state']}")
    print(f"  Pool Price: {final['pool_price']:,.2f}")
    print(f"  Engine Delta: {final['delta']:.6f}")
    print(f"  Custody Collateral: {final['custody_collateral']:,.2f}")
    print("=" * 80)


def main():
    """Main function with command-line interface"""
    parser = argparse.ArgumentParser(description="Range Order Hedging Simulation")
    parser.add_argument("--delta", type=float, default=-0.5,
                        help="Delta change to hedge (negative buys the underlying)")
    parser.add_argument("--price", type=float, default=3280.0, help="Initial underlying price")
    parser.add_argument("--final-price", type=float, help="Price to walk the pool to (default: just past the order)")
    parser.add_argument("--steps", type=int, default=5, help="Number of price moves")
    parser.add_argument("--fee", type=int, default=3000, help="Pool fee tier in pips")
    parser.add_argument("--range-width", type=int, default=1, help="Order width in tick spacings")
    parser.add_argument("--csv", type=str, help="Write the timeline to this CSV file")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        config = EnvironmentConfig(initial_price=args.price, pool_fee=args.fee, range_width=args.range_width)
        print(f"Hedging delta {args.delta} on {config.underlying.symbol}/{config.collateral.symbol} "
              f"at {config.initial_price:,.2f} (fee {config.pool_fee})")

        results = run_hedge_scenario(
            delta=args.delta, config=config, steps=args.steps, final_price=args.final_price
        )
        print_results_summary(results)

        if args.csv:
            results.to_csv(args.csv, index=False)
            print(f"Timeline written to {args.csv}")

    except (HedgeEngineError, ValueError) as e:
        print(f"Simulation failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
