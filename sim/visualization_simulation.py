"""
Visualization simulation for the Prize Pool Protocol.

This script runs a random deposit scenario and plots ticket supply,
historical balances, and awarded prizes.
"""

import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from prize_model import PrizeProtocolModel, DEFAULT_PRIZE_RESERVE


def run_visualization_simulation():
    # Initialize the protocol with a small ring so old history gets evicted
    model = PrizeProtocolModel(annual_rate=0.08, capacity=128, balance_cap=20_000_000)
    model.set_prize_splits([(DEFAULT_PRIZE_RESERVE, 500), ("treasury", 100)])

    print("Running simulation with visualizations...")
    results = model.simulate_deposit_scenario(60, users=6, deposit_size=2_000_000, plot_results=True, seed=7)

    print("\nSimulation Results:")
    for key, value in results.items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    run_visualization_simulation()
