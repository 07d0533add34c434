"""
Simple simulation for the Prize Pool Protocol.

This script walks through deposits, transfers, a distribution, and the
historical balance queries the TWAB history answers.
"""

import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from prize_model import PrizeProtocolModel, DEFAULT_PRIZE_RESERVE

ONE_DAY = 24 * 60 * 60


def run_basic_simulation():
    # Initialize the protocol
    model = PrizeProtocolModel(annual_rate=0.10, capacity=32, start_time=1_000_000)
    model.set_prize_splits([(DEFAULT_PRIZE_RESERVE, 200), ("treasury", 50)])
    start = model.current_time

    print("Depositing...")
    model.deposit("alice", 1_000_000)
    print("alice deposited 1,000,000")
    model.update_time(ONE_DAY)
    model.deposit("bob", 3_000_000)
    print("bob deposited 3,000,000")
    model.update_time(2 * ONE_DAY)

    print("\nTransferring...")
    model.transfer("bob", "carol", 500_000)
    print("bob transferred 500,000 tickets to carol")
    model.update_time(ONE_DAY)

    print("\nTrying to withdraw more than a balance...")
    try:
        model.withdraw("carol", 10_000_000)
    except ValueError as e:
        print(f"  Failed: {e}")

    model.update_time(3 * ONE_DAY)

    print("\nDistributing accrued yield...")
    prize = model.distribute()
    print(f"Captured prize: {prize}")
    print(f"Reserve tickets: {model.ticket.balance_of(DEFAULT_PRIZE_RESERVE)}")
    print(f"Treasury tickets: {model.ticket.balance_of('treasury')}")
    print(f"Award balance left: {model.prize_pool.award_balance()}")

    end = model.current_time

    print("\nHistorical balances:")
    checkpoints = [start, start + ONE_DAY, start + 3 * ONE_DAY, end]
    for user in ("alice", "bob", "carol"):
        balances = model.ticket.get_balances_at(user, checkpoints)
        average = model.ticket.get_average_balance_between(user, start, end)
        odds = model.get_odds(user, start, end)
        print(f"  {user}: balances {balances}, average {average}, odds {odds:.2%}")

    print(f"\nTotal supply now: {model.ticket.total_supply()}")
    print(f"Total supply history: {model.ticket.get_total_supplies_at(checkpoints)}")


if __name__ == "__main__":
    run_basic_simulation()
