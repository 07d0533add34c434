"""
Unit tests for the prize protocol economic model.
"""

import unittest
import sys
import os
import numpy as np

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from prize_model import PrizeProtocolModel, DEFAULT_PRIZE_RESERVE, ONE_DAY_IN_SECONDS


class TestPrizeProtocolModel(unittest.TestCase):
    def setUp(self):
        """Initialize a fresh model for each test"""
        self.model = PrizeProtocolModel(annual_rate=0.10, capacity=64, start_time=1_000_000)

    def test_deposit_and_odds(self):
        """Equal time-weighted balances give equal odds"""
        start = self.model.current_time
        self.model.deposit("alice", 1000)
        self.model.update_time(ONE_DAY_IN_SECONDS)
        self.model.deposit("bob", 2000)
        self.model.update_time(ONE_DAY_IN_SECONDS)
        end = self.model.current_time

        # alice holds 1000 for two days, bob 2000 for one
        self.assertAlmostEqual(self.model.get_odds("alice", start, end), 0.5, places=6)
        self.assertAlmostEqual(self.model.get_odds("bob", start, end), 0.5, places=6)
        self.assertEqual(self.model.get_odds("carol", start, end), 0.0)

    def test_odds_without_supply(self):
        """Empty pools give no odds"""
        self.assertEqual(self.model.get_odds("alice", 0, 100), 0.0)

    def test_withdraw(self):
        """Withdrawals return the deposit and keep history"""
        self.model.deposit("alice", 1000)
        deposit_time = self.model.current_time
        self.model.update_time(ONE_DAY_IN_SECONDS)

        redeemed = self.model.withdraw("alice", 1000)

        self.assertEqual(redeemed, 1000)
        self.assertEqual(self.model.ticket.balance_of("alice"), 0)
        self.assertEqual(self.model.ticket.get_balance_at("alice", deposit_time + 10), 1000)

    def test_distribute(self):
        """Accrued yield is captured and split"""
        self.model.set_prize_splits([(DEFAULT_PRIZE_RESERVE, 1000)])
        self.model.deposit("alice", 1_000_000)
        self.model.update_time(365 * ONE_DAY_IN_SECONDS)

        prize = self.model.distribute()

        self.assertGreaterEqual(prize, 100_000)
        self.assertEqual(self.model.ticket.balance_of(DEFAULT_PRIZE_RESERVE), prize)
        self.assertEqual(self.model.prize_pool.award_balance(), 0)

    def test_sample_balance_history(self):
        """Sampled history is a step function of the deposits"""
        start = self.model.current_time
        self.model.deposit("alice", 100)
        self.model.update_time(100)
        self.model.deposit("alice", 100)
        self.model.update_time(100)

        times, balances = self.model.sample_balance_history("alice", start, start + 200, samples=5)

        self.assertEqual(len(times), 5)
        np.testing.assert_array_equal(balances, [100, 100, 200, 200, 200])

    def test_simulation(self):
        """Simulation runs and its holders' odds add up to one"""
        # Large enough that no history is evicted during the run
        self.model = PrizeProtocolModel(annual_rate=0.10, capacity=1024, start_time=1_000_000)
        self.model.set_prize_splits([(DEFAULT_PRIZE_RESERVE, 100), ("treasury", 50)])
        start = self.model.current_time

        results = self.model.simulate_deposit_scenario(14, users=4, plot_results=False, seed=1)

        self.assertIn('final_total_supply', results)
        self.assertIn('total_awarded', results)
        self.assertIn('average_balances', results)
        self.assertEqual(len(results['average_balances']), 4)

        holders = [f"user{i}" for i in range(4)] + [DEFAULT_PRIZE_RESERVE, "treasury"]
        total = sum(self.model.ticket.balance_of(holder) for holder in holders)
        self.assertEqual(total, self.model.ticket.total_supply())
        self.assertGreater(results['total_awarded'], 0)

        end = self.model.current_time
        odds = sum(self.model.get_odds(holder, start, end) for holder in holders)
        self.assertAlmostEqual(odds, 1.0, delta=0.001)


if __name__ == '__main__':
    unittest.main()
