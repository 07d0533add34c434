"""
Unit tests for the Prize Pool, its yield source, and the prize split strategy.
"""

import unittest
import sys
import os

# Add the core directory to the path
sys.path.append(os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "core"))
from ticket import Ticket
from yield_source import MockYieldSource, ONE_YEAR_IN_SECONDS
from prize_pool import PrizePool
from prize_split_strategy import PrizeSplitStrategy, PrizeSplitConfig, ONE_AS_FIXED_POINT_3


class TestMockYieldSource(unittest.TestCase):
    def setUp(self):
        self.yield_source = MockYieldSource(annual_rate=0.10)

    def test_supply_and_redeem(self):
        """Supplied tokens can be redeemed"""
        self.yield_source.supply_token_to(1000, "pool")
        self.assertEqual(self.yield_source.balance_of_token("pool"), 1000)

        redeemed = self.yield_source.redeem_token(400, "pool")

        self.assertEqual(redeemed, 400)
        self.assertEqual(self.yield_source.balance_of_token("pool"), 600)

    def test_yearly_accrual(self):
        """A year at 10% adds 10% of the assets"""
        self.yield_source.supply_token_to(1_000_000, "pool")

        accrued = self.yield_source.accrue(ONE_YEAR_IN_SECONDS)

        self.assertEqual(accrued, 100_000)
        self.assertEqual(self.yield_source.balance_of_token("pool"), 1_100_000)

    def test_small_accruals_add_up(self):
        """Hourly accruals too small to round up on their own still accumulate"""
        self.yield_source.supply_token_to(1000, "pool")

        for hour in range(1, 365 * 24 + 1):
            self.yield_source.accrue(hour * 3600)

        self.assertGreaterEqual(self.yield_source.balance_of_token("pool") - 1000, 100)

    def test_invalid_operations(self):
        """Bad amounts and over-redemption raise"""
        with self.assertRaises(ValueError):
            self.yield_source.supply_token_to(0, "pool")
        with self.assertRaises(ValueError):
            self.yield_source.add_yield(10)

        self.yield_source.supply_token_to(100, "pool")
        with self.assertRaises(ValueError):
            self.yield_source.redeem_token(101, "pool")


class TestPrizePool(unittest.TestCase):
    def setUp(self):
        """Initialize a pool with a ticket on a controllable clock"""
        self.now = 1000
        self.ticket = Ticket(capacity=16, clock=lambda: self.now)
        self.yield_source = MockYieldSource(annual_rate=0.0)
        self.pool = PrizePool(self.ticket, self.yield_source)

    def test_deposit(self):
        """Deposits mint tickets 1:1 and supply the yield source"""
        self.pool.deposit_to("alice", 500)

        self.assertEqual(self.ticket.balance_of("alice"), 500)
        self.assertEqual(self.ticket.total_supply(), 500)
        self.assertEqual(self.pool.balance(), 500)
        self.assertIs(self.ticket.controller, self.pool)
        self.assertEqual(self.pool.events[-1]["event"], "Deposited")

    def test_deposit_invalid_amount(self):
        """Depositing nothing fails"""
        with self.assertRaises(ValueError):
            self.pool.deposit_to("alice", 0)

    def test_balance_cap(self):
        """A holder cannot exceed the balance cap"""
        self.pool.set_balance_cap(1000)
        self.pool.deposit_to("alice", 800)

        self.assertFalse(self.pool.can_deposit("alice", 201))
        self.assertTrue(self.pool.can_deposit("bob", 201))

        with self.assertRaises(ValueError) as context:
            self.pool.deposit_to("alice", 201)

        self.assertIn("balance cap", str(context.exception))
        self.assertEqual(self.ticket.balance_of("alice"), 800)
        self.assertEqual(self.pool.balance(), 800)

    def test_liquidity_cap(self):
        """Total supply cannot exceed the liquidity cap"""
        self.pool.set_liquidity_cap(1000)
        self.pool.deposit_to("alice", 600)

        with self.assertRaises(ValueError) as context:
            self.pool.deposit_to("bob", 401)

        self.assertIn("liquidity cap", str(context.exception))
        self.assertEqual(self.ticket.total_supply(), 600)
        self.pool.deposit_to("bob", 400)
        self.assertEqual(self.ticket.total_supply(), 1000)

    def test_withdraw(self):
        """Withdrawals burn tickets and redeem from the yield source"""
        self.pool.deposit_to("alice", 500)
        self.now = 1100

        redeemed = self.pool.withdraw_from("alice", 200)

        self.assertEqual(redeemed, 200)
        self.assertEqual(self.ticket.balance_of("alice"), 300)
        self.assertEqual(self.pool.balance(), 300)
        self.assertEqual(self.ticket.get_balance_at("alice", 1050), 500)

    def test_withdraw_by_operator(self):
        """An operator withdraws for a holder only within its allowance"""
        self.pool.deposit_to("alice", 500)

        with self.assertRaises(ValueError):
            self.pool.withdraw_from("alice", 100, operator="bob")

        self.ticket.approve("alice", "bob", 100)
        redeemed = self.pool.withdraw_from("alice", 100, operator="bob")

        self.assertEqual(redeemed, 100)
        self.assertEqual(self.ticket.balance_of("alice"), 400)
        self.assertEqual(self.ticket.allowance("alice", "bob"), 0)
        self.assertEqual(self.pool.events[-1]["operator"], "bob")

    def test_ticket_rejects_other_callers(self):
        """Tickets controlled by the pool cannot be minted by anyone else"""
        with self.assertRaises(ValueError):
            self.ticket.controller_mint("alice", "alice", 100)

    def test_withdraw_exceeds_balance(self):
        """Withdrawing more than a balance fails and leaves the pool untouched"""
        self.pool.deposit_to("alice", 500)

        with self.assertRaises(ValueError):
            self.pool.withdraw_from("alice", 501)

        self.assertEqual(self.ticket.balance_of("alice"), 500)
        self.assertEqual(self.pool.balance(), 500)

    def test_capture_award_balance(self):
        """Only yield beyond the ticket supply and award balance is captured"""
        self.pool.deposit_to("alice", 1000)
        self.assertEqual(self.pool.capture_award_balance(), 0)

        self.yield_source.add_yield(100)
        self.assertEqual(self.pool.capture_award_balance(), 100)
        self.assertEqual(self.pool.capture_award_balance(), 100)
        self.assertEqual(self.pool.award_balance(), 100)

        self.yield_source.add_yield(50)
        self.assertEqual(self.pool.capture_award_balance(), 150)

    def test_award(self):
        """Awards mint tickets out of the captured award balance"""
        self.pool.deposit_to("alice", 1000)
        self.yield_source.add_yield(100)
        self.pool.capture_award_balance()

        self.pool.award("bob", 60)

        self.assertEqual(self.ticket.balance_of("bob"), 60)
        self.assertEqual(self.pool.award_balance(), 40)
        self.assertEqual(self.ticket.total_supply(), 1060)
        # Awarded tickets are already backed, so nothing new is captured
        self.assertEqual(self.pool.capture_award_balance(), 40)

    def test_award_limits(self):
        """Awards cannot exceed the award balance and zero is a no-op"""
        self.pool.deposit_to("alice", 1000)
        events = list(self.pool.events)

        self.pool.award("bob", 0)
        self.assertEqual(self.pool.events, events)

        with self.assertRaises(ValueError):
            self.pool.award("bob", 1)


class TestPrizeSplitStrategy(unittest.TestCase):
    def setUp(self):
        """Initialize a pool with a split strategy"""
        self.now = 1000
        self.ticket = Ticket(capacity=16, clock=lambda: self.now)
        self.yield_source = MockYieldSource(annual_rate=0.0)
        self.pool = PrizePool(self.ticket, self.yield_source)
        self.strategy = PrizeSplitStrategy(self.pool)

    def test_registers_with_pool(self):
        """The strategy becomes the pool's prize strategy"""
        self.assertIs(self.pool.prize_strategy, self.strategy)

    def test_set_prize_splits(self):
        """Splits are stored and readable"""
        self.strategy.set_prize_splits([PrizeSplitConfig("a", 500), PrizeSplitConfig("b", 250)])

        self.assertEqual(len(self.strategy.get_prize_splits()), 2)
        self.assertEqual(self.strategy.get_prize_split(1), PrizeSplitConfig("b", 250))

    def test_set_prize_splits_validation(self):
        """Splits need targets and cannot add up to more than 100%"""
        with self.assertRaises(ValueError):
            self.strategy.set_prize_splits([PrizeSplitConfig("a", 600), PrizeSplitConfig("b", 401)])
        with self.assertRaises(ValueError):
            self.strategy.set_prize_splits([PrizeSplitConfig("", 100)])
        with self.assertRaises(ValueError):
            self.strategy.set_prize_splits([PrizeSplitConfig("a", ONE_AS_FIXED_POINT_3 + 1)])

        self.assertEqual(self.strategy.get_prize_splits(), [])

    def test_set_prize_split(self):
        """A single split can be replaced in place"""
        self.strategy.set_prize_splits([PrizeSplitConfig("a", 500), PrizeSplitConfig("b", 250)])

        self.strategy.set_prize_split(PrizeSplitConfig("c", 750), 0)
        self.assertEqual(self.strategy.get_prize_split(0), PrizeSplitConfig("c", 750))

        with self.assertRaises(ValueError):
            self.strategy.set_prize_split(PrizeSplitConfig("c", 751), 0)
        with self.assertRaises(ValueError):
            self.strategy.set_prize_split(PrizeSplitConfig("d", 10), 5)

    def test_removed_splits_emit(self):
        """Shrinking the split list reports removed indices"""
        self.strategy.set_prize_splits([PrizeSplitConfig("a", 100), PrizeSplitConfig("b", 100)])
        self.strategy.set_prize_splits([PrizeSplitConfig("a", 100)])

        removed = [event for event in self.strategy.events if event["event"] == "PrizeSplitRemoved"]
        self.assertEqual(removed, [{"event": "PrizeSplitRemoved", "index": 1}])

    def test_distribute(self):
        """Captured yield is split by percentage and the rest stays in the pool"""
        self.strategy.set_prize_splits([PrizeSplitConfig("a", 500), PrizeSplitConfig("b", 250)])
        self.pool.deposit_to("alice", 10_000)
        self.yield_source.add_yield(1000)

        prize = self.strategy.distribute()

        self.assertEqual(prize, 1000)
        self.assertEqual(self.ticket.balance_of("a"), 500)
        self.assertEqual(self.ticket.balance_of("b"), 250)
        self.assertEqual(self.pool.award_balance(), 250)
        self.assertEqual(self.strategy.events[-1], {"event": "Distributed", "total_prize_captured": 750})

    def test_distribute_without_yield(self):
        """Nothing is distributed when there is no yield"""
        self.strategy.set_prize_splits([PrizeSplitConfig("a", 500)])
        self.pool.deposit_to("alice", 10_000)

        self.assertEqual(self.strategy.distribute(), 0)
        self.assertEqual(self.ticket.balance_of("a"), 0)


if __name__ == '__main__':
    unittest.main()
