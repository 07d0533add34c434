"""
Economic Model for the Prize Pool Protocol.

This main module combines the individual components into a complete model of
a no-loss prize pool: users deposit into a yield-bearing pool, receive tickets
whose balance history is tracked as a TWAB, and the accrued yield is
periodically captured and split across prize targets.

It can be used to run deposit scenarios and inspect how time-weighted
balances, and therefore prize odds, evolve.
"""

import numpy as np
import matplotlib.pyplot as plt

from ticket import Ticket
from twab_lib import MAX_CARDINALITY
from yield_source import MockYieldSource
from prize_pool import PrizePool, MAX_CAP
from prize_split_strategy import PrizeSplitStrategy, PrizeSplitConfig

ONE_DAY_IN_SECONDS = 24 * 60 * 60

# Default prize split target holding reserve tickets
DEFAULT_PRIZE_RESERVE = "prize_reserve"


class PrizeProtocolModel:
    """
    Complete model of the prize pool protocol on a simulated clock.
    """

    def __init__(self, annual_rate: float = 0.05, capacity: int = MAX_CARDINALITY,
                 balance_cap: int = MAX_CAP, liquidity_cap: int = MAX_CAP, start_time: int = 0):
        # Simulated time in seconds
        self.current_time = start_time

        self.yield_source = MockYieldSource(annual_rate=annual_rate, start_time=start_time)
        self.ticket = Ticket(capacity=capacity, clock=lambda: self.current_time)
        self.prize_pool = PrizePool(self.ticket, self.yield_source,
                                    balance_cap=balance_cap, liquidity_cap=liquidity_cap)
        self.prize_split_strategy = PrizeSplitStrategy(self.prize_pool)

        # History tracking for simulations
        self.time_history = [start_time]
        self.total_supply_history = [0]
        self.award_history = [0]

    def set_prize_splits(self, splits):
        """
        Configures prize splits from (target, percentage) pairs.

        Percentages are in tenths of a percent.
        """
        self.prize_split_strategy.set_prize_splits(
            [PrizeSplitConfig(target, percentage) for target, percentage in splits]
        )

    def update_time(self, seconds: int) -> None:
        """Advances the simulated clock and accrues yield."""
        self.current_time += seconds
        self.yield_source.accrue(self.current_time)

    def deposit(self, user: str, amount: int) -> None:
        """Deposits `amount` for `user` at the current time."""
        self.prize_pool.deposit_to(user, amount)

    def withdraw(self, user: str, amount: int) -> int:
        """Withdraws `amount` for `user` at the current time."""
        return self.prize_pool.withdraw_from(user, amount)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Transfers tickets between holders at the current time."""
        self.ticket.transfer(sender, recipient, amount)

    def distribute(self) -> int:
        """
        Captures accrued yield and distributes it across the prize splits.

        Returns:
            The prize captured
        """
        self.yield_source.accrue(self.current_time)
        return self.prize_split_strategy.distribute()

    def get_odds(self, user: str, start_time: int, end_time: int) -> float:
        """
        Returns `user`'s share of the average total supply over an interval.

        This is the weight a draw over [start_time, end_time] would give the user.
        """
        user_average = self.ticket.get_average_balance_between(user, start_time, end_time)
        supply_average = self.ticket.get_average_total_supplies_between([start_time], [end_time])[0]

        if supply_average == 0:
            return 0.0

        return user_average / supply_average

    def sample_balance_history(self, user: str, start_time: int, end_time: int, samples: int = 100):
        """
        Samples a user's historical balance over [start_time, end_time].

        Returns:
            Tuple of (sample times, balances) as numpy arrays
        """
        times = np.linspace(start_time, end_time, samples).astype(np.int64)
        balances = self.ticket.get_balances_at(user, [int(t) for t in times])
        return times, np.array(balances, dtype=float)

    def simulate_deposit_scenario(self, days: int, users: int = 5, deposit_size: int = 1_000_000,
                                  draw_period_days: int = 7, plot_results: bool = True, seed=None):
        """
        Run a simulation with random deposits and withdrawals.

        Each hour a random user deposits or withdraws; every draw period the
        accrued yield is distributed.

        Args:
            days: Number of days to simulate
            users: Number of depositors
            deposit_size: Upper bound for a single deposit
            draw_period_days: Days between distributions
            plot_results: Whether to generate plots of the results
            seed: Seed for the random generator

        Returns:
            Dictionary with simulation results
        """
        rng = np.random.default_rng(seed)
        steps = days * 24
        step_size = ONE_DAY_IN_SECONDS // 24
        draw_period = draw_period_days * ONE_DAY_IN_SECONDS
        start_time = self.current_time
        last_draw = start_time
        names = [f"user{i}" for i in range(users)]
        total_awarded = 0

        time_points = np.zeros(steps)
        supply_points = np.zeros(steps)
        award_points = np.zeros(steps)

        for i in range(steps):
            user = names[rng.integers(users)]
            balance = self.ticket.balance_of(user)

            if balance > 0 and rng.random() < 0.3:
                amount = int(rng.integers(1, balance + 1))
                self.withdraw(user, amount)
            else:
                amount = int(rng.integers(1, deposit_size + 1))
                if self.prize_pool.can_deposit(user, amount):
                    self.deposit(user, amount)

            self.update_time(step_size)

            if self.current_time - last_draw >= draw_period:
                total_awarded += self.distribute()
                last_draw = self.current_time

            time_points[i] = (self.current_time - start_time) / ONE_DAY_IN_SECONDS
            supply_points[i] = self.ticket.total_supply()
            award_points[i] = total_awarded

        self.time_history.extend(int(start_time + t * ONE_DAY_IN_SECONDS) for t in time_points)
        self.total_supply_history.extend(supply_points.tolist())
        self.award_history.extend(award_points.tolist())

        end_time = self.current_time
        averages = {
            name: self.ticket.get_average_balance_between(name, start_time, end_time)
            for name in names
        }

        if plot_results:
            fig, axs = plt.subplots(3, 1, figsize=(12, 12), sharex=True)

            axs[0].plot(time_points, supply_points)
            axs[0].set_title('Ticket Total Supply')
            axs[0].set_ylabel('Tickets')

            for name in names:
                sample_times, balances = self.sample_balance_history(name, start_time, end_time)
                axs[1].step((sample_times - start_time) / ONE_DAY_IN_SECONDS, balances, where='post', label=name)
            axs[1].set_title('Historical Ticket Balances')
            axs[1].set_ylabel('Tickets')
            axs[1].legend()

            axs[2].plot(time_points, award_points)
            axs[2].set_title('Cumulative Prizes Awarded')
            axs[2].set_ylabel('Tickets')
            axs[2].set_xlabel('Days')

            plt.tight_layout()
            plt.show()

        return {
            'final_total_supply': self.ticket.total_supply(),
            'total_awarded': total_awarded,
            'award_balance': self.prize_pool.award_balance(),
            'average_balances': averages,
            'average_total_supply': self.ticket.get_average_total_supplies_between([start_time], [end_time])[0],
        }


# Example usage
if __name__ == "__main__":
    model = PrizeProtocolModel(annual_rate=0.05, capacity=64)
    model.set_prize_splits([(DEFAULT_PRIZE_RESERVE, 100)])

    results = model.simulate_deposit_scenario(30, seed=42)

    print("Simulation Results:")
    for key, value in results.items():
        print(f"  {key}: {value}")
