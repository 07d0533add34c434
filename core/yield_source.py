"""
Yield Source Model for the Prize Pool Protocol.

This module simulates the external yield source the Prize Pool supplies its
deposits to. Depositors hold shares of the source; yield accrued on the
underlying assets raises the value of every share, which is what the Prize
Pool later captures as its award balance.
"""

DECIMAL_PRECISION = 10 ** 18
ONE_YEAR_IN_SECONDS = 365 * 24 * 60 * 60
ACCRUAL_DENOMINATOR = ONE_YEAR_IN_SECONDS * DECIMAL_PRECISION


class MockYieldSource:
    """
    Simulates a yield-bearing vault with a fixed annual rate.
    """

    def __init__(self, annual_rate=0.05, start_time=0):
        # Annual rate as a fixed point number with DECIMAL_PRECISION
        self.annual_rate = int(annual_rate * DECIMAL_PRECISION)

        # Underlying assets held, including accrued yield
        self.total_assets = 0

        # Shares outstanding and per-owner share balances
        self.total_shares = 0
        self.shares = {}

        # Last time at which yield was accrued
        self.last_accrual_time = start_time

        # Fractional yield carried between accruals, scaled by the accrual denominator
        self.accrual_remainder = 0

    def balance_of_token(self, owner):
        """Returns the underlying value of `owner`'s shares."""
        if self.total_shares == 0:
            return 0
        return self.shares.get(owner, 0) * self.total_assets // self.total_shares

    def calc_pending_yield(self, current_time):
        """Returns the yield accrued since the last accrual, rounded down."""
        return self._pending_numerator(current_time) // ACCRUAL_DENOMINATOR

    def accrue(self, current_time):
        """
        Adds pending yield to the underlying assets.

        Returns:
            The amount of yield accrued
        """
        numerator = self._pending_numerator(current_time)
        pending = numerator // ACCRUAL_DENOMINATOR
        self.accrual_remainder = numerator % ACCRUAL_DENOMINATOR
        self.total_assets += pending
        self.last_accrual_time = max(self.last_accrual_time, current_time)
        return pending

    def add_yield(self, amount):
        """Adds yield directly to the underlying assets."""
        if amount <= 0:
            raise ValueError(f"Invalid yield amount: {amount}")

        if self.total_shares == 0:
            raise ValueError("Cannot add yield to an empty yield source")

        self.total_assets += amount

    def supply_token_to(self, amount, to):
        """
        Supplies underlying tokens and credits shares to `to`.

        Returns:
            The number of shares minted
        """
        if amount <= 0:
            raise ValueError(f"Invalid supply amount: {amount}")

        if self.total_shares == 0 or self.total_assets == 0:
            shares = amount
        else:
            shares = amount * self.total_shares // self.total_assets

        self.shares[to] = self.shares.get(to, 0) + shares
        self.total_shares += shares
        self.total_assets += amount

        return shares

    def redeem_token(self, amount, owner):
        """
        Redeems underlying tokens from `owner`'s shares.

        Returns:
            The amount of underlying tokens redeemed
        """
        if amount <= 0:
            raise ValueError(f"Invalid redeem amount: {amount}")

        if amount > self.balance_of_token(owner):
            raise ValueError("Redeem amount exceeds balance")

        # Round shares up so redemptions never dilute remaining holders
        shares = -(-amount * self.total_shares // self.total_assets)
        shares = min(shares, self.shares.get(owner, 0))

        self.shares[owner] -= shares
        self.total_shares -= shares
        self.total_assets -= amount

        return amount

    def _pending_numerator(self, current_time):
        time_passed = current_time - self.last_accrual_time
        if time_passed <= 0:
            return self.accrual_remainder

        return self.total_assets * self.annual_rate * time_passed + self.accrual_remainder
