"""
Prize Pool Model for the Prize Pool Protocol.

This module simulates the YieldSourcePrizePool contract. Users deposit the
underlying asset and receive tickets 1:1; the deposits are supplied to a
yield source. Whatever the yield source holds beyond the ticket supply and
the already captured award balance is yield, which the prize strategy
captures and awards as new tickets.
"""

import logging

logger = logging.getLogger(__name__)

# No cap unless one is configured
MAX_CAP = 2 ** 256 - 1


class PrizePool:
    """
    Simulates the prize pool which holds deposits and mints tickets.
    """

    def __init__(self, ticket, yield_source, balance_cap=MAX_CAP, liquidity_cap=MAX_CAP):
        # Ticket minted and burned by this pool
        self.ticket = ticket

        # Yield source receiving deposits
        self.yield_source = yield_source

        # Maximum ticket balance a single account may hold
        self.balance_cap = balance_cap

        # Maximum total ticket supply
        self.liquidity_cap = liquidity_cap

        # Yield captured and not yet awarded
        self.current_award_balance = 0

        # Prize strategy allowed to award prizes
        self.prize_strategy = None

        # Emitted events, oldest first
        self.events = []

        ticket.set_controller(self)

    def set_balance_cap(self, balance_cap):
        """Sets the per-account ticket balance cap."""
        self.balance_cap = balance_cap
        self._emit("BalanceCapSet", balance_cap=balance_cap)

    def set_liquidity_cap(self, liquidity_cap):
        """Sets the total ticket supply cap."""
        self.liquidity_cap = liquidity_cap
        self._emit("LiquidityCapSet", liquidity_cap=liquidity_cap)

    def set_prize_strategy(self, prize_strategy):
        """Sets the prize strategy that distributes captured yield."""
        if prize_strategy is None:
            raise ValueError("Prize strategy must be set")

        self.prize_strategy = prize_strategy
        self._emit("PrizeStrategySet", prize_strategy=prize_strategy)

    def balance(self):
        """Returns the pool's total underlying balance in the yield source."""
        return self.yield_source.balance_of_token(self)

    def award_balance(self):
        """Returns the captured award balance not yet awarded."""
        return self.current_award_balance

    def can_deposit(self, user, amount):
        """Returns True if depositing `amount` for `user` respects both caps."""
        if self.ticket.balance_of(user) + amount > self.balance_cap:
            return False

        return self.ticket.total_supply() + amount <= self.liquidity_cap

    def deposit_to(self, to, amount):
        """
        Deposits underlying tokens and mints tickets to `to`.

        Args:
            to: Address receiving the tickets
            amount: Amount of underlying tokens to deposit

        Returns:
            True if successful
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        if self.ticket.balance_of(to) + amount > self.balance_cap:
            raise ValueError("Deposit exceeds balance cap")

        if self.ticket.total_supply() + amount > self.liquidity_cap:
            raise ValueError("Deposit exceeds liquidity cap")

        self.ticket.controller_mint(self, to, amount)
        self.yield_source.supply_token_to(amount, self)

        self._emit("Deposited", to=to, amount=amount)
        return True

    def withdraw_from(self, from_account, amount, operator=None):
        """
        Burns tickets from `from_account` and redeems the underlying tokens.

        An `operator` other than the holder must hold an allowance from it.

        Returns:
            The amount of underlying tokens redeemed
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        operator = from_account if operator is None else operator
        self.ticket.controller_burn_from(self, operator, from_account, amount)
        redeemed = self.yield_source.redeem_token(amount, self)

        self._emit("Withdrawal", operator=operator, from_account=from_account, amount=amount,
                   redeemed=redeemed)
        return redeemed

    def capture_award_balance(self):
        """
        Captures yield the pool holds beyond the ticket supply and award balance.

        Returns:
            The total award balance after capturing
        """
        ticket_total_supply = self.ticket.total_supply()
        current_award_balance = self.current_award_balance
        total_interest = self.balance()

        accounted = ticket_total_supply + current_award_balance
        unaccounted_prize_balance = total_interest - accounted if total_interest > accounted else 0

        if unaccounted_prize_balance > 0:
            current_award_balance += unaccounted_prize_balance
            self.current_award_balance = current_award_balance
            self._emit("AwardCaptured", amount=unaccounted_prize_balance)

        return current_award_balance

    def award(self, to, amount):
        """
        Awards captured yield to `to` as newly minted tickets.

        Only the prize strategy awards prizes. A zero amount is a no-op.
        """
        if amount == 0:
            return

        if amount > self.current_award_balance:
            raise ValueError("Award amount exceeds award balance")

        self.ticket.controller_mint(self, to, amount)
        self.current_award_balance -= amount

        self._emit("Awarded", winner=to, amount=amount)

    def _emit(self, name, **data):
        event = {"event": name, **data}
        self.events.append(event)
        logger.debug("%s %s", name, data)
