"""
Ticket Model for the Prize Pool Protocol.

This module simulates the Ticket contract, the share token minted 1:1 when
users deposit into the Prize Pool. Every balance change is recorded in a TWAB
history so that a holder's balance, or the total supply, can be read back at
any past timestamp or averaged over any past interval.

Each holder's TWAB weight is credited to its delegate (the holder itself
unless it delegates elsewhere). The total supply history moves only on mint
and burn.
"""

import logging
import time

import twab_lib
from twab_lib import Account, InvalidAmount, InsufficientBalance, MAX_CARDINALITY

logger = logging.getLogger(__name__)


class Ticket:
    """
    Simulates the Ticket contract: balances, delegation, and TWAB history.
    """

    def __init__(self, name="Ticket", symbol="TICK", capacity=MAX_CARDINALITY, clock=None):
        self.name = name
        self.symbol = symbol

        # Ring capacity shared by every account, including total supply
        self.capacity = capacity

        # Source of the current timestamp for mutations and default queries
        self.clock = clock or (lambda: int(time.time()))

        # Mapping of addresses to token balances
        self.balances = {}

        # Mapping of delegates to their TWAB accounts
        self.user_twabs = {}

        # TWAB account for the total supply
        self.total_supply_twab = Account(capacity=capacity)

        # Mapping of holders to delegates; holders absent from it delegate to themselves
        self.delegates = {}

        # Prize pool allowed to mint and burn
        self.controller = None

        # Mapping of (owner, operator) pairs to tickets the operator may burn for the owner
        self.allowances = {}

        # Emitted events, oldest first
        self.events = []

    def set_controller(self, controller):
        """Sets the prize pool that mints and burns tickets."""
        self.controller = controller

    def balance_of(self, account):
        """Returns the ticket balance of the given account."""
        return self.balances.get(account, 0)

    def total_supply(self):
        """Returns the total ticket supply."""
        return self.total_supply_twab.details.balance

    def delegate_of(self, user):
        """Returns the address credited with `user`'s TWAB, or None."""
        return self.delegates.get(user, user)

    def get_account_details(self, user):
        """Returns the TWAB account details for a delegate."""
        return self._read_account(user).details

    def get_twab(self, user, index):
        """Returns the observation stored at ring slot `index` for a delegate."""
        return twab_lib.get_twab(self._read_account(user), index)

    def record_increase(self, account_id, amount, timestamp):
        """
        Records that an account's TWAB balance increased at `timestamp`.

        Emits NewUserTwab only when a new checkpoint slot was written.

        Returns:
            The checkpoint written
        """
        account = self._read_account(account_id)
        _, twab, is_new = twab_lib.increase_balance(account, amount, timestamp)
        self.user_twabs[account_id] = account

        if is_new:
            self._emit("NewUserTwab", delegate=account_id, twab=twab)

        return twab

    def record_decrease(self, account_id, amount, timestamp, error_context):
        """
        Records that an account's TWAB balance decreased at `timestamp`.

        Emits NewUserTwab only when a new checkpoint slot was written.

        Returns:
            The checkpoint written

        Raises:
            InsufficientBalance: If amount exceeds the account's TWAB balance
        """
        account = self._read_account(account_id)
        _, twab, is_new = twab_lib.decrease_balance(account, amount, error_context, timestamp)
        self.user_twabs[account_id] = account

        if is_new:
            self._emit("NewUserTwab", delegate=account_id, twab=twab)

        return twab

    def transfer(self, sender, recipient, amount):
        """
        Transfers tickets from sender to recipient.

        Args:
            sender: Address sending the tickets
            recipient: Address receiving the tickets
            amount: Amount of tickets to transfer

        Returns:
            True if successful
        """
        if amount <= 0:
            raise InvalidAmount(amount)

        sender_balance = self.balance_of(sender)
        if sender_balance < amount:
            raise InsufficientBalance("transfer amount exceeds balance", sender_balance, amount)

        self._transfer_twab(self.delegate_of(sender), self.delegate_of(recipient), amount,
                            "transfer amount exceeds delegated balance")

        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount

        return True

    def mint(self, recipient, amount):
        """
        Mints new tickets to the recipient.
        The prize pool reaches this through `controller_mint`.

        Returns:
            True if successful
        """
        if amount <= 0:
            raise InvalidAmount(amount)

        now = self.clock()

        self._transfer_twab(None, self.delegate_of(recipient), amount)

        _, twab, is_new = twab_lib.increase_balance(self.total_supply_twab, amount, now)
        if is_new:
            self._emit("NewTotalSupplyTwab", twab=twab)

        self.balances[recipient] = self.balance_of(recipient) + amount

        return True

    def burn(self, from_account, amount):
        """
        Burns tickets from the given account.
        The prize pool reaches this through `controller_burn` and `controller_burn_from`.

        Returns:
            True if successful
        """
        if amount <= 0:
            raise InvalidAmount(amount)

        from_balance = self.balance_of(from_account)
        if from_balance < amount:
            raise InsufficientBalance("burn amount exceeds balance", from_balance, amount)

        now = self.clock()

        self._transfer_twab(self.delegate_of(from_account), None, amount,
                            "burn amount exceeds delegated balance")

        _, twab, is_new = twab_lib.decrease_balance(
            self.total_supply_twab, amount, "burn amount exceeds total supply", now
        )
        if is_new:
            self._emit("NewTotalSupplyTwab", twab=twab)

        self.balances[from_account] = from_balance - amount

        return True

    def allowance(self, owner, operator):
        """Returns how many of `owner`'s tickets `operator` may burn."""
        return self.allowances.get((owner, operator), 0)

    def approve(self, owner, operator, amount):
        """Allows `operator` to burn up to `amount` of `owner`'s tickets."""
        if amount < 0:
            raise ValueError("Allowance cannot be negative")

        self.allowances[(owner, operator)] = amount
        self._emit("Approval", owner=owner, operator=operator, amount=amount)

    def controller_mint(self, caller, to, amount):
        """
        Mints tickets on behalf of the controlling prize pool.

        Args:
            caller: Contract requesting the mint
            to: Address receiving the tickets
            amount: Amount of tickets to mint

        Returns:
            True if successful
        """
        self._only_controller(caller)
        return self.mint(to, amount)

    def controller_burn(self, caller, from_account, amount):
        """Burns tickets on behalf of the controlling prize pool."""
        self._only_controller(caller)
        return self.burn(from_account, amount)

    def controller_burn_from(self, caller, operator, from_account, amount):
        """
        Burns `from_account`'s tickets for a withdrawal requested by `operator`.

        An operator other than the holder spends the holder's allowance.

        Raises:
            ValueError: If the caller is not the controller
            InsufficientBalance: If the allowance or the balance is too small
        """
        self._only_controller(caller)

        if operator == from_account:
            return self.burn(from_account, amount)

        allowance = self.allowance(from_account, operator)
        if allowance < amount:
            raise InsufficientBalance("burn amount exceeds allowance", allowance, amount)

        self.burn(from_account, amount)
        self.allowances[(from_account, operator)] = allowance - amount

        return True

    def delegate(self, user, to):
        """
        Credits `user`'s TWAB to `to` from now on.

        Delegating to None stops crediting any account. The user's current
        balance is moved out of the old delegate's history and into the new one.
        """
        current_delegate = self.delegate_of(user)
        if to == current_delegate:
            return

        balance = self.balance_of(user)
        if balance > 0:
            self._transfer_twab(current_delegate, to, balance,
                                "delegated amount exceeds delegated balance")

        self.delegates[user] = to

        self._emit("Delegated", delegator=user, delegate=to)

    def get_balance_at(self, user, target_time, current_time=None):
        """Returns a delegate's TWAB balance at `target_time`."""
        return twab_lib.get_balance_at(self._read_account(user), target_time, self._now(current_time))

    def get_balances_at(self, user, target_times, current_time=None):
        """Returns a delegate's TWAB balance at each of `target_times`."""
        return twab_lib.get_balances_at(self._read_account(user), target_times, self._now(current_time))

    def get_average_balance_between(self, user, start_time, end_time, current_time=None):
        """Returns a delegate's average balance over [start_time, end_time]."""
        return twab_lib.get_average_balance_between(
            self._read_account(user), start_time, end_time, self._now(current_time)
        )

    def get_average_balances_between(self, user, start_times, end_times, current_time=None):
        """Returns a delegate's average balance for each paired interval."""
        return twab_lib.get_average_balances_between(
            self._read_account(user), start_times, end_times, self._now(current_time)
        )

    def get_total_supply_at(self, target_time, current_time=None):
        """Returns the total supply at `target_time`."""
        return twab_lib.get_balance_at(self.total_supply_twab, target_time, self._now(current_time))

    def get_total_supplies_at(self, target_times, current_time=None):
        """Returns the total supply at each of `target_times`."""
        return twab_lib.get_balances_at(self.total_supply_twab, target_times, self._now(current_time))

    def get_average_total_supplies_between(self, start_times, end_times, current_time=None):
        """Returns the average total supply for each paired interval."""
        return twab_lib.get_average_balances_between(
            self.total_supply_twab, start_times, end_times, self._now(current_time)
        )

    def _transfer_twab(self, from_delegate, to_delegate, amount, error_context=""):
        if from_delegate == to_delegate:
            return

        now = self.clock()

        if from_delegate is not None:
            self.record_decrease(from_delegate, amount, now, error_context)

        if to_delegate is not None:
            self.record_increase(to_delegate, amount, now)

    def _read_account(self, account_id):
        # Unknown accounts read as empty and are stored once their balance changes
        account = self.user_twabs.get(account_id)
        if account is None:
            return Account(capacity=self.capacity)
        return account

    def _only_controller(self, caller):
        if self.controller is None:
            raise ValueError("Controller not set")

        if caller is not self.controller:
            raise ValueError("Caller is not the controller")

    def _now(self, current_time):
        return self.clock() if current_time is None else current_time

    def _emit(self, name, **data):
        event = {"event": name, **data}
        self.events.append(event)
        logger.debug("%s %s", name, data)
