"""
Prize Split Strategy Model for the Prize Pool Protocol.

This module simulates the PrizeSplitStrategy contract. When triggered it
captures the prize pool's award balance and awards fixed percentages of it to
configured targets. Anything not assigned to a split stays in the pool's
award balance.
"""

import logging
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

# Percentages are expressed in tenths of a percent
ONE_AS_FIXED_POINT_3 = 1000
MAX_PRIZE_SPLITS = 255


@dataclass
class PrizeSplitConfig:
    """A prize split target and its share of each distribution."""
    target: str
    percentage: int  # 0-1000, tenths of a percent


class PrizeSplitStrategy:
    """
    Distributes captured yield across configured prize splits.
    """

    def __init__(self, prize_pool):
        self.prize_pool = prize_pool
        self.prize_splits: List[PrizeSplitConfig] = []

        # Emitted events, oldest first
        self.events = []

        prize_pool.set_prize_strategy(self)

    def get_prize_split(self, index: int) -> PrizeSplitConfig:
        """Returns the prize split at `index`."""
        return self.prize_splits[index]

    def get_prize_splits(self) -> List[PrizeSplitConfig]:
        """Returns a copy of all prize splits."""
        return list(self.prize_splits)

    def set_prize_splits(self, new_prize_splits: List[PrizeSplitConfig]) -> None:
        """
        Replaces every prize split.

        Raises:
            ValueError: If there are too many splits, a split has no target, or
                the percentages add up to more than 100%
        """
        if len(new_prize_splits) > MAX_PRIZE_SPLITS:
            raise ValueError(f"Cannot have more than {MAX_PRIZE_SPLITS} prize splits")

        for split in new_prize_splits:
            self._validate_split(split)

        total = sum(split.percentage for split in new_prize_splits)
        if total > ONE_AS_FIXED_POINT_3:
            raise ValueError("Total prize split percentage exceeds 100%")

        removed = self.prize_splits[len(new_prize_splits):]
        self.prize_splits = [PrizeSplitConfig(s.target, s.percentage) for s in new_prize_splits]

        for index, split in enumerate(self.prize_splits):
            self._emit("PrizeSplitSet", target=split.target, percentage=split.percentage, index=index)

        for offset, _ in enumerate(removed):
            self._emit("PrizeSplitRemoved", index=len(self.prize_splits) + offset)

    def set_prize_split(self, prize_split: PrizeSplitConfig, index: int) -> None:
        """
        Replaces the prize split at `index`.

        Raises:
            ValueError: If the index does not exist, the split has no target, or
                the percentages add up to more than 100%
        """
        if index >= len(self.prize_splits):
            raise ValueError("Nonexistent prize split")

        self._validate_split(prize_split)

        total = self._total_prize_split_percentage() - self.prize_splits[index].percentage + prize_split.percentage
        if total > ONE_AS_FIXED_POINT_3:
            raise ValueError("Total prize split percentage exceeds 100%")

        self.prize_splits[index] = PrizeSplitConfig(prize_split.target, prize_split.percentage)
        self._emit("PrizeSplitSet", target=prize_split.target, percentage=prize_split.percentage, index=index)

    def distribute(self) -> int:
        """
        Captures the award balance and awards every prize split its share.

        Returns:
            The prize captured
        """
        prize = self.prize_pool.capture_award_balance()

        if prize == 0:
            return 0

        prize_remaining = self._distribute_prize_splits(prize)

        self._emit("Distributed", total_prize_captured=prize - prize_remaining)
        return prize

    def _distribute_prize_splits(self, prize: int) -> int:
        prize_remaining = prize

        for split in self.prize_splits:
            split_amount = (prize * split.percentage) // ONE_AS_FIXED_POINT_3
            self.prize_pool.award(split.target, split_amount)
            if split_amount > 0:
                self._emit("PrizeSplitAwarded", target=split.target, amount=split_amount)
            prize_remaining -= split_amount

        return prize_remaining

    def _total_prize_split_percentage(self) -> int:
        return sum(split.percentage for split in self.prize_splits)

    @staticmethod
    def _validate_split(split: PrizeSplitConfig) -> None:
        if not split.target:
            raise ValueError("Prize split target must be set")

        if split.percentage < 0 or split.percentage > ONE_AS_FIXED_POINT_3:
            raise ValueError("Prize split percentage must be between 0 and 1000")

    def _emit(self, name, **data):
        event = {"event": name, **data}
        self.events.append(event)
        logger.debug("%s %s", name, data)
