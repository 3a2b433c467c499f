"""
Subscription Planning Dashboard - Growth Parameters
Immutable pricing, growth and channel settings fed to the projector

Updates never mutate a parameter set: every with_* method returns a new one.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Tuple

from engine.errors import InvalidParameterError

logger = logging.getLogger(__name__)

RATIO_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Channel:
    """Acquisition channel: CPA (yen) and share (%) of new acquisitions"""
    name: str
    cpa: int
    traffic_ratio: float
    is_active: bool = True

    def with_changes(self, **changes) -> 'Channel':
        return replace(self, **changes)


@dataclass(frozen=True)
class GrowthParameters:
    """Inputs for a monthly plan projection"""
    initial_acquisitions: int
    monthly_growth_rate: float      # %, may be negative
    churn_rate: float               # %, 0-100
    monthly_price: int
    yearly_price: int
    base_expenses: int
    expense_growth_rate: float      # %
    planning_horizon_months: int
    channels: Tuple[Channel, ...] = field(default_factory=tuple)
    yearly_ratio: float = 0.30      # Share of customers on the yearly plan

    def __post_init__(self):
        # Accept any iterable of channels but store a tuple
        if not isinstance(self.channels, tuple):
            object.__setattr__(self, 'channels', tuple(self.channels))

    # -------------------------------------------------
    # Copy-on-write updates
    # -------------------------------------------------
    def with_changes(self, **changes) -> 'GrowthParameters':
        """New parameter set with the given fields replaced"""
        return replace(self, **changes)

    def with_channels(self, channels: Iterable[Channel]) -> 'GrowthParameters':
        return replace(self, channels=tuple(channels))

    def with_channel(self, channel: Channel) -> 'GrowthParameters':
        """Add a channel, or replace the one with the same name in place"""
        names = [c.name for c in self.channels]
        if channel.name in names:
            channels = tuple(channel if c.name == channel.name else c for c in self.channels)
        else:
            channels = self.channels + (channel,)
        return replace(self, channels=channels)

    def without_channel(self, name: str) -> 'GrowthParameters':
        return replace(self, channels=tuple(c for c in self.channels if c.name != name))

    # -------------------------------------------------
    # Derived views
    # -------------------------------------------------
    @property
    def active_channels(self) -> List[Channel]:
        return [c for c in self.channels if c.is_active]

    @property
    def active_ratio_total(self) -> float:
        return sum(c.traffic_ratio for c in self.active_channels)

    # -------------------------------------------------
    # Validation
    # -------------------------------------------------
    def validate(self) -> None:
        """
        Reject physically meaningless input

        Raises:
            InvalidParameterError: listing every problem found
        """
        problems = []

        if not 0 <= self.churn_rate <= 100:
            problems.append(f"churn_rate must be within 0-100 (got {self.churn_rate})")
        if self.initial_acquisitions < 0:
            problems.append(f"initial_acquisitions must be >= 0 (got {self.initial_acquisitions})")
        if self.monthly_price < 0:
            problems.append(f"monthly_price must be >= 0 (got {self.monthly_price})")
        if self.yearly_price < 0:
            problems.append(f"yearly_price must be >= 0 (got {self.yearly_price})")
        if self.base_expenses < 0:
            problems.append(f"base_expenses must be >= 0 (got {self.base_expenses})")
        if not 0 <= self.yearly_ratio <= 1:
            problems.append(f"yearly_ratio must be within 0-1 (got {self.yearly_ratio})")

        seen = set()
        for channel in self.channels:
            if channel.name in seen:
                problems.append(f"duplicate channel name '{channel.name}'")
            seen.add(channel.name)
            if channel.cpa < 0:
                problems.append(f"channel '{channel.name}' cpa must be >= 0 (got {channel.cpa})")
            if not 0 <= channel.traffic_ratio <= 100:
                problems.append(
                    f"channel '{channel.name}' traffic_ratio must be within 0-100 "
                    f"(got {channel.traffic_ratio})"
                )

        if problems:
            raise InvalidParameterError(problems)

    def channel_ratio_warnings(self) -> List[str]:
        """Non-blocking data-quality warnings (never raises)"""
        warnings = []

        total = self.active_ratio_total
        if self.active_channels and abs(total - 100) > RATIO_TOLERANCE:
            warnings.append(
                f"Active channel traffic ratios sum to {total:g}% instead of 100%"
            )
        if not self.active_channels:
            warnings.append("No active channels: acquisitions are not attributed to any channel")

        warnings.extend(pricing_warnings(self.monthly_price, self.yearly_price))
        return warnings


def pricing_warnings(monthly_price: float, yearly_price: float) -> List[str]:
    """Sanity checks on the monthly/yearly price pair"""
    warnings = []

    if monthly_price <= 0:
        warnings.append("Monthly price should be greater than 0")
    if yearly_price <= 0:
        warnings.append("Yearly price should be greater than 0")
    if monthly_price <= 0 or yearly_price <= 0:
        return warnings

    if yearly_price / 12 > monthly_price:
        warnings.append("Yearly plan costs more per month than the monthly plan")

    discount = (monthly_price * 12 - yearly_price) / (monthly_price * 12) * 100
    if discount < 5:
        warnings.append(f"Yearly discount is low ({discount:.1f}%, recommended >= 5%)")
    elif discount > 50:
        warnings.append(f"Yearly discount is high ({discount:.1f}%, recommended <= 50%)")

    return warnings
