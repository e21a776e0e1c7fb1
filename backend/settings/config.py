"""
Policy snapshots for the order and payment services.

Services never read RestaurantSettings inline. They ask a SettingsProvider for a
`RestaurantPolicy` once, at the start of an operation, and pass that immutable
snapshot down to every step, so a settings edit committed mid-operation cannot
produce two different decisions inside one transaction.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestaurantPolicy:
    gst_percentage: Decimal = Decimal("5.00")
    discount_approval_required: bool = False
    card_payment_approval_required: bool = False
    currency: str = "INR"


class SettingsProvider(ABC):
    """Interface: returns a fresh RestaurantPolicy each time snapshot() is called."""

    @abstractmethod
    def snapshot(self) -> RestaurantPolicy:
        pass


class DatabaseSettingsProvider(SettingsProvider):
    """Reads the RestaurantSettings singleton. No caching: every call hits the store."""

    def snapshot(self) -> RestaurantPolicy:
        from .models import RestaurantSettings

        row = RestaurantSettings.load()
        policy = RestaurantPolicy(
            gst_percentage=row.default_gst_percentage,
            discount_approval_required=row.is_discount_approval_required,
            card_payment_approval_required=row.is_card_payment_approval_required,
            currency=row.currency,
        )
        logger.debug(f"Loaded restaurant policy: {policy}")
        return policy


class StaticSettingsProvider(SettingsProvider):
    """Fixed policy, for tests and for embedding the services outside a configured store."""

    def __init__(self, policy: Optional[RestaurantPolicy] = None, **overrides):
        base = policy or RestaurantPolicy()
        if overrides:
            base = RestaurantPolicy(**{**base.__dict__, **overrides})
        self.policy = base

    def snapshot(self) -> RestaurantPolicy:
        return self.policy


_default_provider: SettingsProvider = DatabaseSettingsProvider()


def get_settings_provider() -> SettingsProvider:
    return _default_provider


def resolve_policy(
    policy: Optional[RestaurantPolicy] = None,
    provider: Optional[SettingsProvider] = None,
) -> RestaurantPolicy:
    """Use the given snapshot, else take one from `provider` (default: the database)."""
    if policy is not None:
        return policy
    return (provider or get_settings_provider()).snapshot()
