"""Persisted monthly SERP credit balance."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

from kgrlens.config import settings
from kgrlens.core.kv_store import KeyValueStore
from kgrlens.services.serp.types import SerpUsage

logger = logging.getLogger(__name__)

USAGE_KEY = "serp_api_usage"


class SerpCreditLedger:
    """Track SERP credits consumed against the monthly allotment.

    Period resets are a manual action outside this class: ``used`` only grows.
    Reads never raise; a store failure yields a fresh in-memory record.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        monthly_credits: int | None = None,
        low_balance_threshold: int | None = None,
        on_low_balance: Callable[[SerpUsage], None] | None = None,
    ) -> None:
        self.store = store
        self.monthly_credits = (
            monthly_credits if monthly_credits is not None else settings.serp_monthly_credits
        )
        self.low_balance_threshold = (
            low_balance_threshold if low_balance_threshold is not None else settings.serp_low_credit_threshold
        )
        self.on_low_balance = on_low_balance

    def _fresh_usage(self) -> SerpUsage:
        return SerpUsage(used=0, total=self.monthly_credits)

    def get_usage(self) -> SerpUsage:
        """Return the current balance, initialising it on first use."""
        try:
            raw = self.store.get(USAGE_KEY)
            if raw:
                return SerpUsage.from_dict(json.loads(raw))

            usage = self._fresh_usage()
            self.store.set(USAGE_KEY, json.dumps(usage.to_dict()))
            logger.info("SERP usage initialised", extra=usage.to_dict())
            return usage
        except Exception as exc:
            logger.error("Error getting SERP usage", extra={"error": str(exc)})
            return self._fresh_usage()

    def update_usage(self, credits_used: int) -> SerpUsage:
        """Debit ``credits_used`` credits and persist the new balance."""
        if credits_used <= 0:
            raise ValueError(f"credits_used must be > 0 (got {credits_used})")

        current = self.get_usage()
        updated = SerpUsage(used=current.used + credits_used, total=current.total)

        try:
            self.store.set(USAGE_KEY, json.dumps(updated.to_dict()))
        except Exception as exc:
            logger.error(
                "Error updating SERP usage",
                extra={"credits_used": credits_used, "error": str(exc)},
            )
            return updated

        logger.info(
            "SERP credits debited",
            extra={"credits_used": credits_used, "remaining": updated.remaining},
        )
        if updated.remaining <= self.low_balance_threshold:
            logger.warning(
                f"Low SERP credits warning: {updated.remaining} credits remaining",
                extra={"remaining": updated.remaining, "threshold": self.low_balance_threshold},
            )
            if self.on_low_balance:
                self.on_low_balance(updated)

        return updated
