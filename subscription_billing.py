from enum import Enum
from typing import Iterable, List, Mapping, Optional, Tuple
from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass, field
from types import MappingProxyType
import logging


logger = logging.getLogger(__name__)


# ==================== Enums ====================

class SubscriptionStatus(Enum):
    """Subscription tiers"""
    TRIAL = "trial"
    BASIC = "basic"
    PRO = "pro"
    STUDENT = "student"


# ==================== Exceptions ====================

class SubscriberError(ValueError):
    """Raised when a subscriber record cannot be constructed"""


class MissingIdentifierError(SubscriberError):
    pass


class MissingRegionError(SubscriberError):
    pass


class NegativePriceError(SubscriberError):
    pass


# ==================== Configuration ====================

@dataclass(frozen=True)
class PricingRules:
    """
    Pricing constants used by the billing pipeline.
    Pro tenure tiers are (min_tenure_months, multiplier) pairs, stored
    highest threshold first whatever order they are given in.
    The tax table is copied into a read-only mapping.
    """
    trial_price: float = 0.0
    student_multiplier: float = 0.5
    pro_tenure_tiers: Tuple[Tuple[int, float], ...] = ((24, 0.85), (12, 0.90))
    device_threshold: int = 3
    device_surcharge: float = 4.99
    tax_multipliers: Mapping[str, float] = field(
        default_factory=lambda: {"EU": 1.21, "US": 1.07}, hash=False
    )

    def __post_init__(self):
        tiers = sorted(self.pro_tenure_tiers, key=lambda tier: tier[0], reverse=True)
        object.__setattr__(self, "pro_tenure_tiers", tuple(tiers))
        object.__setattr__(self, "tax_multipliers",
                           MappingProxyType(dict(self.tax_multipliers)))

    def tax_multiplier_for(self, region: str) -> float:
        return self.tax_multipliers.get(region, 1.0)


DEFAULT_PRICING_RULES = PricingRules()


# ==================== Core Models ====================

def _is_blank(value: Optional[str]) -> bool:
    return not isinstance(value, str) or not value.strip()


@dataclass(frozen=True)
class Subscriber:
    """Billing-relevant attributes of a subscriber"""
    id: str
    region: str
    status: SubscriptionStatus
    tenure_months: int
    devices: int
    base_price: float

    def __post_init__(self):
        if _is_blank(self.id):
            raise MissingIdentifierError("Id required")

        if self.region is None:
            raise MissingRegionError("Region required")

        # NaN fails this comparison too
        if not self.base_price >= 0:
            raise NegativePriceError(
                f"Base price cannot be negative: {self.base_price}"
            )


@dataclass(frozen=True)
class PriceBreakdown:
    """Running price after each pipeline stage"""
    after_status: float
    after_devices: float
    total: float


@dataclass(frozen=True)
class BillingResult:
    """Outcome of billing a single subscriber in a batch"""
    subscriber_id: Optional[str]
    ok: bool
    total: Optional[float] = None
    error: str = ""


# ==================== Billing Service ====================

class BillingService:
    """
    Stateless billing calculator
    Pipeline:
    - Status discount on the base price
    - Flat surcharge for subscribers with many devices
    - Regional tax multiplier
    """

    def __init__(self, rules: Optional[PricingRules] = None):
        self._rules = rules or DEFAULT_PRICING_RULES

    def get_rules(self) -> PricingRules:
        return self._rules

    def validate(self, subscriber: Optional[Subscriber]) -> Tuple[bool, str]:
        """
        Check a subscriber before billing.
        Returns (is_valid, error_message); never raises.
        """
        if subscriber is None:
            return False, "No subscriber"

        if _is_blank(subscriber.id):
            return False, "Id missing"

        # Unreachable for constructed subscribers
        if not subscriber.base_price >= 0:
            return False, "Price < 0"

        return True, ""

    def calc_total(self, subscriber: Subscriber) -> float:
        """Calculate the total charge. Callers must validate first."""
        return self.price_breakdown(subscriber).total

    def price_breakdown(self, subscriber: Subscriber) -> PriceBreakdown:
        """Run the pipeline and keep every intermediate price"""
        if subscriber is None:
            raise ValueError("Subscriber required")

        after_status = self._apply_status_discount(
            subscriber.status, subscriber.tenure_months, subscriber.base_price
        )
        after_devices = self._add_device_surcharge(after_status, subscriber.devices)
        total = self._apply_tax(after_devices, subscriber.region)

        return PriceBreakdown(after_status, after_devices, total)

    def _apply_status_discount(self, status: SubscriptionStatus,
                               tenure: int, base_price: float) -> float:
        if status == SubscriptionStatus.TRIAL:
            return self._rules.trial_price

        if status == SubscriptionStatus.STUDENT:
            return base_price * self._rules.student_multiplier

        if status == SubscriptionStatus.PRO:
            for min_tenure, multiplier in self._rules.pro_tenure_tiers:
                if tenure >= min_tenure:
                    return base_price * multiplier
            return base_price

        return base_price

    def _add_device_surcharge(self, price: float, devices: int) -> float:
        if devices > self._rules.device_threshold:
            return price + self._rules.device_surcharge
        return price

    def _apply_tax(self, price: float, region: str) -> float:
        return price * self._rules.tax_multiplier_for(region)


# ==================== Batch Billing ====================

def run_billing(subscribers: Iterable[Optional[Subscriber]],
                service: Optional[BillingService] = None) -> List[BillingResult]:
    """
    Validate and price every subscriber in order.
    Invalid subscribers are reported and skipped; the batch keeps going.
    """
    service = service or BillingService()
    results = []

    for subscriber in subscribers:
        subscriber_id = getattr(subscriber, "id", None)
        ok, error = service.validate(subscriber)

        if not ok:
            logger.warning("Skipping subscriber %s: %s", subscriber_id, error)
            results.append(BillingResult(subscriber_id, False, error=error))
            continue

        total = service.calc_total(subscriber)
        logger.debug("Subscriber %s billed %.5f", subscriber_id, total)
        results.append(BillingResult(subscriber_id, True, total=total))

    return results


def format_total(total: float) -> str:
    """Round half-up to cents for display"""
    cents = Decimal(str(total)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    return f"{cents:.2f}"


def format_billing_line(result: BillingResult) -> str:
    if result.ok:
        return f"Subscriber {result.subscriber_id}: ${format_total(result.total)}"
    return f"Validation failed for {result.subscriber_id}: {result.error}"


# ==================== Demo ====================

def print_section(title: str) -> None:
    """Print section header"""
    print(f"\n{'=' * 70}")
    print(f" {title}")
    print('=' * 70)


def sample_subscribers() -> List[Subscriber]:
    return [
        Subscriber("A-1", "EU", SubscriptionStatus.TRIAL, 0, 1, 9.99),
        Subscriber("B-2", "US", SubscriptionStatus.PRO, 18, 4, 14.99),
        Subscriber("C-3", "EU", SubscriptionStatus.STUDENT, 6, 2, 12.99),
    ]


def demo_billing_system():
    """Demo of the subscription billing pipeline"""

    print_section("SUBSCRIPTION BILLING DEMO")

    service = BillingService()
    subscribers = sample_subscribers()

    print_section("1. Billing Run")

    for result in run_billing(subscribers, service):
        print(format_billing_line(result))

    print_section("2. Price Breakdown")

    for subscriber in subscribers:
        breakdown = service.price_breakdown(subscriber)
        print(f"\n📄 {subscriber.id} ({subscriber.status.value}, {subscriber.region})")
        print(f"   Base price: {subscriber.base_price:.2f}")
        print(f"   After status discount: {breakdown.after_status:.4f}")
        print(f"   After device surcharge: {breakdown.after_devices:.4f}")
        print(f"   TOTAL: {format_total(breakdown.total)}")

    print_section("3. Rejected Records")

    try:
        Subscriber(" ", "EU", SubscriptionStatus.TRIAL, 0, 1, 9.99)
    except SubscriberError as e:
        print(f"❌ {type(e).__name__}: {e}")

    try:
        Subscriber("X", "EU", SubscriptionStatus.TRIAL, 0, 1, -1.0)
    except SubscriberError as e:
        print(f"❌ {type(e).__name__}: {e}")

    print(format_billing_line(run_billing([None], service)[0]))

    print_section("Demo Complete")
    print("\n✅ Subscription billing demo completed successfully!")


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        demo_billing_system()
    except KeyboardInterrupt:
        print("\n\n⚠️  Demo interrupted by user")


# Subscription Billing - Low Level Design

# Key Design Decisions:
# 1. Core Components:
# SubscriptionStatus: Tier enum driving the status discount
# Subscriber: Immutable record, validated on construction
# PricingRules: Frozen bundle of rates, thresholds and tax multipliers
# BillingService: Stateless pipeline plus a non-raising validate()
# 2. Pipeline Order:
# Status discount -> device surcharge -> regional tax
# Pro tiers are checked highest tenure first (24 before 12)
# Surcharge is added before tax, so a Trial with 4+ devices is not free
# 3. Money Handling:
# Floats keep full precision through the pipeline
# Rounding to cents (half-up) happens only in format_total()
# 4. Error Handling:
# Construction errors raise SubscriberError subclasses (all ValueError)
# validate() reports problems as data so batches skip bad records
# calc_total(None) is a programming error and raises ValueError
