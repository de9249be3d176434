"""Domain service: which checkout steps exist and in what order.

The canonical order is customer → shipping → billing → payment → review.
Three facts remove steps from a particular checkout:

- a cart that does not require shipping never visits ``shipping``;
- "billing same as shipping" removes ``billing`` (only meaningful when
  there is a shipping step to copy from);
- a store with exactly one automated gateway skips ``payment``.

Moving forward or back always lands on the nearest step that is still
part of the plan, never simply on the neighbour in the canonical order.
"""

from __future__ import annotations

from dataclasses import dataclass

from storefront.domain.exceptions import CheckoutStateError
from storefront.domain.model.checkout import CheckoutStep

STEP_ORDER: tuple[CheckoutStep, ...] = (
    CheckoutStep.CUSTOMER,
    CheckoutStep.SHIPPING,
    CheckoutStep.BILLING,
    CheckoutStep.PAYMENT,
    CheckoutStep.REVIEW,
)


@dataclass(frozen=True)
class StepPlan:

    requires_shipping: bool = True
    same_as_billing: bool = True
    payment_skipped: bool = False

    @property
    def steps(self) -> tuple[CheckoutStep, ...]:
        return tuple(step for step in STEP_ORDER if not self.is_skipped(step))

    @property
    def total(self) -> int:
        return len(self.steps)

    @property
    def first(self) -> CheckoutStep:
        return self.steps[0]

    def is_skipped(self, step: CheckoutStep) -> bool:
        if step is CheckoutStep.SHIPPING:
            return not self.requires_shipping
        if step is CheckoutStep.BILLING:
            return self.requires_shipping and self.same_as_billing
        if step is CheckoutStep.PAYMENT:
            return self.payment_skipped
        return False

    def next_after(self, step: CheckoutStep) -> CheckoutStep | None:
        """Nearest following step in the plan, or None after ``review``."""
        index = STEP_ORDER.index(step)
        for candidate in STEP_ORDER[index + 1:]:
            if not self.is_skipped(candidate):
                return candidate
        return None

    def previous_before(self, step: CheckoutStep) -> CheckoutStep | None:
        """Nearest prior step in the plan, or None before ``customer``."""
        index = STEP_ORDER.index(step)
        for candidate in reversed(STEP_ORDER[:index]):
            if not self.is_skipped(candidate):
                return candidate
        return None

    def position(self, step: CheckoutStep) -> int:
        """1-based position of *step* in the plan."""
        if self.is_skipped(step):
            raise CheckoutStateError(f"Step '{step.value}' is not part of this checkout")
        return self.steps.index(step) + 1

    def progress_percentage(self, step: CheckoutStep) -> int:
        return round(self.position(step) / self.total * 100)

    def is_before(self, earlier: CheckoutStep, later: CheckoutStep) -> bool:
        return STEP_ORDER.index(earlier) < STEP_ORDER.index(later)
