"""Availability rule selection and restriction resolution.

Rule windows are closed day ranges. A stay is matched against them through
the nights it occupies, so a rule that only covers the check-out day does not
apply to the stay.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from availability_engine.domain.errors import AvailabilityValidationError
from availability_engine.domain.intervals import occupied_days, window_contains, window_intersects
from availability_engine.domain.models import AvailabilityRule, DateRange, RuleType, RuleWindow


REASON_DATE_BLOCKED = "date_blocked"
REASON_MINIMUM_STAY = "minimum_stay"
REASON_MAXIMUM_STAY = "maximum_stay"


@dataclass(frozen=True)
class RuleEvaluation:
    applicable_rules: tuple[AvailabilityRule, ...]
    blocked: bool
    minimum_stay: Optional[int]
    maximum_stay: Optional[int]
    price_override: Optional[float]
    restrictions: tuple[str, ...]
    reasons: tuple[str, ...]

    @property
    def passes(self) -> bool:
        return not self.reasons


def applicable_rules(
    rules: Iterable[AvailabilityRule],
    candidate: DateRange,
) -> list[AvailabilityRule]:
    """Select rules whose closed window intersects the nights of `candidate`."""
    nights = occupied_days(candidate)
    return [rule for rule in rules if window_intersects(rule.window, nights)]


def _stay_value(rule: AvailabilityRule, default: int) -> int:
    if rule.value is None:
        return default
    return int(rule.value)


def evaluate_rules(
    rules: Iterable[AvailabilityRule],
    candidate: DateRange,
    *,
    default_minimum_stay: int = 1,
    default_maximum_stay: int = 365,
) -> RuleEvaluation:
    """Resolve blocked, minimum-stay and maximum-stay rules in that order."""
    matched = applicable_rules(rules, candidate)
    nights = candidate.nights
    restrictions: list[str] = []
    reasons: list[str] = []

    blocked_rules = [rule for rule in matched if rule.type is RuleType.BLOCKED]
    if blocked_rules:
        reasons.append(REASON_DATE_BLOCKED)
        for rule in blocked_rules:
            restrictions.append(
                f"Dates are blocked: {rule.reason}" if rule.reason else "Selected dates are blocked"
            )

    minimum_values = [
        _stay_value(rule, default_minimum_stay)
        for rule in matched
        if rule.type is RuleType.MINIMUM_STAY
    ]
    # Strictest rule wins: the longest minimum and the shortest maximum.
    minimum_stay = max(minimum_values) if minimum_values else None
    if minimum_stay is not None and nights < minimum_stay:
        reasons.append(REASON_MINIMUM_STAY)
        restrictions.append(f"Minimum stay of {minimum_stay} nights required")

    maximum_values = [
        _stay_value(rule, default_maximum_stay)
        for rule in matched
        if rule.type is RuleType.MAXIMUM_STAY
    ]
    maximum_stay = min(maximum_values) if maximum_values else None
    if maximum_stay is not None and nights > maximum_stay:
        reasons.append(REASON_MAXIMUM_STAY)
        restrictions.append(f"Maximum stay of {maximum_stay} nights allowed")

    return RuleEvaluation(
        applicable_rules=tuple(matched),
        blocked=bool(blocked_rules),
        minimum_stay=minimum_stay,
        maximum_stay=maximum_stay,
        price_override=price_override_for(matched),
        restrictions=tuple(restrictions),
        reasons=tuple(reasons),
    )


def price_override_for(rules: Sequence[AvailabilityRule]) -> Optional[float]:
    """Most recently added price override among `rules`, if any."""
    overrides = [
        rule.value
        for rule in rules
        if rule.type is RuleType.PRICE_OVERRIDE and rule.value is not None
    ]
    return overrides[-1] if overrides else None


def minimum_stay_on(rules: Iterable[AvailabilityRule], day: date, default: int = 1) -> int:
    values = [
        _stay_value(rule, default)
        for rule in rules
        if rule.type is RuleType.MINIMUM_STAY and window_contains(rule.window, day)
    ]
    return max(values + [default])


def maximum_stay_on(rules: Iterable[AvailabilityRule], day: date, default: int = 365) -> int:
    values = [
        _stay_value(rule, default)
        for rule in rules
        if rule.type is RuleType.MAXIMUM_STAY and window_contains(rule.window, day)
    ]
    if not values:
        return default
    return min(values)


def validate_rule_input(
    rule_type: RuleType,
    start_date: date,
    end_date: date,
    value: Optional[float],
) -> RuleWindow:
    """Check a rule before it is stored and return its window."""
    if end_date < start_date:
        raise AvailabilityValidationError("rule end_date must not precede start_date")

    if rule_type in (RuleType.MINIMUM_STAY, RuleType.MAXIMUM_STAY):
        if value is None:
            raise AvailabilityValidationError(f"{rule_type.value} rules require a night count")
        if value < 1 or float(value) != int(value):
            raise AvailabilityValidationError(
                f"{rule_type.value} value must be a positive whole number of nights"
            )
    elif rule_type is RuleType.PRICE_OVERRIDE:
        if value is None or value <= 0:
            raise AvailabilityValidationError("price_override value must be > 0")

    return RuleWindow(start=start_date, end=end_date)
