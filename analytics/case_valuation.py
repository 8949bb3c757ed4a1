"""
Case Valuation Calculator.

Turns a case's damages, liability and risk inputs into an adjusted case
value, a projected settlement range and a recommended settlement figure.
All functions are pure: inputs are never mutated and nothing is persisted.
"""
import math
from dataclasses import dataclass, field, asdict, replace
from typing import Optional, List, Dict, Any, Tuple

from .errors import ValidationError
from .money import format_money, parse_money, coerce_money

MAX_MONEY_VALUE = 1e9

MONEY_FIELDS = ('medical_specials', 'economic_damages', 'non_economic_damages', 'policy_limit')
PERCENT_FIELDS = ('liability_percentage', 'jury_damages_likelihood')


def _clamp_percent(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))


@dataclass(frozen=True)
class CaseEvaluation:
    """Evaluation subset of a case record. None means "not entered"."""
    medical_specials: Optional[float] = None
    economic_damages: Optional[float] = None
    non_economic_damages: Optional[float] = None
    policy_limit: Optional[float] = None
    liability_percentage: Optional[float] = None
    jury_damages_likelihood: Optional[float] = None

    def __post_init__(self):
        errors = {}
        for name in MONEY_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or math.isnan(value) or value < 0:
                errors[name] = f"{name} must be a valid positive number"
            elif value > MAX_MONEY_VALUE:
                errors[name] = f"{name} must be less than {format_money(MAX_MONEY_VALUE)}"
        for name in PERCENT_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or math.isnan(value) or not 0 <= value <= 100:
                errors[name] = f"{name} must be between 0 and 100"
        if errors:
            raise ValidationError("Invalid case evaluation", details=errors)

    @classmethod
    def from_record(cls, record: Dict[str, Any], clamp: bool = True) -> 'CaseEvaluation':
        """
        Build an evaluation from a stored negotiation row or request payload.

        Money fields may be numbers or shorthand strings ("50k"). With clamp
        (stored rows) percentages are pulled into [0, 100] so legacy rows still
        evaluate; request payloads pass clamp=False and out-of-range values
        raise ValidationError.
        """
        def money(value: Any) -> Optional[float]:
            if value is None or value == '':
                return None
            amount = coerce_money(value)
            if amount is None:
                raise ValidationError("Invalid case evaluation",
                                      details={'amount': f"Could not parse '{value}'"})
            return amount

        def percent(value: Any) -> Optional[float]:
            if value is None or value == '':
                return None
            return _clamp_percent(float(value)) if clamp else float(value)

        # Negotiation rows store the limit as policy_limits
        policy = record.get('policy_limit')
        if policy is None:
            policy = record.get('policy_limits')

        return cls(
            medical_specials=money(record.get('medical_specials')),
            economic_damages=money(record.get('economic_damages')),
            non_economic_damages=money(record.get('non_economic_damages')),
            policy_limit=money(policy),
            liability_percentage=percent(record.get('liability_percentage')),
            jury_damages_likelihood=percent(record.get('jury_damages_likelihood')),
        )

    @property
    def has_data(self) -> bool:
        """True when any damages or liability input has been entered."""
        return any(
            v is not None for v in (
                self.medical_specials,
                self.economic_damages,
                self.non_economic_damages,
                self.liability_percentage,
            )
        )

    def with_changes(self, **changes) -> 'CaseEvaluation':
        """Return a hypothetical copy with some inputs changed."""
        return replace(self, **changes)


@dataclass
class SettlementRange:
    low: float
    high: float

    @property
    def midpoint(self) -> float:
        return (self.low + self.high) / 2

    def contains(self, amount: float) -> bool:
        return self.low <= amount <= self.high

    def scaled(self, factor: float) -> 'SettlementRange':
        return SettlementRange(low=self.low * factor, high=self.high * factor)


@dataclass
class ValuationResult:
    """Results from a case valuation."""
    total_damages: float
    adjusted_value: float
    settlement_range: SettlementRange

    # Overlay when a jury damages likelihood was supplied
    jury_adjusted_range: Optional[SettlementRange] = None
    recommended_settlement: Optional[float] = None

    liability_percentage: float = 100.0
    policy_limit: Optional[float] = None
    jury_damages_likelihood: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def effective_range(self) -> SettlementRange:
        """Range used in scenario comparisons: jury-adjusted when available."""
        return self.jury_adjusted_range or self.settlement_range

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.jury_adjusted_range is None:
            data.pop('jury_adjusted_range')
        if self.recommended_settlement is None:
            data.pop('recommended_settlement')
        return data

    def summary(self) -> str:
        """Generate a printable summary of the valuation."""
        r = self.settlement_range
        lines = [
            "",
            "Case Valuation",
            "=" * 50,
            f"Total Damages:       {format_money(self.total_damages)}",
            f"Liability:           {self.liability_percentage:.0f}%",
            f"Adjusted Value:      {format_money(self.adjusted_value)}",
            "",
            f"Settlement Range:    {format_money(r.low)} - {format_money(r.high)}",
        ]
        if self.policy_limit is not None:
            lines.append(f"Policy Limit:        {format_money(self.policy_limit)}")
        if self.jury_adjusted_range is not None:
            j = self.jury_adjusted_range
            lines.append(
                f"Jury-Adjusted Range: {format_money(j.low)} - {format_money(j.high)} "
                f"({self.jury_damages_likelihood:.0f}% - {jury_likelihood_label(self.jury_damages_likelihood)})"
            )
        if self.recommended_settlement is not None:
            lines.append(f"Recommended:         {format_money(self.recommended_settlement)}")
        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"  ! {w}" for w in self.warnings)
        lines.append("")
        return "\n".join(lines)


@dataclass
class ScenarioComparison:
    """Current vs. hypothetical valuation."""
    current: ValuationResult
    hypothetical: ValuationResult
    delta: float
    delta_percent: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current': self.current.to_dict(),
            'hypothetical': self.hypothetical.to_dict(),
            'delta': {
                'amount': self.delta,
                'percent': self.delta_percent,
            },
        }


def jury_likelihood_label(percentage: Optional[float]) -> str:
    """Qualitative label for a jury damages likelihood."""
    if not percentage:
        return ''
    if percentage <= 25:
        return 'Low likelihood'
    if percentage <= 60:
        return 'Moderate likelihood'
    return 'High likelihood'


class CaseValuator:
    """
    Computes settlement ranges from damages, liability and policy limits.

    The range is a fixed band of the liability-adjusted value, capped by the
    policy limit. A jury damages likelihood produces a separate, scaled-down
    overlay range and pulls the recommendation toward it.
    """

    # Settlement band as a fraction of adjusted value
    RANGE_LOW_FACTOR = 0.6
    RANGE_HIGH_FACTOR = 0.9

    # Recommendation blend when a jury likelihood is supplied
    MIDPOINT_WEIGHT = 0.7
    JURY_WEIGHT = 0.3

    # Advisory thresholds
    POLICY_PROXIMITY = 0.95       # high end within 5% of the limit
    LOW_LIABILITY = 50            # percent
    HIGH_JURY_LIKELIHOOD = 70     # percent
    POLICY_UNDERCOVERAGE = 0.6    # limit below 60% of adjusted value

    def total_damages(self, evaluation: CaseEvaluation) -> float:
        return (
            (evaluation.medical_specials or 0)
            + (evaluation.economic_damages or 0)
            + (evaluation.non_economic_damages or 0)
        )

    def adjusted_value(self, evaluation: CaseEvaluation) -> float:
        liability = _clamp_percent(evaluation.liability_percentage)
        if liability is None:
            liability = 100.0
        return self.total_damages(evaluation) * liability / 100

    def settlement_range(self, adjusted_value: float, policy_limit: Optional[float] = None) -> SettlementRange:
        cap = policy_limit if policy_limit is not None else math.inf
        return SettlementRange(
            low=min(adjusted_value * self.RANGE_LOW_FACTOR, cap),
            high=min(adjusted_value * self.RANGE_HIGH_FACTOR, cap),
        )

    def warnings(self, evaluation: CaseEvaluation, adjusted_value: float,
                 settlement_range: SettlementRange) -> List[str]:
        """Advisory, non-blocking consistency warnings."""
        found = []
        policy = evaluation.policy_limit
        liability = _clamp_percent(evaluation.liability_percentage)
        jury = _clamp_percent(evaluation.jury_damages_likelihood)

        if policy and settlement_range.high >= policy * self.POLICY_PROXIMITY:
            found.append(
                f"Settlement range high end ({format_money(settlement_range.high)}) is at or near "
                f"the policy limit of {format_money(policy)}."
            )
        if liability is not None and jury is not None \
                and liability < self.LOW_LIABILITY and jury > self.HIGH_JURY_LIKELIHOOD:
            found.append(
                f"Liability of {liability:.0f}% is low but jury damages likelihood of {jury:.0f}% "
                f"is high; check these inputs for consistency."
            )
        if policy is not None and adjusted_value > 0 and policy < adjusted_value * self.POLICY_UNDERCOVERAGE:
            found.append(
                f"Policy limit of {format_money(policy)} is below 60% of the adjusted value "
                f"({format_money(adjusted_value)}); recovery may be capped."
            )
        return found

    def evaluate(self, evaluation: CaseEvaluation) -> ValuationResult:
        """
        Value a case.

        Args:
            evaluation: Damages, liability, policy limit and jury likelihood

        Returns:
            ValuationResult with the base range, the optional jury overlay,
            the recommendation (only when the adjusted value is positive) and
            any advisory warnings.
        """
        total = self.total_damages(evaluation)
        adjusted = self.adjusted_value(evaluation)
        base = self.settlement_range(adjusted, evaluation.policy_limit)

        jury = _clamp_percent(evaluation.jury_damages_likelihood)
        jury_range = base.scaled(jury / 100) if jury is not None else None

        recommended = None
        if adjusted > 0:
            midpoint = base.midpoint
            if jury is not None:
                recommended = midpoint * self.MIDPOINT_WEIGHT + midpoint * (jury / 100) * self.JURY_WEIGHT
            else:
                recommended = midpoint

        liability = _clamp_percent(evaluation.liability_percentage)
        return ValuationResult(
            total_damages=total,
            adjusted_value=adjusted,
            settlement_range=base,
            jury_adjusted_range=jury_range,
            recommended_settlement=recommended,
            liability_percentage=100.0 if liability is None else liability,
            policy_limit=evaluation.policy_limit,
            jury_damages_likelihood=jury,
            warnings=self.warnings(evaluation, adjusted, base),
        )

    def compare_scenarios(self, current: CaseEvaluation, hypothetical: CaseEvaluation) -> ScenarioComparison:
        """Evaluate a what-if scenario against the current inputs."""
        current_result = self.evaluate(current)
        hypothetical_result = self.evaluate(hypothetical)

        current_high = current_result.effective_range.high
        delta = hypothetical_result.effective_range.high - current_high
        delta_percent = (delta / current_high * 100) if current_high else None

        return ScenarioComparison(
            current=current_result,
            hypothetical=hypothetical_result,
            delta=delta,
            delta_percent=delta_percent,
        )


def compare_to_prediction(result: ValuationResult, predicted_settlement: Optional[float]) -> Optional[str]:
    """Place a predicted settlement relative to the base range: below, within or above."""
    if predicted_settlement is None:
        return None
    r = result.settlement_range
    if r.contains(predicted_settlement):
        return 'within'
    return 'below' if predicted_settlement < r.low else 'above'


def policy_utilization(result: ValuationResult, predicted_settlement: Optional[float]) -> Optional[float]:
    """Predicted settlement as a percentage of the policy limit."""
    if not result.policy_limit or predicted_settlement is None:
        return None
    return predicted_settlement / result.policy_limit * 100


def evaluate_case(evaluation: CaseEvaluation) -> ValuationResult:
    return CaseValuator().evaluate(evaluation)


def compare_scenarios(current: CaseEvaluation, hypothetical: CaseEvaluation) -> ScenarioComparison:
    return CaseValuator().compare_scenarios(current, hypothetical)


def parse_evaluation_args(values: Dict[str, Optional[str]]) -> Tuple[CaseEvaluation, Dict[str, str]]:
    """
    Build an evaluation from raw CLI/form strings.

    Returns the evaluation plus a dict of fields whose text could not be
    parsed, so callers can show "invalid" separately from "empty".
    """
    invalid = {}
    parsed: Dict[str, Optional[float]] = {}
    for key, text in values.items():
        if text is None or str(text).strip() == '':
            parsed[key] = None
            continue
        amount = parse_money(text)
        if amount is None:
            invalid[key] = f"Could not parse '{text}' (try 50k, 2M or 1500000)"
        parsed[key] = amount
    return CaseEvaluation(**parsed), invalid
