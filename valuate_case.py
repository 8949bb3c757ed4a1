#!/usr/bin/env python3
"""
Case Valuation CLI Tool

Estimate a settlement range from damages, liability and policy limits.
Money accepts shorthand (50k, 2.5M, $1,500,000).

Usage:
    python valuate_case.py --medical 50k --non-economic 100k --liability 75
    python valuate_case.py --medical 50k --non-economic 100k --policy 80k --jury 60
    python valuate_case.py --medical 50k --liability 60 --compare liability=80
"""
import argparse
import sys

from analytics.case_valuation import (
    CaseValuator,
    parse_evaluation_args,
    MONEY_FIELDS,
    PERCENT_FIELDS,
)
from analytics.errors import ValidationError
from analytics.money import format_money, parse_money

ARG_FIELDS = {
    'medical': 'medical_specials',
    'economic': 'economic_damages',
    'non_economic': 'non_economic_damages',
    'policy': 'policy_limit',
    'liability': 'liability_percentage',
    'jury': 'jury_damages_likelihood',
}


def parse_overrides(pairs):
    """Turn ["liability=80", "policy=1M"] into CaseEvaluation field changes."""
    changes = {}
    for pair in pairs:
        key, _, text = pair.partition('=')
        field = ARG_FIELDS.get(key.strip().replace('-', '_'))
        if field is None:
            raise ValidationError("Invalid scenario", details={key: f"Unknown field (use {', '.join(ARG_FIELDS)})"})
        amount = parse_money(text)
        if amount is None:
            raise ValidationError("Invalid scenario", details={key: f"Could not parse '{text}'"})
        changes[field] = amount
    return changes


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Estimate a settlement range from damages, liability and policy limits'
    )
    parser.add_argument('--medical', help='Medical specials (e.g., 50k)')
    parser.add_argument('--economic', help='Other economic damages (lost wages, etc.)')
    parser.add_argument('--non-economic', help='Non-economic damages (pain and suffering)')
    parser.add_argument('--policy', '-p', help='Policy limit')
    parser.add_argument('--liability', '-l', help='Liability percentage 0-100 (default 100)')
    parser.add_argument('--jury', '-j', help='Jury damages likelihood percentage 0-100')
    parser.add_argument('--compare', nargs='+', metavar='FIELD=VALUE',
                        help='What-if scenario, e.g. --compare liability=80 policy=1M')

    args = parser.parse_args(argv)
    raw = {field: getattr(args, key) for key, field in ARG_FIELDS.items()}

    try:
        evaluation, invalid = parse_evaluation_args(raw)
    except ValidationError as e:
        for field, message in e.details.items():
            print(f"  {field}: {message}", file=sys.stderr)
        return 2

    if invalid:
        print("Invalid input:", file=sys.stderr)
        for field, message in invalid.items():
            print(f"  {field}: {message}", file=sys.stderr)
        return 2

    if not evaluation.has_data:
        parser.print_help()
        return 1

    valuator = CaseValuator()
    result = valuator.evaluate(evaluation)
    print(result.summary())

    if args.compare:
        try:
            hypothetical = evaluation.with_changes(**parse_overrides(args.compare))
            comparison = valuator.compare_scenarios(evaluation, hypothetical)
        except ValidationError as e:
            for field, message in e.details.items():
                print(f"  {field}: {message}", file=sys.stderr)
            return 2

        print("What-if Scenario:")
        changed = [f for f in MONEY_FIELDS + PERCENT_FIELDS
                   if getattr(evaluation, f) != getattr(hypothetical, f)]
        for field in changed:
            print(f"  {field}: {getattr(evaluation, field)} -> {getattr(hypothetical, field)}")
        print(comparison.hypothetical.summary())
        sign = '+' if comparison.delta >= 0 else ''
        line = f"High-end change: {sign}{format_money(comparison.delta)}"
        if comparison.delta_percent is not None:
            line += f" ({sign}{comparison.delta_percent:.1f}%)"
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
