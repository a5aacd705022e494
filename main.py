#!/usr/bin/env python3
"""
CLI for testing the WrapMe layering engine.

Usage:
    python main.py --temp 5
    python main.py -t -3 --age elderly --gender female --calibration 1
    python main.py -t 5 --substitutes jumper
"""

import argparse
import json
import logging

from wrapme import Catalog, LayeringEngine, Outfit, Zone, load_catalog
from wrapme.const import AGE_CATEGORIES, CALIBRATION_RANGE, GENDERS


def format_outfit(outfit: Outfit) -> str:
    """Format an outfit for display, one line per zone."""
    lines = []
    for zone in Zone:
        items = [f"{g.name} ({g.clo:.2f} clo)" for g in outfit.zone_items(zone)]
        if items:
            lines.append(f"  {zone.value:6}: {', '.join(items)}")
        else:
            lines.append(f"  {zone.value:6}: (none)")
    lines.append(f"  Core clo:  {outfit.core_clo:.2f}")
    lines.append(f"  Total clo: {outfit.total_clo:.2f}")
    if outfit.practicality_score is not None:
        lines.append(f"  Score:     {outfit.practicality_score:.1f}")
    return '\n'.join(lines)


def find_in_outfit(outfit: Outfit, key: str, catalog: Catalog):
    """Look up a garment and check it is worn in the outfit."""
    garment = catalog.get(key)
    if not outfit.contains(garment):
        raise ValueError(f"Garment '{key}' is not part of the top outfit")
    return garment


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='WrapMe layering engine CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python main.py --temp 5
  python main.py -t -3 --age elderly --gender female
  python main.py -t 10 --calibration -1                # Feels warm: fewer layers
  python main.py -t 5 --substitutes jumper             # Alternatives for a garment
  python main.py -t 5 --replace coat:light-jacket      # Swap and rebalance
        '''
    )

    parser.add_argument('-t', '--temp', type=float, required=True,
                        help='Ambient temperature in °C')
    parser.add_argument('--age', choices=AGE_CATEGORIES, default='adult',
                        help='Age category (default: adult)')
    parser.add_argument('--gender', choices=GENDERS, default='unspecified',
                        help='Gender (default: unspecified)')
    low, high = CALIBRATION_RANGE
    parser.add_argument('--calibration', type=int, default=0,
                        choices=range(low, high + 1), metavar=f'{{{low}..{high}}}',
                        help='Negative = fewer layers, positive = more layers (default: 0)')

    parser.add_argument('--catalog', type=str, default=None,
                        help='Path to catalog JSON file (default: bundled catalog)')

    parser.add_argument('--substitutes', metavar='KEY',
                        help='List alternatives for a garment of the top outfit')
    parser.add_argument('--replace', metavar='OLD:NEW',
                        help='Replace a garment of the top outfit and rebalance')

    parser.add_argument('--json', action='store_true',
                        help='Print the result as JSON')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Show engine debug logging')

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    try:
        catalog = load_catalog(args.catalog)
    except FileNotFoundError:
        print(f"Error: Catalog file '{args.catalog}' not found")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in catalog file: {e}")
        return 1
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    engine = LayeringEngine(catalog)
    result = engine.recommend_with_diagnostics(
        args.temp, args.age, args.gender, args.calibration)
    requirements = result.requirements

    if not result.outfits:
        reasons = ', '.join(f"{r.value}={n}" for r, n in result.rejections.most_common())
        print(f"Error: No wearable outfit for {args.temp:+.1f} °C "
              f"({result.considered} considered; {reasons or 'no candidates'})")
        return 1

    top = result.outfits[0]
    substitutes = None
    replaced = None
    try:
        if args.substitutes:
            garment = find_in_outfit(top, args.substitutes, catalog)
            substitutes = engine.find_substitutes(top, garment, args.temp)
        if args.replace:
            old_key, sep, new_key = args.replace.partition(':')
            if not sep or not old_key or not new_key:
                print(f"Error: Invalid replace format '{args.replace}'. Use OLD:NEW")
                return 1
            old = find_in_outfit(top, old_key, catalog)
            replaced = engine.apply_substitution(top, old, catalog.get(new_key))
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.json:
        payload = {
            "requirements": requirements.as_dict(),
            "outfits": [o.as_dict() for o in result.outfits],
        }
        if substitutes is not None:
            payload["substitutes"] = [g.as_dict() for g in substitutes]
        if replaced is not None:
            payload["replaced"] = replaced.as_dict()
        print(json.dumps(payload, indent=2))
        return 0

    print(f"\n--- Input Parameters ---")
    print(f"  Temperature:  {args.temp:+.1f} °C")
    print(f"  Age:          {args.age}")
    print(f"  Gender:       {args.gender}")
    print(f"  Calibration:  {args.calibration:+d}")

    print(f"\n--- Requirements (clo) ---")
    for zone in Zone:
        req = requirements[zone]
        print(f"  {zone.value:6}: {req.min:.2f} - {req.max:.2f} (optimal {req.optimal:.2f})")

    print(f"\n--- Risk ---")
    print(f"  Level:        {requirements.risk_level.value}")
    print(f"  Alert:        {requirements.alert.value}")
    if requirements.max_exposure:
        print(f"  Max exposure: {requirements.max_exposure} min")
    if requirements.warning:
        print(f"  Warning:      {requirements.warning}")

    for index, outfit in enumerate(result.outfits, start=1):
        print(f"\n--- Outfit {index} ---")
        print(format_outfit(outfit))

    if substitutes is not None:
        print(f"\n--- Substitutes for {args.substitutes} ---")
        if substitutes:
            for garment in substitutes:
                print(f"  {garment.key:18} {garment.name} ({garment.clo:.2f} clo)")
        else:
            print("  (none)")

    if replaced is not None:
        print(f"\n--- After replacing {args.replace} ---")
        print(format_outfit(replaced))

    return 0


if __name__ == '__main__':
    exit(main())
