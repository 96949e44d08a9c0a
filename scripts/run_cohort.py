#!/usr/bin/env python3
"""Run a headless disease cohort for one historical context.

Spawns a cohort of NPCs and animals, runs daily encounters and disease
progression, prints a summary and optionally saves the daily series as JSON.

Usage:
    python scripts/run_cohort.py --era MEDIEVAL --region EUROPEAN --year 1348
    python scripts/run_cohort.py --era MODERN_ERA --region EUROPEAN --year 1918 \
        --days 120 --size 500 --output results/spanish_flu.json
    python scripts/run_cohort.py --config configs/default.yaml \
        --scenario configs/no_guaranteed_contact.yaml --terrain swamp \
        --era ANTIQUITY --region SUB_SAHARAN_AFRICAN --year 100

References:
    - histepi/cohort.py: run_cohort, CohortResult
    - histepi/config.py: load_config, default_config
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from histepi.cohort import CohortResult, run_cohort
from histepi.config import default_config, load_config
from histepi.engine import DiseaseEngine


def summarize(result: CohortResult, catalog_sha256=None) -> dict:
    return {
        'catalog_sha256': catalog_sha256,
        'n_days': result.n_days,
        'initial_size': result.initial_size,
        'initial_infected': result.initial_infected,
        'final_alive': result.final_alive,
        'total_infections': result.total_infections,
        'total_recoveries': result.total_recoveries,
        'total_deaths': result.total_deaths,
        'mortality_fraction': result.mortality_fraction,
        'epidemic_disease': result.epidemic_disease,
        'causes_of_death': result.causes_of_death,
        'daily': {
            'healthy': result.daily_healthy.tolist(),
            'mild': result.daily_mild.tolist(),
            'sick': result.daily_sick.tolist(),
            'critical': result.daily_critical.tolist(),
            'new_infections': result.daily_new_infections.tolist(),
            'recoveries': result.daily_recoveries.tolist(),
            'deaths': result.daily_deaths.tolist(),
        },
    }


# ═══════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════

def main():
    parser = argparse.ArgumentParser(
        description="Run a headless disease cohort for one era/region/year.",
        epilog="Example: python scripts/run_cohort.py --era MEDIEVAL --region EUROPEAN --year 1348",
    )
    parser.add_argument("--era", required=True, help="Game era (e.g. MEDIEVAL, MODERN_ERA)")
    parser.add_argument("--region", required=True, help="Cultural region (e.g. EUROPEAN)")
    parser.add_argument("--year", type=int, required=True, help="Calendar year")
    parser.add_argument("--days", type=int, default=90, help="Days to simulate (default: 90)")
    parser.add_argument("--size", type=int, default=200, help="Cohort size (default: 200)")
    parser.add_argument(
        "--animal-fraction", type=float, default=0.2,
        help="Expected fraction of animals (default: 0.2)",
    )
    parser.add_argument(
        "--contact-fraction", type=float, default=0.1,
        help="Fraction of encounters that are direct contact (default: 0.1)",
    )
    parser.add_argument("--terrain", default=None, help="Terrain the cohort stands on")
    parser.add_argument("--config", default=None, help="Base config YAML")
    parser.add_argument("--scenario", default=None, help="Scenario override YAML")
    parser.add_argument("--seed", type=int, default=None, help="Override simulation.seed")
    parser.add_argument("--output", default=None, help="Write summary JSON here")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides = {'simulation': {'seed': args.seed}} if args.seed is not None else None
    if args.config is not None:
        config = load_config(args.config, args.scenario, overrides)
    else:
        config = default_config()
        if args.seed is not None:
            config.simulation.seed = args.seed

    engine = DiseaseEngine.from_config(config)
    if not engine.load():
        print("Disease catalog failed to load; see log above.")
        sys.exit(1)

    result = run_cohort(
        engine,
        n_characters=args.size,
        era=args.era,
        region=args.region,
        year=args.year,
        n_days=args.days,
        animal_fraction=args.animal_fraction,
        contact_fraction=args.contact_fraction,
        terrain=args.terrain,
    )
    summary = summarize(result, engine.provider.catalog.source_sha256)

    print("=" * 60)
    print(f"Cohort {args.era} / {args.region} / {args.year}")
    print("=" * 60)
    print(f"  Epidemic:          {result.epidemic_disease or 'none'}")
    print(f"  Initially infected {result.initial_infected}/{result.initial_size}")
    print(f"  New infections:    {result.total_infections}")
    print(f"  Recoveries:        {result.total_recoveries}")
    print(f"  Deaths:            {result.total_deaths} ({result.mortality_fraction:.1%})")
    for disease_id, count in sorted(result.causes_of_death.items(), key=lambda kv: -kv[1]):
        print(f"    {disease_id:<20} {count}")

    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, 'w') as f:
            json.dump(summary, f, indent=2)
        print(f"\n  Saved {out}")


if __name__ == "__main__":
    main()
