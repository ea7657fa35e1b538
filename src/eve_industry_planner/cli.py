from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from eve_industry_planner.application.errors import ServiceError
from eve_industry_planner.application.industry.invention import resolve_invention_skills
from eve_industry_planner.application.industry.pricing import BlueprintPricing, MarketPrices
from eve_industry_planner.application.industry.reporting import build_tree_frame, decryptor_frame, materials_frame
from eve_industry_planner.application.industry.service import IndustryPlanningService
from eve_industry_planner.config.settings import get_settings
from eve_industry_planner.domain.facility_profile import FacilityProfile
from eve_industry_planner.domain.invention import InventionSkills
from eve_industry_planner.infrastructure.owned_blueprints import OwnedBlueprints
from eve_industry_planner.infrastructure.sde.catalog import SdeCatalog
from eve_industry_planner.infrastructure.sde.session import create_sde_session_factory
from eve_industry_planner.infrastructure.static_catalog import StaticCatalog
from eve_industry_planner.utils.logging_setup import configure_logging


def _load_json(path: str | None) -> Any:
    if not path:
        return None
    with open(Path(path).expanduser(), "r", encoding="utf-8") as f:
        return json.load(f)


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="eve-industry-planner",
        description="Material and invention planning against the EVE static data export.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Python logging level (default: %(default)s)")
    parser.add_argument("--sde", default=settings.sde_path, help="SDE SQLite file or database URI (default: %(default)s)")
    parser.add_argument("--catalog", default=None, help="Use a JSON recipe catalog instead of the SDE.")
    parser.add_argument("--json", action="store_true", help="Print the raw result as JSON.")

    sub = parser.add_subparsers(dest="command", required=True)

    mat = sub.add_parser("materials", help="Expand a blueprint into raw materials.")
    mat.add_argument("blueprint_id", type=int)
    mat.add_argument("--runs", type=int, default=1)
    mat.add_argument("--me", type=int, default=0, help="Material efficiency of the top-level blueprint.")
    mat.add_argument("--structure", type=int, default=None, help="Engineering structure type id.")
    mat.add_argument("--rig", type=int, action="append", default=[], help="Rig type id (repeatable).")
    mat.add_argument("--security", type=float, default=None, help="System security status.")
    mat.add_argument("--system", type=int, default=None, help="Solar system id (enables pricing).")
    mat.add_argument("--cost-index", type=float, default=0.0, help="Manufacturing cost index for --system.")
    mat.add_argument("--owned", default=None, help="JSON list of owned blueprints (ESI format).")
    mat.add_argument("--prices", default=None, help="JSON price file.")
    mat.add_argument("--tree", action="store_true", help="Also print the build tree.")

    rx = sub.add_parser("reaction", help="Expand a reaction formula into moon materials and gas.")
    rx.add_argument("formula_id", type=int)
    rx.add_argument("--runs", type=int, default=1)
    rx.add_argument("--structure", type=int, default=None, help="Refinery type id (Athanor 35835, Tatara 35836).")
    rx.add_argument("--rig", type=int, action="append", default=[], help="Reaction rig type id (repeatable).")
    rx.add_argument("--security", type=float, default=None, help="System security status.")
    rx.add_argument("--system", type=int, default=None, help="Solar system id (enables pricing).")
    rx.add_argument("--cost-index", type=float, default=0.0, help="Reaction cost index for --system.")
    rx.add_argument("--prices", default=None, help="JSON price file.")
    rx.add_argument("--tree", action="store_true", help="Also print the reaction tree.")

    inv = sub.add_parser("invention", help="Rank decryptors for an invention job.")
    inv.add_argument("blueprint_id", type=int)
    inv.add_argument("--encryption", type=int, default=None)
    inv.add_argument("--datacore1", type=int, default=None)
    inv.add_argument("--datacore2", type=int, default=None)
    inv.add_argument("--skills", default=None, help="JSON map of skill id -> trained level.")
    inv.add_argument("--prices", default=None, help="JSON price file.")

    return parser


def _catalog_from_args(args: argparse.Namespace):
    if args.catalog:
        return StaticCatalog.from_dict(_load_json(args.catalog) or {})
    return SdeCatalog(create_sde_session_factory(args.sde), language=get_settings().language)


def _facility_from_args(args: argparse.Namespace) -> FacilityProfile | None:
    if args.structure is None and not args.rig and args.security is None and args.system is None:
        return None
    return FacilityProfile(
        structure_type_id=args.structure,
        rigs=tuple(int(r) for r in args.rig if r),
        security_status=args.security,
        system_id=args.system,
    )


def _print_pricing(result) -> None:
    if result.pricing is None:
        return
    p = result.pricing
    print()
    print(f"Input cost:   {p.input_cost:,.2f} ISK")
    print(f"Job cost:     {p.job.total_job_cost:,.2f} ISK")
    print(f"Taxes:        {p.taxes.total_taxes:,.2f} ISK")
    print(f"Output value: {p.output_value:,.2f} ISK")
    print(f"Profit:       {p.profit:,.2f} ISK ({p.profit_margin:.1f}%)")


def _run_materials(args: argparse.Namespace, catalog) -> int:
    prices = MarketPrices.from_dict(_load_json(args.prices)) if args.prices else None
    pricing = None
    if args.system is not None:
        pricing = BlueprintPricing({int(args.system): float(args.cost_index or 0.0)})

    owned = OwnedBlueprints.from_assets(_load_json(args.owned) or []) if args.owned else None
    service = IndustryPlanningService(catalog, owned_blueprints=owned, pricing=pricing, prices=prices)

    result = service.expand(args.blueprint_id, args.runs, args.me, facility=_facility_from_args(args))
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.found else 1

    if not result.found:
        logging.error("Blueprint %s: %s", args.blueprint_id, result.error)
        return 1

    print(f"{result.product.name} x{result.product.quantity}")
    df = materials_frame(result, name_for=catalog.get_item_name, prices=prices.buy if prices else None)
    print(df.to_string(index=False))

    if args.tree:
        print()
        print(build_tree_frame(result.breakdown).to_string(index=False))

    _print_pricing(result)

    for failure in result.failures:
        logging.warning("Catalog failure during expansion: %s", failure.to_dict())
    return 0


def _run_reaction(args: argparse.Namespace, catalog) -> int:
    prices = MarketPrices.from_dict(_load_json(args.prices)) if args.prices else None
    pricing = None
    if args.system is not None:
        pricing = BlueprintPricing({int(args.system): float(args.cost_index or 0.0)})

    service = IndustryPlanningService(catalog, reaction_pricing=pricing, prices=prices)
    result = service.expand_reaction(args.formula_id, args.runs, facility=_facility_from_args(args))
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.found else 1

    if not result.found:
        logging.error("Reaction %s: %s", args.formula_id, result.error)
        return 1

    print(f"{result.product.name} x{result.product.quantity} ({result.breakdown.time_seconds}s)")
    df = materials_frame(result, name_for=catalog.get_item_name, prices=prices.buy if prices else None)
    print(df.to_string(index=False))

    if args.tree:
        print()
        print(build_tree_frame(result.breakdown).to_string(index=False))

    _print_pricing(result)
    for failure in result.failures:
        logging.warning("Catalog failure during expansion: %s", failure.to_dict())
    return 0


def _run_invention(args: argparse.Namespace, catalog) -> int:
    service = IndustryPlanningService(catalog)
    job = service.invention_job(args.blueprint_id)

    trained = {int(k): int(v) for k, v in (_load_json(args.skills) or {}).items()}
    skills = resolve_invention_skills(job.required_skills, trained)
    skills = InventionSkills(
        encryption=args.encryption if args.encryption is not None else skills.encryption,
        datacore1=args.datacore1 if args.datacore1 is not None else skills.datacore1,
        datacore2=args.datacore2 if args.datacore2 is not None else skills.datacore2,
    )

    prices = MarketPrices.from_dict(_load_json(args.prices)) if args.prices else None
    search = service.find_best_decryptor(job, prices.buy if prices else {}, skills)

    if args.json:
        print(json.dumps(search.to_dict(), indent=2))
        return 0

    print(decryptor_frame(search).to_string(index=False))
    print()
    print(f"Best option: {search.best.name} ({search.best.cost_per_output_unit:,.2f} ISK per run)")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    level = configure_logging(default_level=str(args.log_level).upper())
    logging.debug("Logging configured at %s", logging.getLevelName(level))

    try:
        catalog = _catalog_from_args(args)
        if args.command == "materials":
            return _run_materials(args, catalog)
        if args.command == "reaction":
            return _run_reaction(args, catalog)
        return _run_invention(args, catalog)
    except ServiceError as e:
        logging.error("%s (status %s)", e.message, e.status_code)
        return 2
    except (OSError, json.JSONDecodeError) as e:
        logging.error("Could not read input: %s", e)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
