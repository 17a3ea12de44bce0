"""Command-line interface for herd analysis.

Reads the local herd export and prints lineage, offspring, growth,
prediction and DEP views. The `ask` command sends a question about the
herd to the generative-AI assistant through the shared rate limiter.
"""

import argparse
import asyncio
import dataclasses
import json
import logging
from datetime import date, timedelta
from enum import Enum

from rebanho.core import (
    AssistantAPIError,
    RateLimitExceeded,
    ask_about_herd,
    format_gmd,
    format_weight,
    settings,
)
from rebanho.data import Animal, HerdFileNotFoundError, load_herd, summarize_herd
from rebanho.genealogy import (
    AncestorNode,
    GroupBy,
    build_genealogy,
    calculate_progeny_stats,
    compute_stats,
    find_parent,
    format_lineage_tree,
    get_unified_progeny,
    group_animals,
)
from rebanho.metrics import (
    AnimalMetricsService,
    PredictionStatus,
    predict_animal_slaughter_date,
    predict_weight,
    rank_by_dep,
)


def _json_default(obj):
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, frozenset):
        return sorted(obj)
    if dataclasses.is_dataclass(obj):
        return dataclasses.asdict(obj)
    return str(obj)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=_json_default))


def _node_dict(node: AncestorNode | None) -> dict | None:
    if node is None:
        return None
    return {
        "name": node.display_name,
        "id": node.animal.id if node.animal else None,
        "sex": node.gender,
        "level": node.level,
        "is_reference": node.is_reference,
        "is_fiv": node.is_fiv,
        "father": _node_dict(node.father),
        "mother": _node_dict(node.mother),
    }


def _animal_row(animal: Animal) -> str:
    name = animal.name or ""
    sex = animal.sex.value if animal.sex else "?"
    birth = animal.birth_date.isoformat() if animal.birth_date else ""
    return f"  {animal.brinco:<10} {name:<20} {sex:<6} {animal.status.value:<8} {birth}"


def _find_animal(animals: tuple[Animal, ...], term: str) -> Animal | None:
    animal = find_parent(animals, term, term)
    if animal is None:
        print(f"Error: No animal matches '{term}'")
    return animal


# =============================================================================
# Commands
# =============================================================================


def cmd_lineage(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    animal = _find_animal(animals, args.animal)
    if animal is None:
        return
    genealogy = build_genealogy(animal, animals)
    tree = genealogy.ancestors

    if args.json:
        _print_json(
            {
                "animal": animal.id,
                "father": _node_dict(tree.father),
                "mother": _node_dict(tree.mother),
                "receptor": tree.receptor.name if tree.receptor else None,
                "children": [a.id for a in genealogy.children],
                "grandchildren": [a.id for a in genealogy.grandchildren],
                "great_grandchildren": [a.id for a in genealogy.great_grandchildren],
            }
        )
        return

    print(format_lineage_tree(tree))
    print()
    print(
        f"Descendants: {len(genealogy.children)} children, "
        f"{len(genealogy.grandchildren)} grandchildren, "
        f"{len(genealogy.great_grandchildren)} great-grandchildren"
    )


def cmd_offspring(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    animal = _find_animal(animals, args.animal)
    if animal is None:
        return
    genealogy = build_genealogy(animal, animals)
    generation = (genealogy.children, genealogy.grandchildren, genealogy.great_grandchildren)[args.generation - 1]
    stats = compute_stats(generation)
    groups = group_animals(generation, GroupBy(args.group_by))
    progeny = get_unified_progeny(animal, animals)

    if args.json:
        _print_json(
            {
                "stats": stats,
                "groups": [{"key": g.key, "label": g.label, "animals": [a.id for a in g.animals]} for g in groups],
                "progeny": progeny if args.generation == 1 else None,
                "progeny_stats": calculate_progeny_stats(progeny) if args.generation == 1 else None,
            }
        )
        return

    print(f"Generation {args.generation} of {animal.display_name}: {stats.total} animals")
    print(f"  Males: {stats.males}  Females: {stats.females}  FIV: {stats.fiv}")
    print(f"  Active: {stats.active}  Sold: {stats.sold}  Deceased: {stats.deceased}")
    for group in groups:
        print(f"\n{group.label}")
        for child in group.animals:
            print(_animal_row(child))

    if args.generation == 1 and progeny:
        progeny_stats = calculate_progeny_stats(progeny)
        print(f"\nProgeny records: {progeny_stats.total}")
        print(f"  Avg birth weight:    {format_weight(progeny_stats.avg_birth_weight)}")
        print(f"  Avg weaning weight:  {format_weight(progeny_stats.avg_weaning_weight)}")
        print(f"  Avg yearling weight: {format_weight(progeny_stats.avg_yearling_weight)}")


def cmd_gmd(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    service = AnimalMetricsService(animals)

    if args.animal:
        animal = _find_animal(animals, args.animal)
        if animal is None:
            return
        derived = service.get_derived_data(animal.id)
        if args.json:
            _print_json({"gmd": derived.gmd, "band": derived.growth_band, "rankings": derived.rankings})
            return
        metrics = derived.gmd
        print(f"{animal.display_name} ({animal.brinco})")
        print(f"  GMD total:          {format_gmd(metrics.total)}")
        print(f"  Birth to weaning:   {format_gmd(metrics.birth_to_weaning)}")
        print(f"  Weaning to yearling:{format_gmd(metrics.weaning_to_yearling)}")
        print(f"  Last 30 days:       {format_gmd(metrics.last_30_days)}")
        print(f"  Last period:        {format_gmd(metrics.last_period)}")
        print(f"  Band:               {derived.growth_band.value if derived.growth_band else 'N/A'}")
        print(f"  Estimated today:    {format_weight(metrics.estimated_weight_today)}")
        if derived.rankings.gmd_overall:
            print(f"  Rank: #{derived.rankings.gmd_overall} overall, #{derived.rankings.gmd_breed} in breed")
        return

    derived = service.get_all_derived_data()
    ranked = sorted(
        (d for d in derived.values() if d.rankings.gmd_overall),
        key=lambda d: d.rankings.gmd_overall,
    )[: args.top]
    if args.json:
        _print_json(
            [
                {"id": d.animal_id, "brinco": d.brinco, "gmd": d.gmd.total, "rank": d.rankings.gmd_overall}
                for d in ranked
            ]
        )
        return
    print(f"{'Rank':<6} {'Brinco':<10} {'GMD':<16} Band")
    print("-" * 44)
    for d in ranked:
        band = d.growth_band.value if d.growth_band else ""
        print(f"{d.rankings.gmd_overall:<6} {d.brinco:<10} {format_gmd(d.gmd.total):<16} {band}")


def cmd_kpis(animals: tuple[Animal, ...], seasons, args: argparse.Namespace) -> None:
    result = AnimalMetricsService(animals, seasons).calculate_kpis()
    if args.json:
        _print_json(result)
        return

    kpis = result.kpis
    details = result.details

    def pct(value: float | None) -> str:
        return f"{value:.1f}%" if value is not None else "N/A"

    print(f"Herd: {details.total_animals} animals ({details.total_active} active)")
    print(f"  Pregnancy rate:      {pct(kpis.pregnancy_rate)}")
    print(f"  Birth rate:          {pct(kpis.birth_rate)}")
    print(f"  Mortality rate:      {pct(kpis.mortality_rate)}")
    interval = f"{kpis.calving_interval} days" if kpis.calving_interval is not None else "N/A"
    print(f"  Calving interval:    {interval}")
    print(f"  Avg birth weight:    {format_weight(kpis.avg_birth_weight)}")
    print(f"  Avg weaning weight:  {format_weight(kpis.avg_weaning_weight)}")
    print(f"  Avg yearling weight: {format_weight(kpis.avg_yearling_weight)}")
    print(f"  Avg GMD:             {format_gmd(kpis.avg_gmd)}")
    kg_calf = f"{kpis.kg_calf_per_cow_year:.1f} kg" if kpis.kg_calf_per_cow_year is not None else "N/A"
    print(f"  Kg calf/cow/year:    {kg_calf}")
    print(
        f"\nReference period: {details.animals_in_reference_period} in, "
        f"{details.animals_excluded_from_period} excluded"
    )
    for warning in result.warnings:
        print(f"  Warning: {warning}")


def cmd_deps(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    reports = rank_by_dep(AnimalMetricsService(animals).get_all_deps(), args.trait)[: args.top]
    if args.json:
        _print_json(reports)
        return
    print(f"{'Brinco':<10} {'Sex':<6} {'Birth':>7} {'Weaning':>8} {'Yearling':>9} {'Pct':>4}  Recommendation")
    print("-" * 70)
    for r in reports:
        sex = r.sex.value if r.sex else "?"
        print(
            f"{r.brinco:<10} {sex:<6} {r.dep.birth_weight:>+7.1f} {r.dep.weaning_weight:>+8.1f} "
            f"{r.dep.yearling_weight:>+9.1f} {r.percentile.weaning_weight:>4.0f}  {r.recommendation.value}"
        )


def cmd_predict(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    animal = _find_animal(animals, args.animal)
    if animal is None:
        return
    if args.date:
        try:
            target = date.fromisoformat(args.date)
        except ValueError:
            print(f"Error: Invalid date '{args.date}', expected YYYY-MM-DD")
            return
    else:
        target = date.today() + timedelta(days=args.days)

    prediction = predict_weight(animal, target)
    if args.json:
        _print_json(prediction)
        return
    if prediction.status is PredictionStatus.INSUFFICIENT_DATA:
        print(f"{animal.display_name}: insufficient data (no current weight)")
        return
    print(f"{animal.display_name} on {target.isoformat()}")
    print(f"  Current:    {format_weight(prediction.current_weight_kg)}")
    print(f"  Predicted:  {format_weight(prediction.predicted_weight_kg)}")
    print(f"  GMD used:   {format_gmd(prediction.projected_gmd)}")
    print(f"  Confidence: {prediction.confidence}%")


def cmd_slaughter(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    animal = _find_animal(animals, args.animal)
    if animal is None:
        return
    prediction = predict_animal_slaughter_date(animal, args.arrobas)
    if args.json:
        _print_json(prediction)
        return
    target = format_weight(prediction.target_weight_kg)
    print(f"{animal.display_name}: target {prediction.target_arrobas:g} @ ({target})")
    if prediction.status is PredictionStatus.INSUFFICIENT_DATA:
        print("  Insufficient data for a slaughter date")
        return
    print(f"  Date:       {prediction.reached_on.isoformat()} ({prediction.days_needed} days)")
    print(f"  Confidence: {prediction.confidence}%")


def cmd_summary(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    summary = summarize_herd(animals)
    if args.json:
        _print_json(summary)
        return
    print(f"Total animals: {summary['total']}\n")
    for title, section in (("By status", "by_status"), ("By sex", "by_sex"), ("By breed", "by_breed")):
        print(f"{title}:")
        for k, v in summary[section].items():
            print(f"  {k}: {v}")
        print()


async def cmd_ask(animals: tuple[Animal, ...], args: argparse.Namespace) -> None:
    answer = await ask_about_herd(" ".join(args.question), animals, wait=args.wait)
    print(answer)


# =============================================================================
# Entry Point
# =============================================================================


async def cli_main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Beef herd genealogy and performance metrics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rebanho lineage ABC001               Show the ancestor tree
  rebanho offspring Mimosa --group-by status
  rebanho gmd --top 10                 Best daily gains
  rebanho kpis                         Herd KPIs
  rebanho slaughter ABC001 --arrobas 18
  rebanho ask "Quantas vacas estão prenhes?"
""",
    )
    parser.add_argument("--herd", help="Herd JSON export (default: settings.herd_file or .cache/herd.json)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_json(p: argparse.ArgumentParser) -> None:
        p.add_argument("--json", action="store_true", help="Output as JSON")

    lineage_parser = subparsers.add_parser("lineage", help="Show ancestors and descendant counts")
    lineage_parser.add_argument("animal", help="Animal id, brinco or name")
    add_json(lineage_parser)

    offspring_parser = subparsers.add_parser("offspring", help="List descendants of one generation")
    offspring_parser.add_argument("animal", help="Animal id, brinco or name")
    offspring_parser.add_argument(
        "--group-by", choices=[g.value for g in GroupBy], default=GroupBy.NONE.value, help="Grouping"
    )
    offspring_parser.add_argument(
        "--generation",
        type=int,
        choices=[1, 2, 3],
        default=1,
        help="1=children, 2=grandchildren, 3=great-grandchildren",
    )
    add_json(offspring_parser)

    gmd_parser = subparsers.add_parser("gmd", help="Daily gain for one animal, or the herd ranking")
    gmd_parser.add_argument("animal", nargs="?", help="Animal id, brinco or name")
    gmd_parser.add_argument("--top", type=int, default=20, help="Ranking size (default: 20)")
    add_json(gmd_parser)

    kpis_parser = subparsers.add_parser("kpis", help="Herd zootechnical KPIs")
    add_json(kpis_parser)

    deps_parser = subparsers.add_parser("deps", help="DEP ranking")
    deps_parser.add_argument(
        "--trait",
        choices=["birth_weight", "weaning_weight", "yearling_weight", "milk_production", "total_maternal"],
        default="weaning_weight",
        help="Trait to rank by (default: weaning_weight)",
    )
    deps_parser.add_argument("--top", type=int, default=20, help="Ranking size (default: 20)")
    add_json(deps_parser)

    predict_parser = subparsers.add_parser("predict", help="Predict weight at a future date")
    predict_parser.add_argument("animal", help="Animal id, brinco or name")
    when = predict_parser.add_mutually_exclusive_group()
    when.add_argument("--date", help="Target date (YYYY-MM-DD)")
    when.add_argument("--days", type=int, default=90, help="Days from today (default: 90)")
    add_json(predict_parser)

    slaughter_parser = subparsers.add_parser("slaughter", help="Predict slaughter date")
    slaughter_parser.add_argument("animal", help="Animal id, brinco or name")
    slaughter_parser.add_argument(
        "--arrobas", type=float, help=f"Target in arrobas (default: {settings.default_slaughter_arrobas:g})"
    )
    add_json(slaughter_parser)

    summary_parser = subparsers.add_parser("summary", help="Herd counts by status, sex and breed")
    add_json(summary_parser)

    ask_parser = subparsers.add_parser("ask", help="Ask the AI assistant about the herd")
    ask_parser.add_argument("question", nargs="+", help="Question text")
    ask_parser.add_argument("--wait", action="store_true", help="Wait for the rate limit instead of failing")

    args = parser.parse_args()
    logging.basicConfig(level=settings.log_level)

    if not args.command:
        parser.print_help()
        return

    try:
        herd = load_herd(args.herd)
    except HerdFileNotFoundError as e:
        print(f"Error: {e}")
        return
    animals = herd.animals

    commands = {
        "lineage": cmd_lineage,
        "offspring": cmd_offspring,
        "gmd": cmd_gmd,
        "deps": cmd_deps,
        "predict": cmd_predict,
        "slaughter": cmd_slaughter,
        "summary": cmd_summary,
    }

    if args.command == "kpis":
        cmd_kpis(animals, herd.seasons, args)
    elif args.command == "ask":
        try:
            await cmd_ask(animals, args)
        except RateLimitExceeded as e:
            print(f"Error: {e}")
        except AssistantAPIError as e:
            print(f"Error: Assistant request failed: {e}")
    else:
        commands[args.command](animals, args)


def cli() -> None:
    """CLI entry point."""
    asyncio.run(cli_main())


if __name__ == "__main__":
    cli()
