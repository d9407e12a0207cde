#!/usr/bin/env python3
"""
Starting XI picker
Reads a shortlist (player IDs, weights, locks) and prints the best XIs
"""

import asyncio
import sys
import json
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional
import argparse

import yaml

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

from xi_optimizer.api.fpl_client import FPLClient
from xi_optimizer.core.squad_optimizer import InvalidSquadInputError, SquadOptimizer
from xi_optimizer.data.models import Shortlist, Squad, xi_budget
from xi_optimizer.utils.config import config
from xi_optimizer.utils.constants import POSITION_ORDER, SquadValidator
from xi_optimizer.utils.logging import app_logger, LogContext


def load_shortlist(path: Path) -> Shortlist:
    """Load a shortlist from YAML or JSON"""
    with open(path, 'r') as f:
        return Shortlist.from_mapping(yaml.safe_load(f))


def load_elements(path: Path) -> Dict:
    """Load a saved bootstrap-static dump, or a bare list of elements"""
    with open(path, 'r') as f:
        data = json.load(f)
    if isinstance(data, list):
        return {"elements": data, "teams": []}
    return data


async def fetch_bootstrap() -> Dict:
    async with FPLClient() as client:
        return await client.get_bootstrap_data()


def pick_xi(shortlist: Shortlist, elements: List[Dict], budget: float) -> List[Squad]:
    """Run the optimizer over the shortlisted players"""
    players = shortlist.players(elements)
    if not Shortlist.can_compute(players):
        counts = {pos.short_name: n for pos, n in Shortlist.position_counts(players).items()}
        app_logger.warning(
            f"Shortlist is thin ({len(players)} players: {counts}); "
            f"results may be empty"
        )

    optimizer = SquadOptimizer()
    return optimizer.best_xi(players, shortlist.weights, budget, shortlist.locks)


def squad_to_dict(squad: Squad, elements_by_id: Dict[int, Dict], team_names: Dict[int, str]) -> Dict:
    players = []
    for pos in POSITION_ORDER:
        for pid in squad.position_ids(pos):
            element = elements_by_id[pid]
            players.append({
                "id": pid,
                "name": element.get("web_name", str(pid)),
                "team": team_names.get(element["team"], str(element["team"])),
                "position": pos.short_name,
                "price": element["now_cost"] / 10,
            })

    return {
        "formation": squad.formation_label,
        "score": squad.score,
        "total_cost": squad.total_cost,
        "ids": squad.ids,
        "players": players,
    }


def report(squads: List[Squad], shortlist: Shortlist, elements: List[Dict],
           team_names: Dict[int, str], budget: float) -> List[Dict]:
    """Log each ranked XI and return them as plain dicts"""
    elements_by_id = {e["id"]: e for e in elements}
    output = []

    for rank, squad in enumerate(squads, start=1):
        data = squad_to_dict(squad, elements_by_id, team_names)
        output.append(data)

        app_logger.info(
            f"\n#{rank} {data['formation']} | score {squad.score:.2f} | "
            f"£{squad.total_cost:.1f}m of £{budget:.1f}m"
        )
        for p in data["players"]:
            lock = " (locked)" if shortlist.locks.get(p["id"]) else ""
            app_logger.info(
                f"  - {p['position']:<3} {p['name']:<15} ({p['team']:<12}) "
                f"£{p['price']:.1f}m | w={shortlist.weights.get(p['id'], 0):.2f}{lock}"
            )

        validation = SquadValidator.validate_xi(
            [
                {
                    "id": p["id"],
                    "team": elements_by_id[p["id"]]["team"],
                    "element_type": elements_by_id[p["id"]]["element_type"],
                    "cost": p["price"],
                }
                for p in data["players"]
            ],
            budget,
            locked_ids=shortlist.locked_ids,
            weights=shortlist.weights,
            score=squad.score,
        )
        if not SquadValidator.is_valid(validation):
            app_logger.error(f"XI #{rank} failed validation: {validation['errors']}")

    return output


def main(argv: Optional[List[str]] = None):
    """Main entry point"""

    parser = argparse.ArgumentParser(
        description="Pick the best starting XIs from a shortlist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/pick_xi.py shortlist.yaml                          # Live FPL data
  python scripts/pick_xi.py shortlist.yaml --players bootstrap.json  # Offline
  python scripts/pick_xi.py shortlist.yaml --bench 18.5 --output data/xi.json
        """
    )
    parser.add_argument("shortlist", type=Path, help="YAML/JSON file with ids, weights and locks")
    parser.add_argument("--players", type=Path, help="Saved bootstrap-static JSON instead of the live API")
    parser.add_argument("--total-budget", type=float, default=config.solver.total_budget,
                        help="Total squad budget in £m")
    parser.add_argument("--bench", type=float, default=config.solver.bench_value,
                        help="Money reserved for the bench in £m")
    parser.add_argument("--output", type=Path, help="Write ranked XIs to this JSON file")

    args = parser.parse_args(argv)

    shortlist = load_shortlist(args.shortlist)
    bootstrap = load_elements(args.players) if args.players else asyncio.run(fetch_bootstrap())
    elements = bootstrap.get("elements", [])
    team_names = {t["id"]: t["name"] for t in bootstrap.get("teams", [])}
    budget = xi_budget(args.total_budget, args.bench)

    try:
        with LogContext("XI selection", shortlisted=len(shortlist.ids), budget=budget):
            squads = pick_xi(shortlist, elements, budget)
    except InvalidSquadInputError as e:
        app_logger.error(f"Cannot pick an XI from this shortlist: {e}")
        return 1

    if not squads:
        app_logger.warning("No XI meets your constraints")
        return 1

    output = report(squads, shortlist, elements, team_names, budget)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, 'w') as f:
            json.dump({
                "metadata": {
                    "created_at": datetime.now().isoformat(),
                    "budget": budget,
                    "locks": shortlist.locked_ids,
                },
                "squads": output,
            }, f, indent=2)
        app_logger.info(f"\n💾 Results saved to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
