"""
Tests for the pick_xi.py command-line driver, run offline from a saved
bootstrap dump.
"""

import importlib.util
import json
from pathlib import Path

import pytest
import yaml

project_root = Path(__file__).parent.parent

spec = importlib.util.spec_from_file_location("pick_xi", project_root / "scripts" / "pick_xi.py")
pick_xi = importlib.util.module_from_spec(spec)
spec.loader.exec_module(pick_xi)


@pytest.fixture
def bootstrap(mixed_pool):
    return {
        "elements": [
            {
                "id": p.id,
                "team": p.team_id,
                "element_type": p.position.value,
                "now_cost": int(round(p.cost * 10)),
                "web_name": p.web_name,
            }
            for p in mixed_pool
        ],
        "teams": [{"id": t, "name": f"Club {t}"} for t in range(1, 7)],
    }


@pytest.fixture
def files(tmp_path, bootstrap, mixed_pool):
    players_file = tmp_path / "bootstrap.json"
    players_file.write_text(json.dumps(bootstrap))

    shortlist_file = tmp_path / "shortlist.yaml"
    shortlist_file.write_text(yaml.dump({
        "ids": [p.id for p in mixed_pool],
        "weights": {p.id: p.weight for p in mixed_pool},
        "locks": [33],
    }))
    return players_file, shortlist_file


class TestPickXiScript:

    def test_writes_ranked_squads(self, tmp_path, files):
        players_file, shortlist_file = files
        output = tmp_path / "out" / "xi.json"

        code = pick_xi.main([
            str(shortlist_file),
            "--players", str(players_file),
            "--total-budget", "100",
            "--bench", "17",
            "--output", str(output),
        ])

        assert code == 0
        data = json.loads(output.read_text())
        assert data["metadata"]["budget"] == 83.0
        assert data["metadata"]["locks"] == [33]
        assert 1 <= len(data["squads"]) <= 3
        best = data["squads"][0]
        assert len(best["players"]) == 11
        assert 33 in best["ids"]
        assert best["players"][0]["position"] == "GK"
        assert best["players"][0]["team"].startswith("Club ")

    def test_no_feasible_xi(self, files):
        players_file, shortlist_file = files

        code = pick_xi.main([
            str(shortlist_file),
            "--players", str(players_file),
            "--total-budget", "20",
        ])

        assert code == 1

    def test_shortlist_missing_a_position(self, tmp_path, files, mixed_pool):
        players_file, _ = files
        shortlist_file = tmp_path / "no_forwards.yaml"
        shortlist_file.write_text(yaml.dump({
            "ids": [p.id for p in mixed_pool if p.position.short_name != "FWD"],
            "weights": {p.id: p.weight for p in mixed_pool},
        }))

        code = pick_xi.main([str(shortlist_file), "--players", str(players_file)])

        assert code == 1

    def test_lock_missing_from_feed(self, tmp_path, files, mixed_pool):
        players_file, _ = files
        shortlist_file = tmp_path / "stale_lock.yaml"
        shortlist_file.write_text(yaml.dump({
            "ids": [p.id for p in mixed_pool] + [999],
            "weights": {p.id: p.weight for p in mixed_pool},
            "locks": [999],
        }))

        code = pick_xi.main([str(shortlist_file), "--players", str(players_file)])

        assert code == 1

    def test_load_elements_accepts_bare_list(self, tmp_path, bootstrap):
        path = tmp_path / "elements.json"
        path.write_text(json.dumps(bootstrap["elements"]))

        data = pick_xi.load_elements(path)

        assert len(data["elements"]) == len(bootstrap["elements"])
        assert data["teams"] == []

    def test_pick_xi_uses_shortlist_weights(self, bootstrap, mixed_pool):
        shortlist = pick_xi.Shortlist(
            ids=[p.id for p in mixed_pool],
            weights={p.id: p.weight for p in mixed_pool},
        )

        squads = pick_xi.pick_xi(shortlist, bootstrap["elements"], 83.0)

        assert squads
        by_id = {p.id: p.weight for p in mixed_pool}
        assert squads[0].score == pytest.approx(sum(by_id[pid] for pid in squads[0].ids))
