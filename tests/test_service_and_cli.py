from __future__ import annotations

import json

import pytest

from eve_industry_planner import cli
from eve_industry_planner.application.errors import ServiceError
from eve_industry_planner.application.industry.bom import ExpansionRequest
from eve_industry_planner.application.industry.pricing import BlueprintPricing, MarketPrices
from eve_industry_planner.application.industry.reporting import build_tree_frame, decryptor_frame, materials_frame
from eve_industry_planner.application.industry.service import IndustryPlanningService
from eve_industry_planner.config.settings import PlannerSettings
from eve_industry_planner.domain.facility_profile import FacilityProfile
from eve_industry_planner.domain.invention import InventionSkills
from eve_industry_planner.infrastructure.static_catalog import StaticCatalog

JITA = 30000142

CATALOG_PAYLOAD = {
    "blueprints": {
        "1000": {"product": [2000, 1], "materials": {"34": 800, "300": 2}},
        "301": {"product": [300, 1], "materials": {"35": 3}},
    },
    "reactions": {"4000": {"product": [5000, 200], "materials": {"16634": 100}, "time": 10800}},
    "groups": {"2000": 11},
    "names": {"34": "Tritanium", "35": "Pyerite", "300": "Component", "1000": "Test Blueprint", "2000": "Test Module", "5000": "Test Composite"},
    "decryptors": [
        {
            "id": 34202,
            "name": "Attainment Decryptor",
            "probability_multiplier": 1.8,
            "efficiency_modifier": -1,
            "speed_modifier": 4,
            "output_count_modifier": 4,
        }
    ],
    "inventions": {
        "999": {
            "probability": 0.34,
            "materials": {"20171": 2, "20172": 2},
            "products": [[1000, 10]],
            "skills": [
                [21790, 1, "Caldari Encryption Methods"],
                [11433, 1, "High Energy Physics"],
                [11442, 1, "Plasma Physics"],
            ],
        }
    },
}


@pytest.fixture()
def catalog() -> StaticCatalog:
    return StaticCatalog.from_dict(CATALOG_PAYLOAD)


@pytest.fixture()
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(CATALOG_PAYLOAD), encoding="utf-8")
    return str(path)


@pytest.fixture(autouse=True)
def _keep_test_logging(monkeypatch):
    # The CLI configures logging; leave pytest's capture handlers in place.
    monkeypatch.setenv("LOG_FORCE", "0")


def test_expand_through_service(catalog) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    result = service.expand(1000, 10, 10)

    # 300: ceil(10 * 2 * 0.9) = 18 units -> 18 runs of 301 -> 54 pyerite
    assert result.materials == {34: 7200, 35: 54}
    assert result.pricing is None


@pytest.mark.parametrize("runs", [0, -3, "many"])
def test_invalid_runs_raise_service_error(catalog, runs) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    with pytest.raises(ServiceError) as exc:
        service.expand(1000, runs, 0)
    assert exc.value.status_code == 400


def test_expand_many_validates_runs(catalog) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    with pytest.raises(ServiceError):
        service.expand_many([ExpansionRequest(1000, runs=0)])
    assert [r.found for r in service.expand_many([ExpansionRequest(1000), ExpansionRequest(1)])] == [True, False]


def test_pricing_attached_when_facility_has_a_system(catalog) -> None:
    service = IndustryPlanningService(
        catalog,
        pricing=BlueprintPricing({JITA: 0.05}, PlannerSettings()),
        prices=MarketPrices.from_dict({"adjusted": {"34": 5.0}, "sell": {"2000": 10000.0}, "buy": {"34": 6.0, "35": 7.0}}),
        settings=PlannerSettings(),
    )

    priced = service.expand(1000, 10, 10, facility=FacilityProfile(system_id=JITA))
    assert priced.pricing is not None
    assert priced.pricing.input_cost == pytest.approx(7200 * 6.0 + 54 * 7.0)
    assert priced.pricing.job.estimated_item_value == pytest.approx(800 * 10 * 5.0)
    assert "pricing" in priced.to_dict()

    unpriced = service.expand(1000, 10, 10, facility=FacilityProfile())
    assert unpriced.pricing is None


def test_invention_job_lookup(catalog) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    assert service.invention_job(999).base_output_runs == 10

    with pytest.raises(ServiceError) as exc:
        service.invention_job(1000)
    assert exc.value.status_code == 404


def test_find_best_decryptor_through_service(catalog) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    job = service.invention_job(999)
    search = service.find_best_decryptor(job, {20171: 100.0, 20172: 100.0}, InventionSkills(5, 5, 5), FacilityProfile())

    assert search.best.name == "Attainment Decryptor"
    assert search.no_catalyst.probability == pytest.approx(0.51)


def test_report_frames(catalog) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    result = service.expand(1000, 10, 10)

    df = materials_frame(result, name_for=catalog.get_item_name, prices={34: 2.0})
    assert list(df["Material"]) == ["Tritanium", "Pyerite"]
    assert list(df["Total (ISK)"]) == [14400.0, 0.0]

    tree = build_tree_frame(result.breakdown)
    assert list(tree["Depth"]) == [0, 1]
    assert list(tree["Product"]) == ["Test Module", "Component"]

    search = service.find_best_decryptor(service.invention_job(999), {}, InventionSkills())
    options = decryptor_frame(search)
    assert len(options) == 2
    assert options["Best"].sum() == 1


def test_cli_materials(catalog_file, capsys) -> None:
    code = cli.main(["--catalog", catalog_file, "materials", "1000", "--runs", "10", "--me", "10", "--tree"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Test Module x10" in out
    assert "7200" in out
    assert "54" in out


def test_cli_materials_json(catalog_file, capsys) -> None:
    code = cli.main(["--catalog", catalog_file, "--json", "materials", "1000", "--runs", "10", "--me", "10"])
    data = json.loads(capsys.readouterr().out)

    assert code == 0
    assert data["materials"] == {"34": 7200, "35": 54}


def test_cli_unknown_blueprint_fails(catalog_file, capsys) -> None:
    assert cli.main(["--catalog", catalog_file, "materials", "123"]) == 1


def test_cli_invention(catalog_file, tmp_path, capsys) -> None:
    prices = tmp_path / "prices.json"
    prices.write_text(json.dumps({"20171": 100.0, "20172": 100.0}), encoding="utf-8")
    skills = tmp_path / "skills.json"
    skills.write_text(json.dumps({"21790": 5, "11433": 5, "11442": 5}), encoding="utf-8")

    code = cli.main(
        ["--catalog", catalog_file, "--json", "invention", "999", "--skills", str(skills), "--prices", str(prices)]
    )
    data = json.loads(capsys.readouterr().out)

    assert code == 0
    assert data["best"]["name"] == "Attainment Decryptor"
    assert data["no_decryptor"]["probability"] == pytest.approx(0.51)


def test_cli_invention_without_activity_is_an_error(catalog_file) -> None:
    assert cli.main(["--catalog", catalog_file, "invention", "1000"]) == 2


def test_expand_reaction_through_service_with_pricing(catalog) -> None:
    service = IndustryPlanningService(
        catalog,
        reaction_pricing=BlueprintPricing({JITA: 0.1}, PlannerSettings()),
        prices=MarketPrices.from_dict({"adjusted": {"16634": 10.0}, "sell": {"5000": 20.0}, "buy": {"16634": 12.0}}),
        settings=PlannerSettings(),
    )
    athanor = FacilityProfile(structure_type_id=35835, system_id=JITA, structure_cost_bonus=5.0)

    result = service.expand_reaction(4000, 1, athanor)

    assert result.materials == {16634: 98}
    assert result.product.quantity == 200
    job = result.pricing.job
    assert job.estimated_item_value == pytest.approx(1000.0)
    assert job.structure_cost_bonus == 0.0
    assert job.total_job_cost == pytest.approx(100.0 + 40.0)
    assert result.pricing.input_cost == pytest.approx(98 * 12.0)
    assert result.pricing.output_value == pytest.approx(4000.0)

    # Manufacturing pricing is separate; without it blueprints stay unpriced.
    assert service.expand(1000, 1, 0, facility=athanor).pricing is None


def test_expand_reaction_validates_runs(catalog) -> None:
    service = IndustryPlanningService(catalog, settings=PlannerSettings())
    with pytest.raises(ServiceError):
        service.expand_reaction(4000, 0)
    assert not service.expand_reaction(123, 1).found


def test_cli_reaction(catalog_file, capsys) -> None:
    code = cli.main(["--catalog", catalog_file, "reaction", "4000", "--runs", "2", "--tree"])
    out = capsys.readouterr().out

    assert code == 0
    assert "Test Composite x400 (21600s)" in out


def test_cli_reaction_json(catalog_file, capsys) -> None:
    code = cli.main(["--catalog", catalog_file, "--json", "reaction", "4000", "--runs", "2", "--structure", "35836"])
    data = json.loads(capsys.readouterr().out)

    assert code == 0
    assert data["materials"] == {"16634": 196}
    assert data["breakdown"][0]["time_seconds"] == 16200


def test_cli_unknown_reaction_fails(catalog_file) -> None:
    assert cli.main(["--catalog", catalog_file, "reaction", "123"]) == 1
