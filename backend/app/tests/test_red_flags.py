import pytest
import yaml

from app.engine.red_flags import (
    RedFlagRule,
    build_context,
    default_rules,
    evaluate_red_flags,
    load_red_flag_rules,
)
from app.engine.types import MetricSet, PillarSummary, ResolvedSnapshot


def _snapshot(env=None, soc=None, gov=None, **metrics):
    return ResolvedSnapshot(
        environmental=PillarSummary("environmental", env or {}),
        social=PillarSummary("social", soc or {}),
        governance=PillarSummary("governance", gov or {}),
        metrics=MetricSet(**metrics),
    )


def test_bundled_rule_table_loads_in_order():
    assert [r.rule_id for r in default_rules()] == [
        "low_renewable_share",
        "carbon_tax_exposure",
        "low_energy_savings",
        "low_supplier_diversity",
        "open_compliance_findings",
    ]


def test_nothing_known_fires_nothing():
    assert evaluate_red_flags(_snapshot()) == []


def test_renewable_share_boundary():
    assert evaluate_red_flags(_snapshot(env={"renewableEnergyShare": 20.0})) == []
    flags = evaluate_red_flags(_snapshot(env={"renewableEnergyShare": 19.9}))
    assert flags == ["Renewable energy share is only 19.9%. This is below the 20% threshold."]


def test_carbon_tax_boundary():
    assert evaluate_red_flags(_snapshot(carbon_tax=20_000_000), currency="R") == []
    flags = evaluate_red_flags(_snapshot(carbon_tax=20_000_001), currency="R")
    assert flags == ["Carbon tax exposure (R 20,000,001) is above the defined risk threshold."]


def test_energy_savings_share():
    snap = _snapshot(env={"totalEnergyConsumption": 10000.0}, energy_savings=300)
    assert evaluate_red_flags(snap) == [
        "Energy savings represent only 3.0% of total energy use – consider additional efficiency projects."
    ]
    assert evaluate_red_flags(_snapshot(env={"totalEnergyConsumption": 10000.0}, energy_savings=500)) == []


def test_energy_savings_rule_needs_positive_total():
    assert evaluate_red_flags(_snapshot(env={"totalEnergyConsumption": 0.0})) == []
    assert evaluate_red_flags(_snapshot(env={"totalEnergyConsumption": None})) == []


def test_supplier_diversity_and_compliance_findings():
    snap = _snapshot(soc={"supplierDiversity": 4.0}, gov={"totalComplianceFindings": 3.0})
    assert evaluate_red_flags(snap) == [
        "Supplier diversity (4%) is low – this may create concentration and social risk.",
        "There are 3 open compliance findings – review governance actions.",
    ]


def test_all_rules_evaluated_independently():
    snap = _snapshot(
        env={"renewableEnergyShare": 5.0, "totalEnergyConsumption": 1000.0},
        soc={"supplierDiversity": 1.0},
        gov={"totalComplianceFindings": 2.0},
        carbon_tax=30_000_000,
        energy_savings=0,
    )
    assert len(evaluate_red_flags(snap)) == 5


def test_context_exposes_savings_percent():
    context = build_context(_snapshot(env={"totalEnergyConsumption": 200.0}, energy_savings=20))
    assert context["derived"]["energySavingsPercent"] == pytest.approx(10.0)


def test_single_rule_in_isolation():
    rule = RedFlagRule(
        rule_id="water",
        field="environmental.waterUse",
        comparator=">=",
        threshold=100,
        message="Water use at {value} m3 (limit {threshold}).",
    )
    assert rule.evaluate({"environmental": {"waterUse": 100.0}}) == "Water use at 100 m3 (limit 100)."
    assert rule.evaluate({"environmental": {"waterUse": 99.5}}) is None
    assert rule.evaluate({"environmental": {}}) is None


def test_custom_rule_table(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump({
        "rules": {
            "high_carbon": {
                "field": "environmental.carbonEmissions",
                "comparator": ">",
                "threshold": 1000,
                "message": "Carbon at {value} t",
                "value_format": "thousands",
            }
        }
    }))
    rules = load_red_flag_rules(path)
    assert evaluate_red_flags(_snapshot(env={"carbonEmissions": 2500.0}), rules) == ["Carbon at 2,500 t"]


@pytest.mark.parametrize(
    "rule,error",
    [
        ({"field": "a.b", "comparator": "~", "threshold": 1, "message": "m"}, "unknown comparator"),
        ({"comparator": "<", "threshold": 1, "message": "m"}, "'field' is required"),
        ({"field": "a.b", "comparator": "<", "threshold": "high", "message": "m"}, "must be a number"),
    ],
)
def test_bad_rule_tables_fail_fast(tmp_path, rule, error):
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump({"rules": {"bad": rule}}))
    with pytest.raises(ValueError, match=error):
        load_red_flag_rules(path)


def test_plain_values_are_rounded_in_messages():
    flags = evaluate_red_flags(_snapshot(env={"renewableEnergyShare": 19.900000000000002}))
    assert flags == ["Renewable energy share is only 19.9%. This is below the 20% threshold."]
