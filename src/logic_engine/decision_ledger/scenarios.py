# logic_engine/decision_ledger/scenarios.py
from __future__ import annotations

"""
Contract examples as Gherkin scenarios.

Each Given/When/Then example of a contract becomes one scenario of a
feature named after the rule. Free text (behavior, invariants) is written
as comments so it can never open a Rule or Scenario block. The rendered
feature is parsed back with gherkin-official and its scenarios and steps
get ids derived by hashing.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any

from gherkin.parser import Parser  # type: ignore[import-not-found]
from gherkin.token_scanner import TokenScanner  # type: ignore[import-not-found]

from logic_engine.contracts import Contract

PLACEHOLDER_TEXT = "(unspecified)"


@dataclass(frozen=True)
class ScenarioStep:
    keyword: str
    text: str
    line: int
    column: int


@dataclass(frozen=True)
class ExampleScenario:
    name: str
    line: int
    column: int
    steps: tuple[ScenarioStep, ...]


@dataclass(frozen=True)
class ContractFeature:
    uri: str
    name: str
    line: int
    column: int
    scenarios: tuple[ExampleScenario, ...]


# ------------------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------------------


def _one_line(text: str) -> str:
    return " ".join(text.split()) or PLACEHOLDER_TEXT


def contract_feature_uri(contract: Contract) -> str:
    return f"contracts/{_one_line(contract.rule_id)}.feature"


def render_contract_feature(contract: Contract) -> str:
    lines = [
        f"# version: {_one_line(contract.version)}",
        f"Feature: {_one_line(contract.rule_id)}",
        f"  # behavior: {_one_line(contract.behavior)}",
    ]
    lines += [f"  # invariant: {_one_line(invariant)}" for invariant in contract.invariants]

    for index, example in enumerate(contract.examples, start=1):
        lines += [
            "",
            f"  Scenario: Example {index}",
            f"    Given {_one_line(example.given)}",
            f"    When {_one_line(example.when)}",
            f"    Then {_one_line(example.then)}",
        ]
    return "\n".join(lines) + "\n"


# ------------------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------------------


def _scenario(raw: dict[str, Any]) -> ExampleScenario:
    return ExampleScenario(
        name=raw["name"],
        line=raw["location"]["line"],
        column=raw["location"]["column"],
        steps=tuple(
            ScenarioStep(
                keyword=step["keywordType"],
                text=step["text"],
                line=step["location"]["line"],
                column=step["location"]["column"],
            )
            for step in raw["steps"]
        ),
    )


def parse_contract_feature(contract: Contract) -> ContractFeature:
    """Render `contract` and read it back; anything but plain scenarios is a ValueError."""
    raw = Parser().parse(TokenScanner(render_contract_feature(contract)))
    feature = raw.get("feature")
    if feature is None:
        raise ValueError(f"Rendered feature for {contract.rule_id!r} has no Feature block")

    scenarios = []
    for child in feature["children"]:
        if "scenario" not in child:
            raise ValueError(f"Rendered feature for {contract.rule_id!r} has an unexpected block: {sorted(child)}")
        scenarios.append(_scenario(child["scenario"]))

    return ContractFeature(
        uri=contract_feature_uri(contract),
        name=feature["name"],
        line=feature["location"]["line"],
        column=feature["location"]["column"],
        scenarios=tuple(scenarios),
    )


# ------------------------------------------------------------------------------
# Ids
# ------------------------------------------------------------------------------


def _hash_id(prefix: str, fields: dict[str, Any]) -> str:
    canon = json.dumps(fields, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return prefix + hashlib.sha256(canon.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ScenarioIds:
    uri: str
    feature_id: str
    scenario_ids: dict[str, str]  # "Example N@line" -> scenario id
    step_ids: dict[str, str]  # "Example N@line::Keyword:text" -> step id


def scenario_ids_for(feature: ContractFeature) -> ScenarioIds:
    """
    Ids hash the uri, names, step text and positions, never the parser's
    incremental ids, so rendering the same contract twice gives the same ids.
    """
    feature_id = _hash_id("feat_", {"uri": feature.uri, "name": feature.name, "line": feature.line})

    scenario_ids: dict[str, str] = {}
    step_ids: dict[str, str] = {}
    for scenario in feature.scenarios:
        scenario_key = f"{scenario.name}@{scenario.line}"
        scenario_id = _hash_id("scn_", {"feature": feature_id, "name": scenario.name, "line": scenario.line})
        scenario_ids[scenario_key] = scenario_id

        for step in scenario.steps:
            step_ids[f"{scenario_key}::{step.keyword}:{step.text}"] = _hash_id(
                "stp_",
                {"scenario": scenario_id, "keyword": step.keyword, "text": step.text, "line": step.line},
            )

    return ScenarioIds(uri=feature.uri, feature_id=feature_id, scenario_ids=scenario_ids, step_ids=step_ids)


def contract_scenario_ids(contract: Contract) -> ScenarioIds:
    return scenario_ids_for(parse_contract_feature(contract))
