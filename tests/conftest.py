"""
sheetcascade Test Configuration and Fixtures

Provides a small gear-tracking sheet used across the unit and integration
tests:

    strength (number)           affects strength_mod
    strength_mod (number)       calculation calcStrengthMod
    repeating_gear_$X_weight    triggered calcLoad, affects total_weight
    repeating_gear_$X_name      text
    total_weight (number)       calculation calcTotalWeight
    fieldset repeating_gear     add initGear, affects total_weight
"""

import pytest
from typing import Any, List, Tuple

from sheetcascade.core.naming import to_number
from sheetcascade.declarations import CascadeRegistryBuilder
from sheetcascade.errors import DiagnosticChannel
from sheetcascade.host import InMemoryHost
from sheetcascade.kernel import HandlerRegistry, SheetSession


def declare_gear_sheet(builder: CascadeRegistryBuilder) -> CascadeRegistryBuilder:
    """Declare the sample sheet's elements on builder."""
    builder.declare_input("strength", "number", default_value=10, trigger={"affects": ["strength_mod"]})
    builder.declare_input("strength_mod", "number", trigger={"calculation": "calcStrengthMod"})
    builder.declare_input("total_weight", "number", trigger={"calculation": "calcTotalWeight"})

    with builder.custom_control_repeater(
        "gear", trigger={"add_funcs": ["initGear"], "affects": ["total_weight"]}
    ):
        builder.declare_input(
            "weight", "number",
            trigger={"triggered_funcs": ["calcLoad"], "affects": ["total_weight"]},
        )
        builder.declare_input("name", "text")
    return builder


@pytest.fixture
def diagnostics():
    """Fresh diagnostic channel."""
    return DiagnosticChannel()


@pytest.fixture
def handler_calls() -> List[Tuple[str, str]]:
    """(handler name, node or row name) for every sample handler call."""
    return []


@pytest.fixture
def handlers(handler_calls, diagnostics):
    """Handler registry for the sample sheet (not yet frozen)."""
    registry = HandlerRegistry(diagnostics)

    def calc_strength_mod(context) -> Any:
        handler_calls.append(("calcStrengthMod", context.trigger.name))
        return (context.attributes.get("strength") - 10) // 2

    def calc_total_weight(context) -> Any:
        handler_calls.append(("calcTotalWeight", context.trigger.name))
        return sum(
            to_number(context.attributes.get(f"repeating_gear_{row_id}_weight"))
            for row_id in context.sections.get("repeating_gear", [])
        )

    def calc_load(context) -> None:
        handler_calls.append(("calcLoad", context.trigger.name))

    def init_gear(context) -> None:
        handler_calls.append(("initGear", context.row))
        context.attributes.set(f"{context.row}_weight", 1)

    registry.register_funcs({
        "calcStrengthMod": calc_strength_mod,
        "calcTotalWeight": calc_total_weight,
        "calcLoad": calc_load,
    })
    registry.register_funcs({"initGear": init_gear}, ["add"])
    return registry


@pytest.fixture
def builder():
    """Builder with the sample sheet declared."""
    return declare_gear_sheet(CascadeRegistryBuilder())


@pytest.fixture
def sheet_config(builder, handlers):
    """Built sample sheet, version 2."""
    return builder.build("gear-sheet", 2, handlers)


@pytest.fixture
def host():
    """In-memory host holding two gear rows."""
    return InMemoryHost(
        {
            "strength": "10",
            "repeating_gear_r1_weight": "5",
            "repeating_gear_r1_name": "rope",
            "repeating_gear_r2_weight": "3",
            "repeating_gear_r2_name": "lantern",
        },
        sections={"gear": ["r1", "r2"]},
        seed=7,
    )


@pytest.fixture
def session(sheet_config, host, diagnostics):
    """Session bound to the sample sheet and host, listeners not yet wired."""
    return SheetSession(sheet_config, host, diagnostics)
