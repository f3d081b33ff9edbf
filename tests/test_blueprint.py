import json

import pytest

from blueprint import OLMC, Active, PinMode, blueprint_from_dict, load_blueprint
from gal import Pin, Term


def _design(**overrides):
    design = {
        "chip": "GAL16V8",
        "sig": "AB",
        "olmcs": {
            "19": {
                "output": "combinatorial",
                "active": "low",
                "term": {"line": 4, "products": [[2, "!3"], ["4"]]},
            },
        },
    }
    design.update(overrides)
    return design


def test_blueprint_from_dict() -> None:
    blueprint = blueprint_from_dict(_design())

    assert blueprint.chip.name == "GAL16V8"
    assert blueprint.sig == b"AB"
    assert len(blueprint.olmcs) == 8

    olmc = blueprint.olmcs[7]
    assert olmc.output == (PinMode.COMBINATORIAL, Term(4, [[Pin(2), Pin(3, True)], [Pin(4)]]))
    assert olmc.active == Active.LOW
    assert not olmc.feedback
    assert all(other.output is None for other in blueprint.olmcs[:7])


def test_devicetype_overrides_design_chip() -> None:
    blueprint = blueprint_from_dict(_design(olmcs={}), devicetype="gal20v8")
    assert blueprint.chip.name == "GAL20V8"


def test_signature_as_byte_list() -> None:
    blueprint = blueprint_from_dict(_design(sig=[1, 2, 255]))
    assert blueprint.sig == b"\x01\x02\xff"


def test_olmc_pins_used_as_inputs_are_feedback() -> None:
    design = _design()
    design["olmcs"]["18"] = {"output": "tristate", "term": {"line": 5, "products": [["!19"]]}, "enable": {"line": 6, "products": [["13"]]}}

    blueprint = blueprint_from_dict(design)

    # Pin 19 is read by pin 18, pin 13 by the enable of pin 18
    assert blueprint.olmcs[7].feedback
    assert blueprint.olmcs[1].feedback
    assert not blueprint.olmcs[6].feedback
    assert blueprint.olmcs[6].tri_con == Term(6, [[Pin(13)]])


def test_control_terms_and_chip_wide_terms() -> None:
    design = {
        "chip": "GAL22V10",
        "olmcs": {
            "23": {"output": "registered", "term": {"products": [["2"]]}},
        },
        "ar": {"line": 9, "products": [["3"]]},
        "sp": {"line": 10, "products": []},
    }

    blueprint = blueprint_from_dict(design)

    assert blueprint.olmcs[9].output[0] == PinMode.REGISTERED
    assert blueprint.olmcs[9].active == Active.HIGH
    assert blueprint.ar == Term(9, [[Pin(3)]])
    assert blueprint.sp == Term(10, [])


@pytest.mark.parametrize(
    "olmcs, message",
    [
        ({"2": {"output": "combinatorial", "term": {"products": []}}}, "not an output pin"),
        ({"19": {"output": "latched", "term": {"products": []}}}, "bad output kind"),
        ({"19": {"output": "registered"}}, "has no term"),
        ({"19": {"term": {"products": []}}}, "without an output kind"),
        ({"19": {"output": "combinatorial", "active": "middle", "term": {"products": []}}}, "bad polarity"),
        ({"19": {"output": "combinatorial", "term": {"products": [["21"]]}}}, "doesn't exist"),
        ({"19": {"output": "combinatorial", "term": {"products": [["x"]]}}}, "Bad pin reference"),
        ({"19": {"output": "combinatorial", "term": [["2"]]}}, "Bad term"),
    ],
)
def test_bad_designs(olmcs, message) -> None:
    with pytest.raises(RuntimeError, match=message):
        blueprint_from_dict(_design(olmcs=olmcs))


def test_design_without_chip() -> None:
    design = _design()
    del design["chip"]
    with pytest.raises(RuntimeError, match="doesn't name a chip"):
        blueprint_from_dict(design)


def test_load_blueprint_allows_comment_lines(tmp_path) -> None:
    path = tmp_path / "design.json"
    path.write_text("# decoder\n" + json.dumps(_design(), indent=4))

    blueprint = load_blueprint(path)

    assert blueprint.olmcs[7].output[1].line_num == 4


def test_olmc_defaults_to_active_low() -> None:
    olmc = OLMC()
    assert olmc.active == Active.LOW
    assert olmc.output is None
    assert not olmc.feedback


def test_json_outputs_default_to_active_high() -> None:
    design = _design()
    del design["olmcs"]["19"]["active"]

    blueprint = blueprint_from_dict(design)

    assert blueprint.olmcs[7].active == Active.HIGH
