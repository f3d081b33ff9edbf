#
# Copyright (c) 2025 Clint Kolodziej
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#

#
# blueprint: Chip-independent description of a design
#
#     A Blueprint holds, for each OLMC, the output equation and its kind, polarity and
#     control equations. Blueprints are normally produced by an equation parser; a
#     json form is also accepted so designs can be built directly from files:
#
#         {
#             "chip": "GAL16V8",
#             "sig": "ABC",
#             "olmcs": {
#                 "19": {
#                     "output": "registered",
#                     "active": "low",
#                     "term": {"line": 4, "products": [["2", "!3"], ["4"]]}
#                 }
#             }
#         }
#

import enum
import json
import pathlib
import re

import chips
from gal import Pin, Term

#
# PinMode:
#   How an OLMC drives its output pin
#

class PinMode(enum.Enum):

    COMBINATORIAL = "combinatorial"
    TRISTATE = "tristate"
    REGISTERED = "registered"

#
# Active:
#   Whether the asserted state of an output is electrically high or low
#

class Active(enum.Enum):

    LOW = "low"
    HIGH = "high"

#
# OLMC:
#   Configuration of one output logic macrocell
#

class OLMC:

    def __init__(self, output=None, active=Active.LOW, tri_con=None, clock=None, arst=None, aprst=None, feedback=False):
        self.output = output                                                                            # (PinMode, Term) for the main equation, or None if the pin isn't driven
        self.active = active                                                                            # output polarity
        self.tri_con = tri_con                                                                          # tristate enable term (.E)
        self.clock = clock                                                                              # clock term (.CLK), GAL20RA10 only
        self.arst = arst                                                                                # asynchronous reset term (.ARST), GAL20RA10 only
        self.aprst = aprst                                                                              # asynchronous preset term (.APRST), GAL20RA10 only
        self.feedback = feedback                                                                        # is the pin read back as an input anywhere?

    def __repr__(self):
        mode = self.output[0].value if self.output else None
        return f"OLMC(output={mode}, active={self.active.value}, feedback={self.feedback})"

#
# Blueprint:
#   A whole design for one device
#

class Blueprint:

    def __init__(self, chip, sig=b"", olmcs=None, ar=None, sp=None):
        self.chip = chip                                                                                # chips.Chip the design targets
        self.sig = bytes(sig)                                                                           # signature bytes, up to 8 are used
        self.olmcs = olmcs if olmcs is not None else [OLMC() for _ in range(chip.num_olmcs)]           # one OLMC per OLMC index (pin min_olmc_pin + index)
        self.ar = ar                                                                                    # chip-wide asynchronous reset term, GAL22V10 only
        self.sp = sp                                                                                    # chip-wide synchronous preset term, GAL22V10 only

    #
    # terms:
    #   Yield every term in the design
    #

    def terms(self):

        for olmc in self.olmcs:

            if olmc.output is not None:
                yield olmc.output[1]

            for term in (olmc.tri_con, olmc.clock, olmc.arst, olmc.aprst):
                if term is not None:
                    yield term

        for term in (self.ar, self.sp):
            if term is not None:
                yield term

    #
    # mark_feedback:
    #   Flag every OLMC whose pin is used as an input in any term
    #

    def mark_feedback(self):

        for term in self.terms():
            for row in term.pins:
                for pin in row:
                    olmc_num = self.chip.pin_to_olmc(pin.pin)
                    if olmc_num is not None:
                        self.olmcs[olmc_num].feedback = True

#
# JSON loading
#

CONTROL_FIELDS = (("enable", "tri_con"), ("clock", "clock"), ("arst", "arst"), ("aprst", "aprst"))

#
# parse_pin:
#   Convert a product item (5, "5", "!5") to a Pin
#

def parse_pin(item, chip):

    if isinstance(item, bool):
        raise RuntimeError(f"Bad pin reference {item!r}")

    if isinstance(item, int):

        neg = False
        number = item

    else:

        text = str(item).strip()
        neg = text.startswith("!")

        if neg:
            text = text[1:].strip()

        if not text.isdigit():
            raise RuntimeError(f"Bad pin reference {item!r}")

        number = int(text)

    if not 1 <= number <= chip.num_pins:
        raise RuntimeError(f"Pin {number} doesn't exist on {chip.name}")

    return Pin(number, neg)

#
# parse_term:
#   Convert {"line": n, "products": [[...], ...]} to a Term
#

def parse_term(data, chip):

    if not isinstance(data, dict) or "products" not in data:
        raise RuntimeError(f"Bad term {data!r}, expected an object with 'products'")

    products = [[parse_pin(item, chip) for item in row] for row in data["products"]]

    return Term(int(data.get("line", 0)), products)

#
# parse_olmc:
#   Convert one entry of the "olmcs" object to an OLMC
#

def parse_olmc(pin_num, data, chip):

    olmc = OLMC()

    if "output" in data:

        try:
            mode = PinMode(str(data["output"]).lower())
        except ValueError:
            raise RuntimeError(f"Pin {pin_num}: bad output kind '{data['output']}', expected one of {', '.join(m.value for m in PinMode)}")

        if "term" not in data:
            raise RuntimeError(f"Pin {pin_num}: output '{mode.value}' has no term")

        olmc.output = (mode, parse_term(data["term"], chip))

    elif "term" in data:

        raise RuntimeError(f"Pin {pin_num}: term given without an output kind")

    try:
        olmc.active = Active(str(data.get("active", "high")).lower())
    except ValueError:
        raise RuntimeError(f"Pin {pin_num}: bad polarity '{data['active']}', expected high or low")

    for key, attr in CONTROL_FIELDS:
        if key in data:
            setattr(olmc, attr, parse_term(data[key], chip))

    olmc.feedback = bool(data.get("feedback", False))

    return olmc

#
# blueprint_from_dict:
#   Build a Blueprint from decoded json, devicetype other than "auto" overrides the design's chip
#

def blueprint_from_dict(data, devices=None, devicetype="auto"):

    chip_name = data.get("chip") if devicetype == "auto" else devicetype

    if not chip_name:
        raise RuntimeError("Design doesn't name a chip and no device type was given")

    chip = chips.get_chip(chip_name, devices)

    sig = data.get("sig", b"")

    if isinstance(sig, str):
        sig = sig.encode("ascii")

    blueprint = Blueprint(chip, sig=sig)

    for key, olmc_data in data.get("olmcs", {}).items():

        pin_num = int(key)
        olmc_num = chip.pin_to_olmc(pin_num)

        if olmc_num is None:
            raise RuntimeError(f"Pin {pin_num} is not an output pin on {chip.name}")

        blueprint.olmcs[olmc_num] = parse_olmc(pin_num, olmc_data, chip)

    for key in ("ar", "sp"):
        if key in data:
            setattr(blueprint, key, parse_term(data[key], chip))

    blueprint.mark_feedback()

    return blueprint

#
# load_blueprint:
#   Load a json design file, python style comment lines are allowed
#

def load_blueprint(design_path, devices=None, devicetype="auto"):

    comment_pattern = r'^\s*[#]'

    with pathlib.Path(design_path).open('r') as file:

        data = json.loads(''.join(line for line in file if not re.match(comment_pattern, line)))

    return blueprint_from_dict(data, devices, devicetype)
