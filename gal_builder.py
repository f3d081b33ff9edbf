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
# gal_builder: Build the fuse state for a design
#
#     Each device family is built by running a fixed sequence of stages over one GAL.
#     The order matters: the mode fuses select the pin to column tables used by every
#     equation, and on the GAL22V10 the tristate and xor fuses decide which feedback
#     references need their negation flipped, so both must be set before any
#     equation is programmed.
#

from blueprint import Active, PinMode
from chips import Bounds
from errors import (
    DisallowedControl,
    GalError,
    InvalidControl,
    NoCLK,
    OutputSuffix,
    TristateReg,
    UndefinedOutput,
    UnmatchedTristate,
    at_line,
)
from gal import GAL, MODE_CHIPS, Mode, false_term

SIG_BYTES = 8

#
# build:
#   Build a complete GAL from a blueprint, raising GalError on the first problem found
#

def build(blueprint):

    gal = GAL(blueprint.chip)

    try:

        stages = BUILD_STAGES[gal.chip.name]

    except KeyError:

        raise RuntimeError(f"No fuse layout known for device '{gal.chip.name}'")

    for stage in stages:
        stage(gal, blueprint)

    return gal

#
# Stages that set specific parts of the GAL
#

#
# set_sig:
#   Write out the signature, up to 8 bytes, each byte most significant bit first
#

def set_sig(gal, blueprint):

    for i, c in enumerate(blueprint.sig[:SIG_BYTES]):
        for j in range(8):
            gal.sig[i * 8 + j] = (c << j) & 0x80 != 0

#
# set_mode:
#   Work out the GALxV8 mode from the OLMC configurations and program the mode fuses
#

def set_mode(gal, blueprint):

    gal.set_mode(analyse_mode(blueprint.olmcs))

#
# set_tristate:
#   Set the tristate (ac1) bits, for inputs and tristated outputs
#

def set_tristate(gal, blueprint):

    #
    # Pure combinatorial outputs only exist in GALxV8 simple mode, everywhere else they are built as always enabled tristate outputs
    #

    com_is_tri = combinatorial_is_tristate(gal)

    num_olmcs = len(blueprint.olmcs)

    for i, olmc in enumerate(blueprint.olmcs):

        if olmc.output is None:
            is_tristate = olmc.feedback
        else:
            is_tristate = {
                PinMode.TRISTATE: True,
                PinMode.COMBINATORIAL: com_is_tri,
                PinMode.REGISTERED: False,
            }[olmc.output[0]]

        gal.ac1[num_olmcs - 1 - i] = is_tristate

#
# set_xors:
#   Set the xor bits for active high outputs
#

def set_xors(gal, blueprint):

    num_olmcs = len(blueprint.olmcs)

    for i, olmc in enumerate(blueprint.olmcs):
        gal.xor[num_olmcs - 1 - i] = olmc.output is not None and olmc.active == Active.HIGH

#
# set_core_eqns:
#   Program each OLMC's main equation and its tristate enable equation
#

def set_core_eqns(gal, blueprint):

    for i, olmc in enumerate(blueprint.olmcs):

        bounds = gal.chip.get_bounds(i)

        if olmc.output is not None:
            gal.add_term(olmc.output[1], adjust_main_bounds(gal, olmc.output, bounds))
        else:
            gal.add_term(false_term(0), bounds)

        #
        # The tristate enable always lives in the first row of the block
        #

        if olmc.tri_con is not None:

            with at_line(olmc.tri_con.line_num):
                check_tristate(gal.chip, olmc)

            gal.add_term(olmc.tri_con, bounds._replace(row_offset=0, max_row=1))

#
# set_arsp_eqns:
#   Program the chip-wide asynchronous reset and synchronous preset rows (GAL22V10)
#

def set_arsp_eqns(gal, blueprint):

    gal.add_term_opt(blueprint.ar, Bounds(start_row=gal.chip.ar_row, max_row=1))
    gal.add_term_opt(blueprint.sp, Bounds(start_row=gal.chip.sp_row, max_row=1))

#
# set_aux_eqns:
#   Program the per-OLMC clock, asynchronous reset and asynchronous preset rows (GAL20RA10)
#
#   Block rows: 0 tristate enable, 1 clock, 2 reset, 3 preset, 4+ main equation
#

def set_aux_eqns(gal, blueprint):

    for i, olmc in enumerate(blueprint.olmcs):

        bounds = gal.chip.get_bounds(i)

        check_aux(olmc.clock, olmc, OutputSuffix.CLK)
        check_aux(olmc.arst, olmc, OutputSuffix.ARST)
        check_aux(olmc.aprst, olmc, OutputSuffix.APRST)

        if olmc.output is not None and olmc.output[0] == PinMode.REGISTERED:

            gal.add_term_opt(olmc.arst, bounds._replace(row_offset=2, max_row=3))
            gal.add_term_opt(olmc.aprst, bounds._replace(row_offset=3, max_row=4))

            if olmc.clock is None:
                raise GalError(NoCLK(), olmc.output[1].line_num)

        #
        # Outside registered mode the clock row still gets its default
        #

        if olmc.output is not None:
            gal.add_term_opt(olmc.clock, bounds._replace(row_offset=1, max_row=2))

#
# Checks
#

#
# check_not_gal20ra10:
#   Reject the per-OLMC clock and asynchronous control equations only the GAL20RA10 has
#

def check_not_gal20ra10(gal, blueprint):

    for olmc in blueprint.olmcs:

        for term, suffix in ((olmc.clock, OutputSuffix.CLK), (olmc.arst, OutputSuffix.ARST), (olmc.aprst, OutputSuffix.APRST)):

            if term is not None:
                raise GalError(DisallowedControl(suffix=suffix), term.line_num)

#
# check_not_gal22v10:
#   Reject the chip-wide AR and SP equations only the GAL22V10 has
#

def check_not_gal22v10(gal, blueprint):

    for term, suffix in ((blueprint.ar, OutputSuffix.AR), (blueprint.sp, OutputSuffix.SP)):

        if term is not None:
            raise GalError(DisallowedControl(suffix=suffix), term.line_num)

#
# check_tristate:
#   Make sure the main output is of a kind that can take a tristate enable
#

def check_tristate(chip, olmc):

    if olmc.output is None:
        raise GalError(UndefinedOutput(suffix=OutputSuffix.E))

    mode = olmc.output[0]

    if mode == PinMode.REGISTERED and chip.name in MODE_CHIPS:
        raise GalError(TristateReg())

    if mode == PinMode.COMBINATORIAL:
        raise GalError(UnmatchedTristate())

#
# check_aux:
#   Clock and asynchronous controls are only allowed on registered outputs
#

def check_aux(term, olmc, suffix):

    if term is None:
        return

    if olmc.output is None:
        raise GalError(UndefinedOutput(suffix=suffix), term.line_num)

    if olmc.output[0] != PinMode.REGISTERED:
        raise GalError(InvalidControl(suffix=suffix), term.line_num)

#
# Helpers
#

#
# combinatorial_is_tristate:
#   Are combinatorial outputs implemented as always enabled tristate outputs?
#

def combinatorial_is_tristate(gal):

    if not gal.has_mode:
        return True

    return gal.get_mode() != Mode.SIMPLE

#
# adjust_main_bounds:
#   Skip the rows at the start of a block that are reserved for other equations
#

def adjust_main_bounds(gal, output, bounds):

    if gal.has_mode:

        #
        # Simple mode and registered outputs have no tristate enable row
        #

        if gal.get_mode() == Mode.SIMPLE or output[0] == PinMode.REGISTERED:
            return bounds

        return bounds._replace(row_offset=1)

    #
    # GAL20RA10 reserves tristate enable, clock, reset and preset rows, the GAL22V10 just the tristate enable
    #

    if gal.chip.name == "GAL20RA10":
        return bounds._replace(row_offset=4)

    return bounds._replace(row_offset=1)

#
# GALxV8 mode analysis
#
#   Rules are tried in order, the first that matches picks the mode
#

def has_registered_output(olmcs):
    return any(olmc.output is not None and olmc.output[0] == PinMode.REGISTERED for olmc in olmcs)

def has_tristate_output(olmcs):
    return any(olmc.output is not None and olmc.output[0] == PinMode.TRISTATE for olmc in olmcs)

def has_complex_feedback(olmcs):

    for n, olmc in enumerate(olmcs):

        if not olmc.feedback:
            continue

        #
        # OLMCs 3 and 4 can't be pure inputs in simple mode, and no OLMC pin can be read back as combinatorial feedback
        #

        if olmc.output is None:
            if n in (3, 4):
                return True
        else:
            return True

    return False

MODE_RULES = (
    (has_registered_output, Mode.REGISTERED),
    (has_tristate_output, Mode.COMPLEX),
    (has_complex_feedback, Mode.COMPLEX),
)

#
# analyse_mode:
#   Pick the GALxV8 mode needed by a set of 8 OLMC configurations
#

def analyse_mode(olmcs):

    if len(olmcs) != 8:
        raise ValueError(f"analyse_mode must only be called for devices with 8 OLMCs, got {len(olmcs)}")

    for predicate, mode in MODE_RULES:
        if predicate(olmcs):
            return mode

    return Mode.SIMPLE

#
# Build sequences per device family
#

GALXV8_STAGES = (check_not_gal20ra10, check_not_gal22v10, set_sig, set_mode, set_tristate, set_xors, set_core_eqns)
GAL22V10_STAGES = (check_not_gal20ra10, set_sig, set_tristate, set_xors, set_core_eqns, set_arsp_eqns)
GAL20RA10_STAGES = (check_not_gal22v10, set_sig, set_xors, set_core_eqns, set_aux_eqns)

BUILD_STAGES = {
    "GAL16V8": GALXV8_STAGES,
    "GAL20V8": GALXV8_STAGES,
    "GAL22V10": GAL22V10_STAGES,
    "GAL20RA10": GAL20RA10_STAGES,
}
