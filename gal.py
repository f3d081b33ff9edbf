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
# gal: Fuse state for a GAL device and the term compiler that programs it
#
#     The main logic array is a grid of rows (product terms) by columns. Each usable
#     input owns a pair of columns, true polarity then complement. Blowing a fuse
#     (setting it False) connects that polarity of the input into the row's AND;
#     a row with both columns of any pair blown can never be true, which is how
#     unused rows are disabled.
#

import collections
import enum
import types

from errors import (
    BadAnalysis,
    BadPower,
    GalError,
    MoreThanOneProduct,
    NotAnComplexModeInput,
    ReservedInputGAL20RA10,
    ReservedRegisteredInput,
    TooManyProducts,
    at_line,
)

SIG_BITS = 64                                                                                           # signature fuses (8 bytes)
PT_BITS = 64                                                                                            # product term enable fuses

MODE_CHIPS = ("GAL16V8", "GAL20V8")                                                                     # devices with syn/ac0 mode fuses

#
# Pin / Term
#
#   Pin: an input to an equation, a pin number (1-based) and whether it is negated
#   Term: an OR of AND rows, each row a sequence of Pins, tagged with its source line
#
#       Term(line_num, [])     is constant false (the OR of nothing)
#       Term(line_num, [[]])   is constant true (a single AND of nothing)
#

Pin = collections.namedtuple("Pin", ["pin", "neg"], defaults=[False])
Term = collections.namedtuple("Term", ["line_num", "pins"])

def true_term(line_num):
    return Term(line_num, [[]])

def false_term(line_num):
    return Term(line_num, [])

#
# Mode:
#   Operating mode of the GAL16V8 / GAL20V8, stored in the syn and ac0 fuses
#

class Mode(enum.Enum):

    SIMPLE = "simple"                                                                                   # combinatorial outputs
    COMPLEX = "complex"                                                                                 # tristate outputs
    REGISTERED = "registered"                                                                           # tristate or registered outputs

MODE_FUSES = {
    Mode.SIMPLE: (True, False),
    Mode.COMPLEX: (True, True),
    Mode.REGISTERED: (False, True),
}

#
# Pin to column tables
#
#   One table per (device, mode), mapping each pin number to the first fuse column of
#   its input pair, or to the diagnostic explaining why the pin can't be an input
#

BAD = BadAnalysis()
PWR = BadPower()

REG_P1 = ReservedRegisteredInput(pin=1, name="Clock")
REG_P11 = ReservedRegisteredInput(pin=11, name="/OE")
REG_P13 = ReservedRegisteredInput(pin=13, name="/OE")

CPLX_P12 = NotAnComplexModeInput(pin=12)
CPLX_P15 = NotAnComplexModeInput(pin=15)
CPLX_P19 = NotAnComplexModeInput(pin=19)
CPLX_P22 = NotAnComplexModeInput(pin=22)

P1_20RA10 = ReservedInputGAL20RA10(pin=1, name="/PL")
P13_20RA10 = ReservedInputGAL20RA10(pin=13, name="/OE")

def pin_table(entries):
    return types.MappingProxyType(dict(enumerate(entries, start=1)))

PIN_TO_COL = {

    ("GAL16V8", Mode.SIMPLE): pin_table([
        2,       0,        4,  8,  12, 16, 20, 24, 28, PWR,
        30,      26,       22, 18, BAD, BAD, 14, 10, 6, PWR,
    ]),
    ("GAL16V8", Mode.COMPLEX): pin_table([
        2,       0,        4,  8,  12, 16, 20, 24, 28, PWR,
        30,      CPLX_P12, 26, 22, 18, 14, 10, 6, CPLX_P19, PWR,
    ]),
    ("GAL16V8", Mode.REGISTERED): pin_table([
        REG_P1,  0,        4,  8,  12, 16, 20, 24, 28, PWR,
        REG_P11, 30,       26, 22, 18, 14, 10, 6, 2, PWR,
    ]),

    ("GAL20V8", Mode.SIMPLE): pin_table([
        2,       0,  4,        8,  12, 16, 20, 24, 28, 32,       36, PWR,
        38,      34, 30,       26, 22, BAD, BAD, 18, 14, 10,     6,  PWR,
    ]),
    ("GAL20V8", Mode.COMPLEX): pin_table([
        2,       0,  4,        8,  12, 16, 20, 24, 28, 32,       36, PWR,
        38,      34, CPLX_P15, 30, 26, 22, 18, 14, 10, CPLX_P22, 6,  PWR,
    ]),
    ("GAL20V8", Mode.REGISTERED): pin_table([
        REG_P1,  0,  4,        8,  12, 16, 20, 24, 28, 32,       36, PWR,
        REG_P13, 38, 34,       30, 26, 22, 18, 14, 10, 6,        2,  PWR,
    ]),

    ("GAL22V10", None): pin_table([
        0,       4,  8,        12, 16, 20, 24, 28, 32, 36,       40, PWR,
        42,      38, 34,       30, 26, 22, 18, 14, 10, 6,        2,  PWR,
    ]),

    ("GAL20RA10", None): pin_table([
        P1_20RA10,  0,  4,     8,  12, 16, 20, 24, 28, 32,       36, PWR,
        P13_20RA10, 38, 34,    30, 26, 22, 18, 14, 10, 6,        2,  PWR,
    ]),
}

#
# pin_to_column:
#   Map an input pin number to its fuse column for the given device and mode (None for devices without modes)
#

def pin_to_column(chip_name, mode, pin_num):

    try:

        table = PIN_TO_COL[(chip_name, mode)]

    except KeyError:

        raise ValueError(f"No pin to column table for {chip_name} in mode {mode}")

    #
    # Pins off the end of the package aren't inputs either
    #

    column = table.get(pin_num, BAD)

    if not isinstance(column, int):
        raise GalError(column)

    return column

#
# GAL:
#   The fuse state of the device being programmed, starting from an unprogrammed image
#

class GAL:

    def __init__(self, chip):
        self.chip = chip
        self.fuses = [True] * chip.logic_size                                                            # main logic array, row major, True = intact
        self.xor = [True] * chip.num_olmcs                                                              # per OLMC active high marker, fuse order
        self.sig = [True] * SIG_BITS                                                                    # user signature
        self.ac1 = [True] * chip.num_olmcs                                                              # per OLMC tristate enable marker, fuse order
        self.pt = [True] * PT_BITS                                                                     # product term enables
        self.syn = False                                                                                # mode fuses, GAL16V8 / GAL20V8 only
        self.ac0 = False

    @property
    def has_mode(self):
        return self.chip.name in MODE_CHIPS

    #
    # set_mode / get_mode:
    #   Program and read back the syn/ac0 mode fuses (GAL16V8 / GAL20V8 only)
    #

    def set_mode(self, mode):

        if not self.has_mode:
            raise ValueError(f"{self.chip.name} has no mode fuses")

        self.syn, self.ac0 = MODE_FUSES[mode]

    def get_mode(self):

        if not self.has_mode:
            raise ValueError(f"{self.chip.name} has no mode fuses")

        for mode, fuses in MODE_FUSES.items():
            if fuses == (self.syn, self.ac0):
                return mode

        raise ValueError(f"Bad syn/ac0 mode fuses: syn={self.syn}, ac0={self.ac0}")

    #
    # row:
    #   Return a copy of one row of the main logic array
    #

    def row(self, row_num):

        num_cols = self.chip.num_cols

        return self.fuses[row_num * num_cols:(row_num + 1) * num_cols]

    #
    # needs_flip:
    #   Whether references to this pin must have their negation flipped
    #
    #   On every other device and mode an OLMC's output and feedback agree, which is how
    #   equations are written. The GAL22V10 always inverts the feedback of a registered
    #   output but only inverts the output pin when it is active low, so an active high
    #   registered pin reads back inverted.
    #

    def needs_flip(self, pin_num):

        if self.chip.name != "GAL22V10":
            return False

        olmc_num = self.chip.pin_to_olmc(pin_num)

        if olmc_num is None:
            return False

        idx = self.chip.num_olmcs - 1 - olmc_num

        registered = not self.ac1[idx]
        active_high = self.xor[idx]

        return registered and active_high

    #
    # add_term:
    #   Program a term into the rows of the given reservation, one AND row per product,
    #   then disable any reserved rows left over. Returns the reservation with its
    #   row_offset advanced past the rows the term used.
    #

    def add_term(self, term, bounds):

        single_row = bounds.max_row == bounds.row_offset + 1
        available = max(bounds.max_row - bounds.row_offset, 0)

        for row in term.pins:

            #
            # Too many ORs for the space reserved?
            #

            if bounds.row_offset >= bounds.max_row:

                if single_row:
                    raise GalError(MoreThanOneProduct(), term.line_num)

                raise GalError(TooManyProducts(max=available, seen=len(term.pins)), term.line_num)

            with at_line(term.line_num):

                for pin in row:

                    #
                    # A registered OLMC pin on a GAL22V10 needs its negation flipped
                    #

                    flip = self.needs_flip(pin.pin)

                    self.set_and(bounds.start_row + bounds.row_offset, pin.pin, pin.neg != flip)

            bounds = bounds._replace(row_offset=bounds.row_offset + 1)

        self.clear_rows(bounds)

        return bounds

    #
    # add_term_opt:
    #   Like add_term, but a missing term programs constant false
    #

    def add_term_opt(self, term, bounds):

        if term is None:
            term = false_term(0)

        return self.add_term(term, bounds)

    #
    # clear_rows:
    #   Blow every fuse in the remaining rows of a reservation, so they can't contribute to the OR
    #

    def clear_rows(self, bounds):

        num_cols = self.chip.num_cols

        start = (bounds.start_row + bounds.row_offset) * num_cols
        end = (bounds.start_row + bounds.max_row) * num_cols

        if end > start:
            self.fuses[start:end] = [False] * (end - start)

    #
    # pin_to_column:
    #   Map an input pin number to its fuse column, for this device and its current mode
    #

    def pin_to_column(self, pin_num):

        mode = self.get_mode() if self.has_mode else None

        return pin_to_column(self.chip.name, mode, pin_num)

    #
    # set_and:
    #   Blow the fuse connecting one polarity of an input into a row
    #

    def set_and(self, row, pin_num, negation):

        column = self.pin_to_column(pin_num)

        self.fuses[row * self.chip.num_cols + column + (1 if negation else 0)] = False
