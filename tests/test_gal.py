import pytest

import chips
from chips import Bounds
from errors import (
    BadAnalysis,
    BadPower,
    ErrorCode,
    GalError,
    MoreThanOneProduct,
    NotAnComplexModeInput,
    ReservedInputGAL20RA10,
    ReservedRegisteredInput,
    TooManyProducts,
)
from gal import GAL, PIN_TO_COL, Mode, Pin, Term, false_term, pin_to_column, true_term


def _gal(name: str, mode=Mode.SIMPLE) -> GAL:
    gal = GAL(chips.get_chip(name))
    if gal.has_mode:
        gal.set_mode(mode)
    return gal


def test_new_gal_is_unprogrammed() -> None:
    gal = GAL(chips.get_chip("GAL22V10"))
    assert len(gal.fuses) == 5808
    assert all(gal.fuses)
    assert gal.xor == [True] * 10
    assert gal.ac1 == [True] * 10
    assert gal.sig == [True] * 64
    assert gal.pt == [True] * 64
    assert (gal.syn, gal.ac0) == (False, False)


def test_true_term_in_single_row_blows_nothing() -> None:
    gal = _gal("GAL16V8")
    bounds = gal.add_term(true_term(1), Bounds(start_row=4, max_row=1))
    assert bounds.row_offset == 1
    assert all(gal.fuses)


def test_false_term_blows_every_reserved_row() -> None:
    gal = _gal("GAL16V8")
    gal.add_term(false_term(1), Bounds(start_row=5, max_row=3))
    for row in (5, 6, 7):
        assert not any(gal.row(row))
    assert all(gal.row(4))
    assert all(gal.row(8))


def test_add_term_opt_without_term_is_false() -> None:
    gal = _gal("GAL16V8")
    gal.add_term_opt(None, Bounds(start_row=2, max_row=2))
    assert not any(gal.row(2))
    assert not any(gal.row(3))
    assert all(gal.row(4))


def test_products_fill_rows_in_order() -> None:
    gal = _gal("GAL16V8")
    # Simple mode: pin 2 -> column 0, pin 3 -> column 4
    term = Term(7, [[Pin(2)], [Pin(3, True)], [Pin(2), Pin(3)]])

    bounds = gal.add_term(term, Bounds(start_row=8, max_row=3))

    assert bounds.row_offset == 3
    assert [i for i, fuse in enumerate(gal.row(8)) if not fuse] == [0]
    assert [i for i, fuse in enumerate(gal.row(9)) if not fuse] == [5]
    assert [i for i, fuse in enumerate(gal.row(10)) if not fuse] == [0, 4]
    assert all(gal.row(11))


def test_unused_rows_after_products_are_cleared() -> None:
    gal = _gal("GAL16V8")
    gal.add_term(Term(1, [[Pin(2)]]), Bounds(start_row=0, max_row=8))
    assert not gal.row(0)[0]
    assert all(gal.row(0)[1:])
    for row in range(1, 8):
        assert not any(gal.row(row))
    assert all(gal.row(8))


def test_row_offset_skips_reserved_rows() -> None:
    gal = _gal("GAL16V8", Mode.COMPLEX)
    gal.add_term(Term(1, [[Pin(2)]]), Bounds(start_row=8, max_row=8, row_offset=1))
    assert all(gal.row(8))
    assert not gal.row(9)[0]
    for row in range(10, 16):
        assert not any(gal.row(row))


def test_too_many_products() -> None:
    gal = _gal("GAL16V8")
    term = Term(12, [[Pin(2)]] * 4)

    with pytest.raises(GalError) as excinfo:
        gal.add_term(term, Bounds(start_row=0, max_row=3))

    assert excinfo.value.code == TooManyProducts(max=3, seen=4)
    assert excinfo.value.line_num == 12
    assert str(excinfo.value) == "line 12: too many product terms in sum: max=3, seen=4"


def test_too_many_products_max_is_free_rows_not_block_end() -> None:
    # The reported maximum is the rows left after the reserved enable row (7),
    # not the last row index of the block.
    gal = _gal("GAL16V8", Mode.COMPLEX)

    with pytest.raises(GalError) as excinfo:
        gal.add_term(Term(3, [[Pin(2)]] * 8), Bounds(start_row=0, max_row=8, row_offset=1))

    assert excinfo.value.code == TooManyProducts(max=7, seen=8)


def test_single_row_overflow_is_more_than_one_product() -> None:
    gal = _gal("GAL16V8")

    with pytest.raises(GalError) as excinfo:
        gal.add_term(Term(5, [[Pin(2)], [Pin(3)]]), Bounds(start_row=0, max_row=1))

    assert excinfo.value.code == MoreThanOneProduct()
    assert excinfo.value.line_num == 5


@pytest.mark.parametrize(
    "name, mode, pin, code",
    [
        ("GAL16V8", Mode.SIMPLE, 10, BadPower()),
        ("GAL16V8", Mode.SIMPLE, 15, BadAnalysis()),
        ("GAL16V8", Mode.COMPLEX, 12, NotAnComplexModeInput(pin=12)),
        ("GAL16V8", Mode.REGISTERED, 1, ReservedRegisteredInput(pin=1, name="Clock")),
        ("GAL16V8", Mode.REGISTERED, 11, ReservedRegisteredInput(pin=11, name="/OE")),
        ("GAL20V8", Mode.REGISTERED, 13, ReservedRegisteredInput(pin=13, name="/OE")),
        ("GAL20V8", Mode.COMPLEX, 22, NotAnComplexModeInput(pin=22)),
        ("GAL20RA10", None, 1, ReservedInputGAL20RA10(pin=1, name="/PL")),
        ("GAL20RA10", None, 13, ReservedInputGAL20RA10(pin=13, name="/OE")),
        ("GAL22V10", None, 24, BadPower()),
        ("GAL22V10", None, 25, BadAnalysis()),
    ],
)
def test_unusable_input_pins(name, mode, pin, code) -> None:
    with pytest.raises(GalError) as excinfo:
        pin_to_column(name, mode, pin)
    assert excinfo.value.code == code
    assert excinfo.value.line_num is None


def test_pin_errors_are_tagged_with_term_line() -> None:
    gal = _gal("GAL16V8")

    with pytest.raises(GalError) as excinfo:
        gal.add_term(Term(42, [[Pin(2), Pin(20)]]), Bounds(start_row=0, max_row=1))

    assert excinfo.value.code == BadPower()
    assert excinfo.value.line_num == 42


def test_pin_tables_are_total() -> None:
    for (name, mode), table in PIN_TO_COL.items():
        chip = chips.get_chip(name)
        assert sorted(table) == list(range(1, chip.num_pins + 1))
        for pin in range(0, chip.num_pins + 2):
            try:
                column = pin_to_column(name, mode, pin)
            except GalError as err:
                assert isinstance(err.code, ErrorCode)
            else:
                assert column % 2 == 0


def test_pin_table_columns_are_distinct_pairs_inside_the_row() -> None:
    # A fully blown row must contain a pair with both polarities blown, so every
    # column pair has to fit inside the row.
    for (name, mode), table in PIN_TO_COL.items():
        chip = chips.get_chip(name)
        columns = [entry for entry in table.values() if isinstance(entry, int)]
        assert len(columns) == len(set(columns))
        assert all(column + 1 < chip.num_cols for column in columns)


def test_mode_fuses_round_trip() -> None:
    gal = GAL(chips.get_chip("GAL20V8"))
    expected = {
        Mode.SIMPLE: (True, False),
        Mode.COMPLEX: (True, True),
        Mode.REGISTERED: (False, True),
    }
    for mode, fuses in expected.items():
        gal.set_mode(mode)
        assert (gal.syn, gal.ac0) == fuses
        assert gal.get_mode() == mode


def test_unset_mode_fuses_are_a_programming_error() -> None:
    gal = GAL(chips.get_chip("GAL16V8"))
    with pytest.raises(ValueError):
        gal.get_mode()


def test_mode_on_modeless_device_is_a_programming_error() -> None:
    gal = GAL(chips.get_chip("GAL22V10"))
    with pytest.raises(ValueError):
        gal.set_mode(Mode.SIMPLE)
    with pytest.raises(ValueError):
        gal.get_mode()


def test_needs_flip_only_for_active_high_registered_gal22v10_pins() -> None:
    gal = GAL(chips.get_chip("GAL22V10"))
    # Pin 23 is OLMC 9, stored at fuse index 0
    gal.xor[0] = True
    gal.ac1[0] = False
    assert gal.needs_flip(23)

    gal.xor[0] = False
    assert not gal.needs_flip(23)

    gal.xor[0] = True
    gal.ac1[0] = True
    assert not gal.needs_flip(23)

    # Not an OLMC pin
    assert not gal.needs_flip(2)


def test_needs_flip_is_false_on_other_devices() -> None:
    for name in ("GAL16V8", "GAL20V8", "GAL20RA10"):
        gal = GAL(chips.get_chip(name))
        gal.xor = [True] * len(gal.xor)
        gal.ac1 = [False] * len(gal.ac1)
        for pin in range(1, gal.chip.num_pins + 1):
            assert not gal.needs_flip(pin)


def test_flipped_feedback_blows_complement_column() -> None:
    gal = GAL(chips.get_chip("GAL22V10"))
    gal.xor[0] = True
    gal.ac1[0] = False

    gal.add_term(Term(1, [[Pin(23)]]), Bounds(start_row=11, max_row=1))

    # Pin 23 is column 2 on the GAL22V10
    assert [i for i, fuse in enumerate(gal.row(11)) if not fuse] == [3]
