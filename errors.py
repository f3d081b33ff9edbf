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
# errors: Diagnostics raised while turning a design into a fuse map
#
#     Every user-facing problem is a GalError carrying an ErrorCode (what went wrong)
#     and the source line of the equation that caused it. Pin lookups and other low
#     level helpers raise untagged errors; at_line() stamps them with the line of the
#     term being compiled on the way out.
#

import contextlib
import enum

#
# OutputSuffix:
#   Names the control equation a diagnostic refers to (as written after the pin name, ex: "Q0.CLK")
#

class OutputSuffix(enum.Enum):

    T = "T"
    R = "R"
    E = "E"
    CLK = "CLK"
    ARST = "ARST"
    APRST = "APRST"
    AR = "AR"
    SP = "SP"

    def __str__(self):
        return self.value

#
# Error codes
#

class ErrorCode:

    message = "unknown error"

    def __init__(self, **fields):
        self.__dict__.update(fields)

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)

    def __hash__(self):
        return hash((type(self), tuple(sorted(vars(self).items(), key=lambda kv: kv[0]))))

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({fields})"

    def __str__(self):
        return self.message.format(**vars(self))

class BadAnalysis(ErrorCode):
    message = "pin cannot be used as an input"

class BadPower(ErrorCode):
    message = "use of VCC and GND is not allowed in equations"

class ReservedRegisteredInput(ErrorCode):
    message = "pin {pin} is reserved for '{name}' in registered mode"

    def __init__(self, pin, name):
        super().__init__(pin=pin, name=name)

class NotAnComplexModeInput(ErrorCode):
    message = "pin {pin} can't be used as input in complex mode"

    def __init__(self, pin):
        super().__init__(pin=pin)

class ReservedInputGAL20RA10(ErrorCode):
    message = "pin {pin} is reserved for '{name}' on GAL20RA10 devices and can't be used in equations"

    def __init__(self, pin, name):
        super().__init__(pin=pin, name=name)

class MoreThanOneProduct(ErrorCode):
    message = "only one product term allowed (no OR)"

class TooManyProducts(ErrorCode):
    message = "too many product terms in sum: max={max}, seen={seen}"

    def __init__(self, max, seen):
        super().__init__(max=max, seen=seen)

class DisallowedControl(ErrorCode):
    message = "use of .{suffix} is not allowed on this device"

    def __init__(self, suffix):
        super().__init__(suffix=suffix)

class UndefinedOutput(ErrorCode):
    message = "output equation must be defined before .{suffix} can be used"

    def __init__(self, suffix):
        super().__init__(suffix=suffix)

class InvalidControl(ErrorCode):
    message = ".{suffix} is only allowed on registered outputs"

    def __init__(self, suffix):
        super().__init__(suffix=suffix)

class NoCLK(ErrorCode):
    message = "missing clock definition (.CLK) of registered output"

class TristateReg(ErrorCode):
    message = "tristate control for registered outputs is not allowed in this mode"

class UnmatchedTristate(ErrorCode):
    message = "tristate control without previous '.T'"

#
# GalError:
#   A diagnostic raised by the compiler, optionally tagged with the source line it came from
#

class GalError(RuntimeError):

    def __init__(self, code, line_num=None):
        super().__init__(code)
        self.code = code                                                                                # ErrorCode instance describing the problem
        self.line_num = line_num                                                                        # source line of the term being compiled, None until tagged

    def __str__(self):
        if self.line_num is None:
            return str(self.code)
        return f"line {self.line_num}: {self.code}"

#
# at_line:
#   Tag any untagged GalError raised inside the block with the given source line
#

@contextlib.contextmanager
def at_line(line_num):

    try:
        yield
    except GalError as err:
        if err.line_num is None:
            err.line_num = line_num
        raise
