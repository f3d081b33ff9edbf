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
# chips: Device geometry for the supported GAL devices
#
#     The size of the main logic array, the number of OLMCs and the rows reserved for
#     each OLMC are read from a json device profile file (profiles.config is shipped
#     with the software). Custom profiles can be supplied to the loader.
#

import collections
import functools
import json
import os
import pathlib
import re

DEFAULT_PROFILES = "profiles.config"

REQUIRED_PROFILE_KEYS = ("device_name", "num_pins", "num_cols", "num_rows", "num_olmcs", "min_olmc_pin", "first_olmc_row", "olmc_rows")

#
# Bounds:
#   A row reservation cursor, rows [start_row + row_offset, start_row + max_row) are still free
#

Bounds = collections.namedtuple("Bounds", ["start_row", "max_row", "row_offset"], defaults=[0])

#
# Chip:
#   Geometry of one device, built from a device profile
#

class Chip:

    def __init__(self, profile):
        self.name = profile["device_name"]                                                              # device name, used to select the fuse layout (ex: "GAL16V8")
        self.num_pins = profile["num_pins"]                                                             # physical pin count of the package
        self.num_cols = profile["num_cols"]                                                             # fuse columns per row of the main logic array
        self.num_rows = profile["num_rows"]                                                             # product term rows in the main logic array
        self.num_olmcs = profile["num_olmcs"]                                                           # number of output logic macrocells
        self.min_olmc_pin = profile["min_olmc_pin"]                                                     # pin number driven by OLMC 0
        self.first_olmc_row = profile["first_olmc_row"]                                                 # first row of the first OLMC block in fuse order
        self.olmc_rows = tuple(profile["olmc_rows"])                                                    # rows per OLMC block in fuse order (highest OLMC pin first)
        self.ar_row = profile.get("ar_row")                                                             # chip-wide asynchronous reset row, if the device has one
        self.sp_row = profile.get("sp_row")                                                             # chip-wide synchronous preset row, if the device has one

    def __eq__(self, other):
        return isinstance(other, Chip) and self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def __repr__(self):
        return f"Chip({self.name})"

    @property
    def logic_size(self):
        return self.num_rows * self.num_cols

    @property
    def max_olmc_pin(self):
        return self.min_olmc_pin + self.num_olmcs - 1

    #
    # pin_to_olmc:
    #   Return the OLMC index driving the given pin, or None if the pin isn't an OLMC pin
    #

    def pin_to_olmc(self, pin_num):

        if self.min_olmc_pin <= pin_num <= self.max_olmc_pin:
            return pin_num - self.min_olmc_pin

        return None

    #
    # olmc_to_pin:
    #   Return the pin number driven by the given OLMC index
    #

    def olmc_to_pin(self, olmc_num):

        return self.min_olmc_pin + olmc_num

    #
    # get_bounds:
    #   Return the row reservation for an OLMC's block
    #
    #   OLMC blocks are laid out in fuse order from the highest OLMC pin down, so OLMC
    #   index i owns the block at fuse position (num_olmcs - 1 - i)
    #

    def get_bounds(self, olmc_num):

        if not 0 <= olmc_num < self.num_olmcs:
            raise ValueError(f"{self.name} has no OLMC {olmc_num}")

        position = self.num_olmcs - 1 - olmc_num

        start_row = self.first_olmc_row + sum(self.olmc_rows[:position])

        return Bounds(start_row=start_row, max_row=self.olmc_rows[position], row_offset=0)

#
# check_profile:
#   Make sure a device profile is complete and that its OLMC blocks fit in the logic array
#

def check_profile(name, profile):

    missing = [key for key in REQUIRED_PROFILE_KEYS if key not in profile]

    if missing:
        raise RuntimeError(f"Device profile '{name}' is missing {', '.join(missing)}")

    if len(profile["olmc_rows"]) != profile["num_olmcs"]:
        raise RuntimeError(f"Device profile '{name}' lists {len(profile['olmc_rows'])} OLMC blocks, {profile['num_olmcs']} expected")

    if profile["first_olmc_row"] + sum(profile["olmc_rows"]) > profile["num_rows"]:
        raise RuntimeError(f"Device profile '{name}' reserves more rows than its {profile['num_rows']} row logic array")

#
# load_device_profiles:
#   Load device profiles from a json configuration file and return a dictionary of Chip objects
#

def load_device_profiles(profiles=DEFAULT_PROFILES):

    devices = {}

    print(f"Loading device profiles: {profiles}")

    #
    # Assume a full path first, then fall back to the directory this module lives in (default profiles.config shipped with the software)
    #

    json_path = pathlib.Path(profiles)

    if not json_path.is_file():

        json_path = pathlib.Path(os.path.join(os.path.dirname(os.path.abspath(__file__)), profiles))

    try:

        with open(json_path, 'r') as file:

            #
            # Drop python style comment lines, they aren't legal json
            #

            comment_pattern = r'^\s*[#]'

            profiles_json = json.loads(''.join(line for line in file if not re.match(comment_pattern, line)))

    except FileNotFoundError:

        raise RuntimeError(f"No device profiles found, specified file doesn't exist: '{json_path}'")

    for name, profile in profiles_json.items():

        check_profile(name, profile)

        print(f"Device profile added: {name}")

        devices[name.upper()] = Chip(profile)

    return devices

#
# default_devices:
#   The device profiles shipped with the software, loaded once
#

@functools.lru_cache(maxsize=None)
def default_devices():

    return load_device_profiles()

#
# get_chip:
#   Look up a device by name (case insensitive) in the given profiles, or the default profiles
#

def get_chip(name, devices=None):

    if devices is None:
        devices = default_devices()

    try:

        return devices[name.upper()]

    except KeyError:

        raise RuntimeError(f"Unknown device type '{name}', known devices: {', '.join(sorted(devices))}")
