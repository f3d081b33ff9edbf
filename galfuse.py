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
# galfuse: Fuse map compiler for GAL devices
#
#     usage:
#
#         py galfuse.py <options> <design file names>
#
#     examples:
#
#         py galfuse.py "C:\designs\counter.json"
#
#         py galfuse.py --devicetype="gal22v10" --profiles="C:\galfuse\custom-profiles.config" "C:\designs\counter.json" "C:\designs\decoder.json"
#
#     options:
#
#         Option Name:                           Default Value:         Description:
#         =====================================  =====================  ==============================================================================================
#         --devicetype=<device>                  auto                   Specify a device type [auto, gal16v8, gal20v8, gal22v10, gal20ra10], auto uses the
#                                                                       chip named in each design file
#
#         --profiles=<profiles config filename>  profiles.config        Allows a json formatted file name containing device profile information to be input, profiles.config
#                                                                       is shipped with this software with gal16v8, gal20v8, gal22v10 and gal20ra10 support
#
#         --listing                                                     Flag to write a fuse listing file (<design>.galfuse.txt) next to each design, on by default,
#                                                                       use --no-listing to only check the designs
#

import argparse
import datetime
import pathlib
import sys

import tqdm

import chips
from blueprint import load_blueprint
from gal_builder import build

#
# get_command_arguments:
#   Get arguments from the command line
#

def get_command_arguments(argv=None):

    parser = argparse.ArgumentParser(prog = 'galfuse', description = 'Compile GAL design files into fuse maps')

    parser.add_argument('--devicetype', dest = 'devicetype', default = 'auto' , help = 'Device type: auto, gal16v8, gal20v8, gal22v10, gal20ra10')
    parser.add_argument('--profiles', dest = 'profiles', default = chips.DEFAULT_PROFILES , help = 'Json file containing device profiles')
    parser.add_argument('--listing', dest = 'listing', default = True , help = 'Write a fuse listing file for each design', action=argparse.BooleanOptionalAction)
    parser.add_argument('designs', nargs = '+')

    return parser.parse_args(argv)

#
# fuse_bits:
#   Render a list of fuses as 0/1 characters (1 = intact)
#

def fuse_bits(fuses):

    return ''.join('1' if fuse else '0' for fuse in fuses)

#
# write_fusemap_section_title:
#   Write a section header with a given title into the fuse listing
#

def write_fusemap_section_title(listing, title):

    listing.write("\n")
    listing.write(f"/* {title} */\n")
    listing.write("\n")

#
# write_fusemap_header:
#   Write the listing header with the design name, device name and mode
#

def write_fusemap_header(listing, name, gal):

    listing.write(f"Name {name};\n")
    listing.write(f"Device {gal.chip.name};\n")

    #
    # Only the GAL16V8 / GAL20V8 have a mode
    #

    if gal.has_mode:
        listing.write(f"Mode {gal.get_mode().value};\n")

    listing.write(f"Date {datetime.datetime.now().strftime('%x')};\n")

#
# write_fusemap_rows:
#   Write the main logic array, one line per product term row
#

def write_fusemap_rows(listing, gal):

    write_fusemap_section_title(listing, "Logic array")

    width = len(str(gal.chip.num_rows - 1))

    for row_num in range(gal.chip.num_rows):

        listing.write(f"row {str(row_num).rjust(width)}: {fuse_bits(gal.row(row_num))}\n")

#
# write_fusemap_fields:
#   Write the fuses outside the main logic array
#

def write_fusemap_fields(listing, gal):

    write_fusemap_section_title(listing, "Configuration")

    listing.write(f"XOR {fuse_bits(gal.xor)};\n")
    listing.write(f"AC1 {fuse_bits(gal.ac1)};\n")
    listing.write(f"PT  {fuse_bits(gal.pt)};\n")
    listing.write(f"SIG {fuse_bits(gal.sig)};\n")

    if gal.has_mode:
        listing.write(f"SYN {fuse_bits([gal.syn])};\n")
        listing.write(f"AC0 {fuse_bits([gal.ac0])};\n")

#
# write_fusemap:
#   Write a complete fuse listing for a built GAL
#

def write_fusemap(listing_path, name, gal):

    with listing_path.open("wt") as listing:

        write_fusemap_header(listing, name, gal)
        write_fusemap_rows(listing, gal)
        write_fusemap_fields(listing, gal)

#
# compile_design:
#   Load one design file, build its fuses and optionally write the listing, returns the listing path (or None)
#

def compile_design(design_path, devices, devicetype, listing):

    blueprint = load_blueprint(design_path, devices, devicetype)

    gal = build(blueprint)

    if not listing:
        return None

    listing_path = design_path.parent / (design_path.stem + '.galfuse.txt')

    write_fusemap(listing_path, design_path.stem, gal)

    return listing_path

# # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #
#
# MAIN PROGRAM:
#
#   - Get command arguments
#   - Load the device profiles
#   - For each design: load it, build the fuse map, write the listing
#   - Report designs that failed to build, exit with status 1 if any did
#
# # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # # #

def main(argv=None):

    args = get_command_arguments(argv)

    devices = chips.load_device_profiles(args.profiles)

    print("Building fuse maps...")

    failures = 0

    for design in tqdm.tqdm(args.designs):

        design_path = pathlib.Path(design)

        #
        # Compile errors are reported against the design and the remaining designs still get built
        #

        try:

            listing_path = compile_design(design_path, devices, args.devicetype, args.listing)

        except (RuntimeError, OSError, ValueError) as err:

            tqdm.tqdm.write(f"{design_path}: {err}")
            failures += 1
            continue

        if listing_path is not None:
            tqdm.tqdm.write(f"Fuse listing written: {listing_path}")

    return 1 if failures else 0

if __name__ == "__main__":
    sys.exit(main())
