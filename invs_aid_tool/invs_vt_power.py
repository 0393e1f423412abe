#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Compare the VT distribution and the total power of multiple invs directories
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
import argparse
import sys

from .utils.common import (PKG_VERSION, INVS_VTP_VER, DEFAULT_COL_WIDTH,
                           ConfigurationError, ToolError, error, find_cfg,
                           info, load_cfg)
from .utils.cmp_table import CmpOutput, build_power_table, build_vt_table
from .utils.invs_rpt import VT_TYPES_POWER
from .utils.invs_stage import (VT_POWER_STAGES, build_catalog, get_block_root,
                               get_design_name, get_stage, locate_reports,
                               resolve_stages, validate_invs_dirs)

VERSION = f"invs_vt_power version {INVS_VTP_VER} ({PKG_VERSION})"

FIELD_WIDTH = 28

DEFAULT_CFG = ".invs_vt_power.setup"
CFG_ATTR = {
    'col_width': ('col_width', DEFAULT_COL_WIDTH),
    'design':    ('design'   , ''),
}


##############################################################################
### Function


def compare_stage(invs_dirs: list, stage, design: str, is_vt: bool,
                  is_power: bool, output: CmpOutput) -> bool:
    """
    Compare the VT and power tables of one stage.

    Returns False if no invs directory has the report directory.
    """
    reports = [locate_reports(invs, stage, design) for invs in invs_dirs]
    if all(rpt.is_missing for rpt in reports):
        return False

    output.stage(stage.name, stage.subdir)
    if is_vt:
        output.table(build_vt_table([rpt.vt for rpt in reports], design,
                                    VT_TYPES_POWER, 'colon'))
    if is_power:
        output.table(build_power_table({
            "Total Power Before": [rpt.power_before for rpt in reports],
            "Total Power After":  [rpt.power_after for rpt in reports],
        }))
    return True


##############################################################################
### Main


def create_argparse() -> argparse.ArgumentParser:
    """Create Argument Parser"""
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawTextHelpFormatter,
        description="Compare the VT distribution and the total power\n" +
                    "of multiple invs directories")

    parser.add_argument('-version', action='version', version=VERSION)
    parser.add_argument('-d', '-invs', dest='invs_dirs', metavar='<dir>',
                            nargs='+', required=True,
                            help="the invs directories to compare")
    parser.add_argument('-stage', dest='stage', metavar='<stage>', default='all',
                            help="the stage to process (default: all,\n" +
                                 "the stages with the existing logs)")
    parser.add_argument('-vt', dest='is_vt', action='store_true',
                            help="print the VT table")
    parser.add_argument('-power', dest='is_power', action='store_true',
                            help="print the power table")
    parser.add_argument('-col_width', dest='col_width', metavar='<int>', type=int,
                            help=f"column width of the table (default: {DEFAULT_COL_WIDTH})")
    parser.add_argument('-csv', '-csv_file', dest='csv_fp', metavar='<file>',
                            help="output the tables in CSV format")
    parser.add_argument('-xlsx', dest='xlsx_fp', metavar='<file>',
                            help="output the tables in Excel format")
    parser.add_argument('-design', dest='design', metavar='<name>',
                            help="design name (default: from block_config.tcl)")
    parser.add_argument('-c', dest='cfg_fp', metavar='<config>',
                            help="set the config file path")
    parser.add_argument('-nc', dest='is_nocfg', action='store_true',
                            help="disable to load the config file")
    return parser


def run(args) -> int:
    cfg_fp = find_cfg(args.cfg_fp, args.is_nocfg, DEFAULT_CFG)
    cfg = load_cfg(cfg_fp, CFG_ATTR, {'stage'})
    catalog = build_catalog(cfg['stage'], VT_POWER_STAGES)

    col_width = cfg['col_width'] if args.col_width is None else args.col_width
    if col_width < 4:
        raise ConfigurationError(f"column width is too small ({col_width})")

    invs_dirs = validate_invs_dirs(args.invs_dirs)

    if args.design is not None:
        design = args.design
    elif cfg['design']:
        design = cfg['design']
    else:
        design = get_design_name(get_block_root())
    info(f"design: {design}")

    stages = resolve_stages(invs_dirs, catalog, args.stage)
    info(f"stages: {' '.join(stages)}")

    is_vt, is_power = args.is_vt, args.is_power
    if not is_vt and not is_power:
        is_vt = is_power = True

    output = CmpOutput(col_width, FIELD_WIDTH, args.csv_fp, args.xlsx_fp)
    try:
        for name in stages:
            compare_stage(invs_dirs, get_stage(catalog, name), design,
                          is_vt, is_power, output)
    finally:
        output.close()
    return 0


def main():
    """Main Function"""
    parser = create_argparse()
    args = parser.parse_args()
    try:
        sys.exit(run(args))
    except ToolError as e:
        error(str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
