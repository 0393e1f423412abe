#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Compare the PnR metrics of multiple invs directories
#   -- timing (WNS/TNS/VP), density, congestion, DRC and VT distribution
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
import argparse
import sys

from .utils.common import (PKG_VERSION, INVS_CMP_VER, DEFAULT_COL_WIDTH,
                           ConfigurationError, ToolError, error, find_cfg,
                           info, load_cfg)
from .utils.cmp_table import (CmpOutput, build_congestion_table,
                              build_density_table, build_timing_table,
                              build_violation_table, build_vt_table)
from .utils.invs_rpt import VT_TYPES_TIMING
from .utils.invs_stage import (CMP_STAGES, GzipTracker, build_catalog,
                               get_block_root, get_design_name, get_stage,
                               locate_reports, resolve_stages,
                               validate_invs_dirs)

VERSION = f"invs_cmp version {INVS_CMP_VER} ({PKG_VERSION})"

FIELD_WIDTH = 24
TABLES = ('timing', 'density', 'congestion', 'violation', 'vt')

DEFAULT_CFG = ".invs_cmp.setup"
CFG_ATTR = {
    'col_width':    ('col_width'   , DEFAULT_COL_WIDTH),
    'design':       ('design'      , ''),
    'gzip_inplace': ('gzip_inplace', False),
}


##############################################################################
### Function


def stage_tables(stage: str, reports: list, design: str, table_sel: set) -> list:
    """Build the compare tables of one stage."""
    setup_rpts = [rpt.setup for rpt in reports]
    tables = []

    if 'timing' in table_sel:
        tables.append(build_timing_table("Setup mode", setup_rpts))
        if stage != 'place':
            tables.append(build_timing_table(
                "Hold mode", [rpt.hold for rpt in reports]))

    if 'density' in table_sel:
        tables.append(build_density_table(setup_rpts))

    if stage != 'route' and 'congestion' in table_sel:
        tables.append(build_congestion_table(setup_rpts))
    elif stage == 'route' and 'violation' in table_sel:
        tables.append(build_violation_table([rpt.drc for rpt in reports]))

    if 'vt' in table_sel:
        tables.append(build_vt_table([rpt.vt for rpt in reports], design,
                                     VT_TYPES_TIMING, 'blank'))
    return tables


def compare_stage(invs_dirs: list, stage, design: str, table_sel: set,
                  output: CmpOutput, timing_summary: bool=False,
                  tracker: GzipTracker=None) -> bool:
    """
    Compare one stage of all invs directories.

    Returns False if no invs directory has the report directory.
    """
    reports = [locate_reports(invs, stage, design, timing_summary)
               for invs in invs_dirs]
    if all(rpt.is_missing for rpt in reports):
        return False

    try:
        if tracker is not None and timing_summary:
            for rpt in reports:
                rpt.setup = rpt.hold = tracker.compress(rpt.setup)

        output.stage(stage.name, stage.subdir)
        for table in stage_tables(stage.name, reports, design, table_sel):
            output.table(table)
    finally:
        if tracker is not None:
            tracker.restore()
    return True


##############################################################################
### Main


def create_argparse() -> argparse.ArgumentParser:
    """Create Argument Parser"""
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawTextHelpFormatter,
        description="Compare the PnR metrics of multiple invs directories\n" +
                    "  -- timing, density, congestion, violation, vt")

    parser.add_argument('-version', action='version', version=VERSION)
    parser.add_argument('-invs', dest='invs_dirs', metavar='<dir>',
                            nargs='+', required=True,
                            help="the invs directories to compare")
    parser.add_argument('-stage', dest='stage', metavar='<stage>', default='all',
                            help="the stage to process (default: all,\n" +
                                 "the stages with the valid logs)")
    for tag in TABLES:
        parser.add_argument(f'-{tag}', dest=f'is_{tag}', action='store_true',
                            help=f"print the {tag} table")
    parser.add_argument('-col_width', dest='col_width', metavar='<int>', type=int,
                            help=f"column width of the table (default: {DEFAULT_COL_WIDTH})")
    parser.add_argument('-csv_file', '-csv', dest='csv_fp', metavar='<file>',
                            help="output the tables in CSV format")
    parser.add_argument('-xlsx', dest='xlsx_fp', metavar='<file>',
                            help="output the tables in Excel format")
    parser.add_argument('-invs_timing_summary', dest='timing_summary',
                            action='store_true',
                            help="extract timing, density and congestion from\n" +
                                 "invs_timing_summary instead of timing_0* directories")
    parser.add_argument('-gzip_inplace', dest='gzip_inplace', action='store_true',
                            help="compress the plain invs_timing_summary in place\n" +
                                 "and restore it after the stage (modify the report)")
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
    catalog = build_catalog(cfg['stage'], CMP_STAGES)

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

    stages = resolve_stages(invs_dirs, catalog, args.stage, ordered=True)
    info(f"stages: {' '.join(stages)}")

    table_sel = {tag for tag in TABLES if getattr(args, f'is_{tag}')}
    if not table_sel:
        table_sel = set(TABLES)

    is_gzip = args.gzip_inplace or cfg['gzip_inplace']
    tracker = GzipTracker() if is_gzip else None

    output = CmpOutput(col_width, FIELD_WIDTH, args.csv_fp, args.xlsx_fp)
    try:
        for name in stages:
            compare_stage(invs_dirs, get_stage(catalog, name), design,
                          table_sel, output, args.timing_summary, tracker)
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
