#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Innovus Timing Report Pattern Grouping
#   -- group the violated paths by the beginpoint/endpoint pattern
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
import argparse
import os
import sys
import zlib

from .utils.common import (PKG_VERSION, RPT_PAT_VER, ConfigurationError,
                           InputValidationError, ToolError, error, find_cfg,
                           info, load_cfg, warning)
from .utils.timing_pattern import (DEFAULT_TOKEN, PatternGrouper,
                                   mode_key, report_groups, select_mode,
                                   show_group_bar)

VERSION = f"invs_rpt_pat version {RPT_PAT_VER} ({PKG_VERSION})"

DEFAULT_CFG = ".invs_rpt_pat.setup"
CFG_ATTR = {
    'replace_pattern': ('token', DEFAULT_TOKEN),
    'top':             ('top'  , 0),
}


##############################################################################
### Main


def create_argparse() -> argparse.ArgumentParser:
    """Create Argument Parser"""
    parser = argparse.ArgumentParser(
        formatter_class=argparse.RawTextHelpFormatter,
        description="Innovus Timing Report Pattern Grouping\n" +
                    "  -- group the violated paths (negative slack) by the\n" +
                    "     beginpoint/endpoint with the instance index replaced")

    parser.add_argument('-version', action='version', version=VERSION)
    parser.add_argument('rpt_fp', help="timing report path (.gz supported)")
    parser.add_argument('-b', dest='only_begin', action='store_true',
                            help="only show the beginpoint groups")
    parser.add_argument('-e', dest='only_end', action='store_true',
                            help="only show the endpoint groups")
    parser.add_argument('-d', dest='dominated', action='store_true',
                            help="endpoint dominated (group by endpoint\n" +
                                 "with the beginpoint details)")
    parser.add_argument('-w', dest='no_pattern', action='store_true',
                            help="without pattern (keep the instance index)")
    parser.add_argument('-p', dest='token', metavar='<token>',
                            help=f"replace pattern of '_<index>_' (default: '{DEFAULT_TOKEN}')")
    parser.add_argument('-top', dest='top', metavar='<int>', type=int,
                            help="only show the top N groups (by path count)")
    parser.add_argument('-bar', dest='bar_fp', metavar='<file>', nargs='?',
                            const='',
                            help="show the bar chart of the top groups\n" +
                                 "(save to the file if specified)")
    parser.add_argument('-c', dest='cfg_fp', metavar='<config>',
                            help="set the config file path")
    parser.add_argument('-nc', dest='is_nocfg', action='store_true',
                            help="disable to load the config file")
    return parser


def run(args) -> int:
    if args.no_pattern and args.token is not None:
        raise ConfigurationError(
            "Cannot specify both -p (replace pattern) and -w (without pattern).")
    mode = select_mode(args.only_begin, args.only_end, args.dominated)

    cfg_fp = find_cfg(args.cfg_fp, args.is_nocfg, DEFAULT_CFG)
    cfg = load_cfg(cfg_fp, CFG_ATTR)
    token = cfg['token'] if args.token is None else args.token
    top = cfg['top'] if args.top is None else args.top
    if top < 0:
        raise ConfigurationError(f"top count cannot be negative ({top})")

    if not os.path.isfile(args.rpt_fp):
        raise InputValidationError(f"'{args.rpt_fp}' is not a file")

    grouper = PatternGrouper(mode_key(mode), not args.no_pattern, token)
    try:
        grouper.parse_report(args.rpt_fp)
    except (OSError, EOFError, zlib.error) as e:
        raise InputValidationError(f"cannot read report '{args.rpt_fp}' ({e})")

    if grouper.path_count:
        info(f"violated paths: {grouper.path_count}")
    else:
        warning(f"no violated path in '{args.rpt_fp}'")

    report_groups(grouper, mode, top if top else None)

    if args.bar_fp is not None:
        bar_top = top if top else 20
        fig = show_group_bar(grouper, bar_top,
                             args.bar_fp if args.bar_fp else None,
                             title=os.path.basename(args.rpt_fp))
        if fig is None:
            warning("bar chart skipped")
        elif args.bar_fp:
            info(f"bar chart saved to {args.bar_fp}")
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
