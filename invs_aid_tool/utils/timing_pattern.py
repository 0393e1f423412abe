# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
"""
Timing Path Pattern Grouping for Innovus Timing Report
"""
import re
import sys
from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import matplotlib.pyplot as plt

from .common import ConfigurationError
from .invs_rpt import open_report

DEFAULT_TOKEN = '_*_'

SLACK_RE = re.compile(r"^-\d+\.\d+$")
INDEX_RE = re.compile(r"(?:_\d+)+_")


class DisplayMode(IntEnum):
    BEGIN_ONLY, END_ONLY, BEGIN_DETAIL, END_DETAIL = range(4)


class GroupKey(IntEnum):
    BEGIN, END = range(2)


POINT_TAG = {GroupKey.BEGIN: 'Beginpoint', GroupKey.END: 'Endpoint'}


##############################################################################
### Data Container


@dataclass
class PointGroup:
    """Timing paths grouped by a (begin/end) point."""
    name:   str                                      # point name (pattern)
    slacks: list[str] = field(default_factory=list)  # slack samples
    subs:   dict      = field(default_factory=dict)  # paired point groups

    @property
    def count(self) -> int:
        return len(self.slacks)

    @property
    def min_slack(self) -> str:
        return min(self.slacks, key=float) if self.slacks else None

    @property
    def max_slack(self) -> str:
        return max(self.slacks, key=float) if self.slacks else None

    def add(self, slack: str, sub: str=None):
        self.slacks.append(slack)
        if sub is not None:
            sub_group = self.subs.setdefault(sub, PointGroup(sub))
            sub_group.slacks.append(slack)


##############################################################################
### Function


def normalize_point(name: str, token: str=DEFAULT_TOKEN) -> str:
    """
    Replace every '_<index>_' of the point name with the token.

    Adjacent indices share the underscore between them, so with the default
    token 'mem_1_2_' becomes 'mem_*_*_'.
    """
    def _sub(m):
        cnt = m.group().count('_') - 1
        if token.endswith('_'):
            return token[:-1] * cnt + '_'
        return token * cnt
    return INDEX_RE.sub(_sub, name)


def select_mode(only_begin: bool=False, only_end: bool=False,
                dominated: bool=False) -> DisplayMode:
    """Select the display mode by the option flags."""
    if only_begin and only_end:
        raise ConfigurationError(
            "Cannot specify both -b (only beginpoint) and -e (only endpoint).")
    if only_end:
        return DisplayMode.END_ONLY
    if dominated:
        return DisplayMode.END_DETAIL
    if only_begin:
        return DisplayMode.BEGIN_ONLY
    return DisplayMode.BEGIN_DETAIL


def mode_key(mode: DisplayMode) -> GroupKey:
    """Group key of the display mode."""
    if mode in (DisplayMode.BEGIN_ONLY, DisplayMode.BEGIN_DETAIL):
        return GroupKey.BEGIN
    return GroupKey.END


def iter_violations(lines):
    """
    Scan the timing report and yield the violated paths.

    Yields
    ------
    (beginpoint, endpoint, slack): the slack is kept as the report text.
    """
    begin, end = None, None
    for line in lines:
        if 'Beginpoint:' in line:
            toks = line.split()
            begin = toks[1] if len(toks) > 1 else None
        if 'Endpoint:' in line:
            toks = line.split()
            end = toks[1] if len(toks) > 1 else None
        if 'Slack Time' in line:
            toks = line.split()
            slack = toks[3] if len(toks) > 3 else ''
            if SLACK_RE.match(slack):
                if begin is not None and end is not None:
                    yield begin, end, slack
                begin, end = None, None


class PatternGrouper:
    """
    Group the violated timing paths by the beginpoint or the endpoint.

    Attributes
    ----------
    key    : the group key (GroupKey.BEGIN/END).
    groups : {point: PointGroup}, the paired points are the sub-groups.
    """
    def __init__(self, key: GroupKey=GroupKey.BEGIN, is_pattern: bool=True,
                 token: str=DEFAULT_TOKEN):
        """
        Arguments
        ---------
        key        : group by beginpoint or endpoint.
        is_pattern : replace the instance index with the token.
        token      : the replacement of the instance index.
        """
        self.key = key
        self.is_pattern = is_pattern
        self.token = token
        self.groups = {}

    def add(self, begin: str, end: str, slack: str):
        if self.is_pattern:
            begin = normalize_point(begin, self.token)
            end = normalize_point(end, self.token)
        if self.key == GroupKey.BEGIN:
            main, sub = begin, end
        else:
            main, sub = end, begin
        self.groups.setdefault(main, PointGroup(main)).add(slack, sub)

    def parse(self, lines):
        for begin, end, slack in iter_violations(lines):
            self.add(begin, end, slack)
        return self

    def parse_report(self, rpt_fp):
        with open_report(rpt_fp) as f:
            return self.parse(f)

    def sorted_groups(self, top: int=None) -> list:
        """Groups sorted by the path count (descending)."""
        groups = sorted(self.groups.values(), key=lambda g: g.count,
                        reverse=True)
        return groups if top is None else groups[:top]

    @property
    def path_count(self) -> int:
        return sum(group.count for group in self.groups.values())


def group_line(tag: str, group: PointGroup) -> str:
    return "{}: {} -> Count: {} -> Slack:(min:{} max:{})".format(
            tag, group.name, group.count, group.min_slack, group.max_slack)


def report_groups(grouper: PatternGrouper, mode: DisplayMode,
                  top: int=None, fp=None):
    """Print the groups in the display mode."""
    fp = sys.stdout if fp is None else fp
    tag = POINT_TAG[grouper.key]
    sub_tag = POINT_TAG[GroupKey.END if grouper.key == GroupKey.BEGIN
                        else GroupKey.BEGIN]
    is_detail = mode in (DisplayMode.BEGIN_DETAIL, DisplayMode.END_DETAIL)

    for group in grouper.sorted_groups(top):
        fp.write(group_line(tag, group) + "\n")
        if is_detail:
            for sub_group in group.subs.values():
                fp.write("  " + group_line(sub_tag, sub_group) + "\n")
            fp.write("\n")


def show_group_bar(grouper: PatternGrouper, top: int=20, out_fp=None,
                   title: str=None):
    """Show the path count bar chart of the top groups."""
    groups = grouper.sorted_groups(top)
    if not groups:
        return None

    pos = np.arange(len(groups))
    counts = np.array([group.count for group in groups])
    worst = np.array([float(group.min_slack) for group in groups])

    fig, axs = plt.subplots(constrained_layout=True)
    bars = axs.barh(pos, counts, color="#0077c8", ec='k')
    axs.set_yticks(pos, [group.name for group in groups], fontsize=8)
    axs.invert_yaxis()
    axs.set_xlabel("Violated path count")
    axs.set_title(title if title else
                  f"{POINT_TAG[grouper.key]} groups (top {len(groups)})")
    axs.grid(axis='x', which='both', ls=':', c='grey')
    for bar, slk in zip(bars, worst):
        y = bar.get_y() + bar.get_height() / 2
        axs.annotate(f"{slk:.3f}", xy=(bar.get_width(), y),
                     xytext=(3, 0), textcoords='offset points',
                     va='center', size=8)

    if out_fp is None:
        plt.show()
    else:
        fig.savefig(out_fp)
    plt.close(fig)
    return fig
