# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
"""
Innovus Report Field Extraction

Every extractor maps a report path (or the missing sentinel) to a record
with a fixed arity. Any field which cannot be found is the sentinel.
"""
import gzip
import os
import re
import zlib

from .common import NA, NO_VIO


VT_TYPES_POWER = ('SVT8', 'LVT8', 'ULVT8', 'Instances', 'Flops',
                  'Total adjusted nand2 gates')

VT_TYPES_TIMING = ('SVT', 'SVTLL', 'LVT', 'LVTLL', 'ULVT', 'ULVTLL', 'ELVT')

TIMING_VALUES = ('WNS', 'TNS', 'Violating')

CONGESTION_RE = re.compile(r"Routing Overflow.*H.*V")


##############################################################################
### Report Access


def is_report(rpt_fp) -> bool:
    """Check the report path is not the sentinel and the file exists."""
    return rpt_fp is not None and rpt_fp != NA and os.path.isfile(rpt_fp)


def open_report(rpt_fp):
    """Open a report as a text stream (gzip detected by suffix)."""
    if os.path.splitext(rpt_fp)[1] == '.gz':
        return gzip.open(rpt_fp, mode='rt', errors='ignore')
    else:
        return open(rpt_fp, errors='ignore')


def read_lines(rpt_fp) -> list:
    """
    Read all lines of a report without the line break.

    A missing or unreadable report returns an empty list.
    """
    if not is_report(rpt_fp):
        return []
    try:
        with open_report(rpt_fp) as f:
            return [line.rstrip('\n') for line in f]
    except (OSError, EOFError, zlib.error):
        return []


##############################################################################
### VT Distribution


def get_vt_per(rpt_fp, design: str, vt_types=VT_TYPES_POWER,
               dialect: str='colon') -> list:
    """
    Extract the VT cell distribution.

    Arguments
    ---------
    rpt_fp  : the report path (av_gate_count.rpt.gz).
    design  : the design name, the contents before the first line with
              '<design>:' are skipped.
    vt_types: the category labels.
    dialect : 'colon' - value is the last colon-delimited field.
              'blank' - value is the second-to-last whitespace field.
    """
    if not is_report(rpt_fp):
        return [NA] * len(vt_types)

    lines = iter(read_lines(rpt_fp))
    anchor = f"{design}:"
    for line in lines:
        if anchor in line:
            break
    body = list(lines)

    vt_values = []
    for vt in vt_types:
        vt_re = re.compile(r"(?<=\s){}(?=\s)".format(re.escape(vt)))
        value = NA
        for line in body:
            if vt_re.search(line):
                if dialect == 'colon':
                    value = line.split(':')[-1].strip() or NA
                else:
                    toks = line.split()
                    value = toks[-2] if len(toks) > 1 else NA
                break
        vt_values.append(value)
    return vt_values


##############################################################################
### Power / Density / Congestion / Violation


def get_power(rpt_fp) -> str:
    """Total power (the last token of the 'Total Power:' line)."""
    for line in read_lines(rpt_fp):
        if 'Total Power:' in line:
            return line.split()[-1]
    return NA


def get_density(rpt_fp) -> str:
    """Density of the timing summary."""
    if 'invs_timing_summary' in os.path.basename(str(rpt_fp)):
        for line in read_lines(rpt_fp):
            if 'Density' in line:
                return line.split()[-1]
    else:
        for line in read_lines(rpt_fp):
            if 'Density:' not in line:
                continue
            toks = line.split()
            for i, tok in enumerate(toks[:-1]):
                if 'Density:' in tok:
                    return toks[i+1]
    return NA


def get_congestion(rpt_fp) -> str:
    """Routing overflow summary (H and V)."""
    for line in read_lines(rpt_fp):
        if CONGESTION_RE.search(line) and len(toks:=line.split()) >= 5:
            return f"{toks[-5]} {toks[-4]}  {toks[-2]} {toks[-1]}"
    return NA


def get_violation(rpt_fp) -> tuple:
    """
    Metal short and total DRC count.

    Returns
    -------
    (shorts, drcs): '-' if the report is missing, 'No Violation' if the
                    report exists without the pattern.
    """
    if not is_report(rpt_fp):
        return NA, NA

    shorts, total = None, None
    for line in read_lines(rpt_fp):
        toks = line.split()
        if shorts is None and 'Metal Short' in line and len(toks) > 3:
            shorts = toks[3]
        if total is None and 'Total' in line and len(toks) > 2:
            total = toks[2]
    return (NO_VIO if shorts is None else shorts,
            NO_VIO if total is None else total)


##############################################################################
### Timing Summary


def _split_row(line: str) -> list:
    return line.split('|')


def _is_table_line(line: str) -> bool:
    sline = line.strip()
    return sline.startswith('|') or sline.startswith('+')


def get_path_groups(mode: str, rpt_fp) -> list:
    """Return the path group names of the mode tables in the report."""
    groups = []
    for line in read_lines(rpt_fp):
        if mode in line:
            for cell in _split_row(line)[2:-1]:
                if (cell:=cell.strip()) and cell not in groups:
                    groups.append(cell)
    return groups


def get_combined_path_groups(mode: str, rpt_fps) -> list:
    """Return the union of the path groups in all reports (sorted)."""
    groups = set()
    for rpt_fp in rpt_fps:
        groups.update(get_path_groups(mode, rpt_fp))
    return sorted(groups)


def _table_cell(lines, mode: str, path_group: str, value: str) -> str:
    IDLE, SECT = range(2)
    state, col, out = IDLE, None, NA

    for line in lines:
        if mode in line:
            state, col = SECT, None
            for i, cell in enumerate(_split_row(line)[2:-1], 2):
                if path_group in cell:
                    col = i
                    break
        elif state == SECT:
            if not _is_table_line(line):
                state = IDLE
                continue
            toks = _split_row(line)
            if len(toks) < 2 or value not in toks[1]:
                continue
            if col is not None and col < len(toks):
                out = toks[col].strip() or NA
            else:
                out = NA
            state = IDLE
    return out


def get_wns_tns_vp(mode: str, path_group: str, value: str, rpt_fp) -> str:
    """
    Return one cell of the timing summary table.

    The section of the mode starts from the header line with the mode
    label and stops at the first non-table line or the matched row.

    Arguments
    ---------
    mode       : the table header label, ex: 'Setup mode', 'Hold mode'.
    path_group : the column header, ex: 'all', 'reg2reg'.
    value      : the row label, ex: 'WNS', 'TNS', 'Violating'.
    """
    return _table_cell(read_lines(rpt_fp), mode, path_group, value)


def get_timing_record(mode: str, path_groups, rpt_fp) -> dict:
    """Return {path_group: 'wns/tns/vp'} of a timing summary report."""
    lines = read_lines(rpt_fp)
    record = {}
    for group in path_groups:
        record[group] = '/'.join(
            _table_cell(lines, mode, group, value) for value in TIMING_VALUES)
    return record
