# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
"""
Compare Table for Multiple Invs Directories

A compare table has one row per metric field and one column per invs
directory (in the input order). A missing report keeps its column and
fills every row with the sentinel.
"""
import math
import os
import sys
from dataclasses import dataclass, field

import openpyxl
from openpyxl.formatting.rule import CellIsRule
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from .common import NA, OutputWriteError
from .invs_rpt import (VT_TYPES_POWER, get_combined_path_groups,
                       get_congestion, get_density, get_power,
                       get_timing_record, get_vt_per, get_violation,
                       is_report)

ELLIPSIS = '...'
BANNER_WIDTH = 149

# path segment offset (from the end) of the invs directory name
#   timing        : <invs>/<stage>/rpts/timing_0*/<design>*.summary.gz
#   timing_summary: <invs>/<stage>/rpts/invs_timing_summary*
#   vt/power/drc  : <invs>/<stage>/rpts/<report>
LABEL_OFFSET = {
    'timing':         5,
    'timing_summary': 4,
    'vt':             4,
    'power':          4,
    'drc':            4,
}


##############################################################################
### Table Aggregation


@dataclass
class CmpTable:
    """Compare table container."""
    title:  str
    labels: list                                # column labels
    rows:   list = field(default_factory=list)  # [(name, [cell, ...]), ...]

    def add_row(self, name: str, cells):
        cells = list(cells)
        if len(cells) != len(self.labels):
            raise ValueError(
                f"row '{name}' has {len(cells)} cells " +
                f"(expect {len(self.labels)})")
        self.rows.append((name, cells))

    @property
    def col_cnt(self) -> int:
        return len(self.labels)


def derive_run_label(rpt_fp, kind: str) -> str:
    """Return the invs directory name of a report path."""
    if not is_report(rpt_fp):
        return NA
    if kind == 'timing' and \
       'invs_timing_summary' in os.path.basename(str(rpt_fp)):
        kind = 'timing_summary'
    toks = str(rpt_fp).split('/')
    offset = LABEL_OFFSET[kind]
    return toks[-offset] if len(toks) >= offset else NA


def build_timing_table(mode: str, rpt_fps: list) -> CmpTable:
    """Timing table (row: path group, cell: wns/tns/vp)."""
    groups = get_combined_path_groups(mode, rpt_fps)
    records = [get_timing_record(mode, groups, fp) for fp in rpt_fps]
    table = CmpTable(f"{mode} (wns/tns/vp)",
                     [derive_run_label(fp, 'timing') for fp in rpt_fps])
    for group in groups:
        table.add_row(group, [record[group] for record in records])
    return table


def build_density_table(rpt_fps: list) -> CmpTable:
    table = CmpTable("Density",
                     [derive_run_label(fp, 'timing') for fp in rpt_fps])
    table.add_row("Density (%)", [get_density(fp) for fp in rpt_fps])
    return table


def build_congestion_table(rpt_fps: list) -> CmpTable:
    table = CmpTable("Congestion",
                     [derive_run_label(fp, 'timing') for fp in rpt_fps])
    table.add_row("Routing Overflow", [get_congestion(fp) for fp in rpt_fps])
    return table


def build_violation_table(rpt_fps: list) -> CmpTable:
    table = CmpTable("Violation",
                     [derive_run_label(fp, 'drc') for fp in rpt_fps])
    vios = [get_violation(fp) for fp in rpt_fps]
    table.add_row("Shorts", [vio[0] for vio in vios])
    table.add_row("DRCs", [vio[1] for vio in vios])
    return table


def build_vt_table(rpt_fps: list, design: str, vt_types=VT_TYPES_POWER,
                   dialect: str='colon') -> CmpTable:
    table = CmpTable("VT Table (%)",
                     [derive_run_label(fp, 'vt') for fp in rpt_fps])
    values = [get_vt_per(fp, design, vt_types, dialect) for fp in rpt_fps]
    for i, vt in enumerate(vt_types):
        table.add_row(vt, [vt_list[i] for vt_list in values])
    return table


def build_power_table(rpt_sets: dict) -> CmpTable:
    """
    Power table.

    rpt_sets: {row label: [report path of each run]}, the column label
              is the first existing report of the run.
    """
    labels = None
    for rpt_fps in rpt_sets.values():
        run_labels = [derive_run_label(fp, 'power') for fp in rpt_fps]
        if labels is None:
            labels = run_labels
        else:
            labels = [new if old == NA else old
                      for old, new in zip(labels, run_labels)]

    table = CmpTable("Power", [] if labels is None else labels)
    for label, rpt_fps in rpt_sets.items():
        table.add_row(label, [get_power(fp) for fp in rpt_fps])
    return table


##############################################################################
### Text / CSV Output


def fit(text, width: int) -> str:
    """Truncate the text to the width with the ellipsis."""
    text = str(text)
    if len(text) > width:
        return text[:max(width-len(ELLIPSIS), 0)] + ELLIPSIS
    return text


def draw_stage_banner(stage: str, subdir: str, fp=None):
    fp = sys.stdout if fp is None else fp
    div = "+{}+".format("-" * BANNER_WIDTH)
    msg = "{}    Stage {} ({})".format(">" * 21, stage, subdir)
    fp.write(f"\n{div}\n|{msg.center(BANNER_WIDTH)}|\n{div}\n")


def draw_table(table: CmpTable, col_width: int, field_width: int, fp=None):
    """Draw the fixed-width bordered table."""
    fp = sys.stdout if fp is None else fp
    div = "+{}+{}".format("-" * (field_width+2),
                          ("-" * (col_width+2) + "+") * table.col_cnt)

    def row_str(name, cells):
        line = "|  {}|".format(fit(name, field_width).ljust(field_width))
        for cell in cells:
            line += "  {}|".format(fit(cell, col_width).ljust(col_width))
        return line

    fp.write(f"{div}\n{row_str(table.title, table.labels)}\n{div}\n")
    for name, cells in table.rows:
        fp.write(row_str(name, cells) + "\n")
    fp.write(f"{div}\n")


def write_csv_stage(subdir: str, fp):
    fp.write(f"Stage {subdir},,\n")


def write_csv_table(table: CmpTable, fp):
    """Write the table as CSV (no truncation, no quoting)."""
    fp.write(",".join([table.title, *table.labels]) + "\n")
    for name, cells in table.rows:
        fp.write(",".join([name, *cells]) + "\n")
    fp.write("\n")


##############################################################################
### Excel Output


BOLD_FONT1 = Font(bold=True)
RED_FONT1 = Font(color='ffcc0000')

RED_FILL1 = PatternFill(fill_type='solid', start_color='ffffcccc')
PURPLE_FILL1 = PatternFill(fill_type='solid', start_color='ffdedce6')
GREEN_FILL1 = PatternFill(fill_type='solid', start_color='ff92d050')

THIN_BLACK_SIDE = Side(border_style='thin', color='ff000000')
THIN_GREY_SIDE = Side(border_style='thin', color='ff808080')
AR_BORDER1 = Border(left=THIN_BLACK_SIDE, right=THIN_BLACK_SIDE,
                    top=THIN_BLACK_SIDE, bottom=THIN_BLACK_SIDE)
AR_BORDER2 = Border(left=THIN_GREY_SIDE, right=THIN_GREY_SIDE,
                    top=THIN_GREY_SIDE, bottom=THIN_GREY_SIDE)

LC_ALIGN = Alignment(horizontal='left', vertical='center', wrapText=True)
CC_ALIGN = Alignment(horizontal='center', vertical='center', wrapText=True)
RC_ALIGN = Alignment(horizontal='right', vertical='center', wrapText=True)


def _xls_value(value: str):
    try:
        num = float(value)
    except ValueError:
        return value
    return num if math.isfinite(num) else value


class XlsxBook:
    """
    Excel workbook of the compare tables (one worksheet per stage).
    """
    def __init__(self, out_fp: str):
        self.out_fp = out_fp
        self.wb = openpyxl.Workbook()
        self.wb.remove(self.wb.worksheets[0])
        self._ws = None
        self._rid = 1

    def add_stage(self, stage: str, subdir: str):
        self._ws = self.wb.create_sheet(title=stage[:31])
        self._ws.column_dimensions['A'].width = 32
        cell = self._ws.cell(1, 1, f"Stage {subdir}")
        cell.font = BOLD_FONT1
        self._rid = 3

    def add_table(self, table: CmpTable):
        ws, rid = self._ws, self._rid

        for cid, title in enumerate([table.title, *table.labels], 1):
            cell = ws.cell(rid, cid, title)
            cell.fill = GREEN_FILL1 if cid == 1 else PURPLE_FILL1
            cell.border = AR_BORDER1
            cell.alignment = CC_ALIGN
            if cid > 1:
                ws.column_dimensions[cell.column_letter].width = 24

        data_st = rid + 1
        for rid, (name, cells) in enumerate(table.rows, data_st):
            cell = ws.cell(rid, 1, name)
            cell.border = AR_BORDER2
            cell.alignment = LC_ALIGN
            for cid, value in enumerate(cells, 2):
                cell = ws.cell(rid, cid, _xls_value(value))
                cell.border = AR_BORDER2
                cell.alignment = (RC_ALIGN if isinstance(cell.value, float)
                                  else CC_ALIGN)

        if table.rows and table.col_cnt:
            last_col = ws.cell(rid, table.col_cnt+1).column_letter
            ws.conditional_formatting.add(
                f"B{data_st}:{last_col}{rid}",
                CellIsRule(operator='<', formula=[0.0],
                           font=RED_FONT1, fill=RED_FILL1))
        self._rid = rid + 2

    def save(self):
        if not self.wb.worksheets:
            self.wb.create_sheet(title='summary')
        try:
            self.wb.save(self.out_fp)
        except OSError as e:
            raise OutputWriteError(
                f"Cannot open file '{self.out_fp}' for writing: {e.strerror}")


##############################################################################
### Output Control


class CmpOutput:
    """
    Dispatch the compare tables to the console, CSV and Excel outputs.
    """
    def __init__(self, col_width: int, field_width: int, csv_fp: str=None,
                 xlsx_fp: str=None, fp=None):
        self.col_width = col_width
        self.field_width = field_width
        self.fp = sys.stdout if fp is None else fp
        self.csv = None
        self.book = None if xlsx_fp is None else XlsxBook(xlsx_fp)
        if csv_fp is not None:
            try:
                self.csv = open(csv_fp, 'w')
            except OSError as e:
                raise OutputWriteError(
                    f"Cannot open file '{csv_fp}' for writing: {e.strerror}")

    def stage(self, stage: str, subdir: str):
        draw_stage_banner(stage, subdir, self.fp)
        if self.csv is not None:
            write_csv_stage(subdir, self.csv)
        if self.book is not None:
            self.book.add_stage(stage, subdir)

    def table(self, table: CmpTable):
        self.fp.write("\n")
        draw_table(table, self.col_width, self.field_width, self.fp)
        if self.csv is not None:
            write_csv_table(table, self.csv)
        if self.book is not None:
            self.book.add_table(table)

    def close(self):
        if self.csv is not None:
            self.csv.close()
            self.csv = None
        if self.book is not None:
            self.book.save()
            self.book = None
