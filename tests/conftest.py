# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
import gzip
import os

import matplotlib
matplotlib.use('Agg')

import pytest

DESIGN = 'top'

SETUP_SUMMARY = """\
+--------------------+---------+---------+---------+
|     Setup mode     |   all   | reg2reg | default |
+--------------------+---------+---------+---------+
|           WNS (ns):| -0.123  | -0.050  |  0.010  |
|           TNS (ns):| -1.234  | -0.500  |  0.000  |
|    Violating Paths:|   12    |    5    |    0    |
|          All Paths:|  1000   |   800   |   200   |
+--------------------+---------+---------+---------+

Density: 65.432%
Routing Overflow: 0.01% H and 0.02% V
"""

HOLD_SUMMARY = """\
+--------------------+---------+---------+
|     Hold mode      |   all   | reg2reg |
+--------------------+---------+---------+
|           WNS (ns):| -0.010  | -0.010  |
|           TNS (ns):| -0.020  | -0.020  |
|    Violating Paths:|    2    |    2    |
+--------------------+---------+---------+
"""

VT_REPORT_TIMING = """\
Gate count report
top:
  Type        Count     Area    Ratio
  SVT         100       10.0    20.5  %
  LVT         300       30.0    61.5  %
  ULVT        50        5.0     18.0  %
"""

VT_REPORT_POWER = """\
Gate count report
top:
   SVT8   42.5 : 10.2
   LVT8   30.0 : 7.1
   Instances : 1234
   Flops : 56
   Total adjusted nand2 gates : 98765
"""

DRC_REPORT = """\
Verify DRC summary
  Metal Short : 12
  Total : 30
"""

POWER_BEFORE = "Total Power: 1.234\n"
POWER_AFTER = "Total Power:   1.111\n"


def write_text(fp, text: str, mtime: float=None):
    """Write a plain or gzip (by suffix) text file."""
    os.makedirs(os.path.dirname(fp), exist_ok=True)
    if fp.endswith('.gz'):
        with gzip.open(fp, 'wt') as f:
            f.write(text)
    else:
        with open(fp, 'w') as f:
            f.write(text)
    if mtime is not None:
        os.utime(fp, (mtime, mtime))
    return fp


@pytest.fixture
def write_rpt():
    return write_text


@pytest.fixture
def make_run(tmp_path):
    """
    Factory of the invs run directory.

    stages : [(subdir, log)] in the flow order, the logs are created with
             increasing modification time.
    """
    def _make_run(name, stages, design=DESIGN, timing_summary=False,
                  vt_text=VT_REPORT_TIMING):
        invs = tmp_path / name
        invs.mkdir()
        base_time = 1_700_000_000
        for i, (subdir, log) in enumerate(stages):
            root = str(invs / subdir)
            write_text(os.path.join(root, 'logs', f"{log}.log.gz"),
                       f"{log} done\n", mtime=base_time + i * 100)
            rpts = os.path.join(root, 'rpts')
            tdir = os.path.join(rpts, 'timing_01')
            write_text(os.path.join(tdir, f"{design}_{log}.summary.gz"),
                       SETUP_SUMMARY)
            write_text(os.path.join(tdir, f"{design}_{log}_hold.summary.gz"),
                       HOLD_SUMMARY)
            if timing_summary:
                write_text(os.path.join(rpts, 'invs_timing_summary'),
                           SETUP_SUMMARY)
            write_text(os.path.join(rpts, 'av_gate_count.rpt.gz'),
                       vt_text)
            write_text(os.path.join(rpts, 'invs_drc_summary.gz'), DRC_REPORT)
            write_text(os.path.join(rpts, 'Power_beforeOpt.rpt.gz'),
                       POWER_BEFORE)
            write_text(os.path.join(rpts, f"{design}_global.power.rpt.gz"),
                       POWER_AFTER)
        return str(invs)
    return _make_run
