# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
"""
PnR Stage Resolution and Report Location

Directory layout of an invs run:

    <invs>/<stage_subdir>/logs/<stage_log>.log.gz
    <invs>/<stage_subdir>/rpts/...
"""
import glob
import gzip
import os
import shutil
import zlib
from dataclasses import dataclass, field

from .common import NA, ConfigurationError, InputValidationError, InvalidStage, info

BLOCK_CFG = os.path.join('scripts', 'con', 'block_config.tcl')


##############################################################################
### Stage Definition


@dataclass(frozen=True)
class StageDef:
    """PnR stage definition."""
    name:   str  # stage name
    subdir: str  # stage directory under the invs directory
    log:    str  # log file stem

    def log_path(self, invs: str) -> str:
        return os.path.join(invs, self.subdir, 'logs', f"{self.log}.log.gz")

    def rpt_dir(self, invs: str) -> str:
        return os.path.join(invs, self.subdir, 'rpts')


CMP_STAGES = (
    StageDef('place', '100_place',      'place'),
    StageDef('clock', '400_post_clock', 'post_clock'),
    StageDef('route', '600_route_opt',  'route_opt'),
)

VT_POWER_STAGES = (
    StageDef('place',      '100_place',      'place'),
    StageDef('clock',      '300_clock',      'clock'),
    StageDef('post_clock', '400_post_clock', 'post_clock'),
    StageDef('route',      '500_route',      'route'),
    StageDef('route_opt',  '600_route_opt',  'route_opt'),
)


def build_catalog(stage_cfg: list, default: tuple) -> tuple:
    """
    Build the stage catalog from the config 'stage:' entries.

    Each entry is a token list: [name, subdir, log].
    """
    if not stage_cfg:
        return default
    catalog = []
    for toks in stage_cfg:
        if len(toks) != 3:
            raise ConfigurationError(
                "stage config format: 'stage: <name> <subdir> <log>'")
        if toks[0] in {s.name for s in catalog}:
            raise ConfigurationError(f"stage '{toks[0]}' redefined")
        catalog.append(StageDef(*toks))
    return tuple(catalog)


##############################################################################
### Input Check


def validate_invs_dirs(invs_dirs) -> list:
    """Check the invs directories and strip the trailing '/'."""
    dirs = []
    for invs in invs_dirs:
        if not os.path.isdir(invs):
            raise InputValidationError(f"'{invs}' is not a directory")
        dirs.append(invs.rstrip('/') or '/')
    return dirs


def get_design_name(block_root) -> str:
    """
    Get the design name from the block config.

    Returns the 3rd token of the 'set DESIGN ' line, empty string if the
    config or the line doesn't exist.
    """
    if block_root is None:
        return ''
    cfg_fp = os.path.join(block_root, BLOCK_CFG)
    try:
        with open(cfg_fp, errors='ignore') as f:
            for line in f:
                if 'set DESIGN ' in line:
                    toks = line.split()
                    return toks[2] if len(toks) > 2 else ''
    except OSError:
        pass
    return ''


def get_block_root(env=None):
    """$BLOCKPATH/$MY_BLOCK (None if the environment is not set)."""
    env = os.environ if env is None else env
    block_path, block = env.get('BLOCKPATH'), env.get('MY_BLOCK')
    if not block_path or not block:
        return None
    return os.path.join(block_path.strip(), block.strip())


##############################################################################
### Stage Resolution


def timestamp_check(file_1: str, file_2: str) -> bool:
    """True if both files exist and file_1 is older than file_2."""
    try:
        return os.stat(file_1).st_mtime < os.stat(file_2).st_mtime
    except OSError:
        return False


def stage_readiness(invs_dirs, catalog, ordered: bool=False) -> dict:
    """
    Count the ready runs of each stage.

    A stage is ready for a run only if the previous stage is ready, the
    stage log exists and (ordered mode) the previous stage log is older.
    """
    ready = {stage.name: 0 for stage in catalog}
    for invs in invs_dirs:
        prev_log = None
        for stage in catalog:
            log = stage.log_path(invs)
            if not os.path.exists(log):
                break
            if ordered and prev_log is not None and \
               not timestamp_check(prev_log, log):
                break
            ready[stage.name] += 1
            prev_log = log
    return ready


def resolve_stages(invs_dirs, catalog, mode: str='all',
                   ordered: bool=False) -> list:
    """Return the stage names to process (catalog order)."""
    names = [stage.name for stage in catalog]
    if mode in ('all', '', None):
        ready = stage_readiness(invs_dirs, catalog, ordered)
        return [name for name in names if ready[name] >= 1]
    elif mode in names:
        return [mode]
    else:
        raise InvalidStage(mode, names)


def get_stage(catalog, name: str) -> StageDef:
    for stage in catalog:
        if stage.name == name:
            return stage
    raise InvalidStage(name, [stage.name for stage in catalog])


##############################################################################
### Report Location


@dataclass
class RunReports:
    """Report paths of one run in one stage ('-': missing)."""
    rpt_dir:      str = NA
    timing_dir:   str = NA
    setup:        str = NA
    hold:         str = NA
    vt:           str = NA
    drc:          str = NA
    power_before: str = NA
    power_after:  str = NA

    @property
    def is_missing(self) -> bool:
        return self.rpt_dir == NA


def latest_match(dir_path: str, pattern: str, exclude: str=None,
                 is_dir: bool=False) -> str:
    """
    Return the lexicographically last match of the pattern in the directory.
    """
    if dir_path == NA or not os.path.isdir(dir_path):
        return NA
    matches = sorted(glob.glob(os.path.join(glob.escape(dir_path), pattern)))
    if exclude is not None:
        matches = [fp for fp in matches if exclude not in os.path.basename(fp)]
    if is_dir:
        matches = [fp for fp in matches if os.path.isdir(fp)]
    else:
        matches = [fp for fp in matches if os.path.isfile(fp)]
    return matches[-1] if matches else NA


def locate_reports(invs: str, stage: StageDef, design: str,
                   timing_summary: bool=False) -> RunReports:
    """Locate the reports of one run in one stage."""
    rpt_dir = stage.rpt_dir(invs)
    if not os.path.isdir(rpt_dir):
        return RunReports()

    design = glob.escape(design)
    reports = RunReports(rpt_dir=rpt_dir)
    reports.timing_dir = latest_match(rpt_dir, 'timing_0*', is_dir=True)

    if timing_summary:
        reports.setup = latest_match(rpt_dir, 'invs_timing_summary*')
        reports.hold = reports.setup
    else:
        reports.setup = latest_match(reports.timing_dir,
                                     f"{design}*.summary.gz",
                                     exclude='hold.summary')
        reports.hold = latest_match(reports.timing_dir,
                                    f"{design}*hold.summary.gz")

    reports.vt = latest_match(rpt_dir, 'av_gate_count.rpt.gz')
    reports.drc = latest_match(rpt_dir, 'invs_drc_summary.gz')
    reports.power_before = latest_match(rpt_dir, 'Power_beforeOpt.rpt.gz')
    reports.power_after = latest_match(rpt_dir, f"{design}*global.power.rpt.gz")
    return reports


##############################################################################
### In-place Compression


@dataclass
class GzipTracker:
    """
    Track the reports compressed in place (opt-in side effect).

    The reports are restored by 'restore' after the stage is emitted.
    """
    files: list = field(default_factory=list)

    def compress(self, rpt_fp: str) -> str:
        if rpt_fp == NA or rpt_fp.endswith('.gz'):
            return rpt_fp
        gz_fp = gzip_inplace(rpt_fp)
        self.files.append(gz_fp)
        info(f"gzipped {rpt_fp}")
        return gz_fp

    def restore(self):
        while self.files:
            gz_fp = self.files.pop()
            gunzip_inplace(gz_fp)
            info(f"gunzipped {gz_fp}")


def gzip_inplace(rpt_fp: str) -> str:
    """Compress a file in place (like 'gzip <file>')."""
    gz_fp = rpt_fp + '.gz'
    if os.path.lexists(gz_fp):
        raise InputValidationError(
            f"cannot gzip '{rpt_fp}', '{gz_fp}' already exists")
    try:
        with open(rpt_fp, 'rb') as fin, gzip.open(gz_fp, 'wb') as fout:
            shutil.copyfileobj(fin, fout)
        shutil.copystat(rpt_fp, gz_fp)
    except OSError as e:
        _remove_partial(gz_fp)
        raise InputValidationError(f"cannot gzip '{rpt_fp}' ({e})")
    os.remove(rpt_fp)
    return gz_fp


def gunzip_inplace(gz_fp: str) -> str:
    """Decompress a file in place (like 'gunzip <file>')."""
    rpt_fp = gz_fp[:-3] if gz_fp.endswith('.gz') else gz_fp + '.out'
    if os.path.lexists(rpt_fp):
        raise InputValidationError(
            f"cannot gunzip '{gz_fp}', '{rpt_fp}' already exists")
    try:
        with gzip.open(gz_fp, 'rb') as fin, open(rpt_fp, 'wb') as fout:
            shutil.copyfileobj(fin, fout)
        shutil.copystat(gz_fp, rpt_fp)
    except (OSError, EOFError, zlib.error) as e:
        _remove_partial(rpt_fp)
        raise InputValidationError(f"cannot gunzip '{gz_fp}' ({e})")
    os.remove(gz_fp)
    return rpt_fp


def _remove_partial(fp: str):
    if os.path.isfile(fp):
        os.remove(fp)
