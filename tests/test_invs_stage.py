# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
import gzip
import os
import shutil

import pytest

from invs_aid_tool.utils.common import (NA, ConfigurationError,
                                        InputValidationError, InvalidStage)
from invs_aid_tool.utils.invs_stage import (CMP_STAGES, VT_POWER_STAGES,
                                            GzipTracker, StageDef,
                                            build_catalog, get_block_root,
                                            get_design_name, get_stage,
                                            gunzip_inplace, gzip_inplace,
                                            locate_reports, resolve_stages,
                                            stage_readiness, timestamp_check,
                                            validate_invs_dirs)

CMP_FLOW = [(s.subdir, s.log) for s in CMP_STAGES]
VTP_FLOW = [(s.subdir, s.log) for s in VT_POWER_STAGES]


### Catalog


def test_build_catalog_default():
    assert build_catalog([], CMP_STAGES) is CMP_STAGES


def test_build_catalog_from_config():
    catalog = build_catalog([['a', '10_a', 'a'], ['b', '20_b', 'b_opt']],
                            CMP_STAGES)
    assert catalog == (StageDef('a', '10_a', 'a'),
                       StageDef('b', '20_b', 'b_opt'))


@pytest.mark.parametrize('stage_cfg', [
    [['a', '10_a']],
    [['a', '10_a', 'a'], ['a', '20_a', 'a']],
])
def test_build_catalog_error(stage_cfg):
    with pytest.raises(ConfigurationError):
        build_catalog(stage_cfg, CMP_STAGES)


def test_validate_invs_dirs(tmp_path):
    (tmp_path / 'run_a').mkdir()
    assert validate_invs_dirs([f"{tmp_path}/run_a/"]) == [f"{tmp_path}/run_a"]
    with pytest.raises(InputValidationError):
        validate_invs_dirs([str(tmp_path / 'none')])


### Design name


def test_design_name(tmp_path, write_rpt):
    write_rpt(str(tmp_path / 'blk' / 'scripts' / 'con' / 'block_config.tcl'),
              "set TOP 1\nset DESIGN  my_top\n")
    env = {'BLOCKPATH': str(tmp_path), 'MY_BLOCK': 'blk'}
    assert get_block_root(env) == str(tmp_path / 'blk')
    assert get_design_name(get_block_root(env)) == 'my_top'


def test_design_name_missing(tmp_path):
    assert get_block_root({}) is None
    assert get_design_name(None) == ''
    assert get_design_name(str(tmp_path)) == ''


### Stage resolution


def test_timestamp_check(tmp_path, write_rpt):
    old = write_rpt(str(tmp_path / 'a.log'), "a", mtime=1000)
    new = write_rpt(str(tmp_path / 'b.log'), "b", mtime=2000)
    assert timestamp_check(old, new)
    assert not timestamp_check(new, old)
    assert not timestamp_check(old, str(tmp_path / 'none.log'))


def test_readiness_ordered(make_run):
    full = make_run('run_a', CMP_FLOW)
    part = make_run('run_b', CMP_FLOW[:2])
    ready = stage_readiness([full, part], CMP_STAGES, ordered=True)
    assert ready == {'place': 2, 'clock': 2, 'route': 1}
    assert resolve_stages([part], CMP_STAGES, 'all', ordered=True) == \
        ['place', 'clock']


def test_readiness_stale_log(make_run):
    invs = make_run('run_a', CMP_FLOW)
    # place rerun after the clock stage
    os.utime(CMP_STAGES[0].log_path(invs), (1_800_000_000, 1_800_000_000))
    assert resolve_stages([invs], CMP_STAGES, ordered=True) == ['place']
    assert resolve_stages([invs], CMP_STAGES, ordered=False) == \
        ['place', 'clock', 'route']


def test_readiness_chain_break(make_run):
    invs = make_run('run_a', [VTP_FLOW[0], VTP_FLOW[2]])
    assert resolve_stages([invs], VT_POWER_STAGES) == ['place']


def test_resolve_explicit_stage(tmp_path):
    assert resolve_stages([str(tmp_path)], CMP_STAGES, 'route') == ['route']
    with pytest.raises(InvalidStage) as exc:
        resolve_stages([str(tmp_path)], CMP_STAGES, 'cts')
    assert 'place/clock/route/all' in str(exc.value)
    assert get_stage(CMP_STAGES, 'clock').subdir == '400_post_clock'


### Report location


def test_locate_reports(make_run):
    invs = make_run('run_a', CMP_FLOW[:1])
    rpts = locate_reports(invs, CMP_STAGES[0], 'top')
    assert not rpts.is_missing
    assert rpts.setup.endswith('timing_01/top_place.summary.gz')
    assert rpts.hold.endswith('timing_01/top_place_hold.summary.gz')
    assert rpts.vt.endswith('av_gate_count.rpt.gz')
    assert rpts.drc.endswith('invs_drc_summary.gz')
    assert rpts.power_before.endswith('Power_beforeOpt.rpt.gz')
    assert rpts.power_after.endswith('top_global.power.rpt.gz')


def test_locate_latest_timing_dir(make_run, write_rpt):
    invs = make_run('run_a', CMP_FLOW[:1])
    rpt_dir = CMP_STAGES[0].rpt_dir(invs)
    write_rpt(os.path.join(rpt_dir, 'timing_02', 'top_new.summary.gz'), "x\n")
    rpts = locate_reports(invs, CMP_STAGES[0], 'top')
    assert rpts.setup.endswith('timing_02/top_new.summary.gz')
    assert rpts.hold == NA


def test_locate_missing(tmp_path, make_run):
    rpts = locate_reports(str(tmp_path), CMP_STAGES[0], 'top')
    assert rpts.is_missing
    assert rpts.setup == rpts.vt == rpts.power_after == NA

    invs = make_run('run_a', CMP_FLOW[:1], timing_summary=True)
    rpts = locate_reports(invs, CMP_STAGES[0], 'other')
    assert rpts.setup == NA and rpts.power_after == NA
    assert rpts.vt != NA


def test_locate_timing_summary(make_run):
    invs = make_run('run_a', CMP_FLOW[:1], timing_summary=True)
    rpts = locate_reports(invs, CMP_STAGES[0], 'top', timing_summary=True)
    assert rpts.setup.endswith('rpts/invs_timing_summary')
    assert rpts.hold == rpts.setup


### In-place gzip


def test_gzip_tracker(tmp_path, write_rpt):
    fp = write_rpt(str(tmp_path / 'invs_timing_summary'), "Density: 1%\n")
    tracker = GzipTracker()
    gz_fp = tracker.compress(fp)
    assert gz_fp == fp + '.gz'
    assert not os.path.exists(fp)
    with gzip.open(gz_fp, 'rt') as f:
        assert f.read() == "Density: 1%\n"
    assert tracker.compress(gz_fp) == gz_fp
    assert tracker.compress(NA) == NA

    tracker.restore()
    assert os.path.isfile(fp) and not os.path.exists(gz_fp)
    assert tracker.files == []


def test_gzip_inplace_failure(tmp_path, write_rpt, monkeypatch):
    fp = write_rpt(str(tmp_path / 'invs_timing_summary'), "Density: 1%\n")

    def _copy_fail(fin, fout):
        fout.write(b'partial')
        raise OSError(28, 'No space left on device')

    monkeypatch.setattr(shutil, 'copyfileobj', _copy_fail)
    with pytest.raises(InputValidationError, match='invs_timing_summary'):
        gzip_inplace(fp)
    assert os.path.isfile(fp)
    assert not os.path.exists(fp + '.gz')


def test_gzip_inplace_target_exists(tmp_path, write_rpt):
    fp = write_rpt(str(tmp_path / 'invs_timing_summary'), "Density: 1%\n")
    os.mkdir(fp + '.gz')
    with pytest.raises(InputValidationError):
        GzipTracker().compress(fp)
    assert os.path.isfile(fp)


def test_gunzip_inplace_corrupt(tmp_path):
    gz_fp = str(tmp_path / 'invs_timing_summary.gz')
    with open(gz_fp, 'wb') as f:
        data = gzip.compress(b"Density: 1%\n" * 100)
        f.write(data[:-10])
    with pytest.raises(InputValidationError, match='cannot gunzip'):
        gunzip_inplace(gz_fp)
    assert os.path.isfile(gz_fp)
    assert not os.path.exists(gz_fp[:-3])
