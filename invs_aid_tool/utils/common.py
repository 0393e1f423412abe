# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
"""
Common Definition for Innovus Report Extraction
"""
import os
import sys

PKG_VERSION = "invs-aid-tool 1.0.0"
INVS_CMP_VER = "1.2.0"
INVS_VTP_VER = "1.1.0"
RPT_PAT_VER = "1.1.0"

NA = '-'                # missing-value sentinel
NO_VIO = 'No Violation'

DEFAULT_COL_WIDTH = 30


##############################################################################
### Exception


class ToolError(Exception):
    """Base class of the fatal errors."""


class ConfigurationError(ToolError):
    """Invalid option, option conflict or config syntax error."""


class InvalidStage(ConfigurationError):
    """Unknown PnR stage name."""
    def __init__(self, stage: str, catalog):
        self.stage = stage
        self.catalog = tuple(catalog)
        super().__init__(
            "Please enter valid pnr stage <{}/all> (got '{}')".format(
                '/'.join(self.catalog), stage))


class InputValidationError(ToolError):
    """Input directory or file is not valid."""


class OutputWriteError(ToolError):
    """Output file cannot be created."""


##############################################################################
### Message


def info(msg: str):
    print(f" [INFO] {msg}")


def warning(msg: str):
    print(f" [WARNING] {msg}")


def error(msg: str):
    print(f"ERROR :: {msg}", file=sys.stderr)


##############################################################################
### Config


def find_cfg(cfg_fp, is_nocfg: bool=False, default_cfg: str=None):
    """Return the config path to load (None if no config)."""
    if is_nocfg:
        return None
    if cfg_fp is None and default_cfg is not None and os.path.isfile(default_cfg):
        return default_cfg
    return cfg_fp


def load_cfg(cfg_fp, attr: dict, multi: set=None) -> dict:
    """
    Load the configuration.

    Arguments
    ---------
    cfg_fp : the config file path (None: return default values).
    attr   : {key: (attribute, default value)}, the value type follows
             the default value (bool/int/str).
    multi  : the keys which can be declared repeatedly, the values are
             collected into a list of the split tokens.

    Returns
    -------
    A dictionary of the attributes.
    """
    multi = set() if multi is None else multi
    cfg = {name: value for name, value in attr.values()}
    for key in multi:
        cfg[key] = []

    if cfg_fp is None:
        return cfg

    try:
        fp = open(cfg_fp, 'r')
    except OSError as e:
        raise ConfigurationError(f"cannot open config '{cfg_fp}' ({e.strerror})")

    with fp:
        for fno, line in enumerate(fp, 1):
            line = line.split('#')[0].strip()
            if not line:
                continue
            key, sep, value = line.partition(':')
            key, value = key.strip(), value.strip()
            if not sep or not value:
                raise ConfigurationError(
                    f"config syntax error ({cfg_fp}:{fno})")
            if key in multi:
                cfg[key].append(value.split())
            elif key in attr:
                name, default = attr[key]
                try:
                    cfg[name] = _cast_value(value, default)
                except ValueError:
                    raise ConfigurationError(
                        f"config value error ({cfg_fp}:{fno}): {key}: {value}")
            else:
                raise ConfigurationError(
                    f"unknown config key '{key}' ({cfg_fp}:{fno})")
    return cfg


def _cast_value(value: str, default):
    if isinstance(default, bool):
        match value.lower():
            case 'true' | 'yes' | '1': return True
            case 'false' | 'no' | '0': return False
            case _: raise ValueError(value)
    if isinstance(default, int):
        return int(value)
    return value
