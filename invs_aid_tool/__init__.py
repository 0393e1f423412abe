# -*- coding: utf-8 -*-
# SPDX-License-Identifier: GPL-2.0-only
#
# Copyright (C) 2024 Yeh, Hsin-Hsien <yhh76227@gmail.com>
#
"""
Innovus PnR data extraction tools.
"""
from .utils.common import PKG_VERSION

__version__ = PKG_VERSION
