# SPDX-License-Identifier: LGPL-3.0-or-later
# winunattend/unattend/__init__.py
from .assembler import AssembledDocument, Assembler
from .passes import PASS_MAPPING, Fragment, FragmentStore, Pass

__all__ = ["Assembler", "AssembledDocument", "Pass", "PASS_MAPPING", "Fragment", "FragmentStore"]
