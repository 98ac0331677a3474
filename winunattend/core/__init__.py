# SPDX-License-Identifier: LGPL-3.0-or-later
# winunattend/core/__init__.py
from .exceptions import AssemblyError, Fatal, MediaError, WinUnattendError

__all__ = ["WinUnattendError", "Fatal", "AssemblyError", "MediaError"]
