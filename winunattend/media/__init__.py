# SPDX-License-Identifier: LGPL-3.0-or-later
# winunattend/media/__init__.py
from .injector import inject_answer_file
from .pipeline import STEPS, MediaPipeline, PipelineResult
from .services import BulkCopier, ImageBuilder, ImageMounter

__all__ = [
    "MediaPipeline",
    "PipelineResult",
    "STEPS",
    "inject_answer_file",
    "ImageMounter",
    "BulkCopier",
    "ImageBuilder",
]
