# Semantic Similarity Engine - Find near-duplicate functions and types
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Semantic Similarity Engine - Find near-duplicate functions and types.

Compares every function and every class of a resolved program model by
structure and behaviour (calls made, operations used, control flow,
member shape) and reports groups that look like copies of each other.

Parsing is left to a front-end: the engine consumes a ProgramModel.
"""

__version__ = "0.1.0"

from .cancellation import CancellationToken, OperationCancelled
from .config import SimilaritySettings, load_config, find_config_file
from .models import (
    FunctionFeatureSet,
    TypeFeatureSet,
    FunctionSimilarityResult,
    TypeSimilarityResult,
    SimilarMatch,
)
from .program import ProgramModel, InMemoryProgramModel
from .reporter import report_results
from .service import SimilarityService
from .snapshot import load_snapshot

__all__ = [
    "__version__",
    "CancellationToken",
    "OperationCancelled",
    "SimilaritySettings",
    "load_config",
    "find_config_file",
    "FunctionFeatureSet",
    "TypeFeatureSet",
    "FunctionSimilarityResult",
    "TypeSimilarityResult",
    "SimilarMatch",
    "ProgramModel",
    "InMemoryProgramModel",
    "report_results",
    "SimilarityService",
    "load_snapshot",
]
