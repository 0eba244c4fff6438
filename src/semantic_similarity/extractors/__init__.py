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
Feature extraction for functions and types.
"""

from .base import BaseExtractor
from .function_extractor import FunctionFeatureExtractor
from .type_extractor import TypeFeatureExtractor, ANALYZED_KINDS

__all__ = [
    "BaseExtractor",
    "FunctionFeatureExtractor",
    "TypeFeatureExtractor",
    "ANALYZED_KINDS",
]
