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
Base extractor interface.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import logging

from ..cancellation import CancellationToken, OperationCancelled
from ..program import Document, Project

logger = logging.getLogger(__name__)


class BaseExtractor(ABC):
    """Turns one declaration into a feature set, or None when it does not qualify."""

    @abstractmethod
    def is_candidate(self, declaration: Any) -> bool:
        """Cheap eligibility check made before any analysis."""
        pass

    @abstractmethod
    def extract(
        self,
        declaration: Any,
        document: Document,
        project: Optional[Project] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[Any]:
        """
        Extract features from a declaration.

        Args:
            declaration: The function or type to analyze
            document: Document that holds the declaration
            project: Owning project (gives the home assembly)
            cancellation: Checked while walking the declaration

        Returns:
            A feature set, or None if the declaration is skipped
        """
        pass

    def try_extract(
        self,
        declaration: Any,
        document: Document,
        project: Optional[Project] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[Any]:
        """extract(), with failures logged and turned into None."""
        try:
            return self.extract(declaration, document, project, cancellation)
        except OperationCancelled:
            raise
        except Exception as e:
            name = getattr(declaration, "qualified_name", "<unknown>")
            logger.warning(f"Failed to extract features for {name} in {document.file_path}: {e}", exc_info=True)
            return None
