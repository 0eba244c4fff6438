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
Parallel feature extraction over a program model.

Projects are processed on a thread pool, the documents of each project
on a nested pool of the same size, and the declarations of a document
serially. Feature sets go into one lock-guarded collection. A failing
unit is logged and skipped; only cancellation stops the whole run.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Optional, TypeVar
import logging
import threading

from .cancellation import CancellationToken, OperationCancelled, ensure_token
from .extractors import BaseExtractor, FunctionFeatureExtractor, TypeFeatureExtractor
from .models import FunctionFeatureSet, TypeFeatureSet
from .program import Document, ProgramModel, Project

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeatureCollection:
    """Append-only, thread-safe list of extracted feature sets."""

    def __init__(self):
        self._items: list = []
        self._lock = threading.Lock()

    def add(self, item) -> None:
        with self._lock:
            self._items.append(item)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def sorted_items(self) -> list:
        """Items in a reproducible order (file, line, name)."""
        with self._lock:
            items = list(self._items)
        return sorted(items, key=lambda f: (f.file_path, f.start_line, f.qualified_name))


def index_functions(
    program_model: ProgramModel,
    extractor: FunctionFeatureExtractor,
    cancellation: Optional[CancellationToken] = None,
    max_workers: int = 1,
) -> List[FunctionFeatureSet]:
    """
    Extract features for every qualifying function.

    Args:
        program_model: Source of projects and documents
        extractor: Function feature extractor
        cancellation: Aborts the whole run when triggered
        max_workers: Concurrency bound for projects and for documents

    Returns:
        Feature sets sorted by file, line and name

    Raises:
        OperationCancelled: If cancellation is triggered
    """
    return _index(
        program_model,
        declarations=lambda document: document.iter_functions(),
        extractor=extractor,
        token=ensure_token(cancellation),
        max_workers=max_workers,
        unit="method",
    )


def index_types(
    program_model: ProgramModel,
    extractor: TypeFeatureExtractor,
    cancellation: Optional[CancellationToken] = None,
    max_workers: int = 1,
) -> List[TypeFeatureSet]:
    """Extract features for every qualifying type; see index_functions."""
    return _index(
        program_model,
        declarations=lambda document: document.iter_types(),
        extractor=extractor,
        token=ensure_token(cancellation),
        max_workers=max_workers,
        unit="type",
    )


def _index(
    program_model: ProgramModel,
    declarations: Callable[[Document], Iterable],
    extractor: BaseExtractor,
    token: CancellationToken,
    max_workers: int,
    unit: str,
) -> list:
    collection = FeatureCollection()
    workers = max(1, max_workers)

    def process_document(project: Project, document: Document) -> None:
        token.raise_if_cancelled()
        if not document.has_semantic_model:
            logger.debug(f"No semantic model for {document.file_path}, skipping")
            return

        logger.debug(f"Analyzing document: {document.file_path}")
        for declaration in declarations(document):
            token.raise_if_cancelled()
            if not extractor.is_candidate(declaration):
                continue

            try:
                features = extractor.extract(declaration, document, project, token)
            except OperationCancelled:
                raise
            except Exception as e:
                logger.warning(
                    f"Failed to extract features for {unit} {declaration.name} in {document.file_path}: {e}",
                    exc_info=True,
                )
                continue

            if features is not None:
                collection.add(features)

    def process_project(project: Project) -> None:
        token.raise_if_cancelled()
        if not project.is_compilable:
            logger.warning(f"Could not get compilation for project {project.name}")
            return

        logger.debug(f"Analyzing project: {project.name}")
        _run_parallel(
            lambda document: process_document(project, document),
            list(project.documents),
            workers,
            describe=lambda document: document.file_path,
        )

    projects = list(program_model.get_projects())
    _run_parallel(process_project, projects, workers, describe=lambda project: project.name)

    token.raise_if_cancelled(f"Extraction of {unit} features was cancelled.")
    logger.info(f"Extracted features for {len(collection)} {unit}s")
    return collection.sorted_items()


def _run_parallel(
    work: Callable[[T], None],
    items: List[T],
    max_workers: int,
    describe: Callable[[T], str],
) -> None:
    """Run work over items; cancellation propagates, other failures are logged."""
    if not items:
        return

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        futures = {executor.submit(work, item): item for item in items}

        for future in as_completed(futures):
            try:
                future.result()
            except OperationCancelled:
                for pending in futures:
                    pending.cancel()
                raise
            except Exception as e:
                logger.warning(f"Failed to analyze {describe(futures[future])}: {e}", exc_info=True)
