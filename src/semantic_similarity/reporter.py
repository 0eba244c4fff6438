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
Report generator - formats similarity groups for output.

Supports text, markdown, and json output formats.
"""

from typing import List, Sequence
from enum import Enum
import json
from datetime import datetime

from .models import (
    FunctionFeatureSet,
    SimilarMatch,
    SimilarityResult,
    TypeFeatureSet,
)


class OutputFormat(Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    JSON = "json"


def report_results(
    results: Sequence[SimilarityResult],
    threshold: float,
    output_format: OutputFormat = OutputFormat.TEXT,
    source: str = "",
) -> str:
    """
    Generate a report of similar functions and types.

    Args:
        results: Function and/or type groups, in display order
        threshold: Similarity threshold used
        output_format: Desired output format
        source: Where the program model came from (for display)

    Returns:
        Formatted report string
    """
    if output_format == OutputFormat.TEXT:
        return _format_text(results, threshold, source)
    elif output_format == OutputFormat.MARKDOWN:
        return _format_markdown(results, threshold, source)
    elif output_format == OutputFormat.JSON:
        return _format_json(results, threshold, source)
    else:
        raise ValueError(f"Unknown format: {output_format}")


def format_similarity_hint(match: SimilarMatch) -> str:
    """Short notice that a symbol looks like a duplicate of another."""
    kind = "method" if isinstance(match.match, FunctionFeatureSet) else "type"
    return (
        f"Found similar {kind}: {match.match.qualified_name}\n"
        f"Similarity score: {match.score:.2f}\n"
        f"Please analyze for potential duplication."
    )


def _describe(member) -> str:
    if isinstance(member, FunctionFeatureSet):
        return member.signature
    return member.qualified_name


def _summary(member) -> str:
    """One-line structural summary of a member."""
    if isinstance(member, TypeFeatureSet):
        return (
            f"{member.method_count} methods, {member.property_count} properties, "
            f"{member.field_count} fields, avg complexity {member.average_method_complexity:.1f}"
        )
    return (
        f"{member.basic_block_count} blocks, {member.conditional_branch_count} branches, "
        f"{member.loop_count} loops, cyclomatic {member.cyclomatic_complexity}"
    )


def _heading(result: SimilarityResult) -> str:
    return "Function group" if result.kind == "function" else "Type group"


def _format_text(results: Sequence[SimilarityResult], threshold: float, source: str) -> str:
    """Plain text format with unicode decorations."""
    lines: List[str] = []

    total_lines = sum(r.total_lines() for r in results)
    where = f" in {source}" if source else ""
    lines.append(f"🔍 Found {len(results)} similarity groups{where}")
    lines.append(f"   Threshold: {threshold:.0%} | Total duplicated lines: ~{total_lines}")
    lines.append("")

    for result in results:
        lines.append("━" * 70)
        lines.append(f"{_heading(result)} #{result.id}: Similarity {result.average_score:.0%}")
        lines.append(f"Files: {result.file_count} | Members: {result.size} | Lines: ~{result.total_lines()}")
        lines.append("━" * 70)
        lines.append("")

        lines.append("📍 Similar Members:")
        for member in result.members:
            lines.append(f"   • {member.location}")
            lines.append(f"     └─ {_describe(member)}")
            lines.append(f"     └─ {_summary(member)}")
        lines.append("")

    return "\n".join(lines)


def _format_markdown(results: Sequence[SimilarityResult], threshold: float, source: str) -> str:
    """Markdown format for documentation."""
    lines: List[str] = []

    total_lines = sum(r.total_lines() for r in results)
    lines.append("# Semantic Similarity Report")
    lines.append("")
    if source:
        lines.append(f"**Source:** `{source}`  ")
    lines.append(f"**Threshold:** {threshold:.0%}  ")
    lines.append(f"**Groups Found:** {len(results)}  ")
    lines.append(f"**Total Duplicated Lines:** ~{total_lines}")
    lines.append("")

    # Table of Contents
    lines.append("## Table of Contents")
    lines.append("")
    for result in results:
        anchor = f"{result.kind}-group-{result.id}"
        label = result.representative.qualified_name
        lines.append(f"- [{label}](#{anchor}) — {result.size} {result.kind}s, {result.average_score:.0%}")
    lines.append("")
    lines.append("---")
    lines.append("")

    for result in results:
        lines.append(f"<a id=\"{result.kind}-group-{result.id}\"></a>")
        lines.append("")
        lines.append(f"## {_heading(result)} {result.id}: {result.average_score:.0%} Similarity")
        lines.append("")
        lines.append(
            f"**{result.size} {result.kind}s** across **{result.file_count} files** "
            f"(~{result.total_lines()} lines)"
        )
        lines.append("")

        lines.append("| File | Line | Name | Shape |")
        lines.append("|------|------|------|-------|")
        for member in result.members:
            lines.append(
                f"| `{member.file_path}` | {member.start_line} | `{_describe(member)}` | {_summary(member)} |"
            )
        lines.append("")
        lines.append("[↑ Back to Table of Contents](#table-of-contents)")
        lines.append("")
        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def _member_json(member) -> dict:
    data = {
        "qualified_name": member.qualified_name,
        "name": member.name,
        "file": member.file_path,
        "start_line": member.start_line,
        "line_count": member.line_count,
    }
    if isinstance(member, TypeFeatureSet):
        data.update({
            "base_type": member.base_type,
            "interfaces": sorted(member.interfaces),
            "method_count": member.method_count,
            "property_count": member.property_count,
            "field_count": member.field_count,
            "event_count": member.event_count,
            "average_method_complexity": round(member.average_method_complexity, 4),
            "external_types": sorted(member.external_types),
        })
    else:
        data.update({
            "signature": member.signature,
            "basic_blocks": member.basic_block_count,
            "conditional_branches": member.conditional_branch_count,
            "loops": member.loop_count,
            "cyclomatic_complexity": member.cyclomatic_complexity,
        })
    return data


def _format_json(results: Sequence[SimilarityResult], threshold: float, source: str) -> str:
    """JSON format for programmatic use."""
    data = {
        "meta": {
            "source": source,
            "threshold": threshold,
            "group_count": len(results),
            "total_duplicated_lines": sum(r.total_lines() for r in results),
            "timestamp": datetime.now().isoformat(),
        },
        "groups": [
            {
                "id": result.id,
                "kind": result.kind,
                "similarity": round(result.average_score, 4),
                "file_count": result.file_count,
                "member_count": result.size,
                "members": [_member_json(m) for m in result.members],
            }
            for result in results
        ],
    }

    return json.dumps(data, indent=2)
