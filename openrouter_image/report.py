"""Markdown report returned to MCP callers."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .models import SavedImageInfo, UsageStats


def _image_lines(saved: Sequence[SavedImageInfo]) -> List[str]:
    lines = [f"**Generated images:** {len(saved)} images"]
    for index, info in enumerate(saved, start=1):
        prefix = f"- image {index}: {info.source_preview}..."
        if info.saved_path is not None:
            line = f"{prefix} ; saved to {info.saved_path}"
            if info.diagnostic:
                line += f" ({info.diagnostic})"
        else:
            line = f"{prefix} ; not saved ({info.diagnostic or 'unknown reason'})"
        lines.append(line)
    return lines


def format_report(
    model: str,
    prompt: str,
    text: str,
    saved: Sequence[SavedImageInfo],
    usage: Optional[UsageStats] = None,
    input_count: Optional[int] = None,
) -> str:
    """Render the tool result.

    ``input_count`` is only set for edits; it switches the prompt label to
    "Instruction" and adds the number of input images.
    """
    header = [f"**Model:** {model}"]
    if input_count is None:
        header.append(f"**Prompt:** {prompt}")
    else:
        header.append(f"**Instruction:** {prompt}")
        header.append(f"**Input images:** {input_count} images")
    header.append(f"**Response:** {text}")

    sections = ["\n".join(header)]
    if saved:
        sections.append("\n".join(_image_lines(saved)))
    if usage is not None:
        sections.append(
            "\n".join(
                [
                    "**Usage:**",
                    f"- prompt tokens: {usage.prompt_tokens}",
                    f"- completion tokens: {usage.completion_tokens}",
                    f"- total tokens: {usage.total_tokens}",
                ]
            )
        )
    return "\n\n".join(sections)
