"""Prompt templates for metadata extraction.

The first prompt asks for the metadata object; the repair prompt
restates the constraints alongside the concrete issues found.
"""

from __future__ import annotations

import json
from typing import Any

SYSTEM_PROMPT = """You extract metadata from a GitHub README for Tiny Tool Town.
Answer with a single JSON object and nothing else."""


def metadata_prompt(readme_content: str, repo_name: str) -> str:
    """Generate prompt for the initial metadata extraction."""
    return f"""{SYSTEM_PROMPT}

Return ONLY valid JSON (no markdown, no code fences) with this exact schema:
{{
    "name": "string",
    "tagline": "string <= 100 chars",
    "description": "string, 2-4 sentences",
    "tags": ["lowercase-tag", "another-tag", "3-6 tags total"]
}}

Rules:
- Name must match the tool name from README; do not invent a different product.
- Tagline must be concise and clear.
- Description should be enthusiastic but honest.
- Tags must be lowercase, relevant, and contain 3-6 entries.

Repository name: {repo_name}

README content:
{readme_content}"""


def repair_prompt(issues: list[str], current: dict[str, Any]) -> str:
    """Generate prompt asking the model to fix invalid metadata."""
    return f"""Fix this metadata JSON so it satisfies ALL constraints.
Return ONLY valid JSON with keys: name, tagline, description, tags.

Constraints:
- name: non-empty
- tagline: non-empty and <= 100 characters
- description: non-empty, 2-4 sentences
- tags: array of 3-6 lowercase, relevant tags

Issues found:
{"; ".join(issues)}

Current JSON:
{json.dumps(current)}"""
