"""Metadata generator - turns README text into a validated ToolMetadata.

Model output is treated as untrusted text: the JSON object is sliced
out of whatever prose surrounds it, projected onto the known fields,
normalized and validated. An invalid record gets one repair round-trip,
then deterministic per-field fallbacks.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from .model import ChatSession, Message, MessageDelta, SessionError, SessionIdle
from .prompts import metadata_prompt, repair_prompt

TAGLINE_LIMIT = 100
MIN_TAGS = 3
MAX_TAGS = 6
DEFAULT_TAGS = "cli, developer-tools, productivity"

logger = logging.getLogger(__name__)


@dataclass
class ToolMetadata:
    """Everything a Tiny Tool Town submission needs."""

    name: str = ""
    tagline: str = ""
    description: str = ""
    github_url: str = ""
    website_url: str | None = None
    author: str = ""
    author_github: str = ""
    tags: str = ""
    language: str | None = None
    license: str | None = None
    theme: str | None = None

    def tag_list(self) -> list[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def generate_metadata(
    session: ChatSession,
    readme_content: str,
    repo_name: str,
) -> ToolMetadata | None:
    """Ask the model for metadata, repairing and backfilling as needed.

    Returns None only when the first reply contains no JSON object at
    all. Otherwise the result always satisfies the field constraints.
    """
    raw = send_prompt(session, metadata_prompt(readme_content, repo_name))
    metadata = parse_response(raw)
    if metadata is None:
        logger.debug("No metadata object in reply: %r", raw[:200])
        return None

    normalize_fields(metadata)

    issues = field_issues(metadata)
    if issues:
        logger.debug("Generated metadata has issues: %s", "; ".join(issues))
        snapshot = {
            "name": metadata.name,
            "tagline": metadata.tagline,
            "description": metadata.description,
            "tags": metadata.tag_list(),
        }
        repaired = parse_response(send_prompt(session, repair_prompt(issues, snapshot)))
        if repaired is not None:
            normalize_fields(repaired)
            remaining = field_issues(repaired)
            if not remaining:
                logger.debug("Repair round-trip produced valid metadata")
                metadata = repaired
            else:
                logger.debug("Repaired metadata still invalid: %s", "; ".join(remaining))
        else:
            logger.debug("Repair reply contained no metadata object")

    apply_fallbacks(metadata, repo_name)
    normalize_fields(metadata)
    return metadata


def send_prompt(session: ChatSession, prompt: str) -> str:
    """Send a prompt and collect the reply text until idle or error."""
    logger.debug("Sending prompt (%d chars)", len(prompt))
    parts: list[str] = []
    for event in session.send(prompt):
        if isinstance(event, MessageDelta):
            parts.append(event.content)
        elif isinstance(event, Message):
            if not parts:
                parts.append(event.content)
        elif isinstance(event, SessionIdle):
            break
        elif isinstance(event, SessionError):
            logger.warning("AI error: %s", event.message)
            break
    reply = "".join(parts).strip()
    logger.debug("Received reply (%d chars)", len(reply))
    return reply


def extract_json_object(raw: str) -> str:
    """Slice from the first ``{`` to the last ``}``, or return raw unchanged."""
    start = raw.find("{")
    end = raw.rfind("}")
    return raw[start:end + 1] if start >= 0 and end > start else raw


def parse_response(raw: str) -> ToolMetadata | None:
    """Project a model reply onto ToolMetadata. None if no object parses."""
    if not raw or not raw.strip():
        return None

    try:
        parsed = json.loads(extract_json_object(raw))
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, Mapping):
        return None

    tags = _get_case_insensitive(parsed, "tags")
    if isinstance(tags, list):
        tags_value = ", ".join(t for t in tags if isinstance(t, str) and t.strip())
    elif isinstance(tags, str):
        tags_value = tags
    else:
        tags_value = ""

    return ToolMetadata(
        name=_get_string(parsed, "name"),
        tagline=_get_string(parsed, "tagline"),
        description=_get_string(parsed, "description"),
        tags=tags_value,
    )


def _get_case_insensitive(data: Mapping[str, Any], key: str) -> Any:
    if key in data:
        return data[key]
    lower = key.lower()
    for k, v in data.items():
        if isinstance(k, str) and k.lower() == lower:
            return v
    return None


def _get_string(data: Mapping[str, Any], key: str) -> str:
    value = _get_case_insensitive(data, key)
    return value.strip() if isinstance(value, str) else ""


def normalize_fields(metadata: ToolMetadata) -> None:
    """Trim text fields; lowercase and dedupe tags keeping first-seen order."""
    metadata.name = metadata.name.strip()
    metadata.tagline = metadata.tagline.strip()
    metadata.description = metadata.description.strip()

    tags = [t.strip().lower() for t in metadata.tags.split(",")]
    metadata.tags = ", ".join(dict.fromkeys(t for t in tags if t))


def field_issues(metadata: ToolMetadata) -> list[str]:
    """List the constraint violations of the generated fields."""
    issues = []
    if not metadata.name.strip():
        issues.append("name is missing")
    if not metadata.tagline.strip():
        issues.append("tagline is missing")
    elif len(metadata.tagline) > TAGLINE_LIMIT:
        issues.append(f"tagline exceeds {TAGLINE_LIMIT} characters")
    if not metadata.description.strip():
        issues.append("description is missing")

    tags = metadata.tag_list()
    if not MIN_TAGS <= len(tags) <= MAX_TAGS:
        issues.append(f"tags must contain {MIN_TAGS} to {MAX_TAGS} entries")
    if any(t != t.lower() for t in tags):
        issues.append("tags must be lowercase")
    return issues


def apply_fallbacks(metadata: ToolMetadata, repo_name: str) -> None:
    """Replace each still-invalid generated field with a deterministic default."""
    if not metadata.name.strip():
        metadata.name = repo_name
    if not metadata.tagline.strip():
        metadata.tagline = f"A tiny tool called {repo_name}."
    if len(metadata.tagline) > TAGLINE_LIMIT:
        metadata.tagline = metadata.tagline[:TAGLINE_LIMIT].rstrip()
    if not metadata.description.strip():
        metadata.description = f"{repo_name} is a helpful open source tool from this repository."

    # Dedupe first so the count matches what normalization will keep
    distinct = {t.lower() for t in metadata.tag_list()}
    if not MIN_TAGS <= len(distinct) <= MAX_TAGS:
        metadata.tags = DEFAULT_TAGS
