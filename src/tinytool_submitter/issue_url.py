"""Pre-filled GitHub issue URL for the Tiny Tool Town submission template."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from .generator import ToolMetadata

BASE_URL = "https://github.com/shanselman/TinyToolTown/issues/new"
TEMPLATE = "submit-tool.yml"
LABELS = "new-tool"

# Same set encodeURIComponent leaves alone
_SAFE = "-_.!~*'()"


def build_issue_url(metadata: ToolMetadata) -> str:
    """Build the issue URL; optional fields are left out when unset."""
    params = [
        ("template", TEMPLATE),
        ("title", f"[Tool] {metadata.name}"),
        ("labels", LABELS),
        ("name", metadata.name),
        ("tagline", metadata.tagline),
        ("description", metadata.description),
        ("github_url", metadata.github_url),
        ("author", metadata.author),
        ("author_github", metadata.author_github),
        ("tags", metadata.tags),
    ]
    optional = [
        ("website_url", metadata.website_url),
        ("language", metadata.language),
        ("license", metadata.license),
        ("theme", metadata.theme),
    ]
    params.extend((k, v) for k, v in optional if v)

    return f"{BASE_URL}?{urlencode(params, safe=_SAFE, quote_via=quote)}"
