"""Repository fact detection. No model needed.

Finds the README and license, guesses the dominant language from file
extensions, and reads git remote/user configuration. Every detector is
best-effort and returns None when it cannot tell.
"""

from __future__ import annotations

import os
import subprocess
from collections import Counter
from pathlib import Path
from urllib.parse import urlparse

README_NAMES = [
    "README.md", "readme.md", "Readme.md",
    "README", "readme",
    "README.rst", "readme.rst",
    "README.txt", "readme.txt",
]

LICENSE_NAMES = [
    "LICENSE", "LICENSE.md", "LICENSE.txt",
    "LICENCE", "LICENCE.md", "LICENCE.txt",
]

README_LIMIT = 4000
TRUNCATION_MARKER = "\n\n[truncated]"
MAX_DEPTH = 5
GIT_TIMEOUT = 10

IGNORE_DIRS = {
    ".git", "node_modules", "bin", "obj", "vendor", "target", "dist",
    "__pycache__", ".venv", "venv", ".tox", ".mypy_cache", ".pytest_cache",
    ".ruff_cache",
}

# Extension -> Language mapping (source files only)
EXT_LANG = {
    ".cs": "C#", ".fs": "F#", ".vb": "VB.NET",
    ".py": "Python",
    ".rs": "Rust",
    ".go": "Go",
    ".ts": "TypeScript", ".tsx": "TypeScript",
    ".js": "JavaScript", ".jsx": "JavaScript", ".mjs": "JavaScript",
    ".java": "Java", ".kt": "Kotlin",
    ".swift": "Swift",
    ".rb": "Ruby",
    ".cpp": "C++", ".cc": "C++",
    ".c": "C",
    ".zig": "Zig",
    ".lua": "Lua",
    ".php": "PHP",
    ".dart": "Dart",
    ".ex": "Elixir", ".exs": "Elixir",
    ".hs": "Haskell",
    ".scala": "Scala",
    ".r": "R",
    ".jl": "Julia",
    ".pl": "Perl",
    ".sh": "Shell",
    ".ps1": "PowerShell",
}

# Checked in order; first phrase match wins
LICENSE_PHRASES = [
    ("MIT", ("mit license", "licensed under the mit", "license: mit")),
    ("Apache-2.0", ("apache license", "apache-2.0", "license: apache")),
    ("GPL-3.0", ("gnu general public license", "gpl-3.0", "gplv3")),
    ("GPL-2.0", ("gpl-2.0", "gplv2")),
    ("BSD-2-Clause", ("bsd 2-clause",)),
    ("BSD-3-Clause", ("bsd 3-clause",)),
    ("MPL-2.0", ("mozilla public license", "mpl-2.0")),
    ("ISC", ("isc license", "license: isc")),
    ("Unlicense", ("unlicense",)),
]


def find_readme(directory: str | Path) -> Path | None:
    """Find a README file in the given directory."""
    root = Path(directory)
    for name in README_NAMES:
        path = root / name
        if path.is_file():
            return path
    return None


def is_readme_candidate(file_name: str) -> bool:
    lower = file_name.lower()
    return lower == "readme" or lower.startswith("readme.")


def read_readme(path: str | Path, limit: int = README_LIMIT) -> str:
    """Read README text, truncating long files for the prompt."""
    content = Path(path).read_text(encoding="utf-8", errors="replace")
    if len(content) > limit:
        content = content[:limit] + TRUNCATION_MARKER
    return content


def detect_github_url(directory: str | Path) -> str | None:
    """Detect the GitHub repository URL from the origin remote."""
    output = _run_git(directory, "remote", "get-url", "origin")
    return normalize_git_url(output) if output else None


def normalize_git_url(url: str) -> str:
    """Turn SSH/``.git`` GitHub remotes into a plain https URL."""
    if url.startswith("git@github.com:"):
        repo_path = url[len("git@github.com:"):].rstrip("/")
        if repo_path.endswith(".git"):
            repo_path = repo_path[:-4]
        return f"https://github.com/{repo_path}"

    if url.lower().startswith("https://github.com/"):
        trimmed = url.rstrip("/")
        if trimmed.endswith(".git"):
            trimmed = trimmed[:-4]
        return trimmed

    return url


def detect_license(directory: str | Path) -> str | None:
    """Detect the license from a license file, falling back to the README."""
    root = Path(directory)
    for name in LICENSE_NAMES:
        path = root / name
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None
        return _license_from_text(text) or "Unknown"

    readme = find_readme(root)
    if readme:
        try:
            return _license_from_text(readme.read_text(encoding="utf-8", errors="replace"))
        except OSError:
            return None
    return None


def _license_from_text(content: str) -> str | None:
    lower = content.lower()
    for license_id, phrases in LICENSE_PHRASES:
        if any(p in lower for p in phrases):
            return license_id
    return None


def detect_language(directory: str | Path) -> str | None:
    """Detect the primary language by counting source file extensions."""
    root = Path(directory)
    counts: Counter = Counter()

    for dirpath, dirnames, filenames in os.walk(root):
        depth = len(Path(os.path.relpath(dirpath, root)).parts)
        if depth >= MAX_DEPTH:
            dirnames[:] = []
        else:
            dirnames[:] = [d for d in dirnames if d not in IGNORE_DIRS]

        for fname in filenames:
            lang = EXT_LANG.get(os.path.splitext(fname)[1].lower())
            if lang:
                counts[lang] += 1

    if not counts:
        return None
    return counts.most_common(1)[0][0]


def detect_git_user_name(directory: str | Path) -> str | None:
    return _run_git(directory, "config", "user.name")


def detect_github_username(github_url: str | None) -> str | None:
    """The owner segment of a GitHub URL."""
    segments = _url_path_segments(github_url)
    return segments[0] if segments else None


def repo_name_from_url(github_url: str | None, directory: str | Path) -> str:
    """Repository name from the remote URL, else the directory name."""
    segments = _url_path_segments(github_url)
    return segments[-1] if segments else Path(directory).resolve().name


def _url_path_segments(url: str | None) -> list[str]:
    if not url:
        return []
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return []
    return [s for s in parsed.path.split("/") if s]


def _run_git(directory: str | Path, *args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=directory, capture_output=True, text=True, timeout=GIT_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None
