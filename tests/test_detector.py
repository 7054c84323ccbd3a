"""Tests for repository fact detection."""

import subprocess
from unittest.mock import patch

import pytest

from tinytool_submitter.detector import (
    TRUNCATION_MARKER,
    detect_git_user_name,
    detect_github_url,
    detect_github_username,
    detect_language,
    detect_license,
    find_readme,
    is_readme_candidate,
    normalize_git_url,
    read_readme,
    repo_name_from_url,
)


@pytest.fixture
def sample_repo(tmp_path):
    """Create a small Python tool repo."""
    (tmp_path / "README.md").write_text("# Foo\nA tiny tool.\n")
    (tmp_path / "LICENSE").write_text("MIT License\n\nCopyright (c) 2026 Someone\n")
    pkg = tmp_path / "src" / "foo"
    pkg.mkdir(parents=True)
    (pkg / "__init__.py").write_text("")
    (pkg / "main.py").write_text("print('hi')\n")
    (tmp_path / "scripts").mkdir()
    (tmp_path / "scripts" / "release.sh").write_text("#!/bin/sh\n")
    return tmp_path


def _git_result(stdout="", returncode=0):
    return subprocess.CompletedProcess(["git"], returncode, stdout=stdout, stderr="")


class TestReadme:
    def test_find_readme(self, sample_repo):
        assert find_readme(sample_repo) == sample_repo / "README.md"

    def test_find_readme_rst(self, tmp_path):
        (tmp_path / "README.rst").write_text("Foo\n===\n")
        assert find_readme(tmp_path) == tmp_path / "README.rst"

    def test_find_readme_missing(self, tmp_path):
        (tmp_path / "docs.md").write_text("nope")
        assert find_readme(tmp_path) is None

    @pytest.mark.parametrize("name,expected", [
        ("README.md", True),
        ("readme", True),
        ("Readme.zh-CN.md", True),
        ("READMEish.md", False),
        ("notes.md", False),
    ])
    def test_is_readme_candidate(self, name, expected):
        assert is_readme_candidate(name) is expected

    def test_read_readme_short(self, tmp_path):
        path = tmp_path / "README.md"
        path.write_text("# Foo\n")
        assert read_readme(path) == "# Foo\n"

    def test_read_readme_truncates(self, tmp_path):
        path = tmp_path / "README.md"
        path.write_text("x" * 5000)
        content = read_readme(path)
        assert content == "x" * 4000 + TRUNCATION_MARKER


class TestLicense:
    def test_mit(self, sample_repo):
        assert detect_license(sample_repo) == "MIT"

    @pytest.mark.parametrize("text,expected", [
        ("Apache License\nVersion 2.0, January 2004", "Apache-2.0"),
        ("GNU GENERAL PUBLIC LICENSE\nVersion 3", "GPL-3.0"),
        ("SPDX-License-Identifier: GPL-2.0", "GPL-2.0"),
        ("BSD 3-Clause License", "BSD-3-Clause"),
        ("Mozilla Public License Version 2.0", "MPL-2.0"),
        ("ISC License", "ISC"),
        ("This is free and unencumbered software released into the public domain. See unlicense.org", "Unlicense"),
    ])
    def test_known_licenses(self, tmp_path, text, expected):
        (tmp_path / "LICENSE.txt").write_text(text)
        assert detect_license(tmp_path) == expected

    def test_unrecognised_license_file(self, tmp_path):
        (tmp_path / "LICENCE").write_text("All rights reserved.")
        assert detect_license(tmp_path) == "Unknown"

    def test_falls_back_to_readme(self, tmp_path):
        (tmp_path / "README.md").write_text("# Foo\n\n## License\nLicensed under the MIT license.\n")
        assert detect_license(tmp_path) == "MIT"

    def test_nothing_found(self, tmp_path):
        (tmp_path / "README.md").write_text("# Foo\n")
        assert detect_license(tmp_path) is None


class TestLanguage:
    def test_dominant_language(self, sample_repo):
        assert detect_language(sample_repo) == "Python"

    def test_skips_ignored_dirs(self, tmp_path):
        (tmp_path / "index.ts").write_text("")
        deps = tmp_path / "node_modules" / "left-pad"
        deps.mkdir(parents=True)
        for i in range(5):
            (deps / f"f{i}.js").write_text("")
        assert detect_language(tmp_path) == "TypeScript"

    def test_depth_limit(self, tmp_path):
        (tmp_path / "main.go").write_text("")
        deep = tmp_path / "a" / "b" / "c" / "d" / "e" / "f"
        deep.mkdir(parents=True)
        for i in range(3):
            (deep / f"m{i}.rs").write_text("")
        assert detect_language(tmp_path) == "Go"

    def test_no_source_files(self, tmp_path):
        (tmp_path / "README.md").write_text("# Foo")
        assert detect_language(tmp_path) is None


class TestGit:
    @pytest.mark.parametrize("remote,expected", [
        ("git@github.com:octo/foo.git", "https://github.com/octo/foo"),
        ("git@github.com:octo/foo/", "https://github.com/octo/foo"),
        ("https://github.com/octo/foo.git", "https://github.com/octo/foo"),
        ("https://github.com/octo/foo/", "https://github.com/octo/foo"),
        ("https://gitlab.com/octo/foo.git", "https://gitlab.com/octo/foo.git"),
    ])
    def test_normalize_git_url(self, remote, expected):
        assert normalize_git_url(remote) == expected

    @patch("tinytool_submitter.detector.subprocess.run")
    def test_detect_github_url(self, mock_run, tmp_path):
        mock_run.return_value = _git_result("git@github.com:octo/foo.git\n")
        assert detect_github_url(tmp_path) == "https://github.com/octo/foo"
        assert mock_run.call_args[0][0] == ["git", "remote", "get-url", "origin"]
        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    @patch("tinytool_submitter.detector.subprocess.run")
    def test_detect_github_url_no_remote(self, mock_run, tmp_path):
        mock_run.return_value = _git_result(returncode=2)
        assert detect_github_url(tmp_path) is None

    @patch("tinytool_submitter.detector.subprocess.run")
    def test_git_not_installed(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError("git")
        assert detect_github_url(tmp_path) is None
        assert detect_git_user_name(tmp_path) is None

    @patch("tinytool_submitter.detector.subprocess.run")
    def test_detect_git_user_name(self, mock_run, tmp_path):
        mock_run.return_value = _git_result("Ada Lovelace\n")
        assert detect_git_user_name(tmp_path) == "Ada Lovelace"
        assert mock_run.call_args[0][0] == ["git", "config", "user.name"]

    @patch("tinytool_submitter.detector.subprocess.run")
    def test_git_timeout(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired("git", 10)
        assert detect_git_user_name(tmp_path) is None

    def test_detect_github_username(self):
        assert detect_github_username("https://github.com/octo/foo") == "octo"
        assert detect_github_username("git@github.com:octo/foo.git") is None
        assert detect_github_username(None) is None

    def test_repo_name_from_url(self, tmp_path):
        assert repo_name_from_url("https://github.com/octo/foo", tmp_path) == "foo"
        assert repo_name_from_url(None, tmp_path) == tmp_path.name
        assert repo_name_from_url("https://github.com/", tmp_path) == tmp_path.name
