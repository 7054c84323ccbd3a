"""Tests for the issue URL builder."""

from urllib.parse import parse_qsl, urlsplit

from tinytool_submitter.generator import ToolMetadata
from tinytool_submitter.issue_url import BASE_URL, build_issue_url


def _metadata(**overrides):
    fields = dict(
        name="Foo",
        tagline="Tiny & fast",
        description="Does X. Does Y.",
        github_url="https://github.com/octo/foo",
        author="Ada Lovelace",
        author_github="octo",
        tags="cli, tools, productivity",
    )
    fields.update(overrides)
    return ToolMetadata(**fields)


def test_required_parameters_in_order():
    url = build_issue_url(_metadata())
    parts = urlsplit(url)

    assert f"{parts.scheme}://{parts.netloc}{parts.path}" == BASE_URL
    assert parse_qsl(parts.query) == [
        ("template", "submit-tool.yml"),
        ("title", "[Tool] Foo"),
        ("labels", "new-tool"),
        ("name", "Foo"),
        ("tagline", "Tiny & fast"),
        ("description", "Does X. Does Y."),
        ("github_url", "https://github.com/octo/foo"),
        ("author", "Ada Lovelace"),
        ("author_github", "octo"),
        ("tags", "cli, tools, productivity"),
    ]


def test_optional_parameters_only_when_set():
    url = build_issue_url(_metadata(
        website_url="https://foo.dev",
        language="Python",
        license=None,
        theme="neon",
    ))
    params = dict(parse_qsl(urlsplit(url).query))

    assert params["website_url"] == "https://foo.dev"
    assert params["language"] == "Python"
    assert params["theme"] == "neon"
    assert "license" not in params


def test_empty_optional_parameters_omitted():
    url = build_issue_url(_metadata(website_url="", language=None))
    assert "website_url=" not in url
    assert "language=" not in url
    assert "theme=" not in url


def test_encodes_like_encode_uri_component():
    url = build_issue_url(_metadata(tagline="Fast, tiny & fun (really)!"))
    assert "title=%5BTool%5D%20Foo" in url
    assert "tagline=Fast%2C%20tiny%20%26%20fun%20(really)!" in url
    assert "github_url=https%3A%2F%2Fgithub.com%2Focto%2Ffoo" in url
    assert "+" not in url
