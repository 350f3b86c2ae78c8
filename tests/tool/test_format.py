"""Tests for the format library."""

import io

from nginx_operator.tool.format import PrintFormatter, YamlFormatter, format_columns


def test_format_columns_empty_rows() -> None:
    """Tests with no rows."""
    assert list(format_columns(["a", "b", "c"], [])) == ["a    b    c"]


def test_format_columns_rows() -> None:
    """Tests format with normal rows"""
    assert list(
        format_columns(
            ["name", "namespace"], [["my-nginx", "default"], ["web", "prod"]]
        )
    ) == [
        "name        namespace",
        "my-nginx    default",
        "web         prod",
    ]


def test_print_formatter_empty() -> None:
    """Print formatting with empty data."""
    assert list(PrintFormatter(["name"]).format([])) == []


def test_print_formatter_keys() -> None:
    """Print formatting only the selected keys, missing keys left blank."""
    formatter = PrintFormatter(["kind", "name"])
    assert list(
        formatter.format(
            [
                {"kind": "Nginx", "name": "my-nginx", "namespace": "default"},
                {"name": "web"},
            ]
        )
    ) == [
        "KIND     NAME",
        "Nginx    my-nginx",
        "         web",
    ]


def test_yaml_formatter() -> None:
    """Yaml formatting of multiple documents keeps key order."""
    out = io.StringIO()
    YamlFormatter().print(
        [{"kind": "Nginx", "apiVersion": "v1"}, {"kind": "Pod"}], file=out
    )
    assert out.getvalue() == "---\nkind: Nginx\napiVersion: v1\n---\nkind: Pod\n"
