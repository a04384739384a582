"""Well-known samples used to warm the preoptimization cache.

Each item pairs the rules a path must satisfy with a sample file the detector
classifies once at warm-up. Order matters: it is the initial lookup order.
"""

from __future__ import annotations

from dataclasses import dataclass

from linguard.rules import MatchRule, compile_rule


@dataclass(frozen=True)
class CatalogueItem:
    rules: tuple[MatchRule, ...]
    sample_name: str
    sample_body: str


def _item(patterns: tuple[str, ...], sample_name: str, sample_body: str) -> CatalogueItem:
    """Build an item; a leading ``!`` marks an inverted rule."""
    rules = tuple(
        compile_rule(p[1:], invert=True) if p.startswith("!") else compile_rule(p)
        for p in patterns
    )
    return CatalogueItem(rules, sample_name, sample_body)


CATALOGUE: tuple[CatalogueItem, ...] = (
    _item((r"\.js$", r"!\.(min|bundle)\.js$"), "test.js", "var a"),
    _item((r"\.ts$",), "test.ts", "interface Foo {\n}"),
    _item((r"\.ejs$",), "test.ejs", "<% if (names.length) { %>foo<% } %>"),
    _item((r"\.go$",), "test.go", "package main\nfunc main(){\n}\n"),
    _item((r"(^|/)Makefile$",), "Makefile", ".phony foo\n"),
    _item((r"\.ya?ml$",), "test.yml", "---\nfoo: 1\n"),
    _item((r"\.json$", r"!(^|/)[jt]sconfig\.json$"), "test.json", '{"a":1}'),
    _item((r"\.swift$",), "test.swift", "let a=0"),
    _item((r"\.c(\+\+|pp|c)$",), "test.cpp", "class Foo{\n};\n"),
    _item((r"\.hbs$",), "test.hbs", "<div>{{foo}}</div>"),
    _item((r"\.html?$",), "test.html", "<div>hi</div>"),
    _item((r"\.css$",), "test.css", ".rule {color:red}"),
    _item((r"\.scss$",), "test.scss", ".rule {color:red}"),
    _item((r"\.(ba|z)?sh$",), "test.sh", "#!/bin/sh\n"),
    _item((r"\.md$",), "test.md", "# Foo\n"),
    _item((r"\.json5$",), "test.json5", "{a:1}"),
    _item((r"\.jsx$",), "test.jsx", "import a from 'foo'\n"),
    _item((r"\.m$",), "test.m", "@implementation Foo\n@end\n"),
    _item((r"\.mm$",), "test.mm", "@implementation Foo\n@end\n"),
    _item((r"\.(c|h)$",), "test.c", "void main(){\n}\n"),
    _item((r"\.rb$",), "test.rb", "puts 'hello'\n"),
    _item((r"\.py$",), "test.py", "def foo():\n    pass\n"),
    _item((r"\.proto$",), "test.proto", "package foo;\nmessage Bar\n{\n}\n"),
    _item((r"\.java$",), "test.java", "package foo;\npublic class Bar\n{\n}\n"),
    _item((r"\.cs$",), "test.cs", "class Bar\n{\n}\n"),
    _item((r"\.xml$", r"!(^|/)pom\.xml$"), "test.xml", "<a>foo</a>"),
    _item((r"\.lua$",), "test.lua", "x=0"),
    _item(
        (r"\.txt$", r"!(^|/)CMakeLists\.txt$", r"!(^|/)requirements[\w.-]*\.txt$"),
        "test.txt",
        "hi",
    ),
    _item((r"\.sql$",), "test.sql", "delete from foo"),
    _item((r"\.coffee$",), "test.coffee", "a = 1"),
    _item((r"\.properties$",), "test.properties", "a=1"),
    _item((r"(^|/)Dockerfile(\.[\w-]+)?$",), "Dockerfile", "FROM nodejs\n"),
)
