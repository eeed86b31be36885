"""Tests for the JSX transformer."""

from __future__ import annotations

import pytest

from hexview.compiler.jsx import clean_jsx_text, decode_entities, transform_jsx
from hexview.kernel.exceptions import TransformSyntaxError


def jsx(source: str) -> str:
    code, _ = transform_jsx("/App.jsx", source)
    return code


class TestElements:
    def test_intrinsic_element_with_props(self) -> None:
        assert (
            jsx('const a = <div className="x">Hi</div>;')
            == 'const a = React.createElement("div", {className: "x"}, "Hi");'
        )

    def test_component_reference_stays_bare(self) -> None:
        assert jsx("const a = <Button />;") == "const a = React.createElement(Button, null);"

    def test_member_expression_tag(self) -> None:
        assert jsx("<Icons.Star />") == "React.createElement(Icons.Star, null)"

    def test_fragment(self) -> None:
        assert jsx("<>a</>") == 'React.createElement(React.Fragment, null, "a")'

    def test_expression_attributes_and_spread(self) -> None:
        code = jsx("<input {...props} value={count + 1} disabled />")
        assert code == 'React.createElement("input", {...props, value: count + 1, disabled: true})'

    def test_dashed_attribute_is_quoted(self) -> None:
        assert jsx('<div aria-label="x" />') == 'React.createElement("div", {"aria-label": "x"})'

    def test_nested_children_and_expressions(self) -> None:
        code = jsx("<ul>{items.map(i => <li key={i}>{i}</li>)}</ul>")
        assert code == (
            'React.createElement("ul", null, items.map(i => '
            'React.createElement("li", {key: i}, i)))'
        )

    def test_entities_decoded(self) -> None:
        assert jsx("<p>a &amp; b</p>") == 'React.createElement("p", null, "a & b")'

    def test_unterminated_entity_stays_literal(self) -> None:
        assert jsx("<p>&copy 2024</p>") == 'React.createElement("p", null, "&copy 2024")'
        assert jsx("<p>&copy; 2024</p>") == 'React.createElement("p", null, "© 2024")'

    def test_attribute_entities(self) -> None:
        assert jsx('<a title="&lt;x&gt; &#x41;&#66; &notit &bogus;" />') == (
            'React.createElement("a", {title: "<x> AB &notit &bogus;"})'
        )

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("&amp;", "&"),
            ("&#169;", "©"),
            ("&#xA9;", "©"),
            ("&#0;", "&#0;"),
            ("&#xD800;", "&#xD800;"),
            ("&amp", "&amp"),
            ("AT&T", "AT&T"),
        ],
    )
    def test_decode_entities(self, raw: str, expected: str) -> None:
        assert decode_entities(raw) == expected

    def test_comparison_is_not_jsx(self) -> None:
        source = "const ok = a < b && c > d;"
        code, used = transform_jsx("/a.js", source)
        assert code == source
        assert not used

    def test_strings_and_comments_untouched(self) -> None:
        source = 'const s = "<div>"; // <span>\n/* <b> */'
        assert jsx(source) == source


class TestLinePreservation:
    def test_multiline_element_keeps_line_count(self) -> None:
        source = (
            "export default function App() {\n"
            "  return (\n"
            '    <div className="app">\n'
            "      <h1>\n"
            "        Hello\n"
            "        world\n"
            "      </h1>\n"
            "    </div>\n"
            "  );\n"
            "}\n"
        )
        code = jsx(source)
        assert code.count("\n") == source.count("\n")
        assert '"Hello world"' in code
        assert code.splitlines()[-1] == "}"


class TestWhitespace:
    def test_lines_are_trimmed_and_joined(self) -> None:
        assert clean_jsx_text("\n    Hello\n    world  \n") == "Hello world"

    def test_single_line_keeps_spaces(self) -> None:
        assert clean_jsx_text("  a  ") == "  a  "

    def test_whitespace_only_is_dropped(self) -> None:
        assert clean_jsx_text("\n   \n  ") == ""


class TestErrors:
    def test_unterminated_element(self) -> None:
        with pytest.raises(TransformSyntaxError, match="Unterminated JSX contents"):
            jsx("const a = <div>hello")

    def test_mismatched_closing_tag(self) -> None:
        with pytest.raises(TransformSyntaxError, match="closing tag </div>") as excinfo:
            jsx("const a = (\n  <div></span>\n);")
        assert excinfo.value.line == 2
        assert excinfo.value.path == "/App.jsx"

    def test_empty_attribute_expression(self) -> None:
        with pytest.raises(TransformSyntaxError, match="non-empty expression"):
            jsx("<div a={} />")
