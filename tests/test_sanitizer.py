from markupsafe import Markup, escape

from tailmon.services.sanitizer import sanitize


class TestSanitize:
    def test_script_tag_escaped(self):
        out = sanitize("<script>alert(1)</script>")
        assert "<script>" not in out
        assert out == "&lt;script&gt;alert(1)&lt;/script&gt;"

    def test_ampersand_and_quotes(self):
        out = sanitize("a & b \"quoted\" 'single'")
        assert out == "a &amp; b &#34;quoted&#34; &#39;single&#39;"

    def test_attribute_breakout_neutralized(self):
        out = sanitize('"><img src=x onerror=alert(1)>')
        assert '"' not in out
        assert "<img" not in out

    def test_plain_text_unchanged(self):
        assert sanitize("Ubuntu 22.04 (Kernel: 6.5.0)") == "Ubuntu 22.04 (Kernel: 6.5.0)"

    def test_returns_markup_not_escaped_twice(self):
        out = sanitize("<b>")
        assert isinstance(out, Markup)
        assert escape(out) == "&lt;b&gt;"
