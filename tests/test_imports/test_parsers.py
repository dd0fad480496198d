"""Tests for Caddyfile parsing."""

from app.db.models import ForwardScheme
from app.imports.parsers import (
    CLOSE,
    NEWLINE,
    OPEN,
    WORD,
    parse_caddyfile,
    parse_upstream,
    tokenize,
)


class TestTokenize:
    """Tests for the Caddyfile tokenizer."""

    def test_braces_are_structural_only_alone(self):
        """Test placeholders like {host} stay words."""
        tokens = tokenize("header_up Host {host} {\n}")
        kinds = [t.kind for t in tokens]
        assert kinds == [WORD, WORD, WORD, OPEN, NEWLINE, CLOSE]
        assert tokens[2].text == "{host}"

    def test_quoted_strings(self):
        """Test quotes group words and unescape embedded quotes."""
        tokens = tokenize('respond "hello \\"world\\"" `raw text`')
        assert [t.text for t in tokens] == ["respond", 'hello "world"', "raw text"]
        assert tokens[1].quoted is True

    def test_comments_are_skipped(self):
        """Test # starts a comment only at token start."""
        tokens = tokenize("reverse_proxy a:1 # upstream\nfoo#bar")
        assert [t.text for t in tokens if t.kind == WORD] == ["reverse_proxy", "a:1", "foo#bar"]

    def test_newlines_collapse(self):
        """Test blank lines produce a single newline token."""
        tokens = tokenize("a\n\n\n\nb")
        assert [t.kind for t in tokens] == [WORD, NEWLINE, WORD]
        assert tokens[2].line == 5

    def test_unterminated_quote_stops_at_end_of_line(self):
        """Test an unterminated quote does not swallow the rest of the document."""
        tokens = tokenize('header X "oops\nnext line')
        quoted = tokens[2]
        assert quoted.unterminated is True
        assert quoted.text == "oops"
        assert tokens[-1].text == "line"
        assert tokens[-1].line == 2


class TestParseUpstream:
    """Tests for reverse_proxy upstream addresses."""

    def test_host_and_port(self):
        """Test plain host:port."""
        target, http2 = parse_upstream("localhost:8080")
        assert target.scheme == ForwardScheme.HTTP
        assert target.host == "localhost"
        assert target.port == 8080
        assert http2 is False

    def test_https_default_port(self):
        """Test https:// without a port defaults to 443."""
        target, _ = parse_upstream("https://backend.internal")
        assert target.scheme == ForwardScheme.HTTPS
        assert target.port == 443

    def test_http_default_port(self):
        """Test a bare host defaults to port 80."""
        target, _ = parse_upstream("backend")
        assert target.port == 80

    def test_h2c_sets_http2(self):
        """Test h2c:// upstreams request HTTP/2."""
        target, http2 = parse_upstream("h2c://grpc:50051")
        assert target.scheme == ForwardScheme.HTTP
        assert http2 is True

    def test_ipv6(self):
        """Test bracketed IPv6 upstreams."""
        target, _ = parse_upstream("[::1]:9000")
        assert target.host == "::1"
        assert target.port == 9000


class TestParseCaddyfile:
    """Tests for site block parsing."""

    def test_single_line_site_block(self):
        """Test the smallest possible site block."""
        candidates, errors = parse_caddyfile("example.com { reverse_proxy localhost:8080 }")

        assert errors == []
        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.domains == ["example.com"]
        assert candidate.forward.host == "localhost"
        assert candidate.forward.port == 8080
        assert candidate.forward.scheme == ForwardScheme.HTTP
        assert candidate.extra_directives == ""
        assert candidate.line == 1

    def test_multiple_domains_normalized(self):
        """Test comma and space separated addresses, schemes and ports."""
        text = "Example.COM, www.example.com:443 http://api.example.com {\n    reverse_proxy app:80\n}\n"
        candidates, errors = parse_caddyfile(text)

        assert errors == []
        assert candidates[0].domains == ["example.com", "www.example.com", "api.example.com"]

    def test_https_address_forces_ssl(self):
        """Test https:// site addresses set ssl_forced."""
        candidates, _ = parse_caddyfile("https://secure.dev {\n    reverse_proxy app:80\n}")
        assert candidates[0].ssl_forced is True

    def test_wildcard_domain(self):
        """Test wildcard site addresses are accepted."""
        candidates, errors = parse_caddyfile("*.example.com {\n    reverse_proxy app:80\n}")
        assert errors == []
        assert candidates[0].domains == ["*.example.com"]

    def test_recognized_directives_map_to_flags(self):
        """Test tls, HSTS and websocket headers become fields."""
        text = """
https://secure.example.com, www.example.com {
    tls admin@example.com
    header Strict-Transport-Security "max-age=31536000; includeSubDomains"
    import block_exploits
    reverse_proxy h2c://backend:9000 {
        header_up Upgrade {http.request.header.Upgrade}
    }
}
"""
        candidates, errors = parse_caddyfile(text)

        assert errors == []
        candidate = candidates[0]
        assert candidate.domains == ["secure.example.com", "www.example.com"]
        assert candidate.ssl_forced is True
        assert candidate.hsts_enabled is True
        assert candidate.hsts_subdomains is True
        assert candidate.block_exploits is True
        assert candidate.websocket_support is True
        assert candidate.http2_support is True
        assert candidate.forward.host == "backend"
        assert candidate.forward.port == 9000
        # tls with arguments is kept so the email is not lost
        assert candidate.extra_directives == "tls admin@example.com"

    def test_hsts_block_form(self):
        """Test HSTS inside a header block."""
        text = """
a.dev {
    header {
        Strict-Transport-Security max-age=31536000
        X-Frame-Options DENY
    }
    reverse_proxy app:80
}
"""
        candidates, _ = parse_caddyfile(text)
        candidate = candidates[0]
        assert candidate.hsts_enabled is True
        assert candidate.hsts_subdomains is False
        assert "X-Frame-Options DENY" in candidate.extra_directives

    def test_transport_tls_and_versions(self):
        """Test transport http options set the upstream scheme and HTTP/2."""
        text = """
a.dev {
    reverse_proxy backend:8443 {
        transport http {
            tls
            versions 2
        }
    }
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert candidates[0].forward.scheme == ForwardScheme.HTTPS
        assert candidates[0].forward.port == 8443
        assert candidates[0].http2_support is True

    def test_transport_tls_option_kept_verbatim(self):
        """Test tls_* transport options imply https and keep the directive."""
        text = """
a.dev {
    reverse_proxy backend:8443 {
        transport http {
            tls_insecure_skip_verify
        }
    }
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert candidates[0].forward.scheme == ForwardScheme.HTTPS
        assert "tls_insecure_skip_verify" in candidates[0].extra_directives

    def test_global_options_http2(self):
        """Test servers protocols in the global block apply to every site."""
        text = """
{
    servers {
        protocols h1 h2
    }
}

a.dev {
    reverse_proxy app:80
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert candidates[0].http2_support is True

    def test_unrecognized_directives_kept_verbatim(self):
        """Test unknown directives and their blocks survive unchanged."""
        text = """
a.dev {
    encode gzip
    reverse_proxy app:80
    handle_errors {
        respond "oops" 500
    }
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert candidates[0].extra_directives == (
            'encode gzip\nhandle_errors {\n    respond "oops" 500\n}'
        )

    def test_path_scoped_proxy_kept_with_warning(self):
        """Test path-matched reverse_proxy goes to extra directives."""
        text = """
a.dev {
    reverse_proxy /api/* api:8000
    reverse_proxy web:3000
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        candidate = candidates[0]
        assert candidate.forward.host == "web"
        assert candidate.extra_directives == "reverse_proxy /api/* api:8000"
        assert len(candidate.warnings) == 1

    def test_websocket_named_matcher(self):
        """Test an Upgrade: websocket matcher enables websocket support."""
        text = """
a.dev {
    @ws {
        header Connection *Upgrade*
        header Upgrade websocket
    }
    reverse_proxy @ws ws:6001
    reverse_proxy web:80
}
"""
        candidates, _ = parse_caddyfile(text)
        assert candidates[0].websocket_support is True
        assert candidates[0].extra_directives.startswith("@ws {")

    def test_unsupported_directive_warns(self):
        """Test rewrite is kept but flagged."""
        text = "a.dev {\n    rewrite /old /new\n    reverse_proxy app:80\n}"
        candidates, _ = parse_caddyfile(text)
        assert candidates[0].extra_directives == "rewrite /old /new"
        assert any("Rewrite" in w for w in candidates[0].warnings)

    def test_multiple_upstreams_warn(self):
        """Test only the first load-balanced upstream is imported."""
        candidates, _ = parse_caddyfile("a.dev {\n    reverse_proxy a:1 b:2\n}")
        assert candidates[0].forward.host == "a"
        assert len(candidates[0].warnings) == 1

    def test_snippets_are_expanded(self):
        """Test imported snippet directives reach the site that imports them."""
        text = """
(common) {
    encode gzip
    header Strict-Transport-Security max-age=31536000
}

(proxy) {
    import common
    reverse_proxy app:80
}

a.dev {
    import proxy
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.forward.host == "app"
        assert candidate.hsts_enabled is True
        assert candidate.extra_directives == "encode gzip"
        assert candidate.warnings == []

    def test_unknown_import_kept_with_warning(self):
        """Test an import that names no snippet is kept and reported."""
        candidates, errors = parse_caddyfile(
            "a.dev {\n    import common\n    reverse_proxy app:80\n}"
        )
        assert errors == []
        assert candidates[0].extra_directives == "import common"
        assert len(candidates[0].warnings) == 1
        assert "common" in candidates[0].warnings[0]

    def test_snippet_importing_itself(self):
        """Test a self-importing snippet breaks only the importing block."""
        text = """
(loop) {
    import loop
}

a.dev {
    import loop
    reverse_proxy a:1
}

b.dev {
    reverse_proxy b:2
}
"""
        candidates, errors = parse_caddyfile(text)
        assert [c.domains for c in candidates] == [["b.dev"]]
        assert len(errors) == 1
        assert "imports itself" in errors[0].message

    def test_site_addresses_continue_after_trailing_comma(self):
        """Test an address list may continue on the next line after a comma."""
        text = "a.dev,\nb.dev {\n    reverse_proxy app:80\n}\n"
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert [c.domains for c in candidates] == [["a.dev", "b.dev"]]

    def test_braceless_single_site(self):
        """Test a single site may omit its braces."""
        candidates, errors = parse_caddyfile("example.com\nreverse_proxy localhost:8080\n")
        assert errors == []
        assert candidates[0].domains == ["example.com"]

    def test_empty_document(self):
        """Test an empty document yields nothing."""
        assert parse_caddyfile("") == ([], [])
        assert parse_caddyfile("# only a comment\n\n") == ([], [])

    def test_parse_is_deterministic(self):
        """Test identical input yields identical output."""
        text = "a.dev {\n    reverse_proxy a:1\n}\nbroken {\n}\n"
        assert parse_caddyfile(text) == parse_caddyfile(text)


class TestParseRecovery:
    """Tests for per-block error recovery."""

    def test_two_good_blocks_one_bad(self):
        """Test a malformed block yields one error and no lost candidates."""
        text = """
a.example.com {
    reverse_proxy a:80
}

broken.example.com {
    file_server
}

b.example.com {
    reverse_proxy b:80
}
"""
        candidates, errors = parse_caddyfile(text)

        assert [c.domains for c in candidates] == [["a.example.com"], ["b.example.com"]]
        assert len(errors) == 1
        assert errors[0].block == "broken.example.com"
        assert errors[0].line == 6

    def test_unclosed_block(self):
        """Test parsing resumes after a block missing its closing brace."""
        text = """a.com {
    reverse_proxy a:1

b.com {
    reverse_proxy b:2
}
"""
        candidates, errors = parse_caddyfile(text)

        assert [c.domains for c in candidates] == [["b.com"]]
        assert len(errors) == 1
        assert errors[0].line == 1
        assert "Unclosed" in errors[0].message

    def test_missing_open_brace(self):
        """Test a site address line without a block."""
        text = """a.com
    reverse_proxy a:1
b.com {
    reverse_proxy b:2
}
"""
        candidates, errors = parse_caddyfile(text)

        assert [c.domains for c in candidates] == [["b.com"]]
        assert len(errors) == 1
        assert errors[0].block == "a.com"

    def test_stray_closing_brace(self):
        """Test a top-level closing brace is reported."""
        candidates, errors = parse_caddyfile("}\na.com { reverse_proxy a:1 }\n")
        assert len(candidates) == 1
        assert len(errors) == 1
        assert errors[0].block is None

    def test_invalid_upstream_port(self):
        """Test bad ports are block errors."""
        text = """
a.com {
    reverse_proxy a:99999
}
b.com {
    reverse_proxy b:http
}
c.com {
    reverse_proxy c:80
}
"""
        candidates, errors = parse_caddyfile(text)
        assert [c.domains for c in candidates] == [["c.com"]]
        assert len(errors) == 2
        assert "out of range" in errors[0].message
        assert "Invalid upstream port" in errors[1].message

    def test_only_path_scoped_proxy_is_error(self):
        """Test a site without a site-wide proxy is rejected."""
        _, errors = parse_caddyfile("a.com {\n    reverse_proxy /api/* api:80\n}")
        assert len(errors) == 1
        assert "site-wide" in errors[0].message

    def test_catch_all_address_is_error(self):
        """Test a block with no domain names is rejected."""
        _, errors = parse_caddyfile(":8080 {\n    reverse_proxy a:1\n}")
        assert len(errors) == 1
        assert "no domain names" in errors[0].message

    def test_top_level_import(self):
        """Test top-level imports of other files are reported."""
        candidates, errors = parse_caddyfile("import sites/*.caddy\na.com {\n    reverse_proxy a:1\n}")
        assert len(candidates) == 1
        assert "import" in errors[0].message

    def test_unterminated_quote(self):
        """Test an unterminated string only breaks its own block."""
        text = """a.com {
    header X-Test "unterminated
    reverse_proxy a:1
}
b.com {
    reverse_proxy b:2
}
"""
        candidates, errors = parse_caddyfile(text)
        assert [c.domains for c in candidates] == [["b.com"]]
        assert len(errors) == 1
        assert errors[0].line == 2

    def test_duplicate_domain_dropped_from_later_block(self):
        """Test a domain declared twice is kept by the first block only."""
        text = """
a.com, b.com {
    reverse_proxy x:1
}
b.com, c.com {
    reverse_proxy y:2
}
"""
        candidates, errors = parse_caddyfile(text)
        assert errors == []
        assert candidates[0].domains == ["a.com", "b.com"]
        assert candidates[1].domains == ["c.com"]
        assert any("b.com" in w for w in candidates[1].warnings)

    def test_block_with_only_duplicate_domains_is_error(self):
        """Test a block whose domains are all taken by earlier blocks."""
        text = "a.com {\n    reverse_proxy x:1\n}\na.com {\n    reverse_proxy y:2\n}\n"
        candidates, errors = parse_caddyfile(text)
        assert len(candidates) == 1
        assert len(errors) == 1
        assert errors[0].line == 4

    def test_deep_nesting_is_error(self):
        """Test excessive nesting is rejected without recursion errors."""
        depth = 40
        text = "a.com {\n    reverse_proxy a:1\n" + "x {\n" * depth + "}\n" * depth + "}\n"
        candidates, errors = parse_caddyfile(text)
        assert candidates == []
        assert "nested too deeply" in errors[0].message
