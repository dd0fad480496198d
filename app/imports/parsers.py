"""Caddyfile parsing utilities for proxy host import.

The parser understands the subset of Caddyfile syntax that maps onto proxy
hosts: site blocks with a reverse_proxy directive plus a handful of options
(tls, HSTS headers, websocket handling, exploit blocking). Everything else
inside a site block is kept verbatim so nothing the user wrote is lost.

Block extents are found by balanced-brace scanning before any directive is
interpreted, so a broken block produces one ParseError and parsing resumes
at the next block.

Example:
    candidates, errors = parse_caddyfile("example.com { reverse_proxy localhost:8080 }")
"""

import logging
import re
from dataclasses import dataclass, field

from pydantic import ValidationError

from app.db.models import ForwardScheme
from app.imports.schemas import ForwardTarget, HostCandidate, ParseError
from app.proxy_hosts.utils import is_valid_domain, normalize_domain

logger = logging.getLogger(__name__)

MAX_NESTING_DEPTH = 32

# Snippet names that turn on exploit blocking when imported into a site
BLOCK_EXPLOITS_SNIPPETS = {"block_exploits", "blockexploits", "block-exploits"}

# Directives kept in extra_directives that proxy hosts cannot express
UNSUPPORTED_DIRECTIVES = {
    "rewrite": "Rewrite rules are not supported by proxy hosts",
    "uri": "URI manipulation is not supported by proxy hosts",
    "file_server": "File server directives are not supported by proxy hosts",
    "root": "Site roots are not supported by proxy hosts",
    "php_fastcgi": "FastCGI is not supported by proxy hosts",
    "respond": "Static responses are not supported by proxy hosts",
}

_SCHEME_RE = re.compile(r"^([a-z][a-z0-9+.-]*)://(.*)$", re.IGNORECASE)
_SNIPPET_RE = re.compile(r"^&?\(.+\)$")

# Token kinds
WORD = "word"
OPEN = "open"
CLOSE = "close"
NEWLINE = "newline"


@dataclass
class Token:
    """A lexical token with its source position.

    ``{`` and ``}`` are structural only when they stand alone, so Caddy
    placeholders such as ``{host}`` come through as ordinary words.
    """

    kind: str
    text: str
    line: int
    column: int
    start: int
    end: int
    quoted: bool = False
    unterminated: bool = False


@dataclass
class Directive:
    """A directive line, with its sub-block when it has one."""

    name: str
    args: list[Token]
    line: int
    start: int
    end: int
    children: list["Directive"] | None = None

    @property
    def values(self) -> list[str]:
        return [t.text for t in self.args]


class _BlockError(Exception):
    """A site block cannot be turned into a candidate."""

    def __init__(self, line: int, message: str):
        super().__init__(message)
        self.line = line
        self.message = message


@dataclass
class _SiteBuilder:
    """Accumulates what the directives of one site block say."""

    forward: ForwardTarget | None = None
    upstream_tls: bool = False
    ssl_forced: bool = False
    http2_support: bool = False
    hsts_enabled: bool = False
    hsts_subdomains: bool = False
    block_exploits: bool = False
    websocket_support: bool = False
    extra: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    scoped_proxies: int = 0
    # Snippets currently being expanded, innermost last
    importing: list[str] = field(default_factory=list)


def tokenize(text: str) -> list[Token]:
    """Split Caddyfile text into tokens.

    Handles double-quoted strings (with ``\\"`` escapes), backtick strings,
    ``#`` comments at token start, and newlines, which are significant.
    Consecutive newlines collapse into one NEWLINE token. An unterminated
    quote ends at the end of its line and is flagged.

    Args:
        text: Caddyfile contents.

    Returns:
        list[Token]: Tokens in source order.
    """
    tokens: list[Token] = []
    i = 0
    n = len(text)
    line = 1
    line_start = 0

    while i < n:
        ch = text[i]

        if ch == "\n":
            if tokens and tokens[-1].kind != NEWLINE:
                tokens.append(Token(NEWLINE, "\n", line, i - line_start, i, i + 1))
            line += 1
            line_start = i + 1
            i += 1
            continue

        if ch.isspace():
            i += 1
            continue

        if ch == "#":
            while i < n and text[i] != "\n":
                i += 1
            continue

        start = i
        tok_line = line
        column = i - line_start

        if ch in "\"`":
            quote = ch
            saved = (line, line_start)
            i += 1
            buf = []
            closed = False
            while i < n:
                c = text[i]
                if quote == '"' and c == "\\" and i + 1 < n and text[i + 1] in '"\\':
                    buf.append(text[i + 1])
                    i += 2
                    continue
                if c == quote:
                    closed = True
                    i += 1
                    break
                if c == "\n":
                    line += 1
                    line_start = i + 1
                buf.append(c)
                i += 1

            if not closed:
                # Stop at the end of the opening line so the rest of the
                # document is still scanned
                line, line_start = saved
                eol = text.find("\n", start)
                i = eol if eol != -1 else n
                buf = [text[start + 1 : i].rstrip("\r")]

            tokens.append(
                Token(
                    WORD,
                    "".join(buf),
                    tok_line,
                    column,
                    start,
                    i,
                    quoted=True,
                    unterminated=not closed,
                )
            )
            continue

        while i < n and not text[i].isspace():
            i += 1
        word = text[start:i]
        kind = OPEN if word == "{" else CLOSE if word == "}" else WORD
        tokens.append(Token(kind, word, tok_line, column, start, i))

    return tokens


def parse_upstream(address: str, line: int = 0) -> tuple[ForwardTarget, bool]:
    """Parse a reverse_proxy upstream address.

    Supported forms: ``host:port``, ``host``, ``scheme://host[:port]`` with
    http, https or h2c, and ``[ipv6]:port``. Without a port, 80 (http) or
    443 (https) is assumed.

    Args:
        address: Upstream address token.
        line: Source line, for error messages.

    Returns:
        tuple: (forward target, whether h2c was requested).

    Raises:
        _BlockError: If the address cannot be used as a forward target.
    """
    scheme = ForwardScheme.HTTP
    http2 = False
    rest = address

    if address.startswith("unix/"):
        raise _BlockError(line, f"Unix socket upstream '{address}' is not supported")
    if "{" in address:
        raise _BlockError(line, f"Upstream '{address}' uses a placeholder; a literal address is required")

    match = _SCHEME_RE.match(address)
    if match:
        given = match.group(1).lower()
        rest = match.group(2)
        if given == "https":
            scheme = ForwardScheme.HTTPS
        elif given == "h2c":
            http2 = True
        elif given != "http":
            raise _BlockError(line, f"Unsupported upstream scheme '{given}'")

    rest = rest.rstrip("/")
    if "/" in rest:
        raise _BlockError(line, f"Upstream '{address}' must not contain a path")

    if rest.startswith("["):
        end = rest.find("]")
        if end == -1:
            raise _BlockError(line, f"Malformed IPv6 upstream '{address}'")
        host = rest[1:end]
        port_part = rest[end + 1 :]
        if port_part and not port_part.startswith(":"):
            raise _BlockError(line, f"Malformed IPv6 upstream '{address}'")
        port_text = port_part[1:]
    elif ":" in rest:
        host, _, port_text = rest.rpartition(":")
    else:
        host, port_text = rest, ""

    if not host:
        raise _BlockError(line, f"Upstream '{address}' has no host")

    if port_text:
        if not port_text.isdigit():
            raise _BlockError(line, f"Invalid upstream port '{port_text}'")
        port = int(port_text)
        if not 1 <= port <= 65535:
            raise _BlockError(line, f"Upstream port {port} is out of range")
    else:
        port = 443 if scheme == ForwardScheme.HTTPS else 80

    return ForwardTarget(scheme=scheme, host=host, port=port), http2


def split_site_address(address: str, line: int = 0) -> tuple[str | None, str, str]:
    """Split a site address into scheme, host and path.

    Args:
        address: One site address, e.g. ``https://example.com:443``.
        line: Source line, for error messages.

    Returns:
        tuple: (scheme or None, host, path). Host is empty for catch-all
            addresses such as ``:8080``.

    Raises:
        _BlockError: If the address has an unknown scheme or a bad port.
    """
    scheme = None
    rest = address

    match = _SCHEME_RE.match(address)
    if match:
        scheme = match.group(1).lower()
        rest = match.group(2)
        if scheme not in ("http", "https"):
            raise _BlockError(line, f"Unsupported site address scheme '{scheme}'")

    rest, slash, path = rest.partition("/")
    host, _, port = rest.partition(":")
    if port and not port.isdigit():
        raise _BlockError(line, f"Invalid port in site address '{address}'")

    return scheme, host, slash + path


class CaddyfileParser:
    """Scans a Caddyfile into host candidates and per-block errors."""

    def __init__(self, text: str):
        """Initialize parser.

        Args:
            text: Caddyfile contents.
        """
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0
        self.candidates: list[HostCandidate] = []
        self.errors: list[ParseError] = []
        self.default_http2 = False
        self.snippets: dict[str, list[Directive]] = {}
        self._seen_domains: dict[str, int] = {}
        self._sites_seen = 0

    def parse(self) -> tuple[list[HostCandidate], list[ParseError]]:
        """Parse the whole document.

        Returns:
            tuple: (candidates in source order, errors in source order).
        """
        first_block = True

        while True:
            self._skip_newlines()
            if self.pos >= len(self.tokens):
                break

            tok = self.tokens[self.pos]
            if tok.kind == CLOSE:
                self._error(tok.line, None, "Unexpected '}' outside of a site block")
                self.pos += 1
            elif tok.kind == OPEN:
                self._parse_global_options(first_block)
            else:
                self._parse_site_block()
            first_block = False

        logger.debug(
            "Parsed Caddyfile: %d candidates, %d errors", len(self.candidates), len(self.errors)
        )
        return self.candidates, self.errors

    # --- Scanning helpers ---

    def _skip_newlines(self) -> None:
        while self.pos < len(self.tokens) and self.tokens[self.pos].kind == NEWLINE:
            self.pos += 1

    def _error(self, line: int, block: str | None, message: str) -> None:
        self.errors.append(ParseError(line=line, block=block, message=message))

    def _find_block_end(self, open_index: int) -> int | None:
        """Return the index of the brace closing the block opened at open_index."""
        depth = 0
        for index in range(open_index, len(self.tokens)):
            kind = self.tokens[index].kind
            if kind == OPEN:
                depth += 1
            elif kind == CLOSE:
                depth -= 1
                if depth == 0:
                    return index
        return None

    def _is_line_start(self, index: int) -> bool:
        return index == 0 or self.tokens[index - 1].kind == NEWLINE

    def _resume_index(self, after: int) -> int:
        """Next block boundary after a block that could not be delimited.

        That is the next line starting with a word in column 0.
        """
        for index in range(after + 1, len(self.tokens)):
            tok = self.tokens[index]
            if tok.kind == WORD and tok.column == 0 and self._is_line_start(index):
                return index
        return len(self.tokens)

    def _line_ends_with_open(self, index: int) -> bool:
        last = None
        while index < len(self.tokens) and self.tokens[index].kind != NEWLINE:
            last = self.tokens[index]
            index += 1
        return last is not None and last.kind == OPEN

    def _raw_text(self, directive: Directive) -> str:
        """Source text of a directive, re-indented relative to its own line."""
        line_start = self.text.rfind("\n", 0, directive.start) + 1
        indent = self.text[line_start : directive.start]
        if indent.strip():
            indent = ""

        lines = self.text[directive.start : directive.end].split("\n")
        out = [lines[0].rstrip("\r")]
        for raw_line in lines[1:]:
            raw_line = raw_line.rstrip("\r")
            if indent and raw_line.startswith(indent):
                raw_line = raw_line[len(indent) :]
            out.append(raw_line)
        return "\n".join(out)

    # --- Block structure ---

    def _parse_directives(self, start: int, end: int, depth: int) -> list[Directive]:
        """Parse the directives between two token indexes of a balanced region."""
        directives = []
        index = start

        while index < end:
            tok = self.tokens[index]
            if tok.kind == NEWLINE:
                index += 1
                continue
            if tok.kind == OPEN:
                raise _BlockError(tok.line, "Unexpected '{' without a directive name")
            if tok.kind == CLOSE:
                raise _BlockError(tok.line, "Unexpected '}'")

            name_tok = tok
            args = []
            index += 1
            while index < end and self.tokens[index].kind == WORD:
                args.append(self.tokens[index])
                index += 1

            for word in [name_tok, *args]:
                if word.unterminated:
                    raise _BlockError(word.line, "Unterminated quoted string")

            last = args[-1] if args else name_tok
            children = None
            if index < end and self.tokens[index].kind == OPEN:
                if depth >= MAX_NESTING_DEPTH:
                    raise _BlockError(self.tokens[index].line, "Blocks are nested too deeply")
                close = self._find_block_end(index)
                children = self._parse_directives(index + 1, close, depth + 1)
                last = self.tokens[close]
                index = close + 1
                if index < end and self.tokens[index].kind == WORD:
                    raise _BlockError(self.tokens[index].line, "Expected a new line after '}'")

            directives.append(
                Directive(
                    name=name_tok.text,
                    args=args,
                    line=name_tok.line,
                    start=name_tok.start,
                    end=last.end,
                    children=children,
                )
            )

        return directives

    def _parse_global_options(self, first_block: bool) -> None:
        open_index = self.pos
        open_tok = self.tokens[open_index]
        close = self._find_block_end(open_index)
        if close is None:
            self._error(open_tok.line, None, "Unclosed global options block: missing '}'")
            self.pos = self._resume_index(open_index)
            return

        self.pos = close + 1
        if not first_block:
            self._error(open_tok.line, None, "Global options block must be the first block")
            return

        try:
            directives = self._parse_directives(open_index + 1, close, 1)
        except _BlockError as e:
            self._error(e.line, None, f"Global options: {e.message}")
            return

        for directive in directives:
            if directive.name != "servers" or not directive.children:
                continue
            for option in directive.children:
                if option.name == "protocols" and {"h2", "h2c"} & set(option.values):
                    self.default_http2 = True

    def _parse_site_block(self) -> None:
        label_start = self.pos
        labels = []
        while self.pos < len(self.tokens):
            tok = self.tokens[self.pos]
            if tok.kind == WORD:
                labels.append(tok)
            elif not (tok.kind == NEWLINE and labels[-1].text.endswith(",")):
                break
            # A trailing comma continues the address list on the next line
            self.pos += 1

        label_text = " ".join(t.text for t in labels)
        line = labels[0].line
        at_open = self.pos < len(self.tokens) and self.tokens[self.pos].kind == OPEN

        if not at_open:
            if labels[0].text == "import":
                self._error(line, None, "Top-level import of other files is not supported")
                self.pos = self._resume_index(label_start)
            elif self._braceless_site_allowed():
                self._sites_seen += 1
                self._finish_site(labels, label_text, self.pos, len(self.tokens))
                self.pos = len(self.tokens)
            else:
                self._error(line, label_text, "Expected '{' after site address")
                self.pos = self._resume_index(label_start)
            return

        open_index = self.pos
        close = self._find_block_end(open_index)
        self._sites_seen += 1
        if close is None:
            self._error(line, label_text, "Unclosed site block: missing '}'")
            self.pos = self._resume_index(open_index)
            return

        self.pos = close + 1
        if len(labels) == 1 and _SNIPPET_RE.match(labels[0].text):
            self._define_snippet(labels[0], open_index + 1, close)
            return

        self._finish_site(labels, label_text, open_index + 1, close)

    def _define_snippet(self, label: Token, start: int, end: int) -> None:
        """Record a ``(name) { ... }`` snippet for later ``import name`` lines."""
        if label.text.startswith("&"):
            self._error(label.line, label.text, "Named route definitions are not supported")
            return

        name = label.text[1:-1]
        try:
            self.snippets[name] = self._parse_directives(start, end, 1)
        except _BlockError as e:
            self._error(e.line, label.text, e.message)

    def _braceless_site_allowed(self) -> bool:
        """A single-site Caddyfile may omit the braces around its only block."""
        if self._sites_seen or self.candidates:
            return False
        for index in range(self.pos, len(self.tokens)):
            tok = self.tokens[index]
            if (
                tok.kind == WORD
                and tok.column == 0
                and self._is_line_start(index)
                and self._line_ends_with_open(index)
            ):
                return False
        return True

    def _finish_site(self, labels: list[Token], label_text: str, start: int, end: int) -> None:
        try:
            for tok in labels:
                if tok.unterminated:
                    raise _BlockError(tok.line, "Unterminated quoted string")
            directives = self._parse_directives(start, end, 1)
            candidate = self._build_candidate(labels, directives)
            candidate = self._drop_seen_domains(candidate)
        except _BlockError as e:
            self._error(e.line, label_text, e.message)
            return

        for domain in candidate.domains:
            self._seen_domains[domain] = candidate.line
        self.candidates.append(candidate)

    # --- Interpretation ---

    def _build_candidate(self, labels: list[Token], directives: list[Directive]) -> HostCandidate:
        line = labels[0].line
        site = _SiteBuilder(http2_support=self.default_http2)
        domains: list[str] = []

        for tok in labels:
            for part in tok.text.split(","):
                part = part.strip()
                if not part:
                    continue
                scheme, host, path = split_site_address(part, tok.line)
                if scheme == "https":
                    site.ssl_forced = True
                if path and path != "/":
                    site.warnings.append(
                        f"line {tok.line}: path '{path}' in site address '{part}' was ignored"
                    )
                if not host:
                    continue
                domain = normalize_domain(host)
                if not is_valid_domain(domain):
                    raise _BlockError(tok.line, f"Invalid site address '{part}'")
                if domain not in domains:
                    domains.append(domain)

        if not domains:
            raise _BlockError(line, "Site block has no domain names")

        for directive in directives:
            self._apply_directive(site, directive)

        if site.forward is None:
            if site.scoped_proxies:
                raise _BlockError(line, "No site-wide reverse_proxy directive found")
            raise _BlockError(line, "No reverse_proxy directive found")

        try:
            return HostCandidate(
                domains=domains,
                forward=site.forward,
                ssl_forced=site.ssl_forced,
                http2_support=site.http2_support,
                hsts_enabled=site.hsts_enabled,
                hsts_subdomains=site.hsts_subdomains,
                block_exploits=site.block_exploits,
                websocket_support=site.websocket_support,
                extra_directives="\n".join(site.extra),
                line=line,
                warnings=site.warnings,
            )
        except ValidationError as e:
            raise _BlockError(line, f"Invalid site block: {e.errors()[0]['msg']}") from e

    def _drop_seen_domains(self, candidate: HostCandidate) -> HostCandidate:
        """Remove domains that an earlier site block already declared."""
        dropped = [d for d in candidate.domains if d in self._seen_domains]
        if not dropped:
            return candidate

        kept = [d for d in candidate.domains if d not in self._seen_domains]
        if not kept:
            raise _BlockError(
                candidate.line,
                f"All domains are already declared by an earlier site block: {', '.join(dropped)}",
            )

        warnings = list(candidate.warnings)
        for domain in dropped:
            warnings.append(
                f"Domain '{domain}' is already declared at line {self._seen_domains[domain]}; "
                "dropped from this block"
            )
        return candidate.model_copy(update={"domains": kept, "warnings": warnings})

    def _apply_directive(self, site: _SiteBuilder, directive: Directive) -> None:
        name = directive.name

        if name == "reverse_proxy":
            self._apply_reverse_proxy(site, directive)
        elif name == "tls":
            site.ssl_forced = True
            if directive.args or directive.children:
                site.extra.append(self._raw_text(directive))
        elif name == "header":
            self._apply_header(site, directive)
        elif name == "import":
            self._apply_import(site, directive)
        elif name.startswith("@"):
            if _matcher_requires_websocket(directive):
                site.websocket_support = True
            site.extra.append(self._raw_text(directive))
        else:
            if name in UNSUPPORTED_DIRECTIVES:
                site.warnings.append(
                    f"line {directive.line}: {UNSUPPORTED_DIRECTIVES[name]}; "
                    "kept in extra directives"
                )
            site.extra.append(self._raw_text(directive))

    def _apply_import(self, site: _SiteBuilder, directive: Directive) -> None:
        """Expand an ``import`` of a snippet defined earlier in the document.

        The exploit-blocking snippets map onto the flag instead. Anything else
        (file globs, unknown names) is kept verbatim.
        """
        values = directive.values
        target = values[0] if values else ""

        if target.lower() in BLOCK_EXPLOITS_SNIPPETS:
            site.block_exploits = True
            return

        snippet = self.snippets.get(target)
        if snippet is None:
            site.extra.append(self._raw_text(directive))
            site.warnings.append(
                f"line {directive.line}: import '{target}' does not name a snippet defined "
                "above; kept in extra directives"
            )
            return

        if target in site.importing:
            raise _BlockError(directive.line, f"Snippet '{target}' imports itself")
        if len(values) > 1:
            site.warnings.append(
                f"line {directive.line}: arguments to snippet '{target}' were not substituted"
            )

        site.importing.append(target)
        for child in snippet:
            self._apply_directive(site, child)
        site.importing.pop()

    def _apply_reverse_proxy(self, site: _SiteBuilder, directive: Directive) -> None:
        values = directive.values
        if values and values[0] == "*":
            values = values[1:]

        if values and values[0].startswith(("/", "@")):
            site.scoped_proxies += 1
            site.extra.append(self._raw_text(directive))
            site.warnings.append(
                f"line {directive.line}: reverse_proxy {values[0]} is path-scoped; "
                "kept in extra directives"
            )
            return

        if site.forward is not None:
            site.extra.append(self._raw_text(directive))
            site.warnings.append(
                f"line {directive.line}: additional reverse_proxy kept in extra directives"
            )
            return

        upstreams = list(values)
        unrecognized = False
        for option in directive.children or []:
            if option.name == "to":
                upstreams.extend(option.values)
            elif option.name == "transport" and option.values[:1] == ["http"]:
                for setting in option.children or []:
                    if setting.name.startswith("tls"):
                        site.upstream_tls = True
                        # tls_* options (client certs, skip verify) are kept verbatim
                        unrecognized = unrecognized or setting.name != "tls"
                    elif setting.name == "versions":
                        if {"2", "h2c"} & set(setting.values):
                            site.http2_support = True
                    else:
                        unrecognized = True
            elif option.name == "header_up" and _is_upgrade_header(option.values):
                site.websocket_support = True
            else:
                unrecognized = True

        if not upstreams:
            raise _BlockError(directive.line, "reverse_proxy has no upstream address")

        target, http2 = parse_upstream(upstreams[0], directive.line)
        if site.upstream_tls:
            target = target.model_copy(update={"scheme": ForwardScheme.HTTPS})
        site.forward = target
        site.http2_support = site.http2_support or http2

        if len(upstreams) > 1:
            site.warnings.append(
                f"line {directive.line}: {len(upstreams)} upstreams given; "
                f"only {upstreams[0]} was imported"
            )
        if unrecognized:
            site.extra.append(self._raw_text(directive))
            site.warnings.append(
                f"line {directive.line}: reverse_proxy options kept verbatim in extra directives"
            )

    def _apply_header(self, site: _SiteBuilder, directive: Directive) -> None:
        values = directive.values
        if values and values[0].startswith(("@", "/", "*")):
            values = values[1:]

        # One "<field> [value]" entry for the single-line form, one per child
        # for the block form
        fields = [values] if values else []
        fields.extend([child.name, *child.values] for child in directive.children or [])

        hsts_only = bool(fields)
        for header in fields:
            field_name = header[0]
            if field_name.startswith("-"):
                hsts_only = False
                continue
            if field_name.lstrip("+>?").lower() == "strict-transport-security":
                site.hsts_enabled = True
                if "includesubdomains" in " ".join(header[1:]).lower():
                    site.hsts_subdomains = True
            else:
                hsts_only = False

        if not hsts_only:
            site.extra.append(self._raw_text(directive))


def _is_upgrade_header(values: list[str]) -> bool:
    return bool(values) and values[0].lstrip("+-").lower() in ("upgrade", "connection")


def _matcher_requires_websocket(directive: Directive) -> bool:
    """Whether a named matcher selects websocket upgrade requests."""
    conditions = [directive.values]
    conditions.extend([child.name, *child.values] for child in directive.children or [])
    for condition in conditions:
        lowered = [v.lower() for v in condition]
        if "header" in lowered:
            lowered = lowered[lowered.index("header") + 1 :]
        if len(lowered) >= 2 and lowered[0] == "upgrade" and "websocket" in lowered[1]:
            return True
    return False


def parse_caddyfile(text: str) -> tuple[list[HostCandidate], list[ParseError]]:
    """Parse Caddyfile text into host candidates.

    Malformed site blocks become ParseErrors; the rest of the document is
    still parsed. Identical input always yields identical output.

    Args:
        text: Caddyfile contents.

    Returns:
        tuple: (candidates, errors), both in source order.
    """
    return CaddyfileParser(text).parse()
