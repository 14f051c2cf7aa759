"""uriscan.parse
A single-pass URI reference parser.
Splits on the RFC 3986 component delimiters and recovers leniently from the
imperfect URLs found in the wild, with an opt-in strict mode for percent-encoding.
"""

import dataclasses
import logging
import re

from types import MappingProxyType
from typing import Mapping, Self

# Both of these leave a "%" that isn't followed by two hex digits untouched,
# which is exactly the lenient decoding we want:
from urllib.parse import unquote, unquote_to_bytes

from .errors import (
    EmptyInputError,
    InvalidSchemeError,
    MalformedPercentEncodingError,
    MissingSchemeError,
    NonAsciiInputError,
    UnterminatedIPv6LiteralError,
)

logger = logging.getLogger(__name__)

# Each of these ABNF rules is from RFC 3986 or 5234.

# ALPHA = %x41-5A / %x61-7A
_ALPHA: str = r"[A-Za-z]"

# DIGIT = %x30-39
_DIGIT: str = r"[0-9]"

# HEXDIG = DIGIT / "A" / "B" / "C" / "D" / "E" / "F"
_HEXDIG: str = rf"(?:{_DIGIT}|[A-Fa-f])"

# scheme = ALPHA *( ALPHA / DIGIT / "+" / "-" / "." )
_SCHEME: str = rf"{_ALPHA}(?:{_ALPHA}|{_DIGIT}|[+\-.])*"
_SCHEME_PAT: re.Pattern[str] = re.compile(_SCHEME)

# port = *DIGIT
_PORT: str = rf"{_DIGIT}*"
_PORT_PAT: re.Pattern[str] = re.compile(_PORT)

# A "%" that does not start a pct-encoded triplet (pct-encoded = "%" HEXDIG HEXDIG).
_MALFORMED_PCT_PAT: re.Pattern[str] = re.compile(rf"%(?!{_HEXDIG}{_HEXDIG})")

_NON_ASCII_PAT: re.Pattern[str] = re.compile(r"[^\x00-\x7f]")

# Delimiter scans, each anchored at the cursor with Pattern.match(data, pos).
# None of them can backtrack, so a full parse stays linear in len(data).
_SCHEME_RUN_PAT: re.Pattern[str] = re.compile(r"[^:/?#]*")
_AUTHORITY_PAT: re.Pattern[str] = re.compile(r"[^/?#]*")
_PATH_PAT: re.Pattern[str] = re.compile(r"[^?#]*")
_QUERY_PAT: re.Pattern[str] = re.compile(r"[^#]*")

WELL_KNOWN_PORTS: Mapping[str, int] = MappingProxyType(
    {
        "ftp": 21,
        "ssh": 22,
        "telnet": 23,
        "gopher": 70,
        "http": 80,
        "ws": 80,
        "ldap": 389,
        "https": 443,
        "wss": 443,
        "ldaps": 636,
        "rtsp": 554,
        "imap": 143,
        "nntp": 119,
        "redis": 6379,
        "postgresql": 5432,
        "mysql": 3306,
    }
)


@dataclasses.dataclass(frozen=True)
class ParseOptions:
    """Configuration for a single parse() call.

    strict_decoding -- reject "%" not followed by two hex digits instead of passing it through
    allow_non_ascii -- accept characters above U+007F anywhere in the input
    default_ports   -- lower-case scheme -> port used by ParsedUri.port_number when no port is written
    """

    strict_decoding: bool = False
    allow_non_ascii: bool = True
    default_ports: Mapping[str, int] = dataclasses.field(default_factory=dict, hash=False)


DEFAULT_OPTIONS: ParseOptions = ParseOptions()


def validate_percent_encoding(text: str, component: str = "value") -> None:
    """Raises MalformedPercentEncodingError at the first "%" that doesn't start a %XX triplet."""
    m: re.Match[str] | None = _MALFORMED_PCT_PAT.search(text)
    if m is not None:
        bad: str = text[m.start() : m.start() + 3]
        raise MalformedPercentEncodingError(
            f"malformed percent-encoding {bad!r} in {component} at offset {m.start()}"
        )


def percent_decode_to_bytes(text: str, *, strict: bool = False) -> bytes:
    """Replaces each %XX with the byte it encodes.
    Characters outside ASCII are kept as their UTF-8 bytes.
    Malformed sequences are copied through literally unless strict is set.
    """
    if strict:
        validate_percent_encoding(text)
    return unquote_to_bytes(text)


def percent_decode(text: str, *, strict: bool = False, encoding: str = "utf-8", errors: str = "replace") -> str:
    """Like percent_decode_to_bytes, but decodes the resulting bytes as text."""
    if strict:
        validate_percent_encoding(text)
    return unquote(text, encoding=encoding, errors=errors)


def _decode_if_not_none(s: str | None) -> str | None:
    if s is None:
        return None
    return percent_decode(s)


@dataclasses.dataclass(frozen=True)
class ParsedUri:
    """A parsed URI reference. You should not instantiate this directly. Instead use parse().

    Every field holds the raw text exactly as it appeared in the input, apart
    from the scheme, which is lower-cased. None means the component (and its
    delimiter) was absent; "" means the delimiter was there with nothing after it.
    The decoded_* properties decode the raw text once, on every access; nothing
    is ever decoded twice.
    """

    scheme: str | None
    userinfo: str | None
    host: str | None
    port: str | None
    path: str
    query: str | None
    fragment: str | None
    default_port: int | None = dataclasses.field(default=None, compare=False, repr=False)

    @property
    def is_absolute(self: Self) -> bool:
        return self.scheme is not None

    @property
    def authority(self: Self) -> str | None:
        """userinfo@host:port"""
        if self.host is None:
            return None
        result: str = ""
        if self.userinfo is not None:
            result += f"{self.userinfo}@"
        result += self.host
        if self.port is not None:
            result += f":{self.port}"
        return result

    @property
    def username(self: Self) -> str | None:
        if self.userinfo is None:
            return None
        return self.userinfo.partition(":")[0]

    @property
    def password(self: Self) -> str | None:
        if self.userinfo is None:
            return None
        _, colon, password = self.userinfo.partition(":")
        if len(colon) == 0:
            return None
        return password

    @property
    def hostname(self: Self) -> str | None:
        if self.host is None:
            return None
        if self.host.startswith("[") and self.host.endswith("]"):
            return self.host[1:-1]
        return self.host

    @property
    def port_number(self: Self) -> int | None:
        """The written port, or the scheme's default port if none was written."""
        if self.port:
            return int(self.port, base=10)
        return self.default_port

    @property
    def path_segments(self: Self) -> tuple[str, ...]:
        """Raw path split on "/". Empty segments are kept, so "/".join(segments) == path."""
        if len(self.path) == 0:
            return ()
        return tuple(self.path.split("/"))

    @property
    def decoded_path_segments(self: Self) -> tuple[str, ...]:
        # Split first, decode second: an encoded "%2F" stays inside its segment.
        return tuple(percent_decode(segment) for segment in self.path_segments)

    @property
    def decoded_userinfo(self: Self) -> str | None:
        return _decode_if_not_none(self.userinfo)

    @property
    def decoded_username(self: Self) -> str | None:
        return _decode_if_not_none(self.username)

    @property
    def decoded_password(self: Self) -> str | None:
        return _decode_if_not_none(self.password)

    @property
    def decoded_host(self: Self) -> str | None:
        return _decode_if_not_none(self.host)

    @property
    def decoded_path(self: Self) -> str:
        return percent_decode(self.path)

    @property
    def decoded_query(self: Self) -> str | None:
        return _decode_if_not_none(self.query)

    @property
    def decoded_fragment(self: Self) -> str | None:
        return _decode_if_not_none(self.fragment)

    def serialize(self: Self) -> str:
        """Component recomposition from RFC 3986 section 5.3"""
        result: str = ""
        if self.scheme is not None:
            result += f"{self.scheme}:"
        if self.authority is not None:
            result += f"//{self.authority}"
        result += self.path
        if self.query is not None:
            result += f"?{self.query}"
        if self.fragment is not None:
            result += f"#{self.fragment}"
        return result

    def __str__(self: Self) -> str:
        return self.serialize()


def _scan_scheme(data: str) -> tuple[str | None, int]:
    """Returns (scheme, cursor). A reference without a scheme leaves the cursor at 0."""
    end: int = _SCHEME_RUN_PAT.match(data).end()
    if end == len(data) or data[end] != ":":
        return None, 0
    candidate: str = data[:end]
    if _SCHEME_PAT.fullmatch(candidate) is None:
        # Something like "123:foo" or ":foo". It can't be a relative reference
        # either, since a colon isn't allowed in the first segment of one.
        raise InvalidSchemeError(f"invalid scheme {candidate!r}")
    return candidate.lower(), end + 1


def _split_host_port(hostport: str) -> tuple[str, str | None]:
    if hostport.startswith("["):
        close: int = hostport.find("]")
        if close == -1:
            raise UnterminatedIPv6LiteralError(f"unterminated IP literal in {hostport!r}")
        host: str = hostport[: close + 1]
        rest: str = hostport[close + 1 :]
        if len(rest) == 0:
            return host, None
        if rest.startswith(":") and _PORT_PAT.fullmatch(rest, 1) is not None:
            return host, rest[1:]
        logger.debug("folding %r after IP literal back into host", rest)
        return hostport, None

    head, colon, tail = hostport.rpartition(":")
    if len(colon) == 0:
        return hostport, None
    if _PORT_PAT.fullmatch(tail) is None:
        # Lenient on purpose: "host:abc" is kept whole as the host, no port.
        logger.debug("folding non-numeric port %r back into host", tail)
        return hostport, None
    return head, tail


def _split_authority(authority: str) -> tuple[str | None, str, str | None]:
    userinfo: str | None = None
    # The last "@" wins, so a literal "@" inside userinfo still parses.
    at: int = authority.rfind("@")
    if at != -1:
        userinfo = authority[:at]
        authority = authority[at + 1 :]
    host, port = _split_host_port(authority)
    return userinfo, host, port


def parse(data: str, options: ParseOptions | None = None, *, require_absolute: bool = False) -> ParsedUri:
    """Parses a URI or relative reference into its raw components.

    Raises a ParseError subclass when data can't be a URI reference, or when
    require_absolute is set and data has no scheme. Delimiters are found
    before anything is decoded, so "%2F", "%3F", "%23" and "%40" never split
    components.
    """
    if not isinstance(data, str):
        raise TypeError(f"parse() expects str, not {type(data).__name__}")
    if options is None:
        options = DEFAULT_OPTIONS

    if require_absolute and len(data) == 0:
        raise EmptyInputError("empty input where an absolute URI is required")

    if not options.allow_non_ascii:
        m: re.Match[str] | None = _NON_ASCII_PAT.search(data)
        if m is not None:
            raise NonAsciiInputError(f"non-ASCII character {m.group()!r} at offset {m.start()}")

    scheme, pos = _scan_scheme(data)
    if require_absolute and scheme is None:
        raise MissingSchemeError(f"no scheme in {data!r}")

    userinfo: str | None = None
    host: str | None = None
    port: str | None = None
    if data.startswith("//", pos):
        end: int = _AUTHORITY_PAT.match(data, pos + 2).end()
        userinfo, host, port = _split_authority(data[pos + 2 : end])
        pos = end

    end = _PATH_PAT.match(data, pos).end()
    path: str = data[pos:end]
    pos = end

    query: str | None = None
    if data.startswith("?", pos):
        end = _QUERY_PAT.match(data, pos + 1).end()
        query = data[pos + 1 : end]
        pos = end

    fragment: str | None = None
    if data.startswith("#", pos):
        fragment = data[pos + 1 :]

    if options.strict_decoding:
        for component, value in (
            ("userinfo", userinfo),
            ("host", host),
            ("path", path),
            ("query", query),
            ("fragment", fragment),
        ):
            if value is not None:
                validate_percent_encoding(value, component)

    return ParsedUri(
        scheme=scheme,
        userinfo=userinfo,
        host=host,
        port=port,
        path=path,
        query=query,
        fragment=fragment,
        default_port=options.default_ports.get(scheme) if scheme is not None else None,
    )


def parse_absolute(data: str, options: ParseOptions | None = None) -> ParsedUri:
    """parse(), but a scheme is required and empty input is an error."""
    return parse(data, options, require_absolute=True)
