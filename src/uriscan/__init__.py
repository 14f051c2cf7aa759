__version__ = "0.1"

from .errors import EmptyInputError, InvalidSchemeError, MalformedPercentEncodingError, MissingSchemeError, NonAsciiInputError, ParseError, UnterminatedIPv6LiteralError
from .parse import DEFAULT_OPTIONS, WELL_KNOWN_PORTS, ParsedUri, ParseOptions, parse, parse_absolute, percent_decode, percent_decode_to_bytes, validate_percent_encoding
