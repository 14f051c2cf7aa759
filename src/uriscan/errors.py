__all__ = ('ParseError',
           'EmptyInputError',
           'InvalidSchemeError',
           'MissingSchemeError',
           'UnterminatedIPv6LiteralError',
           'MalformedPercentEncodingError',
           'NonAsciiInputError')


class ParseError(ValueError):
    pass


class EmptyInputError(ParseError):
    pass


class InvalidSchemeError(ParseError):
    pass


class MissingSchemeError(InvalidSchemeError):
    pass


class UnterminatedIPv6LiteralError(ParseError):
    pass


class MalformedPercentEncodingError(ParseError):
    pass


class NonAsciiInputError(ParseError):
    pass
