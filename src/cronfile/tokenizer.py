"""Command line tokenizer for crontab entries."""

from enum import Enum
from typing import List, Optional

from scheduler.errors import TokenizationError

SEPARATORS = " \t"

CONTROL_ESCAPES = {
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "v": "\v",
    "f": "\f",
    "r": "\r",
}

HEX_ESCAPE_WIDTHS = {"x": 2, "u": 4}

HEX_DIGITS = "0123456789abcdefABCDEF"


class State(Enum):
    SEPARATOR = "separator"
    UNQUOTED = "unquoted"
    SINGLE_QUOTED = "single-quoted"
    DOUBLE_QUOTED = "double-quoted"
    ESCAPE = "escape"
    HEX_ESCAPE = "hex-escape"


QUOTES = {"'": State.SINGLE_QUOTED, '"': State.DOUBLE_QUOTED}


def parse_command_line(text: str) -> List[str]:
    """Split a command line into tokens, honoring quotes and escapes.

    Tokens are separated by blanks and tabs. Quoted segments may appear
    anywhere in a token and are joined with the unquoted text around them,
    but a token cannot mix single and double quotes. Inside quotes a backslash
    escapes the quote characters and itself, introduces the control escapes
    ``\\b \\t \\n \\v \\f \\r`` and the fixed-width ``\\xHH`` and ``\\uHHHH``
    escapes; any other escaped character is kept literally.

    Example:
        parse_command_line('./task.py "arg\\\\"1\\\\" " "arg 2"')
        # ['./task.py', 'arg"1" ', 'arg 2']

    Raises:
        TokenizationError: on unbalanced or mixed quotes, or a malformed hex escape
    """
    tokens: List[str] = []
    token: List[str] = []
    token_quote: Optional[str] = None
    state = State.SEPARATOR
    quoted = State.SEPARATOR  # quoting state to return to after an escape
    hex_digits: List[str] = []
    hex_width = 0
    quote_start: Optional[int] = None

    for position, char in enumerate(text):
        if state in (State.SEPARATOR, State.UNQUOTED):
            if char in SEPARATORS:
                if state is State.UNQUOTED:
                    tokens.append("".join(token))
                    token, token_quote = [], None
                    state = State.SEPARATOR
            elif char in QUOTES:
                if token_quote is not None and token_quote != char:
                    raise TokenizationError(
                        f"Mixed single and double quotes at position {position}",
                        quote=char, position=position
                    )
                token_quote = char
                quote_start = position
                state = QUOTES[char]
            else:
                token.append(char)
                state = State.UNQUOTED

        elif state in (State.SINGLE_QUOTED, State.DOUBLE_QUOTED):
            if char == token_quote:
                state = State.UNQUOTED
            elif char == "\\":
                quoted = state
                state = State.ESCAPE
            else:
                token.append(char)

        elif state is State.ESCAPE:
            if char in HEX_ESCAPE_WIDTHS:
                hex_width = HEX_ESCAPE_WIDTHS[char]
                hex_digits = []
                state = State.HEX_ESCAPE
            else:
                token.append(CONTROL_ESCAPES.get(char, char))
                state = quoted

        elif state is State.HEX_ESCAPE:
            if char not in HEX_DIGITS:
                raise TokenizationError(
                    f"Invalid hex escape at position {position}: {char!r}",
                    position=position
                )
            hex_digits.append(char)
            if len(hex_digits) == hex_width:
                token.append(chr(int("".join(hex_digits), 16)))
                state = quoted

    if state is State.UNQUOTED:
        tokens.append("".join(token))
    elif state is not State.SEPARATOR:
        kind = "single" if token_quote == "'" else "double"
        raise TokenizationError(
            f"Unbalanced {kind} quote starting at position {quote_start}",
            quote=token_quote, position=quote_start
        )

    return tokens
