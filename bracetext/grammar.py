"""
Brace Text Format v1.0
======================

Layout (keyed framing):
    {                            <- Open: a record, sequence, array or map
        Name Alice               <- field name word, then a scalar word inline
        Tags                     <- field name of a bracketed value ...
        {                        <- ... which starts on its own indented line
            admin
            "on call"            <- quoted word (contains a space)
        }
    }

Layout (tabular framing):
    [ ID Key Strings ]           <- header, only at the very start of a stream
    { 1 ABCDEFGHIJKLMNOP { 00 01 02 03 } }   <- one positional row per value
    {}                           <- an all-zero row

Tokens:
    {  }                         <- Open / Close
    [  ]                         <- OpenHeader / CloseHeader
    word                         <- bare run of non-whitespace characters
    "word"                       <- quoted run, escapes \\n \\r \\t \\\\ \\"
    // ... end of line           <- line comment (skipped)
    /* ... */                    <- block comment (skipped, may span lines)

Design Decisions:
    - No schema in the stream: the shape is discovered from the target type
    - Zero-valued record fields are omitted on encode and left at zero on decode
    - Map keys are emitted in ascending order so output is deterministic
    - The tabular header names columns once; rows are positional afterwards
    - All UTF-8

Word Quoting:
    - The empty string is always written as ""
    - A string containing space, tab, newline, CR, apostrophe, backslash or
      double quote is quoted, and so is one starting with { } [ ] or /
    - Inside quotes \\ " newline CR and tab are escaped
"""

# Structural characters
OPEN = "{"
CLOSE = "}"
OPEN_HEADER = "["
CLOSE_HEADER = "]"
STRUCTURAL = frozenset(OPEN + CLOSE + OPEN_HEADER + CLOSE_HEADER)

# Comments
COMMENT_MARKER = "/"
LINE_COMMENT = "//"
BLOCK_COMMENT_OPEN = "/*"
BLOCK_COMMENT_CLOSE = "*/"

# Whitespace (newline is tracked separately for line counting)
NEWLINE = "\n"
WHITESPACE = frozenset(" \t\r")
WORD_TERMINATORS = WHITESPACE | {NEWLINE}

# Quoted words
QUOTE = '"'
ESCAPE = "\\"
EMPTY_WORD = '""'

# Escape letter -> literal character (decode side)
ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
}

# Literal character -> escape sequence (encode side)
_ESCAPE_SEQUENCES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    '"': '\\"',
}

# Any of these anywhere in a string forces quoting
QUOTE_TRIGGERS = frozenset(" \t\n\r'\\\"")

# A bare word starting with one of these would lex as structure or a comment
LEADING_QUOTE_TRIGGERS = STRUCTURAL | {COMMENT_MARKER}

# Encoder defaults
DEFAULT_INDENT = "\t"
ROW_SEPARATOR = " "

# Boolean spellings accepted on decode (written as true/false)
TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

# Safety limits
MAX_NESTING_DEPTH = 128            # Max brace nesting per decoded value
MAX_WORD_LENGTH = 16 * 1024 * 1024 # Max characters in a single word (prevents OOM)
MAX_COLUMNS = 4096                 # Max column names in a tabular header

# File extension
EXTENSION = ".btx"


def needs_quotes(text: str) -> bool:
    """Check if a string must be quoted to survive a decode as one word."""
    if not text:
        return True
    if text[0] in LEADING_QUOTE_TRIGGERS:
        return True
    return any(c in QUOTE_TRIGGERS for c in text)


def escape_word(text: str) -> str:
    """Escape the characters that cannot appear raw inside a quoted word.

    Every character is translated exactly once, so an escaped backslash is
    never escaped again.
    """
    return "".join(_ESCAPE_SEQUENCES.get(c, c) for c in text)


def quote_word(text: str) -> str:
    """Render a string as a single word, quoting and escaping if needed."""
    if text == "":
        return EMPTY_WORD
    if not needs_quotes(text):
        return text
    return QUOTE + escape_word(text) + QUOTE
