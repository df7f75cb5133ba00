"""
Lexer for pipeshell

Tokenizes pipeshell source code into a stream of tokens.

Features:
- Single-pass tokenization with line/column tracking
- Operator words (-eq, -and, -not) versus command parameters (-Property)
- Command names containing '-' (Where-Object)
- Single-quoted verbatim strings, double-quoted strings with $var / $( )
  interpolation parts
"""

from typing import List, Optional, Tuple

from .token_types import TT, Tok

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    pipeshell lexer.

    Keywords and operator words are case-insensitive. Newlines are emitted as
    NEWLINE tokens; the parser decides where they separate statements.
    """

    KEYWORDS = {
        'if': TT.IF,
        'elseif': TT.ELSEIF,
        'else': TT.ELSE,
        'function': TT.FUNCTION,
        'return': TT.RETURN,
        'true': TT.TRUE,
        'false': TT.FALSE,
    }

    VARIABLE_KEYWORDS = {
        'true': TT.TRUE,
        'false': TT.FALSE,
        'null': TT.NULL,
    }

    OPERATOR_WORDS = {
        'eq': TT.COMPARE,
        'ne': TT.COMPARE,
        'gt': TT.COMPARE,
        'lt': TT.COMPARE,
        'ge': TT.COMPARE,
        'le': TT.COMPARE,
        'and': TT.LOGICAL,
        'or': TT.LOGICAL,
        'not': TT.NOT,
    }

    OPERATORS = [
        ('@(', TT.AT_LPAR),
        ('@{', TT.AT_LBRACE),
        ('+', TT.PLUS),
        ('-', TT.MINUS),
        ('*', TT.STAR),
        ('/', TT.SLASH),
        ('%', TT.MOD),
        ('!', TT.NEG),
        ('=', TT.ASSIGN),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('{', TT.LBRACE),
        ('}', TT.RBRACE),
        ('.', TT.DOT),
        (',', TT.COMMA),
        (';', TT.SEMI),
        ('|', TT.PIPE),
        ('&', TT.AMP),
    ]

    BACKTICK_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '0': '\0', 'a': '\a', 'b': '\b'}
    BACKSLASH_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '0': '\0', '\\': '\\', '"': '"', '$': '$'}

    def __init__(self, source: str, line: int = 1, column: int = 1):
        self.source = source
        self.pos = 0
        self.line = line
        self.column = column
        self.tokens: List[Tok] = []
        self.tok_line = line
        self.tok_column = column

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.mark()
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        if self.skip_whitespace():
            return

        self.mark()
        ch = self.peek()

        if ch == '<' and self.peek(1) == '#':
            self.skip_block_comment()
            return

        if ch == '#':
            self.skip_comment()
            return

        # Backtick line continuation
        if ch == '`' and self.peek(1) in ('\n', '\r'):
            self.advance()
            self.consume_newline()
            return

        if ch in ('\n', '\r'):
            self.consume_newline()
            self.emit(TT.NEWLINE, '\n')
            return

        if ch == "'":
            self.scan_single_quoted()
            return

        if ch == '"':
            self.scan_double_quoted()
            return

        if ch == '$':
            self.scan_variable()
            return

        if ch.isdigit() or (ch == '.' and self.peek(1).isdigit() and not self.follows_operand()):
            self.scan_number()
            return

        if ch == '-' and (self.peek(1).isalpha() or self.peek(1) == '_'):
            self.scan_dash_word()
            return

        if ch.isalpha() or ch == '_':
            self.scan_identifier()
            return

        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_single_quoted(self):
        """Scan '...' where '' stands for one quote; no other escapes"""
        start_line = self.line
        self.advance()
        value = ''

        while True:
            if self.pos >= len(self.source):
                raise LexError(f"Unterminated string at line {start_line}", start_line, self.tok_column)

            ch = self.advance()
            if ch == "'":
                if self.peek() == "'":
                    value += self.advance()
                    continue
                break

            if ch == '\n':
                self.new_line()
            value += ch

        self.emit(TT.STRING, value)

    def scan_double_quoted(self):
        """Scan "..." into literal text and interpolation parts"""
        start_line = self.line
        self.advance()
        parts: List[Tuple] = []
        text = ''

        while True:
            if self.pos >= len(self.source):
                raise LexError(f"Unterminated string at line {start_line}", start_line, self.tok_column)

            ch = self.peek()

            if ch == '"':
                self.advance()
                if self.peek() == '"':
                    text += self.advance()
                    continue
                break

            if ch == '`' and self.pos + 1 < len(self.source):
                self.advance()
                esc = self.advance()
                text += self.BACKTICK_ESCAPES.get(esc, esc)
                continue

            if ch == '\\' and self.peek(1) in self.BACKSLASH_ESCAPES:
                self.advance()
                text += self.BACKSLASH_ESCAPES[self.advance()]
                continue

            if ch == '$' and self.peek(1) == '(':
                if text:
                    parts.append(('text', text))
                    text = ''
                parts.append(self.scan_subexpression())
                continue

            if ch == '$' and self.is_name_start(self.peek(1)):
                if text:
                    parts.append(('text', text))
                    text = ''
                self.advance()
                parts.append(('var', self.read_variable_name()))
                continue

            self.advance()
            if ch == '\n':
                self.new_line()
            text += ch

        if not parts:
            self.emit(TT.STRING, text)
            return

        if text:
            parts.append(('text', text))
        self.emit(TT.INTERP_STRING, parts)

    def scan_subexpression(self) -> Tuple[str, str, int, int]:
        """Scan $( ... ) inside a double-quoted string; returns the inner source"""
        line, column = self.line, self.column + 2
        self.advance(2)
        depth = 1
        inner = ''
        quote: Optional[str] = None

        while self.pos < len(self.source):
            ch = self.advance()

            if ch == '\n':
                self.new_line()

            if quote is not None:
                if ch == quote:
                    quote = None
                inner += ch
                continue

            if ch in ("'", '"'):
                quote = ch
            elif ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth == 0:
                    return ('expr', inner, line, column)

            inner += ch

        raise LexError(f"Unterminated subexpression at line {line}", line, column)

    def scan_variable(self):
        """Scan $name, $scope:name, $true, $false, $null"""
        self.advance()

        # $( ... ) outside a string is a plain grouping
        if self.peek() == '(':
            self.advance()
            self.emit(TT.LPAR, '$(')
            return

        if not self.is_name_start(self.peek()):
            raise LexError(f"Expected variable name after '$' at line {self.tok_line}, col {self.tok_column}",
                           self.tok_line, self.tok_column)

        name = self.read_variable_name()
        keyword = self.VARIABLE_KEYWORDS.get(name.lower())

        if keyword is not None:
            self.emit(keyword, '$' + name)
            return

        self.emit(TT.VARIABLE, name)

    def read_variable_name(self) -> str:
        name = ''
        while self.peek().isalnum() or self.peek() == '_':
            name += self.advance()

        # one scope qualifier: $global:name
        if self.peek() == ':' and self.is_name_start(self.peek(1)):
            name += self.advance()
            while self.peek().isalnum() or self.peek() == '_':
                name += self.advance()

        return name

    def scan_number(self):
        """Scan number literal"""
        value = ''

        while self.peek().isdigit():
            value += self.advance()

        if self.peek() == '.' and self.peek(1).isdigit():
            value += self.advance()
            while self.peek().isdigit():
                value += self.advance()

        if self.peek() in ('e', 'E') and (self.peek(1).isdigit() or (self.peek(1) in ('+', '-') and self.peek(2).isdigit())):
            value += self.advance()
            if self.peek() in ('+', '-'):
                value += self.advance()
            while self.peek().isdigit():
                value += self.advance()

        self.emit(TT.NUMBER, value)

    def scan_dash_word(self):
        """Scan -word: an operator word or a command parameter name"""
        self.advance()
        word = ''

        while self.peek().isalnum() or self.peek() == '_':
            word += self.advance()

        kind = self.OPERATOR_WORDS.get(word.lower())
        if kind is not None:
            self.emit(kind, word.lower())
            return

        self.emit(TT.PARAM, word)

    def scan_identifier(self):
        """Scan identifier or keyword; '-' may join words (Where-Object)"""
        value = ''

        while True:
            ch = self.peek()
            if ch.isalnum() or ch == '_':
                value += self.advance()
            elif ch == '-' and (self.peek(1).isalnum() or self.peek(1) == '_'):
                value += self.advance()
            else:
                break

        token_type = self.KEYWORDS.get(value.lower(), TT.IDENT)
        self.emit(token_type, value)

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type, op_str)
                return

        ch = self.peek()
        raise LexError(f"Unexpected character '{ch}' at line {self.line}, col {self.column}", self.line, self.column)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        result = ''
        for _ in range(n):
            ch = self.source[self.pos] if self.pos < len(self.source) else '\0'
            result += ch
            self.pos += 1
            self.column += 1
        return result

    def is_name_start(self, ch: str) -> bool:
        return ch.isalpha() or ch == '_'

    def follows_operand(self) -> bool:
        if not self.tokens:
            return False
        return self.tokens[-1].type in (TT.VARIABLE, TT.IDENT, TT.RPAR, TT.RBRACE)

    def new_line(self):
        self.line += 1
        self.column = 1

    def consume_newline(self):
        if self.peek() == '\r' and self.peek(1) == '\n':
            self.advance(2)
        else:
            self.advance()
        self.new_line()

    def skip_whitespace(self) -> bool:
        """Skip whitespace (not newlines), return True if any skipped"""
        skipped = False
        while self.peek() in (' ', '\t'):
            self.advance()
            skipped = True
        return skipped

    def skip_comment(self):
        """Skip comment until end of line"""
        while self.peek() not in ('\n', '\r', '\0'):
            self.advance()

    def skip_block_comment(self):
        """Skip <# ... #>"""
        start_line = self.line
        self.advance(2)

        while self.pos < len(self.source):
            if self.peek() == '#' and self.peek(1) == '>':
                self.advance(2)
                return
            if self.peek() == '\n':
                self.advance()
                self.new_line()
                continue
            self.advance()

        raise LexError(f"Unterminated block comment at line {start_line}", start_line, self.tok_column)

    def mark(self):
        """Remember where the next token starts"""
        self.tok_line = self.line
        self.tok_column = self.column

    def emit(self, token_type: TT, value):
        """Emit a token positioned at its first character"""
        tok = Tok(
            type=token_type,
            value=value,
            line=self.tok_line,
            column=self.tok_column
        )
        self.tokens.append(tok)

class LexError(Exception):
    """Lexical analysis error"""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column


def tokenize(source: str, line: int = 1, column: int = 1) -> List[Tok]:
    """Convenience function to tokenize source"""
    lexer = Lexer(source, line=line, column=column)
    return lexer.tokenize()
