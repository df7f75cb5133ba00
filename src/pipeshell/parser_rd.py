"""
Recursive Descent Parser for pipeshell

Structure:
- Lexer: Token stream from source (lexer_rd)
- Parser: recursive descent; statements, pipelines, command-mode arguments
  and expression-mode operators
- AST: lark Tree/Token nodes carrying line/column metadata

A pipeline stage that starts with a bare name is parsed in command mode:
barewords become strings, `-Name` introduces a named argument, and arguments
run until `|`, `;`, a newline or a closing bracket. Everything else is parsed
in expression mode.
"""

from typing import Optional, List, Tuple

from lark import Tree, Token

from .token_types import TT, Tok
from .tree import make_meta

# ============================================================================
# Parser
# ============================================================================

class ParseError(Exception):
    """Parse error with position info"""
    def __init__(self, message: str, token: Optional[Tok] = None):
        self.message = message
        self.token = token
        self.line = token.line if token else None
        self.column = token.column if token else None
        super().__init__(
            f"{message} at line {token.line}, col {token.column}" if token else message
        )

_ARG_TERMINATORS = (TT.PIPE, TT.NEWLINE, TT.SEMI, TT.RPAR, TT.RBRACE, TT.EOF)
_PARAM_LIKE = (TT.PARAM, TT.COMPARE, TT.LOGICAL, TT.NOT)
_BAREWORD_KEYWORDS = (TT.IF, TT.ELSEIF, TT.ELSE, TT.FUNCTION, TT.RETURN)

class Parser:
    """
    Recursive descent parser for pipeshell.

    Expression precedence (lowest to highest):
    1. comma lists (1, 2, 3)
    2. logical (-and, -or)
    3. compare (-eq, -ne, -gt, -lt, -ge, -le)
    4. add (+, -)
    5. mul (*, /, %)
    6. unary (-, !, -not)
    7. postfix (.member)
    8. primary (literals, variables, groups, @( ), @{ }, { })
    """

    def __init__(self, tokens: List[Tok]):
        self.tokens = tokens
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, 0, 0)

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return Tok(TT.EOF, None, 0, 0)

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        self.pos += 1
        if self.pos < len(self.tokens):
            self.current = self.tokens[self.pos]
        else:
            self.current = Tok(TT.EOF, None, 0, 0)
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {token_type.name}, got {self.current.type.name}"
            raise ParseError(msg, self.current)
        return self.advance()

    def skip_newlines(self) -> None:
        while self.match(TT.NEWLINE):
            pass

    def rewind(self, pos: int) -> None:
        self.pos = pos
        self.current = self.peek()

    # ========================================================================
    # Node construction
    # ========================================================================

    def tree(self, label: str, children: list, tok: Tok) -> Tree:
        return Tree(label, children, make_meta(tok.line, tok.column))

    def token(self, kind: str, value: str, tok: Tok) -> Token:
        return Token(kind, value, line=tok.line, column=tok.column)

    # ========================================================================
    # Statements
    # ========================================================================

    def parse(self) -> Tree:
        """Parse entire program"""
        start = self.current
        stmts = self.parse_statement_list(TT.EOF)
        self.expect(TT.EOF)
        return self.tree('program', stmts, start)

    def parse_statement_list(self, *closers: TT) -> List[Tree]:
        """Statements separated by newlines/semicolons, up to (not including) a closer"""
        stmts = []

        while True:
            while self.match(TT.NEWLINE, TT.SEMI):
                pass

            if self.check(*closers) or self.check(TT.EOF):
                return stmts

            stmts.append(self.parse_statement())

            if not self.check(TT.NEWLINE, TT.SEMI, *closers) and not self.check(TT.EOF):
                raise ParseError(f"Unexpected token {self.current.type.name}", self.current)

    def parse_statement(self):
        if self.check(TT.FUNCTION):
            return self.parse_function()

        if self.check(TT.IF):
            return self.parse_if()

        if self.check(TT.RETURN):
            return self.parse_return()

        if self.check(TT.VARIABLE) and self.peek(1).type == TT.ASSIGN:
            return self.parse_assign()

        return self.parse_pipeline()

    def parse_assign(self) -> Tree:
        var = self.advance()
        self.expect(TT.ASSIGN)
        self.skip_newlines()
        rhs = self.parse_pipeline()
        return self.tree('assign', [self.token('VARIABLE', var.value, var), rhs], var)

    def parse_return(self) -> Tree:
        start = self.advance()
        children = []

        if not self.check(TT.NEWLINE, TT.SEMI, TT.RBRACE, TT.RPAR, TT.EOF):
            children.append(self.parse_pipeline())

        return self.tree('returnstmt', children, start)

    def parse_function(self) -> Tree:
        """function Name($a, $b = 1) { ... }  or  function Name { param($a) ... }"""
        start = self.advance()

        if not self.check(TT.IDENT, *_BAREWORD_KEYWORDS):
            raise ParseError("Expected function name", self.current)
        name_tok = self.advance()
        name = self.token('NAME', str(name_tok.value), name_tok)

        params: List[Tree] = []
        if self.check(TT.LPAR):
            params = self.parse_param_list()

        self.skip_newlines()
        body_start = self.expect(TT.LBRACE)

        # param( ... ) as the first statement of the body
        self.skip_newlines()
        if self.check(TT.IDENT) and str(self.current.value).lower() == 'param' and self.peek(1).type == TT.LPAR:
            if params:
                raise ParseError("Function already declares parameters", self.current)
            self.advance()
            params = self.parse_param_list()

        stmts = self.parse_statement_list(TT.RBRACE)
        self.expect(TT.RBRACE)

        paramlist = self.tree('paramlist', params, start)
        body = self.tree('block', stmts, body_start)
        return self.tree('fndef', [name, paramlist, body], start)

    def parse_param_list(self) -> List[Tree]:
        self.expect(TT.LPAR)
        self.skip_newlines()
        params: List[Tree] = []

        while not self.check(TT.RPAR):
            var = self.expect(TT.VARIABLE, "Expected parameter variable")
            children = [self.token('VARIABLE', var.value, var)]

            if self.match(TT.ASSIGN):
                self.skip_newlines()
                children.append(self.parse_logical())

            params.append(self.tree('param', children, var))
            self.skip_newlines()

            if not self.match(TT.COMMA):
                break
            self.skip_newlines()

        self.skip_newlines()
        self.expect(TT.RPAR)
        return params

    def parse_if(self) -> Tree:
        """if (cond) { } elseif (cond) { } else { }; elseif chains nest in the else slot"""
        start = self.advance()
        cond = self.parse_condition()
        then_body = self.parse_block()
        children = [cond, then_body]

        save = self.pos
        self.skip_newlines()

        if self.check(TT.ELSEIF):
            children.append(self.parse_if())
        elif self.check(TT.ELSE) and self.peek(1).type == TT.IF:
            self.advance()
            children.append(self.parse_if())
        elif self.match(TT.ELSE):
            children.append(self.parse_block())
        else:
            self.rewind(save)

        return self.tree('ifstmt', children, start)

    def parse_condition(self):
        self.skip_newlines()
        self.expect(TT.LPAR, "Expected '(' after if")
        self.skip_newlines()
        cond = self.parse_pipeline()
        self.skip_newlines()
        self.expect(TT.RPAR, "Expected ')' after condition")
        return cond

    def parse_block(self) -> Tree:
        self.skip_newlines()
        start = self.expect(TT.LBRACE, "Expected '{'")
        stmts = self.parse_statement_list(TT.RBRACE)
        self.expect(TT.RBRACE, "Expected '}'")
        return self.tree('block', stmts, start)

    # ========================================================================
    # Pipelines and commands
    # ========================================================================

    def parse_pipeline(self):
        start = self.current
        stages = [self.parse_stage()]

        while self.match(TT.PIPE):
            self.skip_newlines()
            stages.append(self.parse_stage())

        if len(stages) == 1:
            return stages[0]

        return self.tree('pipeline', stages, start)

    def parse_stage(self):
        if self.check(TT.IDENT):
            return self.parse_command()

        if self.check(TT.AMP):
            return self.parse_invoke()

        return self.parse_expression()

    def parse_command(self) -> Tree:
        name_tok = self.advance()
        name = self.token('NAME', str(name_tok.value), name_tok)
        args = self.parse_command_args(name_tok)
        return self.tree('call', [name, args], name_tok)

    def parse_invoke(self) -> Tree:
        start = self.advance()

        if self.check(TT.STRING):
            tok = self.advance()
            target = self.token('STRING', tok.value, tok)
        else:
            target = self.parse_postfix()

        args = self.parse_command_args(start)
        return self.tree('invoke', [target, args], start)

    def parse_command_args(self, start: Tok) -> Tree:
        args = []

        while not self.check(*_ARG_TERMINATORS):
            if self.check(*_PARAM_LIKE):
                args.append(self.parse_named_arg())
            else:
                args.append(self.parse_command_arg_list())

        return self.tree('args', args, start)

    def parse_named_arg(self) -> Tree:
        tok = self.advance()
        children = [self.token('PARAM', str(tok.value), tok)]

        if not self.check(*_ARG_TERMINATORS) and not self.check(*_PARAM_LIKE):
            children.append(self.parse_command_arg_list())

        return self.tree('namedarg', children, tok)

    def parse_command_arg_list(self):
        start = self.current
        first = self.parse_command_arg()

        if not self.check(TT.COMMA):
            return first

        items = [first]
        while self.match(TT.COMMA):
            self.skip_newlines()
            items.append(self.parse_command_arg())

        return self.tree('comma_list', items, start)

    def parse_command_arg(self):
        tok = self.current

        # Barewords are strings in command mode
        if self.check(TT.IDENT, *_BAREWORD_KEYWORDS):
            self.advance()
            return self.token('STRING', str(tok.value), tok)

        if self.check(TT.TRUE, TT.FALSE) and not str(tok.value).startswith('$'):
            self.advance()
            return self.token('STRING', str(tok.value), tok)

        if self.check(TT.MINUS) and self.peek(1).type == TT.NUMBER:
            self.advance()
            num = self.advance()
            return self.tree('unary', [self.token('MINUS', '-', tok), self.token('NUMBER', num.value, num)], tok)

        return self.parse_postfix()

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_expression(self):
        start = self.current
        first = self.parse_logical()

        if not self.check(TT.COMMA):
            return first

        items = [first]
        while self.match(TT.COMMA):
            self.skip_newlines()
            items.append(self.parse_logical())

        return self.tree('comma_list', items, start)

    def parse_logical(self):
        start = self.current
        children = [self.parse_compare()]

        while self.check(TT.LOGICAL):
            op = self.advance()
            self.skip_newlines()
            children.append(self.token('LOGICAL', op.value, op))
            children.append(self.parse_compare())

        if len(children) == 1:
            return children[0]

        return self.tree('logical', children, start)

    def parse_compare(self):
        start = self.current
        children = [self.parse_add()]

        while self.check(TT.COMPARE):
            op = self.advance()
            self.skip_newlines()
            children.append(self.token('COMPARE', op.value, op))
            children.append(self.parse_add())

        if len(children) == 1:
            return children[0]

        return self.tree('compare', children, start)

    def parse_add(self):
        return self._parse_binary('add', (TT.PLUS, TT.MINUS), self.parse_mul)

    def parse_mul(self):
        return self._parse_binary('mul', (TT.STAR, TT.SLASH, TT.MOD), self.parse_unary)

    def _parse_binary(self, label: str, ops: Tuple[TT, ...], operand):
        start = self.current
        children = [operand()]

        while self.check(*ops):
            op = self.advance()
            self.skip_newlines()
            children.append(self.token(op.type.name, op.value, op))
            children.append(operand())

        if len(children) == 1:
            return children[0]

        return self.tree(label, children, start)

    def parse_unary(self):
        tok = self.current

        if self.match(TT.MINUS):
            return self.tree('unary', [self.token('MINUS', '-', tok), self.parse_unary()], tok)

        if self.match(TT.NEG, TT.NOT):
            return self.tree('unary', [self.token('NOT', str(tok.value), tok), self.parse_unary()], tok)

        if self.match(TT.PLUS):
            return self.parse_unary()

        return self.parse_postfix()

    def parse_postfix(self):
        node = self.parse_primary()

        while self.check(TT.DOT):
            dot = self.advance()
            if not self.check(TT.IDENT, TT.STRING, TT.NUMBER, TT.TRUE, TT.FALSE, *_BAREWORD_KEYWORDS):
                raise ParseError("Expected property name after '.'", self.current)
            name_tok = self.advance()
            node = self.tree('member', [node, self.token('NAME', str(name_tok.value), name_tok)], dot)

        return node

    def parse_primary(self):
        tok = self.current

        match tok.type:
            case TT.NUMBER:
                self.advance()
                return self.token('NUMBER', tok.value, tok)
            case TT.STRING:
                self.advance()
                return self.token('STRING', tok.value, tok)
            case TT.INTERP_STRING:
                self.advance()
                return self.parse_interp(tok)
            case TT.VARIABLE:
                self.advance()
                return self.token('VARIABLE', tok.value, tok)
            case TT.TRUE | TT.FALSE | TT.NULL:
                self.advance()
                return self.token(tok.type.name, str(tok.value), tok)
            case TT.LPAR:
                self.advance()
                self.skip_newlines()
                if self.check(TT.RPAR):
                    raise ParseError("Empty parentheses", self.current)
                inner = self.parse_statement()
                self.skip_newlines()
                self.expect(TT.RPAR, "Expected ')'")
                return self.tree('group', [inner], tok)
            case TT.AT_LPAR:
                self.advance()
                stmts = self.parse_statement_list(TT.RPAR)
                self.expect(TT.RPAR, "Expected ')' to close @(")
                return self.tree('array', stmts, tok)
            case TT.AT_LBRACE:
                self.advance()
                return self.parse_record(tok)
            case TT.LBRACE:
                self.advance()
                stmts = self.parse_statement_list(TT.RBRACE)
                self.expect(TT.RBRACE, "Expected '}'")
                return self.tree('scriptblock', [self.tree('block', stmts, tok)], tok)
            case TT.IDENT:
                self.advance()
                name = self.token('NAME', str(tok.value), tok)
                return self.tree('call', [name, self.tree('args', [], tok)], tok)
            case TT.EOF:
                raise ParseError("Unexpected end of input", tok)
            case _:
                raise ParseError(f"Unexpected token {tok.type.name}", tok)

    def parse_record(self, start: Tok) -> Tree:
        pairs = []

        while True:
            while self.match(TT.NEWLINE, TT.SEMI):
                pass

            if self.match(TT.RBRACE):
                break

            key_tok = self.current
            if not self.check(TT.IDENT, TT.STRING, TT.NUMBER, TT.TRUE, TT.FALSE, *_BAREWORD_KEYWORDS):
                raise ParseError("Expected record key", key_tok)
            self.advance()

            self.expect(TT.ASSIGN, "Expected '=' after record key")
            self.skip_newlines()
            value = self.parse_pipeline()
            pairs.append(self.tree('pair', [self.token('KEY', str(key_tok.value), key_tok), value], key_tok))

            if not self.check(TT.NEWLINE, TT.SEMI, TT.RBRACE):
                raise ParseError("Expected ';', newline or '}' in record literal", self.current)

        return self.tree('record', pairs, start)

    def parse_interp(self, tok: Tok) -> Tree:
        from .lexer_rd import tokenize

        parts = []
        for part in tok.value:
            kind = part[0]

            if kind == 'text':
                parts.append(self.token('TEXT', part[1], tok))
            elif kind == 'var':
                keyword = part[1].lower()
                if keyword in ('true', 'false', 'null'):
                    parts.append(self.token(keyword.upper(), part[1], tok))
                else:
                    parts.append(self.token('VARIABLE', part[1], tok))
            else:
                _, source, line, column = part
                sub = Parser(tokenize(source, line=line, column=column))
                stmts = sub.parse_statement_list(TT.EOF)
                sub.expect(TT.EOF)
                parts.append(Tree('interp_expr', stmts, make_meta(line, column)))

        return self.tree('string_interp', parts, tok)


def parse_source(source: str) -> Tree:
    """Tokenize and parse a whole script into a 'program' tree"""
    from .lexer_rd import tokenize

    return Parser(tokenize(source)).parse()
