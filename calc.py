"""
simple postfix calculator
- lexer tags every token once (NUMBER, + - * /, parentheses)
- shunting-yard converter: infix -> postfix (RPN), operator stack
- evaluator: postfix -> float, operand stack
- displayer: postfix -> expression tree, rendered by pyecharts

grammar (what the converter accepts, no unary operators):
expr                : term ((PLUS | MINUS) term)*
term                : factor ((MUL | DIV) factor)*
factor              : NUMBER
                    | LPAREN expr RPAREN
"""

from collections import namedtuple
from enum import Enum
import argparse
import math
import re
import sys

from pyecharts import options as opts
from pyecharts.charts import Tree

LOCAL_ECHARTS = False
DEFAULT_TREE_FILE = 'Tree.html'
PROMPT = 'calc> '

_SHOULD_LOG_TOKENS = False
_SHOULD_LOG_STACK = False

###############################################################################
#                                                                             #
#   ERROR MESSAGE                                                             #
#                                                                             #
###############################################################################

Position = namedtuple('Position', ['line', 'col'])


class ErrorCode(Enum):
    # lexer
    INVALID_CHARACTER       = 'Invalid character'
    # converter
    MISMATCHED_PARENTHESES  = 'Mismatched parentheses'
    # evaluator
    INVALID_NUMBER          = 'Invalid number'
    INSUFFICIENT_OPERANDS   = 'Insufficient operands'
    DIVISION_BY_ZERO        = 'Division by zero'
    MALFORMED_EXPRESSION    = 'Malformed expression'


class ErrorInfo:
    # lexer error

    @staticmethod
    def invalid_character(item):
        return f'invalid character `{item}`'

    # converter error

    @staticmethod
    def mismatched_parentheses(item):
        return f'parenthesis `{item}` has no match'

    # evaluator error

    @staticmethod
    def invalid_number(item):
        return f'`{item}` is not a valid number'

    @staticmethod
    def insufficient_operands(item):
        return f'operator `{item}` needs two operands'

    @staticmethod
    def division_by_zero():
        return 'division by zero'

    @staticmethod
    def malformed_expression(count):
        return f'expression leaves {count} values on the stack, want 1'

    @staticmethod
    def unexpected_token(item):
        return f'token `{item}` is not expected in postfix'


class Error(Exception):
    def __init__(self, error_code, position, message):
        super().__init__(error_code, position, message)
        self.error_code = error_code
        self.position = position
        self.message = message

    def __str__(self):
        if self.position is None:
            return f'{self.__class__.__name__}: {self.message}'
        return f'{self.__class__.__name__}: <{self.position.line}:{self.position.col}>: {self.message}'

    __repr__ = __str__


class LexerError(Error):
    pass


class ParserError(Error):
    pass


class EvaluatorError(Error):
    pass


###############################################################################
#                                                                             #
#  LEXER                                                                      #
#                                                                             #
###############################################################################

# Token types
class TokenType(Enum):
    NUMBER  = 'NUMBER'
    # opt
    PLUS    = '+'
    MINUS   = '-'
    MUL     = '*'
    DIV     = '/'
    LPAREN  = '('
    RPAREN  = ')'

    @property
    def is_operator(self):
        return self in (TokenType.PLUS, TokenType.MINUS, TokenType.MUL, TokenType.DIV)

    @property
    def is_paren(self):
        return self in (TokenType.LPAREN, TokenType.RPAREN)


NUMBER_CHARS = frozenset('0123456789.')


class Token:
    __slots__ = ('type', 'value', 'position')

    def __init__(self, token_type, value, position=None):
        """Token

        Args:
          token_type: TokenType
          value: str, literal text (numbers are not converted here)
          position: Position of the first char
        """
        self.type = token_type
        self.value = value
        self.position = position

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return (self.type, self.value, self.position) == (other.type, other.value, other.position)

    def __hash__(self):
        return hash((self.type, self.value, self.position))

    def __str__(self):
        if self.position is None:
            return f'Token({self.type.name}, {repr(self.value)})'
        return f'Token({self.type.name}, {repr(self.value)}, pos={self.position.line}:{self.position.col})'

    def __repr__(self):
        return self.__str__()


def format_tokens(tokens):
    return ' '.join(str(token.value) for token in tokens)


class Lexer:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.current_char = self.text[self.pos] if self.text else None
        # for error information
        self.line = 1
        self.col = 1
        # pending number
        self.number = ''
        self.number_start = None

    def position(self):
        return Position(self.line, self.col)

    def error(self, message):
        raise LexerError(ErrorCode.INVALID_CHARACTER, self.position(), message)

    def log(self, msg):
        if _SHOULD_LOG_TOKENS:
            print(msg)

    def advance(self):
        """get next char, and increase the pos pointer
        """
        if self.current_char == '\n':
            self.line += 1
            self.col = 0

        self.pos += 1
        self.col += 1
        if self.pos > len(self.text) - 1:
            self.current_char = None  # end of input
        else:
            self.current_char = self.text[self.pos]

    def flush(self, tokens):
        """emit the pending number, if any

        digits and dots are taken as they come, `1.2.3` is one token here and
        is rejected by the evaluator.
        """
        if self.number:
            tokens.append(Token(TokenType.NUMBER, self.number, self.number_start))
            self.number = ''
            self.number_start = None

    def tokenize(self):
        tokens = []
        while self.current_char is not None:
            if self.current_char in NUMBER_CHARS:
                if not self.number:
                    self.number_start = self.position()
                self.number += self.current_char
                self.advance()
                continue

            # whitespace separates, emits nothing
            if self.current_char.isspace():
                self.flush(tokens)
                self.advance()
                continue

            # single-char token
            try:
                token_type = TokenType(self.current_char)
            except ValueError:
                token_type = None
            if token_type is None:
                # unrecognized char
                self.error(ErrorInfo.invalid_character(self.current_char))

            self.flush(tokens)
            tokens.append(Token(token_type, self.current_char, self.position()))
            self.advance()

        self.flush(tokens)
        self.log(f'tokens: {tokens}')
        return tokens


def tokenize(text):
    return Lexer(text).tokenize()


###############################################################################
#                                                                             #
#  CONVERTER (shunting-yard)                                                  #
#                                                                             #
###############################################################################

PRECEDENCE = {
    TokenType.PLUS: 1,
    TokenType.MINUS: 1,
    TokenType.MUL: 2,
    TokenType.DIV: 2,
}


class Converter:
    def __init__(self, tokens):
        self.tokens = tokens

    def error(self, token):
        raise ParserError(ErrorCode.MISMATCHED_PARENTHESES, token.position,
                          ErrorInfo.mismatched_parentheses(token.value))

    def log(self, msg):
        if _SHOULD_LOG_STACK:
            print(msg)

    def convert(self):
        """infix -> postfix

        all operators are left-associative: an operator pops every stacked
        operator of the same or higher precedence before it is pushed.
        """
        operator_stack = []
        output = []

        for token in self.tokens:
            if token.type == TokenType.NUMBER:
                output.append(token)
            elif token.type.is_operator:
                while (operator_stack
                       and operator_stack[-1].type.is_operator
                       and PRECEDENCE[token.type] <= PRECEDENCE[operator_stack[-1].type]):
                    output.append(operator_stack.pop())
                operator_stack.append(token)
            elif token.type == TokenType.LPAREN:
                operator_stack.append(token)
            elif token.type == TokenType.RPAREN:
                while operator_stack and operator_stack[-1].type != TokenType.LPAREN:
                    output.append(operator_stack.pop())
                if not operator_stack:
                    self.error(token)
                operator_stack.pop()  # discard '('

            self.log(f'{token.value:>8} | stack: {format_tokens(operator_stack):<16} | output: {format_tokens(output)}')

        while operator_stack:
            token = operator_stack.pop()
            if token.type.is_paren:
                # unclosed '('
                self.error(token)
            output.append(token)

        self.log(f'postfix: {format_tokens(output)}')
        return output


def to_postfix(tokens):
    return Converter(tokens).convert()


###############################################################################
#                                                                             #
#   EVALUATOR                                                                 #
#                                                                             #
###############################################################################

NUMBER_PATTERN = re.compile(r'-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)')


class Evaluator:
    def __init__(self, tokens):
        self.tokens = tokens

    def error(self, error_code, position, message):
        raise EvaluatorError(error_code, position, message)

    def log(self, msg):
        if _SHOULD_LOG_STACK:
            print(msg)

    def number(self, token: Token):
        text = token.value
        if not isinstance(text, str) or NUMBER_PATTERN.fullmatch(text) is None:
            self.error(ErrorCode.INVALID_NUMBER, token.position, ErrorInfo.invalid_number(text))
        value = float(text)
        if not math.isfinite(value):
            self.error(ErrorCode.INVALID_NUMBER, token.position, ErrorInfo.invalid_number(text))
        return value

    def apply(self, token: Token, left, right):
        if token.type == TokenType.PLUS:
            return left + right
        elif token.type == TokenType.MINUS:
            return left - right
        elif token.type == TokenType.MUL:
            return left * right
        else:  # token.type == DIV
            if right == 0:
                self.error(ErrorCode.DIVISION_BY_ZERO, token.position, ErrorInfo.division_by_zero())
            return left / right

    def pop(self, stack, token):
        if not stack:
            self.error(ErrorCode.INSUFFICIENT_OPERANDS, token.position,
                       ErrorInfo.insufficient_operands(token.value))
        return stack.pop()

    def evaluate(self):
        stack = []

        for token in self.tokens:
            if token.type == TokenType.NUMBER:
                stack.append(self.number(token))
            elif token.type.is_operator:
                # right operand was pushed last
                right = self.pop(stack, token)
                left = self.pop(stack, token)
                stack.append(self.apply(token, left, right))
            else:
                self.error(ErrorCode.MALFORMED_EXPRESSION, token.position,
                           ErrorInfo.unexpected_token(token.value))

            self.log(f'{token.value:>8} | stack: {stack}')

        if len(stack) != 1:
            self.error(ErrorCode.MALFORMED_EXPRESSION, None, ErrorInfo.malformed_expression(len(stack)))

        return stack[0]


def evaluate_postfix(tokens):
    return Evaluator(tokens).evaluate()


def calculate(text):
    tokens = tokenize(text)
    postfix = to_postfix(tokens)
    return evaluate_postfix(postfix)


###############################################################################
#                                                                             #
#  DISPLAY                                                                    #
#                                                                             #
###############################################################################

class Displayer:
    """rebuild the expression tree from postfix and render it with pyecharts
    """

    def __init__(self, tokens):
        self.tokens = tokens

    def build(self):
        stack = []
        for token in self.tokens:
            if token.type == TokenType.NUMBER:
                stack.append({'name': token.value})
            elif token.type.is_operator:
                if len(stack) < 2:
                    raise EvaluatorError(ErrorCode.INSUFFICIENT_OPERANDS, token.position,
                                         ErrorInfo.insufficient_operands(token.value))
                right = stack.pop()
                left = stack.pop()
                stack.append({
                    'name': token.value,
                    'children': [left, right]
                })
            else:
                raise EvaluatorError(ErrorCode.MALFORMED_EXPRESSION, token.position,
                                     ErrorInfo.unexpected_token(token.value))

        if len(stack) != 1:
            raise EvaluatorError(ErrorCode.MALFORMED_EXPRESSION, None,
                                 ErrorInfo.malformed_expression(len(stack)))
        return stack[0]

    def display(self, path=DEFAULT_TREE_FILE, local_echarts=None):
        if local_echarts is None:
            local_echarts = LOCAL_ECHARTS

        data = self.build()
        (
            Tree(init_opts=opts.InitOpts(page_title='Tree'))
            .add(
                series_name="",  # name
                data=[data],  # data
                initial_tree_depth=-1,  # all expand
                orient="TB",  # top-to-bottom
                label_opts=opts.LabelOpts(
                    position="top",
                    vertical_align="middle",
                ),
            )
            .set_global_opts(title_opts=opts.TitleOpts(title=format_tokens(self.tokens)))
            .render(path)
        )
        # modify js reference to local
        if local_echarts:
            with open(path, 'r', encoding='utf-8') as fin:
                content = fin.readlines()
            for i, line in enumerate(content):
                if '<script' in line and 'echarts.min.js' in line:
                    content[i] = '    <script type="text/javascript" src="echarts.min.js"></script>\n'
            with open(path, 'w', encoding='utf-8') as fout:
                fout.writelines(content)
        return path


###############################################################################
#                                                                             #
#   MAIN                                                                      #
#                                                                             #
###############################################################################

def run(text, tree_path=None, local_echarts=False):
    """calculate one expression and print the result or the error

    returns True on success
    """
    try:
        postfix = to_postfix(tokenize(text))
        result = evaluate_postfix(postfix)
        if tree_path is not None:
            Displayer(postfix).display(tree_path, local_echarts)
            print(f'open "{tree_path}"')
    except (LexerError, ParserError, EvaluatorError) as e:
        print(e)
        return False
    except OSError as e:
        # tree file could not be written
        print(f'{e.__class__.__name__}: {e}')
        return False

    print(result)
    return True


def build_arg_parser():
    parser = argparse.ArgumentParser(
        description='SPC - Simple Postfix Calculator',
        epilog='an expression that starts with `-` is taken as the expression, not as an option',
    )
    parser.add_argument('expression', nargs='?', help='infix expression, omit it to start a REPL')
    parser.add_argument('--tokens', action='store_true', help='Print token list')
    parser.add_argument('--stack', action='store_true', help='Print converter and evaluator stacks')
    parser.add_argument(
        '--tree',
        nargs='?',
        const=DEFAULT_TREE_FILE,
        default=None,
        metavar='PATH',
        help=f'Render the expression tree to HTML (default: {DEFAULT_TREE_FILE})',
    )
    parser.add_argument(
        '--local-echarts',
        action='store_true',
        help='Reference a local echarts.min.js in the rendered HTML',
    )
    return parser


def main(argv=None):
    global _SHOULD_LOG_TOKENS
    global _SHOULD_LOG_STACK

    parser = build_arg_parser()
    args, extras = parser.parse_known_args(argv)

    # `-1+2` looks like an option to argparse, give it back to the expression
    unknown = [item for item in extras if item.startswith('--')]
    if unknown:
        parser.error(f'unrecognized arguments: {" ".join(unknown)}')
    if extras:
        parts = [args.expression] if args.expression is not None else []
        args.expression = ' '.join(parts + extras)

    _SHOULD_LOG_TOKENS = args.tokens
    _SHOULD_LOG_STACK = args.stack

    tree_path = args.tree
    local_echarts = args.local_echarts or LOCAL_ECHARTS

    if args.expression is not None:
        return 0 if run(args.expression, tree_path, local_echarts) else 1

    while True:
        try:
            text = input(PROMPT)
        except (EOFError, KeyboardInterrupt):
            break
        if not text.strip():
            continue
        run(text, tree_path, local_echarts)

    return 0


if __name__ == '__main__':
    sys.exit(main())
