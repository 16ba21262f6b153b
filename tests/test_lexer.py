import unittest
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from calc import ErrorCode, LexerError, Position, Token, TokenType, tokenize


class TestLexer(unittest.TestCase):
    def test_numbers_operators_and_positions(self):
        tokens = tokenize('12 + 3.5')
        self.assertEqual(tokens, [
            Token(TokenType.NUMBER, '12', Position(1, 1)),
            Token(TokenType.PLUS, '+', Position(1, 4)),
            Token(TokenType.NUMBER, '3.5', Position(1, 6)),
        ])

    def test_parentheses_flush_pending_number(self):
        tokens = tokenize('(1+2)*30')
        self.assertEqual(
            [t.type for t in tokens],
            [TokenType.LPAREN, TokenType.NUMBER, TokenType.PLUS, TokenType.NUMBER,
             TokenType.RPAREN, TokenType.MUL, TokenType.NUMBER],
        )
        self.assertEqual([t.value for t in tokens], ['(', '1', '+', '2', ')', '*', '30'])

    def test_whitespace_only_separates(self):
        self.assertEqual(
            [t.value for t in tokenize(' 1\t2 /\n3 ')],
            ['1', '2', '/', '3'],
        )

    def test_empty_input(self):
        self.assertEqual(tokenize(''), [])
        self.assertEqual(tokenize('   '), [])

    def test_minus_is_always_an_operator(self):
        tokens = tokenize('-3')
        self.assertEqual([t.type for t in tokens], [TokenType.MINUS, TokenType.NUMBER])
        self.assertTrue(tokens[0].type.is_operator)

    def test_lax_number_scanning(self):
        tokens = tokenize('1.2.3 + .')
        self.assertEqual([t.value for t in tokens], ['1.2.3', '+', '.'])
        self.assertEqual(tokens[0].type, TokenType.NUMBER)
        self.assertEqual(tokens[2].type, TokenType.NUMBER)

    def test_invalid_character(self):
        with self.assertRaises(LexerError) as ctx:
            tokenize('2 + a')
        self.assertEqual(ctx.exception.error_code, ErrorCode.INVALID_CHARACTER)
        self.assertEqual(ctx.exception.position, Position(1, 5))
        self.assertEqual(str(ctx.exception), 'LexerError: <1:5>: invalid character `a`')
        self.assertIsNone(ctx.exception.__context__)

    def test_invalid_character_on_second_line(self):
        with self.assertRaises(LexerError) as ctx:
            tokenize('1 +\n x')
        self.assertEqual(ctx.exception.position, Position(2, 2))

    def test_non_ascii_digit_is_rejected(self):
        with self.assertRaises(LexerError):
            tokenize('2 * ٣')

    def test_token_type_helpers(self):
        self.assertTrue(TokenType.DIV.is_operator)
        self.assertFalse(TokenType.NUMBER.is_operator)
        self.assertTrue(TokenType.RPAREN.is_paren)
        self.assertFalse(TokenType.MUL.is_paren)


if __name__ == "__main__":
    unittest.main()
