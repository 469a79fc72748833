"""
Unit tests for the keyspace grammar.

Each validation rule has its own exception type; these tests pin both the
accepted shapes and which rule fires first for malformed keys.
"""

from __future__ import annotations

import unittest

from entity_repository.exceptions import (
    EmptyKeyPartError,
    InvalidEntityPrefixError,
    InvalidKeyCharsError,
    InvalidKeyLengthError,
    InvalidKeyPrefixError,
    InvalidKeySuffixError,
    KeyValidationError,
)
from entity_repository.keys import (
    MAX_KEY_LENGTH,
    MIN_KEY_LENGTH,
    KeyGrammar,
    validate_entity_prefix,
)


class KeyGrammarValidateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.grammar = KeyGrammar("app", ":")

    def test_accepts_well_formed_keys(self) -> None:
        for key in ("app:user:42", "app:x", "app:settings", "app:order.v2:a-b_c"):
            with self.subTest(key=key):
                self.grammar.validate(key)

    def test_length_bounds_are_inclusive(self) -> None:
        self.grammar.validate("app:x")
        self.assertEqual(len("app:x"), MIN_KEY_LENGTH)
        longest = "app:" + "a" * (MAX_KEY_LENGTH - 4)
        self.assertEqual(len(longest), MAX_KEY_LENGTH)
        self.grammar.validate(longest)

    def test_rejects_short_and_long_keys(self) -> None:
        with self.assertRaises(InvalidKeyLengthError):
            self.grammar.validate("app:")
        with self.assertRaises(InvalidKeyLengthError):
            self.grammar.validate("app:" + "a" * (MAX_KEY_LENGTH - 3))

    def test_rejects_invalid_characters(self) -> None:
        for key in ("app:us er", "app:user/1", "app:user\n", "app:café"):
            with self.subTest(key=key):
                with self.assertRaises(InvalidKeyCharsError):
                    self.grammar.validate(key)

    def test_rejects_wrong_prefix(self) -> None:
        for key in ("other:user:1", "appuser:1", "ap:user:1"):
            with self.subTest(key=key):
                with self.assertRaises(InvalidKeyPrefixError):
                    self.grammar.validate(key)

    def test_empty_second_part_is_a_suffix_error(self) -> None:
        with self.assertRaises(InvalidKeySuffixError) as caught:
            self.grammar.validate("app::42")
        self.assertIsInstance(caught.exception, EmptyKeyPartError)

    def test_empty_inner_or_trailing_part(self) -> None:
        for key in ("app:user::42", "app:user:", "app:a:b::c"):
            with self.subTest(key=key):
                with self.assertRaises(EmptyKeyPartError) as caught:
                    self.grammar.validate(key)
                self.assertNotIsInstance(caught.exception, InvalidKeySuffixError)

    def test_first_failing_rule_wins(self) -> None:
        # Too short and invalid characters: length is checked first.
        with self.assertRaises(InvalidKeyLengthError):
            self.grammar.validate("a b")
        # Invalid characters and wrong prefix: characters are checked first.
        with self.assertRaises(InvalidKeyCharsError):
            self.grammar.validate("nope key")

    def test_errors_are_value_errors(self) -> None:
        with self.assertRaises(ValueError):
            self.grammar.validate("app::")
        self.assertTrue(issubclass(InvalidKeyPrefixError, KeyValidationError))

    def test_custom_prefix_and_separator(self) -> None:
        grammar = KeyGrammar("svc", ".")
        grammar.validate("svc.user.1")
        with self.assertRaises(InvalidKeyPrefixError):
            grammar.validate("svc:user:1")
        self.assertEqual(grammar.parse_key("svc.user.1"), ["user", "1"])


class KeyGrammarHelperTests(unittest.TestCase):
    def setUp(self) -> None:
        self.grammar = KeyGrammar()

    def test_defaults(self) -> None:
        self.assertEqual(self.grammar.prefix, "app")
        self.assertEqual(self.grammar.separator, ":")

    def test_create_key_validates(self) -> None:
        self.assertEqual(self.grammar.create_key("user", "42"), "app:user:42")
        with self.assertRaises(EmptyKeyPartError):
            self.grammar.create_key("user", "")

    def test_non_string_parts_are_grammar_errors(self) -> None:
        with self.assertRaises(InvalidKeyCharsError):
            self.grammar.create_key("user", 42)  # type: ignore[arg-type]
        with self.assertRaises(InvalidKeyCharsError):
            self.grammar.validate(None)  # type: ignore[arg-type]

    def test_parse_key_returns_parts_after_prefix(self) -> None:
        self.assertEqual(self.grammar.parse_key("app:user:42:profile"), ["user", "42", "profile"])

    def test_derived_names(self) -> None:
        self.assertEqual(self.grammar.derive_lock_key("app:user:42"), "app:user:42:lock")
        self.assertEqual(self.grammar.derive_channel("orders"), "app:channel:orders")


class EntityPrefixTests(unittest.TestCase):
    def test_accepts_letter_led_names(self) -> None:
        for value in ("user", "User_2", "a", "order_items"):
            with self.subTest(value=value):
                validate_entity_prefix(value)

    def test_rejects_malformed_names(self) -> None:
        for value in ("", "2user", "_user", "user-x", "user.x", "user:x", "user\n", 7, None):
            with self.subTest(value=value):
                with self.assertRaises(InvalidEntityPrefixError):
                    validate_entity_prefix(value)


if __name__ == "__main__":
    unittest.main()
