#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name:    testArgon2iManager.py
    Author:       Alex Biddle

    Description:

        Test suite for Argon2iManager. Verifies salt generation, password hashing,
        the Credential hash/verify round trip, and error handling with correct
        ApplicationCodes and HTTPCodes.
"""

import unittest
from unittest import mock
from argon2.exceptions import HashingError
from parley.encryption.argon2i_manager import Argon2iManager, Credential
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
import parley.encryption.argon2i_manager as argon2_module


class TestArgon2iManager(unittest.TestCase):

    PASSWORD = b"correct horse battery staple"
    WRONG_PASSWORD = b"incorrect horse battery staple"
    SALT_LEN = 32
    HASH_LEN = 32

    """
        Create a fresh Argon2iManager and salt for each test.
    """
    def setUp(self) -> None:

        self.manager = Argon2iManager()
        self.salt = self.manager.generate_salt()

    """
        Generated salts must be bytes, correct length, and non-deterministic.
    """
    def test_generate_salt_properties(self):

        salt1 = self.manager.generate_salt()
        salt2 = self.manager.generate_salt()

        self.assertIsInstance(salt1, bytes)
        self.assertEqual(self.SALT_LEN, len(salt1))
        self.assertEqual(self.SALT_LEN, len(salt2))
        self.assertNotEqual(salt1, salt2)

    """
        hash_password must return a deterministic, fixed-length digest.
    """
    def test_hash_password_is_deterministic(self):

        digest1 = self.manager.hash_password(self.PASSWORD, self.salt)
        digest2 = self.manager.hash_password(self.PASSWORD, self.salt)

        self.assertIsInstance(digest1, bytes)
        self.assertEqual(self.HASH_LEN, len(digest1))
        self.assertEqual(digest1, digest2)

    def test_hash_password_rejects_invalid_password_type(self):

        with self.assertRaises(ParleyError) as cm:
            self.manager.hash_password("not-bytes", self.salt)  # type: ignore[arg-type]

        exc = cm.exception
        self.assertEqual(exc.application_code, ApplicationCodes.INVALID_TYPE)
        self.assertEqual(exc.http_code, HTTPCodes.BAD_REQUEST)
        self.assertEqual(exc.field, "password")

    def test_hash_password_rejects_wrong_salt_length(self):

        for bad_salt in (b"\x00" * (self.SALT_LEN - 1), b"\x00" * (self.SALT_LEN + 1)):
            with self.subTest(len=len(bad_salt)):
                with self.assertRaises(ParleyError) as cm:
                    self.manager.hash_password(self.PASSWORD, bad_salt)

                self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_SALT)
                self.assertEqual(cm.exception.field, "salt")

    """
        Library failures are wrapped as PASSWORD_HASH_ERROR / INTERNAL_SERVER_ERROR.
    """
    def test_hash_password_internal_error_wrapped(self):

        with mock.patch.object(argon2_module, "hash_secret_raw", side_effect=HashingError("simulated")):
            with self.assertRaises(ParleyError) as cm:
                self.manager.hash_password(self.PASSWORD, self.salt)

        self.assertEqual(cm.exception.application_code, ApplicationCodes.PASSWORD_HASH_ERROR)
        self.assertEqual(cm.exception.http_code, HTTPCodes.INTERNAL_SERVER_ERROR)

    def test_verify_password_true_for_correct_password(self):

        digest = self.manager.hash_password(self.PASSWORD, self.salt)
        self.assertTrue(self.manager.verify_password(self.PASSWORD, self.salt, digest))

    def test_verify_password_false_for_wrong_password(self):

        digest = self.manager.hash_password(self.PASSWORD, self.salt)
        self.assertFalse(self.manager.verify_password(self.WRONG_PASSWORD, self.salt, digest))

    def test_verify_password_rejects_invalid_expected_hash_length(self):

        digest = self.manager.hash_password(self.PASSWORD, self.salt)

        with self.assertRaises(ParleyError) as cm:
            self.manager.verify_password(self.PASSWORD, self.salt, digest[:-1])

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_LENGTH)
        self.assertEqual(cm.exception.field, "expected_hash")

    """
        verify_password must compare digests with hmac.compare_digest.
    """
    def test_verify_password_uses_constant_time_compare(self):

        digest = self.manager.hash_password(self.PASSWORD, self.salt)

        with mock.patch.object(argon2_module.hmac, "compare_digest", wraps=argon2_module.hmac.compare_digest) as compare:
            self.manager.verify_password(self.PASSWORD, self.salt, digest)

        compare.assert_called_once()

    """
        hash followed by verify with the same plaintext succeeds; a different plaintext fails.
    """
    def test_credential_round_trip(self):

        credential = self.manager.hash("correct")

        self.assertIsInstance(credential, Credential)
        self.assertEqual(self.SALT_LEN, len(credential.salt))
        self.assertEqual(self.HASH_LEN, len(credential.hash))
        self.assertTrue(self.manager.verify("correct", credential))
        self.assertFalse(self.manager.verify("wrong", credential))

    """
        Two hashes of the same plaintext carry different salts and different digests.
    """
    def test_hash_uses_fresh_salt_each_call(self):

        first = self.manager.hash("same password")
        second = self.manager.hash("same password")

        self.assertNotEqual(first.salt, second.salt)
        self.assertNotEqual(first.hash, second.hash)

    def test_hash_accepts_non_ascii_plaintext(self):

        credential = self.manager.hash("pässwörd ✓")
        self.assertTrue(self.manager.verify("pässwörd ✓", credential))

    def test_hash_rejects_non_string_plaintext(self):

        with self.assertRaises(ParleyError) as cm:
            self.manager.hash(b"bytes")  # type: ignore[arg-type]

        self.assertEqual(cm.exception.application_code, ApplicationCodes.INVALID_TYPE)


if __name__ == "__main__":
    unittest.main()
