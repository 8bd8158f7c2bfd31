#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
    File name: argon2i_manager.py
    Author: Alex Biddle

    Description:
        Provides Parley's fixed-parameter Argon2i credential hasher responsible
        for generating per-credential salts, hashing passwords, and verifying
        a candidate password against a stored (hash, salt) Credential.
        Comparison is constant-time so a mismatch reveals nothing about how
        much of the digest matched.
"""


import hmac
import os
from dataclasses import dataclass
from argon2.exceptions import HashingError
from argon2.low_level import hash_secret_raw, Type as Argon2Type
from parley.handlers.error_handler import HTTPCodes, ApplicationCodes, ParleyError
import parley.constants as CONSTANTS


"""
    A stored password: Argon2i digest plus the salt it was derived with.
    The salt is never stored without its hash.
"""
@dataclass(frozen=True)
class Credential:

    hash: bytes
    salt: bytes



class Argon2iManager:

    """
        Initialize an Argon2iManager instance with Parley's fixed parameters.

        @return None: Sets time cost, memory cost, parallelism, hash length, and salt length.

        @ensures The manager is fully initialized and ready for deterministic hashing.
    """
    def __init__(self) -> None:

        self._time_cost: int = CONSTANTS._ARGON2_TIME_COST
        self._memory_cost_kib: int = CONSTANTS._ARGON2_MEMORY_COST_KIB
        self._parallelism: int = CONSTANTS._ARGON2_PARALLELISM
        self._hash_len: int = CONSTANTS._HASHED_PASSWORD_LENGTH
        self._salt_len: int = CONSTANTS._CREDENTIAL_SALT_LEN_BYTES


    """
        Generate a new random salt using a secure CSPRNG.

        @return bytes: A newly generated salt of length self._salt_len.

        @ensures Returned salt is cryptographically random and exactly the required length.
    """
    def generate_salt(self) -> bytes:

        salt = os.urandom(self._salt_len)

        if len(salt) != self._salt_len:
            raise ParleyError(ApplicationCodes.INVALID_SALT, HTTPCodes.INTERNAL_SERVER_ERROR, f"Generated salt must be {self._salt_len} bytes", "salt")

        return salt




    """
        Hash a password using Argon2i and the provided salt.

        @param password (bytes): Raw password bytes to be hashed.
        @param salt (bytes): Salt that must be exactly self._salt_len bytes.

        @require isinstance(password, (bytes, bytearray))
        @require isinstance(salt, (bytes, bytearray)) and len(salt) == self._salt_len

        @return bytes: The Argon2i digest of length self._hash_len.

        @ensures Hashing uses Parley's fixed parameters to produce deterministic digests.
    """
    def hash_password(self, password: bytes, salt: bytes) -> bytes:

        try:
            if not isinstance(password, (bytes, bytearray)):
                raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, "password must be bytes", "password")

            if not isinstance(salt, (bytes, bytearray)):
                raise ParleyError(ApplicationCodes.INVALID_SALT, HTTPCodes.BAD_REQUEST, "salt must be bytes", "salt")

            if len(salt) != self._salt_len:
                raise ParleyError(ApplicationCodes.INVALID_SALT, HTTPCodes.BAD_REQUEST, f"salt must be {self._salt_len} bytes", "salt")

            digest = hash_secret_raw(
                secret=bytes(password),
                salt=bytes(salt),
                time_cost=self._time_cost,
                memory_cost=self._memory_cost_kib,
                parallelism=self._parallelism,
                hash_len=self._hash_len,
                type=Argon2Type.I,
            )

            if not isinstance(digest, bytes) or len(digest) != self._hash_len:
                raise ParleyError(ApplicationCodes.PASSWORD_HASH_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Invalid Argon2i digest length", "expected_hash")

            return digest

        except ParleyError:
            raise
        except (HashingError, ValueError, TypeError):
            raise ParleyError(ApplicationCodes.PASSWORD_HASH_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Argon2i hashing failed", "password")




    """
        Verify a password against a known Argon2i digest using constant-time comparison.

        @param password (bytes): Password input to hash and compare.
        @param salt (bytes): Salt used during original hashing.
        @param expected_hash (bytes): Stored Argon2i digest for comparison.

        @return bool: True if recomputed digest matches expected_hash; False otherwise.

        @ensures Comparison is performed using hmac.compare_digest.
    """
    def verify_password(self, password: bytes, salt: bytes, expected_hash: bytes) -> bool:

        if not isinstance(expected_hash, (bytes, bytearray)):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, "expected_hash must be bytes", "expected_hash")

        if len(expected_hash) != self._hash_len:
            raise ParleyError(ApplicationCodes.INVALID_LENGTH, HTTPCodes.BAD_REQUEST, f"expected_hash must be {self._hash_len} bytes", "expected_hash")

        recomputed = self.hash_password(password, salt)

        return hmac.compare_digest(recomputed, bytes(expected_hash))




    """
        Salt and hash a plaintext secret into a fresh Credential.

        @param plaintext (str): Password as submitted by the client.
        @return Credential: New digest and the newly generated salt it was derived with.
        @ensures Two calls with the same plaintext never share a salt.
    """
    def hash(self, plaintext: str) -> Credential:

        if not isinstance(plaintext, str):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, "password must be a string", "password")

        salt = self.generate_salt()
        digest = self.hash_password(plaintext.encode("utf-8"), salt)

        return Credential(hash=digest, salt=salt)




    """
        Check a candidate plaintext against a stored Credential.

        @param candidate (str): Password as submitted by the client.
        @param stored (Credential): Digest and salt read from storage.
        @return bool: True only when Argon2i(candidate, stored.salt) equals stored.hash.
    """
    def verify(self, candidate: str, stored: Credential) -> bool:

        if not isinstance(candidate, str):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.BAD_REQUEST, "password must be a string", "password")

        return self.verify_password(candidate.encode("utf-8"), stored.salt, stored.hash)
