#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: constants.py
    Author: Alex Biddle

    Description:
        Centralized protocol constants for Parley's request envelope.
        Defines the operation and target tokens, entity field names, the
        success status code, Argon2i parameters, and regex patterns shared
        across validation modules (packet handlers, sanitization, and request
        processing).
"""

import re
from typing import Set


# Status value returned by every successful handler
RESPONSE_STATUS_SUCCESS: int = 1

# Status value carried by every error packet
RESPONSE_STATUS_FAILURE: int = 0

# Maximum Base64URL text length (characters)
_MAX_B64URL_BYTES = 65536

# Maximum accepted request body (bytes)
_MAX_CONTENT_LENGTH = 262_144

# ISO8601 UTC timestamp regex
_ISO8601Z = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")

# Base64URL regex with optional padding
_BASE64URL_RX = re.compile(r"^[A-Za-z0-9_\-]*={0,2}$")


################################################################################################
# Credential hashing (Argon2i "simple" profile)
################################################################################################

# Number of bytes for a credential salt
_CREDENTIAL_SALT_LEN_BYTES = 32

# Number of bytes for a hashed password
_HASHED_PASSWORD_LENGTH = 32

_ARGON2_TIME_COST = 10
_ARGON2_MEMORY_COST_KIB = 4096
_ARGON2_PARALLELISM = 4


################################################################################################
# Request envelope
################################################################################################

# Top-level field naming the operation, e.g. "CREATE USERS"
_FUNCTION_FIELD = "function"

# Allowed operation tokens
_ALLOWED_OPERATIONS: Set[str] = {"CREATE", "READ", "UPDATE", "DELETE", "VERIFY"}

# Allowed target tokens
_ALLOWED_TARGETS: Set[str] = {"USERS", "MESSAGES", "CONVERSATIONS"}

# Optional entity lists carried by the envelope
_USERS_FIELD = "users"
_MESSAGES_FIELD = "messages"
_CONVERSATIONS_FIELD = "conversations"


################################################################################################
# Environment configuration
################################################################################################

_ENV_DB_CREDENTIALS = "PARLEY_DB_CREDENTIALS"
_ENV_AUDIT_LOG = "PARLEY_AUDIT_LOG"
_ENV_SECRET_KEY = "FLASK_SECRET_KEY"

# Cookie session keys holding the login state
_SESSION_EMAIL_KEY = "login_email"
_SESSION_AUTHENTICATED_KEY = "login_is_authenticated"
