#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: error_handler.py
    Author: Alex Biddle

    Description:
        Centralized error handling for all Parley backend components.
        Defines the single ParleyError exception type, the HTTP and
        application code containers, and the ErrorHandler that converts any
        exception into a canonical failure packet while recording the raw
        detail in the audit log.
"""


from dataclasses import dataclass
from typing import Optional, Tuple
from datetime import datetime, timezone
from parley.utilities.audit_log import AuditLog
import parley.constants as CONSTANTS



"""
    Container Class for HTTP status constants.
"""
@dataclass
class HTTPCodes:
    # 200 OK
    OK = 200

    # 400 Bad Request
    BAD_REQUEST = 400

    # 401 Unauthorized
    UNAUTHORIZED = 401

    # 404 Not Found
    NOT_FOUND = 404

    # 500 Internal Server Error
    INTERNAL_SERVER_ERROR = 500


"""
    Container Class for server error code strings.
"""
@dataclass
class ApplicationCodes:

    MALFORMED_JSON           = "malformed_json"
    MISSING_FIELDS           = "missing_fields"
    INVALID_TYPE             = "invalid_type"
    INVALID_LENGTH           = "invalid_length"
    INVALID_CONTENT_TYPE     = "invalid_content_type"
    INVALID_REQUEST          = "invalid_request"
    INVALID_BASE64URL        = "invalid_base64url"
    INVALID_TIMESTAMP        = "invalid_timestamp"
    UNKNOWN_OPERATION        = "unknown_operation"
    UNKNOWN_TARGET           = "unknown_target"
    UNSUPPORTED_OPERATION    = "unsupported_operation"
    INTEGRITY_ERROR          = "integrity_error"
    NOT_AUTHENTICATED        = "not_authenticated"
    AUTH_FAILED              = "auth_failed"
    NOT_FOUND                = "not_found"
    STORAGE_ERROR            = "storage_error"
    INVALID_SALT             = "invalid_salt"
    PASSWORD_HASH_ERROR      = "password_hash_error"
    INVALID_PATH             = "invalid_path"
    INTERNAL_SERVER_ERROR    = "internal_server_error"


"""
    Container Class for the abstract error kinds a caller of the core can act on.
"""
@dataclass
class ErrorKinds:
    INVALID_REQUEST = "InvalidRequest"
    UNAUTHORIZED    = "Unauthorized"
    NOT_FOUND       = "NotFound"
    STORAGE_ERROR   = "StorageError"
    INTEGRITY_ERROR = "IntegrityError"
    INTERNAL        = "Internal"


# Application codes that do not follow directly from the HTTP code
_KIND_BY_APPLICATION_CODE = {
    ApplicationCodes.INTEGRITY_ERROR: ErrorKinds.INTEGRITY_ERROR,
    ApplicationCodes.STORAGE_ERROR: ErrorKinds.STORAGE_ERROR,
}

_KIND_BY_HTTP_CODE = {
    HTTPCodes.BAD_REQUEST: ErrorKinds.INVALID_REQUEST,
    HTTPCodes.UNAUTHORIZED: ErrorKinds.UNAUTHORIZED,
    HTTPCodes.NOT_FOUND: ErrorKinds.NOT_FOUND,
}



class ParleyError(Exception):

    """
        Initialize a ParleyError containing application code, HTTP code, detail message, and field context.

        @param application_code (str): Identifier from ApplicationCodes signaling the failure type.
        @param http_code (int): HTTP status code associated with the error.
        @param detail (str): Descriptive message intended for client-facing error packets.
        @param field (str): Logical field related to the error (optional).
        @require isinstance(application_code, str)
        @require isinstance(http_code, int)
        @require isinstance(detail, str)
        @ensures Error metadata is accessible to the centralized ErrorHandler.
    """
    def __init__(self, application_code: str, http_code: int, detail: str, field: str = "") -> None:
        self.application_code = application_code
        self.http_code = http_code
        self.detail = detail
        self.field = field
        super().__init__(f"{application_code}: {detail}")


    """
        Abstract error kind (InvalidRequest, Unauthorized, NotFound, StorageError, IntegrityError).
    """
    @property
    def kind(self) -> str:
        if self.application_code in _KIND_BY_APPLICATION_CODE:
            return _KIND_BY_APPLICATION_CODE[self.application_code]
        return _KIND_BY_HTTP_CODE.get(self.http_code, ErrorKinds.INTERNAL)






class ErrorHandler:

    """
        Initialize the ErrorHandler and attach an AuditLog for diagnostic event recording.

        @param audit_log (AuditLog|None): Shared audit log; a private one is created when omitted.
        @ensures ErrorHandler is ready to format and log errors.
    """
    def __init__(self, audit_log: Optional[AuditLog] = None) -> None:

        self.audit_log = audit_log if audit_log is not None else AuditLog()


    """
        Process an exception and return a standardized Parley error packet.

        @param e (Exception): Exception raised during request handling.
        @param email (str): Identity associated with the request, if known.
        @param context (str): Logical context string identifying the failing operation.
        @return tuple[dict, int]: (clean_error_packet, http_status_code)
        @ensures Exception is logged to audit_log and a canonical failure packet is returned.
    """
    def handle_server_error(self, e: Exception, email: str = "", context: str = "") -> Tuple[dict, int]:

        # If the exception is already a ParleyError
        if isinstance(e, ParleyError):
            application_code = e.application_code
            http_code = e.http_code
            message = e.detail
            field = e.field
        else:
            # For non-raised errors, normalize to INTERNAL_SERVER_ERROR
            application_code = ApplicationCodes.INTERNAL_SERVER_ERROR
            http_code = HTTPCodes.INTERNAL_SERVER_ERROR
            message = "An internal server error occurred. Please try again later."
            field = ""

        # Always log the raw exception detail for operators
        self.audit_log.event(event="server_exception", email=email, context=context, detail=str(e))

        clean_packet = self.create_error_response_packet(email, message, application_code, field)

        return clean_packet, http_code




    """
        Build a standardized Parley error response packet.

        @param email (str): Identity associated with the failure, if any.
        @param message (str): Human-readable error message for client.
        @param error_code (str): One of ApplicationCodes.* defining the error type.
        @param field (str): Logical field associated with the error (optional).
        @return dict: Error packet with status 0 and an ISO8601Z timestamp.
    """
    def create_error_response_packet(self, email: str, message: str, error_code: str, field: str = "") -> dict:
        try:
            timestamp_iso = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

            packet = {
                "status": CONSTANTS.RESPONSE_STATUS_FAILURE,
                "email": email,
                "timestamp": timestamp_iso,
                "message": message,
                "error_code": error_code,
                "field": field
            }

            return packet

        except ParleyError:
            raise
        except Exception:
            raise ParleyError(ApplicationCodes.INTERNAL_SERVER_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Internal error creating error response packet.", "")
