#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from datetime import datetime, timezone
import json
import os
import sys
import typing
import threading
import parley.constants as CONSTANTS

_DEFAULT_AUDIT_FILE = os.path.join(os.path.dirname(__file__), "audit.log")


#####################################################################################################################################################################

"""
    Provides persistent structured audit logging for Parley.

    One JSON object per line; the path comes from the constructor, then the
    PARLEY_AUDIT_LOG environment variable, then audit.log beside this module.
"""
class AuditLog:

	def __init__(self, path: typing.Optional[str] = None):
		self._lock = threading.RLock()
		self._path = path or os.environ.get(CONSTANTS._ENV_AUDIT_LOG) or _DEFAULT_AUDIT_FILE


	@property
	def path(self) -> str:
		return self._path


	def event(self, **kv: typing.Any):

		# Construct ISO8601Z timestamp
		ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

		record = {"timestamp": ts}
		record.update(kv)

		with self._lock:
			try:
				with open(self._path, "a", encoding="utf-8") as f:
					json.dump(record, f, ensure_ascii=False, default=str)
					f.write("\n")

			# Auditing never fails the request that triggered it
			except OSError as e:
				print(f"Audit log write error: {e}", file=sys.stderr)
