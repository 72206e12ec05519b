"""Services for server-audit.

Importing this package imports asyncssh; check the engine first.
"""

from server_audit.services.facts import gather_facts, gather_packages, gather_services
from server_audit.services.runner import AuditRunner
from server_audit.services.session import SessionState, SSHSession
from server_audit.services.sink import ResultSink

__all__ = [
    "AuditRunner",
    "ResultSink",
    "SessionState",
    "SSHSession",
    "gather_facts",
    "gather_packages",
    "gather_services",
]
