"""Fixed, ordered catalog of collection operations.

The audit plan is data: one generic loop in the runner consumes it. The only
branch is the OS-family package listing, picked from OS_PACKAGE_LISTINGS.
"""

from typing import Any

from server_audit.models import Operation, OperationKind

GATHER_FACTS = Operation("facts", OperationKind.FACTS, artifact="facts")

CONFIG_CANDIDATES = [
    "/etc/ssh/sshd_config",
    "/etc/nginx/nginx.conf",
    "/etc/nginx/sites-enabled/default",
    "/etc/apache2/apache2.conf",
    "/etc/httpd/conf/httpd.conf",
    "/etc/fstab",
    "/etc/hosts",
    "/etc/resolv.conf",
]

# OS family -> raw package listing; families not listed get none
OS_PACKAGE_LISTINGS: dict[str, Operation] = {
    "Debian": Operation(
        "packages_dpkg", OperationKind.COMMAND, artifact="packages_dpkg", command="dpkg -l"
    ),
    "RedHat": Operation(
        "packages_rpm", OperationKind.COMMAND, artifact="packages_rpm", command="rpm -qa"
    ),
}


def _command(artifact: str, command: str) -> Operation:
    return Operation(artifact, OperationKind.COMMAND, artifact=artifact, command=command)


def operations_for(os_family: str | None, top_processes: int = 50) -> list[Operation]:
    """Build the ordered operations that follow fact gathering.

    Args:
        os_family: Family detected by fact gathering, or None if unknown
        top_processes: Rows kept in the CPU and memory process listings

    Returns:
        Operations in execution order
    """
    operations = [Operation("packages", OperationKind.PACKAGES, artifact="packages")]

    listing = OS_PACKAGE_LISTINGS.get(os_family or "")
    if listing is not None:
        operations.append(listing)

    operations += [
        Operation("services", OperationKind.SERVICES, artifact="services"),
        _command(
            "services_running",
            "systemctl list-units --type=service --state=running",
        ),
        _command("listening_ports", "ss -tulpn"),
        _command("lsblk", "lsblk -o NAME,FSTYPE,SIZE,MOUNTPOINT,TYPE"),
        _command("df", "df -h"),
        _command("top_cpu", f"ps aux --sort=-%cpu | head -n {top_processes}"),
        _command("top_mem", f"ps aux --sort=-rss | head -n {top_processes}"),
    ]

    operations += [
        Operation(f"config:{path}", OperationKind.FETCH, path=path)
        for path in CONFIG_CANDIDATES
    ]
    return operations


def describe_plan(top_processes: int = 50) -> dict[str, Any]:
    """Describe every operation a run may execute, for tasks.json."""
    return {
        "first": GATHER_FACTS.describe(),
        "operations": [op.describe() for op in operations_for(None, top_processes)],
        "os_family_branches": {
            family: op.describe() for family, op in OS_PACKAGE_LISTINGS.items()
        },
    }
