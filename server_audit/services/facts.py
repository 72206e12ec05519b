"""Structured fact collection over the session's command channel.

Each probe is independent: a probe that fails leaves its keys out of the
result and never stops the others.
"""

import logging
import re
import shlex
from datetime import datetime
from typing import Any

from server_audit.errors import OperationError
from server_audit.protocols import RemoteSession

logger = logging.getLogger(__name__)

# os-release ID -> family
OS_FAMILIES: dict[str, str] = {
    "debian": "Debian",
    "ubuntu": "Debian",
    "linuxmint": "Debian",
    "raspbian": "Debian",
    "pop": "Debian",
    "kali": "Debian",
    "elementary": "Debian",
    "devuan": "Debian",
    "rhel": "RedHat",
    "centos": "RedHat",
    "fedora": "RedHat",
    "rocky": "RedHat",
    "almalinux": "RedHat",
    "ol": "RedHat",
    "amzn": "RedHat",
    "scientific": "RedHat",
    "cloudlinux": "RedHat",
    "sles": "Suse",
    "opensuse": "Suse",
    "opensuse-leap": "Suse",
    "opensuse-tumbleweed": "Suse",
    "arch": "Archlinux",
    "manjaro": "Archlinux",
    "alpine": "Alpine",
    "gentoo": "Gentoo",
}

PSEUDO_FILESYSTEMS = frozenset(
    {
        "autofs", "binfmt_misc", "bpf", "cgroup", "cgroup2", "configfs",
        "debugfs", "devpts", "fusectl", "hugetlbfs", "mqueue", "nsfs",
        "proc", "pstore", "securityfs", "sysfs", "tracefs", "rpc_pipefs",
    }
)


async def _probe(session: RemoteSession, command: str) -> str | None:
    """Run a probe command.

    Returns:
        Stripped stdout on success, None on failure or non-zero exit
    """
    try:
        result = await session.run(command)
    except OperationError as e:
        logger.debug("Probe failed: %s", e)
        return None
    if not result.ok:
        logger.debug("Probe %r exited with %d", command, result.returncode)
        return None
    return result.output.strip()


def parse_os_release(text: str) -> dict[str, str]:
    """Parse /etc/os-release KEY=value lines."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def os_family_for(os_id: str, id_like: str = "") -> str | None:
    """Map an os-release ID (and ID_LIKE fallback) to an OS family."""
    family = OS_FAMILIES.get(os_id.lower())
    if family:
        return family
    for like in id_like.lower().split():
        family = OS_FAMILIES.get(like)
        if family:
            return family
    return None


def parse_kv_colon(text: str) -> dict[str, str]:
    """Parse 'Key: value' lines, as found in /proc/meminfo."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            values[key.strip()] = value.strip()
    return values


def parse_meminfo(text: str) -> dict[str, int]:
    """Extract memory totals in MiB from /proc/meminfo."""
    raw = parse_kv_colon(text)
    wanted = {
        "MemTotal": "memtotal_mb",
        "MemFree": "memfree_mb",
        "SwapTotal": "swaptotal_mb",
        "SwapFree": "swapfree_mb",
    }
    facts: dict[str, int] = {}
    for key, fact in wanted.items():
        value = raw.get(key, "").split()
        if value and value[0].isdigit():
            facts[fact] = int(value[0]) // 1024
    return facts


def parse_cpuinfo(text: str) -> dict[str, Any]:
    """Count logical processors and collect model names from /proc/cpuinfo."""
    count = 0
    models: list[str] = []
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if key == "processor":
            count += 1
        elif key == "model name":
            models.append(value.strip())
    facts: dict[str, Any] = {"processor_count": count}
    if models:
        facts["processor"] = sorted(set(models))
    return facts


def parse_ip_addr(text: str) -> dict[str, dict[str, list[dict[str, Any]]]]:
    """Parse `ip -o addr show` into interface -> ipv4/ipv6 address lists."""
    interfaces: dict[str, dict[str, list[dict[str, Any]]]] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 4 or parts[2] not in ("inet", "inet6"):
            continue
        name = parts[1].split("@", 1)[0]
        address, _, prefix = parts[3].partition("/")
        family = "ipv4" if parts[2] == "inet" else "ipv6"
        entry: dict[str, Any] = {"address": address}
        if prefix.isdigit():
            entry["prefix"] = int(prefix)
        iface = interfaces.setdefault(name, {"ipv4": [], "ipv6": []})
        iface[family].append(entry)
    return interfaces


def parse_default_route(text: str) -> dict[str, str]:
    """Parse the first line of `ip route show default`."""
    for line in text.splitlines():
        parts = line.split()
        if not parts or parts[0] != "default":
            continue
        route: dict[str, str] = {}
        for key, fact in (("via", "gateway"), ("dev", "interface"), ("src", "address")):
            if key in parts:
                index = parts.index(key)
                if index + 1 < len(parts):
                    route[fact] = parts[index + 1]
        return route
    return {}


def parse_mounts(text: str) -> list[dict[str, str]]:
    """Parse /proc/mounts, skipping pseudo filesystems."""
    mounts: list[dict[str, str]] = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 4 or parts[2] in PSEUDO_FILESYSTEMS:
            continue
        mounts.append(
            {
                "device": parts[0],
                "mount": parts[1].replace("\\040", " "),
                "fstype": parts[2],
                "options": parts[3],
            }
        )
    return mounts


async def gather_facts(session: RemoteSession) -> dict[str, Any]:
    """Gather OS, platform, hardware, network and mount facts.

    Returns:
        Nested key/value facts; keys of failed probes are absent
    """
    facts: dict[str, Any] = {"date_time": datetime.now().astimezone().isoformat()}

    os_release = await _probe(
        session, "cat /etc/os-release 2>/dev/null || cat /usr/lib/os-release"
    )
    if os_release is not None:
        release = parse_os_release(os_release)
        os_id = release.get("ID", "")
        facts["distribution"] = release.get("NAME", os_id)
        facts["distribution_id"] = os_id
        facts["distribution_version"] = release.get("VERSION_ID", "")
        facts["distribution_release"] = release.get("VERSION_CODENAME", "")
        facts["os_family"] = os_family_for(os_id, release.get("ID_LIKE", ""))

    uname = await _probe(session, "uname -s -r -m")
    if uname:
        parts = uname.split()
        if len(parts) == 3:
            facts["system"], facts["kernel"], facts["architecture"] = parts

    hostname = await _probe(session, "hostname")
    if hostname:
        facts["hostname"] = hostname
    fqdn = await _probe(session, "hostname -f")
    if fqdn:
        facts["fqdn"] = fqdn

    uptime = await _probe(session, "cat /proc/uptime")
    if uptime:
        try:
            facts["uptime_seconds"] = int(float(uptime.split()[0]))
        except (ValueError, IndexError):
            logger.debug("Unparseable /proc/uptime: %r", uptime)

    cpuinfo = await _probe(session, "cat /proc/cpuinfo")
    if cpuinfo is not None:
        facts.update(parse_cpuinfo(cpuinfo))

    meminfo = await _probe(session, "cat /proc/meminfo")
    if meminfo is not None:
        facts.update(parse_meminfo(meminfo))

    for fact, dmi in (("system_vendor", "sys_vendor"), ("product_name", "product_name")):
        value = await _probe(session, f"cat /sys/class/dmi/id/{dmi}")
        if value:
            facts[fact] = value

    virt = await _probe(session, "systemd-detect-virt 2>/dev/null || true")
    if virt:
        facts["virtualization_type"] = virt

    addresses = await _probe(session, "ip -o addr show")
    if addresses is not None:
        facts["interfaces"] = parse_ip_addr(addresses)

    route = await _probe(session, "ip route show default")
    if route is not None:
        facts["default_ipv4"] = parse_default_route(route)

    mounts = await _probe(session, "cat /proc/mounts")
    if mounts is not None:
        facts["mounts"] = parse_mounts(mounts)

    logger.info(
        "Gathered %d facts (os_family=%s)", len(facts), facts.get("os_family")
    )
    return facts


def _add_package(
    packages: dict[str, list[dict[str, Any]]], entry: dict[str, Any]
) -> None:
    packages.setdefault(entry["name"], []).append(entry)


def parse_dpkg_query(text: str) -> dict[str, list[dict[str, Any]]]:
    """Parse tab separated dpkg-query output (name, version, arch, status)."""
    packages: dict[str, list[dict[str, Any]]] = {}
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        if len(parts) > 3 and parts[3] != "installed":
            continue
        _add_package(
            packages,
            {"name": parts[0], "version": parts[1], "arch": parts[2], "source": "apt"},
        )
    return packages


def parse_rpm_query(text: str) -> dict[str, list[dict[str, Any]]]:
    """Parse tab separated rpm output (name, version, release, epoch, arch)."""
    packages: dict[str, list[dict[str, Any]]] = {}
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) != 5:
            continue
        name, version, release, epoch, arch = parts
        _add_package(
            packages,
            {
                "name": name,
                "version": version,
                "release": release,
                "epoch": int(epoch) if epoch.isdigit() else None,
                "arch": arch,
                "source": "rpm",
            },
        )
    return packages


def parse_pacman_query(text: str) -> dict[str, list[dict[str, Any]]]:
    """Parse `pacman -Q` output ('name version-release')."""
    packages: dict[str, list[dict[str, Any]]] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) != 2:
            continue
        version, _, release = parts[1].rpartition("-")
        _add_package(
            packages,
            {
                "name": parts[0],
                "version": version or parts[1],
                "release": release if version else "",
                "source": "pacman",
            },
        )
    return packages


_APK_PACKAGE = re.compile(r"^(?P<name>.+)-(?P<version>[^-]+)-(?P<release>r\d+)$")


def parse_apk_list(text: str) -> dict[str, list[dict[str, Any]]]:
    """Parse `apk list --installed` output."""
    packages: dict[str, list[dict[str, Any]]] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        match = _APK_PACKAGE.match(parts[0])
        if not match:
            continue
        _add_package(
            packages,
            {
                "name": match.group("name"),
                "version": match.group("version"),
                "release": match.group("release"),
                "arch": parts[1],
                "source": "apk",
            },
        )
    return packages


# Probe order matters: a Debian host with rpm installed is still apt-managed.
PACKAGE_MANAGERS = [
    (
        "dpkg-query",
        "dpkg-query -W -f='${Package}\\t${Version}\\t${Architecture}\\t${db:Status-Status}\\n'",
        parse_dpkg_query,
    ),
    (
        "rpm",
        "rpm -qa --queryformat '%{NAME}\\t%{VERSION}\\t%{RELEASE}\\t%{EPOCH}\\t%{ARCH}\\n'",
        parse_rpm_query,
    ),
    ("pacman", "pacman -Q", parse_pacman_query),
    ("apk", "apk list --installed", parse_apk_list),
]


async def gather_packages(session: RemoteSession) -> dict[str, list[dict[str, Any]]]:
    """List installed packages with the first package manager found.

    Returns:
        Package name -> list of installed versions; {} if no manager found
    """
    for binary, command, parser in PACKAGE_MANAGERS:
        if await _probe(session, f"command -v {binary}") is None:
            continue
        output = await _probe(session, command)
        if output is None:
            logger.warning("Package listing with %s failed", binary)
            return {}
        packages = parser(output)
        logger.info("Found %d packages via %s", len(packages), binary)
        return packages

    logger.warning("No supported package manager found")
    return {}


_SYSTEMD_STATES = {
    "running": "running",
    "exited": "stopped",
    "dead": "stopped",
    "failed": "failed",
}


def parse_systemctl_units(text: str) -> dict[str, dict[str, str]]:
    """Parse `systemctl list-units --type=service --all --plain --no-legend`."""
    services: dict[str, dict[str, str]] = {}
    for line in text.splitlines():
        parts = line.lstrip("●* ").split()
        if len(parts) < 4 or not parts[0].endswith(".service"):
            continue
        name, sub = parts[0], parts[3]
        services[name] = {
            "name": name,
            "state": _SYSTEMD_STATES.get(sub, "unknown"),
            "status": "unknown",
            "source": "systemd",
        }
    return services


def parse_unit_files(text: str) -> dict[str, str]:
    """Parse `systemctl list-unit-files --type=service --no-legend`."""
    statuses: dict[str, str] = {}
    for line in text.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[0].endswith(".service"):
            statuses[parts[0]] = parts[1]
    return statuses


_SYSV_STATES = {"+": "running", "-": "stopped", "?": "unknown"}
_SYSV_LINE = re.compile(r"^\s*\[\s*(?P<flag>[+\-?])\s*\]\s+(?P<name>\S+)")


def parse_sysv_status(text: str) -> dict[str, dict[str, str]]:
    """Parse `service --status-all` output."""
    services: dict[str, dict[str, str]] = {}
    for line in text.splitlines():
        match = _SYSV_LINE.match(line)
        if not match:
            continue
        name = match.group("name")
        services[name] = {
            "name": name,
            "state": _SYSV_STATES[match.group("flag")],
            "status": "unknown",
            "source": "sysv",
        }
    return services


async def gather_services(session: RemoteSession) -> dict[str, dict[str, str]]:
    """Collect service state from systemd, or sysv init as a fallback.

    Returns:
        Service name -> {name, state, status, source}; {} if neither is present
    """
    if await _probe(session, "command -v systemctl") is not None:
        units = await _probe(
            session,
            "systemctl list-units --type=service --all --plain --no-legend --no-pager",
        )
        services = parse_systemctl_units(units or "")
        unit_files = await _probe(
            session, "systemctl list-unit-files --type=service --no-legend --no-pager"
        )
        for name, status in parse_unit_files(unit_files or "").items():
            if name in services:
                services[name]["status"] = status
            else:
                services[name] = {
                    "name": name,
                    "state": "unknown" if "@." in name else "stopped",
                    "status": status,
                    "source": "systemd",
                }
        logger.info("Found %d systemd services", len(services))
        return services

    sysv = await _probe(session, "service --status-all 2>&1")
    if sysv is not None:
        services = parse_sysv_status(sysv)
        logger.info("Found %d sysv services", len(services))
        return services

    logger.warning("No service manager found")
    return {}
